"""LeafWise backend: leaf photo in, species, disease and treatment out."""
