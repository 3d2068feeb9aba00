# LeafWise Agents
"""
Prompt agents for leaf analysis.

Exports:
- PlantIdentificationAgent: Identifies the plant species from a leaf photo
- DiseaseDetectionAgent: Checks the leaf for disease given the species
- TreatmentAdvisorAgent: Suggests treatment and prevention for a diagnosed issue
- LeafAnalysisOrchestrator: Runs the three agents in sequence
"""
from .plant_identifier import PlantIdentificationAgent
from .disease_detector import DiseaseDetectionAgent
from .treatment_advisor import TreatmentAdvisorAgent
from .orchestrator import (
    LeafAnalysisOrchestrator,
    create_orchestrator,
)

__all__ = [
    'PlantIdentificationAgent',
    'DiseaseDetectionAgent',
    'TreatmentAdvisorAgent',
    'LeafAnalysisOrchestrator',
    'create_orchestrator',
]
