"""
Service layer for LeafWise.

- `gemini`: model client (google-generativeai SDK or REST)
- `imaging`: data URI parsing and image preflight
- `localization`: bilingual (English/Urdu) result views
"""
