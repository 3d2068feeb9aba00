"""
Plant Identification Agent
Identifies a plant species from a photo, with details in English and Urdu.
"""
import logging

from pydantic import BaseModel, Field

from backend.agents.base import Confidence, PromptAgent, Text, optional_object
from backend.services.imaging import describe_data_uri, parse_data_uri, prepare_image

logger = logging.getLogger(__name__)


class IdentifyPlantInput(BaseModel):
    photoDataUri: str = Field(
        ...,
        description="A photo of a plant, as a data URI that must include a MIME type and use Base64 encoding. "
        "Expected format: 'data:<mimetype>;base64,<encoded_data>'.",
    )


class EnglishIdentification(BaseModel):
    commonName: Text
    latinName: Text = ""


class UrduIdentification(BaseModel):
    commonName: Text = ""
    latinNameRepresentation: Text = ""


class PlantIdentification(BaseModel):
    englishIdentification: EnglishIdentification
    urduIdentification: optional_object(UrduIdentification) = Field(default_factory=UrduIdentification)
    confidence: Confidence = 0.0
    wikiLink: Text = ""


IDENTIFY_PROMPT = """You are an expert botanist specializing in plant identification.
You will use the image to identify the plant species.

For the identified plant, RETURN ONLY ONE JSON OBJECT with the following structure:

1. `englishIdentification` (object):
   - `commonName`: The common name of the identified plant species in English.
   - `latinName`: The scientific/Latin name of the identified plant species.
2. `urduIdentification` (object):
   - `commonName`: The common name of the identified plant species in Urdu. If an Urdu common name is not readily available or applicable, provide an empty string.
   - `latinNameRepresentation`: The scientific/Latin name phonetically transliterated or explained in Urdu script. For example, if the Latin name is "Rosa indica", you might provide "روزا انڈیکا". If not applicable, provide an empty string.
3. `confidence`: A numerical confidence level (0-1) for the identification (e.g., 0.95).
4. `wikiLink`: A link to the English Wikipedia article for the plant. Ensure this is a complete and valid URL.

The photo of the plant is attached.
"""


class PlantIdentificationAgent(PromptAgent):
    stage = "plant identification"
    failure_message = "Server-side analysis failed during plant identification. Please check server logs for details."

    def identify(self, req: IdentifyPlantInput) -> PlantIdentification:
        logger.info("[Flow Entry] identifyPlantFromImage: photoDataUri length: %s", len(req.photoDataUri or ""))
        logger.debug("[Flow Detail] identifyPlantFromImage: photoDataUri: %s", describe_data_uri(req.photoDataUri))

        # Bad images are the caller's problem, not an analysis failure
        image = prepare_image(parse_data_uri(req.photoDataUri))

        try:
            result = self._generate(IDENTIFY_PROMPT, PlantIdentification, images=[image])
        except Exception as e:
            raise self._failure(e, f"Input photoDataUri length: {len(req.photoDataUri)}") from e

        logger.info("[Flow Success] identifyPlantFromImage: commonName: %s", result.englishIdentification.commonName)
        return result
