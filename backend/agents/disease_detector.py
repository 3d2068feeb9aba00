"""
Disease Detection Agent
Detects diseases or abnormalities on a plant leaf, given the leaf photo and species.
"""
import logging

from pydantic import BaseModel, Field

from backend.agents.base import PromptAgent, Text
from backend.services.imaging import describe_data_uri, parse_data_uri, prepare_image

logger = logging.getLogger(__name__)

DISEASE_STATUS_DETECTED_URDU = "بیماری پائی گئی"
DISEASE_STATUS_HEALTHY_URDU = "صحت مند"


class DetectDiseaseInput(BaseModel):
    leafImageDataUri: str = Field(
        ...,
        description="A photo of a plant leaf, as a data URI that must include a MIME type and use Base64 encoding.",
    )
    plantSpecies: str = Field(..., min_length=1, description="The species of the plant the leaf belongs to.")


class DiseaseDetection(BaseModel):
    diseaseDetected: bool
    likelyCauses: Text = ""
    diseaseStatusUrdu: Text = ""
    likelyCausesUrdu: Text = ""


DETECT_PROMPT = """You are an expert in plant pathology. Analyze the provided image of a plant leaf and detect potential diseases or abnormalities.

Plant Species: {plant_species}

RETURN ONLY ONE JSON OBJECT with these keys:
- `diseaseDetected`: (boolean) Whether a disease or abnormality is detected.
- `likelyCauses`: (string) The likely causes in English.
- `diseaseStatusUrdu`: (string) The disease status in Urdu. If a disease is detected, use "{detected_urdu}". If healthy, use "{healthy_urdu}". If not applicable, provide an empty string.
- `likelyCausesUrdu`: (string) The likely causes in Urdu. If not applicable, provide an empty string.

The leaf image is attached.
"""


def build_detect_prompt(plant_species: str) -> str:
    return DETECT_PROMPT.format(
        plant_species=plant_species,
        detected_urdu=DISEASE_STATUS_DETECTED_URDU,
        healthy_urdu=DISEASE_STATUS_HEALTHY_URDU,
    )


class DiseaseDetectionAgent(PromptAgent):
    stage = "disease detection"
    failure_message = "Server-side analysis failed during disease detection. Please check server logs for details."

    def detect(self, req: DetectDiseaseInput) -> DiseaseDetection:
        logger.info(
            "[Flow Entry] detectDiseaseFromImage: leafImageDataUri length: %s, plantSpecies: %s",
            len(req.leafImageDataUri or ""),
            req.plantSpecies,
        )
        logger.debug("[Flow Detail] detectDiseaseFromImage: leafImageDataUri: %s", describe_data_uri(req.leafImageDataUri))

        image = prepare_image(parse_data_uri(req.leafImageDataUri))

        try:
            result = self._generate(build_detect_prompt(req.plantSpecies), DiseaseDetection, images=[image])
        except Exception as e:
            raise self._failure(
                e,
                f"Input: plantSpecies: {req.plantSpecies}, leafImageDataUri: {describe_data_uri(req.leafImageDataUri)}",
            ) from e

        logger.info("[Flow Success] detectDiseaseFromImage: Disease detected: %s", result.diseaseDetected)
        return result
