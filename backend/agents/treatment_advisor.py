"""
Treatment Advisor Agent
Suggests treatments for a diagnosed plant disease in English and Urdu,
including chemical options and example products available in Pakistan.
"""
import logging

from pydantic import BaseModel, Field

from backend.agents.base import ListText, PromptAgent, Text, optional_list

logger = logging.getLogger(__name__)


class SuggestTreatmentInput(BaseModel):
    plantSpecies: str = Field(..., min_length=1, description="The species of the plant.")
    diseaseDescription: str = Field(..., description="A description of the detected disease or symptoms in English.")
    diseaseDescriptionUrdu: Text = Field("", description="The same description in Urdu (optional).")


class ProductInfo(BaseModel):
    brandName: str
    manufacturer: Text = ""
    cropUsage: Text = ""


class ChemicalTreatment(BaseModel):
    chemicalName: str
    instructions: Text
    chemicalNameUrdu: Text = ""
    instructionsUrdu: Text = ""
    productsInPakistan: optional_list(ProductInfo) = Field(default_factory=list)


class TreatmentSuggestion(BaseModel):
    suggestedSolutions: ListText
    preventativeMeasures: ListText
    suggestedSolutionsUrdu: ListText = ""
    preventativeMeasuresUrdu: ListText = ""
    chemicalTreatments: optional_list(ChemicalTreatment) = Field(default_factory=list)
    additionalNotes: Text = ""


TREATMENT_PROMPT = """You are a plant health expert and advisor.
A plant of species '{plant_species}' has been diagnosed with the following issue:
English: '{disease_description}'
{urdu_line}
RETURN ONLY ONE JSON OBJECT with the following keys:
1. `suggestedSolutions` / `suggestedSolutionsUrdu`: Detailed, actionable suggested solutions (non-chemical if possible) to treat the current problem, in English AND Urdu. For each solution, provide clear, step-by-step instructions if applicable. Present these solutions as a series of distinct paragraphs or items separated by newlines. Do NOT use markdown list markers like asterisks (*) or hyphens (-).
2. `preventativeMeasures` / `preventativeMeasuresUrdu`: Practical preventative measures to avoid this issue in the future or prevent its spread to other plants, in English AND Urdu. Present these measures similarly, as distinct paragraphs or items separated by newlines, without markdown list markers.
3. `chemicalTreatments`: If applicable, specific chemical treatment options for the diagnosed issue and plant species, as an array of objects. Each object must have:
   - `chemicalName` (the common or chemical name of the active ingredient, in English)
   - `instructions` (general application instructions, including quantity, frequency and safety precautions, in English)
   - `chemicalNameUrdu` (the name in Urdu; if direct translation of technical terms is difficult, use a common transliteration or leave empty)
   - `instructionsUrdu` (the instructions in Urdu; if direct translation is difficult, use a common transliteration or leave empty)
   - `productsInPakistan` (array of objects): 1-2 example commercial products containing this chemical believed to be available in Pakistan. Each has `brandName` (string), `manufacturer` (string, optional) and `cropUsage` (string, optional, e.g. "Vegetables, Cotton"). This is guidance, not an endorsement or real-time inventory. If no product examples are appropriate, provide an empty array.
   If no chemical treatments are commonly recommended for this situation, provide an empty array.
4. `additionalNotes`: A general disclaimer in English, such as: "Always verify product suitability and follow local regulations and label instructions. Chemical availability and regulations can vary." Generate it when chemical treatments are listed; otherwise provide an empty string.

Use clear, easy-to-understand language. If an Urdu translation for a specific technical term is difficult, you may use a common transliteration.
If Urdu output for general solutions or preventative measures cannot be reliably generated, provide an empty string for that Urdu field.
"""


def build_treatment_prompt(req: SuggestTreatmentInput) -> str:
    urdu_line = f"Urdu: '{req.diseaseDescriptionUrdu}'\n" if req.diseaseDescriptionUrdu.strip() else ""
    return TREATMENT_PROMPT.format(
        plant_species=req.plantSpecies,
        disease_description=req.diseaseDescription,
        urdu_line=urdu_line,
    )


class TreatmentAdvisorAgent(PromptAgent):
    stage = "treatment suggestion"
    failure_message = "Server-side analysis failed during treatment suggestion."

    def suggest(self, req: SuggestTreatmentInput) -> TreatmentSuggestion:
        logger.info("[Flow Entry] suggestPlantTreatment: plant: %s", req.plantSpecies)
        try:
            result = self._generate(build_treatment_prompt(req), TreatmentSuggestion)
        except Exception as e:
            raise self._failure(e, f"plant {req.plantSpecies}, disease: {req.diseaseDescription}") from e

        logger.info(
            "[Flow Success] suggestPlantTreatment: solutions length: %s, chemical options: %s",
            len(result.suggestedSolutions),
            len(result.chemicalTreatments),
        )
        return result
