"""
Unit tests for the three prompt agents with a fake model client.
"""
import httpx
import pytest

from backend.agents.base import strip_list_markers
from backend.agents.disease_detector import DetectDiseaseInput, DiseaseDetectionAgent
from backend.agents.plant_identifier import IdentifyPlantInput, PlantIdentificationAgent
from backend.agents.treatment_advisor import SuggestTreatmentInput, TreatmentAdvisorAgent, build_treatment_prompt
from backend.errors import AnalysisError, GeminiConfigurationError, ImageValidationError, ModelOutputError
from tests.conftest import DISEASED_REPLY, IDENTIFICATION_REPLY, TREATMENT_REPLY, FakeGeminiClient


class TestPlantIdentificationAgent:
    def test_identifies_plant(self, data_uri):
        client = FakeGeminiClient([IDENTIFICATION_REPLY])
        result = PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri=data_uri))

        assert result.englishIdentification.commonName == "Tomato"
        assert result.englishIdentification.latinName == "Solanum lycopersicum"
        assert result.urduIdentification.commonName == "ٹماٹر"
        assert result.confidence == pytest.approx(0.93)
        assert "expert botanist" in client.calls[0]["prompt"]
        assert len(client.calls[0]["images"]) == 1

    def test_lenient_optional_fields(self, data_uri):
        reply = {
            "englishIdentification": {"commonName": "Mint", "latinName": None},
            "urduIdentification": None,
            "confidence": "1.7",
        }
        client = FakeGeminiClient([reply])
        result = PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri=data_uri))
        assert result.englishIdentification.latinName == ""
        assert result.urduIdentification.commonName == ""
        assert result.confidence == 1.0
        assert result.wikiLink == ""

    def test_empty_output_is_generic_failure(self, data_uri):
        client = FakeGeminiClient([{}])
        with pytest.raises(AnalysisError) as exc:
            PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri=data_uri))
        assert exc.value.message == (
            "Server-side analysis failed during plant identification. Please check server logs for details."
        )
        assert isinstance(exc.value.__cause__, ModelOutputError)

    def test_schema_mismatch_is_generic_failure(self, data_uri):
        client = FakeGeminiClient([{"plant": "unknown"}])
        with pytest.raises(AnalysisError):
            PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri=data_uri))

    def test_missing_configuration_kept_as_cause(self, data_uri):
        client = FakeGeminiClient([GeminiConfigurationError("GEMINI_API_KEY not configured")])
        with pytest.raises(AnalysisError) as exc:
            PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri=data_uri))
        assert isinstance(exc.value.__cause__, GeminiConfigurationError)

    def test_bad_image_is_not_an_analysis_failure(self):
        client = FakeGeminiClient([IDENTIFICATION_REPLY])
        with pytest.raises(ImageValidationError):
            PlantIdentificationAgent(client).identify(IdentifyPlantInput(photoDataUri="data:text/plain;base64,aGk="))
        assert client.calls == []


class TestDiseaseDetectionAgent:
    def test_prompt_includes_species(self, data_uri):
        client = FakeGeminiClient([DISEASED_REPLY])
        result = DiseaseDetectionAgent(client).detect(
            DetectDiseaseInput(leafImageDataUri=data_uri, plantSpecies="Solanum lycopersicum")
        )
        assert result.diseaseDetected is True
        assert result.likelyCausesUrdu
        prompt = client.calls[0]["prompt"]
        assert "Plant Species: Solanum lycopersicum" in prompt
        assert "بیماری پائی گئی" in prompt

    def test_failure_message(self, data_uri):
        client = FakeGeminiClient([RuntimeError("upstream exploded")])
        with pytest.raises(AnalysisError) as exc:
            DiseaseDetectionAgent(client).detect(DetectDiseaseInput(leafImageDataUri=data_uri, plantSpecies="Rosa"))
        assert exc.value.stage == "disease detection"
        assert "disease detection" in exc.value.message

    def test_species_required(self, data_uri):
        with pytest.raises(ValueError):
            DetectDiseaseInput(leafImageDataUri=data_uri, plantSpecies="")


class TestTreatmentAdvisorAgent:
    def test_suggests_treatment(self):
        client = FakeGeminiClient([TREATMENT_REPLY])
        result = TreatmentAdvisorAgent(client).suggest(
            SuggestTreatmentInput(plantSpecies="Solanum lycopersicum", diseaseDescription="Early blight")
        )
        assert result.chemicalTreatments[0].productsInPakistan[0].brandName == "Daconil"
        assert result.preventativeMeasuresUrdu == ""
        assert client.calls[0]["images"] == []

    def test_urdu_line_only_when_given(self):
        without = build_treatment_prompt(SuggestTreatmentInput(plantSpecies="Rosa", diseaseDescription="Black spot"))
        with_urdu = build_treatment_prompt(
            SuggestTreatmentInput(plantSpecies="Rosa", diseaseDescription="Black spot", diseaseDescriptionUrdu="سیاہ دھبے")
        )
        assert "Urdu: '" not in without
        assert "Urdu: 'سیاہ دھبے'" in with_urdu
        assert "species 'Rosa'" in with_urdu

    def test_list_markers_stripped_and_nulls_defaulted(self):
        reply = {
            "suggestedSolutions": "* Prune affected leaves\n- Water at the base",
            "preventativeMeasures": "• Mulch around plants",
            "suggestedSolutionsUrdu": None,
            "chemicalTreatments": None,
        }
        result = TreatmentAdvisorAgent(FakeGeminiClient([reply])).suggest(
            SuggestTreatmentInput(plantSpecies="Rosa", diseaseDescription="Black spot")
        )
        assert result.suggestedSolutions == "Prune affected leaves\nWater at the base"
        assert result.preventativeMeasures == "Mulch around plants"
        assert result.suggestedSolutionsUrdu == ""
        assert result.chemicalTreatments == []

    def test_failure_message_and_cause(self):
        cause = httpx.ConnectError("connection refused")
        client = FakeGeminiClient([cause])
        with pytest.raises(AnalysisError) as exc:
            TreatmentAdvisorAgent(client).suggest(SuggestTreatmentInput(plantSpecies="Rosa", diseaseDescription="x"))
        assert exc.value.message == "Server-side analysis failed during treatment suggestion."
        assert exc.value.__cause__ is cause


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("- one\n- two", "one\ntwo"),
        ("plain text", "plain text"),
        ("keep-hyphen inside", "keep-hyphen inside"),
        ("1. numbered stays", "1. numbered stays"),
        (None, ""),
    ],
)
def test_strip_list_markers(raw, expected):
    assert strip_list_markers(raw) == expected
