"""
Leaf Analysis Orchestrator for LeafWise

Runs the three agents in sequence: identify the plant, detect disease on the
leaf, and suggest treatment when a disease is found. Each step is recorded in
a trace, and the progress messages shown to the user are collected as
notifications. A failing step stops the pipeline; whatever finished before it
stays in the result.
"""
from typing import Callable, List, Optional, TypeVar
import logging
import time

import httpx
from pydantic import BaseModel, Field

from backend.agents.disease_detector import DetectDiseaseInput, DiseaseDetection, DiseaseDetectionAgent
from backend.agents.plant_identifier import IdentifyPlantInput, PlantIdentification, PlantIdentificationAgent
from backend.agents.treatment_advisor import SuggestTreatmentInput, TreatmentAdvisorAgent, TreatmentSuggestion
from backend.errors import AnalysisError
from backend.services.gemini import GeminiClient, get_gemini_client

logger = logging.getLogger(__name__)

T = TypeVar("T")

STEP_IDENTIFY = "identify_plant"
STEP_DETECT = "detect_disease"
STEP_TREAT = "suggest_treatment"

# step -> (progress label, description used in error messages)
STEP_LABELS = {
    STEP_IDENTIFY: ("Identifying plant...", "plant identification"),
    STEP_DETECT: ("Detecting diseases...", "disease detection"),
    STEP_TREAT: ("Suggesting treatment...", "treatment suggestion"),
}

MISSING_IDENTIFICATION = "Could not reliably identify the plant or essential details are missing."
MISSING_LATIN_NAME = "Plant identified, but Latin name is missing. Disease detection skipped."
TREATMENT_NETWORK_ERROR = (
    "A network error occurred while fetching treatment suggestions. Please check your connection or try again."
)


class AnalysisStep(BaseModel):
    name: str
    label: str
    status: str  # pending | ok | error | skipped
    startedAt: Optional[float] = None
    finishedAt: Optional[float] = None
    detail: Optional[str] = None


class Notification(BaseModel):
    title: str
    description: str
    variant: str = "default"  # default | destructive


class AnalysisResult(BaseModel):
    session: str
    plantIdentification: Optional[PlantIdentification] = None
    diseaseDetection: Optional[DiseaseDetection] = None
    treatment: Optional[TreatmentSuggestion] = None
    error: Optional[str] = None
    steps: List[AnalysisStep] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)

    def notify(self, title: str, description: str, destructive: bool = False):
        self.notifications.append(
            Notification(title=title, description=description, variant="destructive" if destructive else "default")
        )


def _is_network_failure(exc: AnalysisError) -> bool:
    cause = exc.__cause__
    if isinstance(cause, (httpx.TransportError, ConnectionError)):
        return True
    msg = f"{exc.message} {cause or ''}".lower()
    return "network" in msg or "fetch" in msg


class LeafAnalysisOrchestrator:
    def __init__(
        self,
        identifier: Optional[PlantIdentificationAgent] = None,
        detector: Optional[DiseaseDetectionAgent] = None,
        advisor: Optional[TreatmentAdvisorAgent] = None,
        client: Optional[GeminiClient] = None,
        session_id: Optional[str] = None,
    ):
        if client is None and not (identifier and detector and advisor):
            client = get_gemini_client()
        self.identifier = identifier or PlantIdentificationAgent(client)
        self.detector = detector or DiseaseDetectionAgent(client)
        self.advisor = advisor or TreatmentAdvisorAgent(client)
        self.session_id = session_id or f"sess_{int(time.time()*1000)}"

    def analyze(self, image_data_uri: str) -> AnalysisResult:
        result = AnalysisResult(session=self.session_id)
        current_step = STEP_IDENTIFY
        logger.info("[Pipeline] %s: starting analysis (imageDataUri length: %s)", self.session_id, len(image_data_uri))

        try:
            result.notify("Processing...", "Identifying plant species.")
            identification = self._run_step(
                result,
                STEP_IDENTIFY,
                lambda: self.identifier.identify(IdentifyPlantInput(photoDataUri=image_data_uri)),
            )
            result.plantIdentification = identification
            english = identification.englishIdentification

            if not english.commonName.strip():
                result.error = MISSING_IDENTIFICATION
                result.notify("Identification Failed", "Essential plant details are missing from the AI response.", destructive=True)
                self._skip(result, STEP_DETECT, STEP_TREAT)
                return result

            result.notify("Plant Identified!", f"Species: {english.commonName}")

            if not english.latinName.strip():
                result.error = MISSING_LATIN_NAME
                result.notify("Identification Incomplete", "Latin name missing, disease detection skipped.", destructive=True)
                self._skip(result, STEP_DETECT, STEP_TREAT)
                return result

            current_step = STEP_DETECT
            result.notify("Processing...", "Detecting diseases.")
            disease = self._run_step(
                result,
                STEP_DETECT,
                lambda: self.detector.detect(
                    DetectDiseaseInput(leafImageDataUri=image_data_uri, plantSpecies=english.latinName)
                ),
            )
            result.diseaseDetection = disease
            result.notify(
                "Disease Scan Complete!",
                "Potential issues found." if disease.diseaseDetected else "Looks healthy!",
            )
        except AnalysisError as e:
            description = STEP_LABELS[current_step][1]
            result.error = f"Error during {description}: {e.message}"
            result.notify("Analysis Failed", result.error, destructive=True)
            logger.error("[Pipeline] %s: %s", self.session_id, result.error)
            return result

        if not disease.diseaseDetected:
            self._skip(result, STEP_TREAT)
            return result

        self._suggest_treatment(result, english.latinName, disease)
        return result

    def _suggest_treatment(self, result: AnalysisResult, plant_species: str, disease: DiseaseDetection):
        result.notify("Processing...", "Generating treatment suggestions.")
        logger.debug(
            "[Pipeline] suggestPlantTreatment input. Plant: %s, Disease: %s, Disease Urdu: %s",
            plant_species,
            disease.likelyCauses,
            disease.likelyCausesUrdu,
        )
        try:
            result.treatment = self._run_step(
                result,
                STEP_TREAT,
                lambda: self.advisor.suggest(
                    SuggestTreatmentInput(
                        plantSpecies=plant_species,
                        diseaseDescription=disease.likelyCauses,
                        diseaseDescriptionUrdu=disease.likelyCausesUrdu,
                    )
                ),
            )
        except AnalysisError as e:
            if _is_network_failure(e):
                result.error = TREATMENT_NETWORK_ERROR
            else:
                result.error = f"Error during treatment suggestion: {e.message}"
            result.notify("Treatment Suggestion Failed", result.error, destructive=True)
            logger.error("[Pipeline] %s: %s", self.session_id, result.error)
            return

        result.notify("Suggestions Ready!", "Treatment and prevention advice generated.")

    def _run_step(self, result: AnalysisResult, name: str, fn: Callable[[], T]) -> T:
        step = AnalysisStep(name=name, label=STEP_LABELS[name][0], status="pending", startedAt=time.time())
        result.steps.append(step)
        try:
            out = fn()
        except Exception as e:
            step.status = "error"
            step.detail = e.message if isinstance(e, AnalysisError) else str(e)
            raise
        finally:
            step.finishedAt = time.time()
        step.status = "ok"
        return out

    def _skip(self, result: AnalysisResult, *names: str):
        for name in names:
            result.steps.append(AnalysisStep(name=name, label=STEP_LABELS[name][0], status="skipped"))


def create_orchestrator(client: Optional[GeminiClient] = None, session_id: Optional[str] = None) -> LeafAnalysisOrchestrator:
    return LeafAnalysisOrchestrator(client=client, session_id=session_id)
