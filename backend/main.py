import logging
import os
import time
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend import config
from backend.agents.disease_detector import DetectDiseaseInput, DiseaseDetection, DiseaseDetectionAgent
from backend.agents.orchestrator import AnalysisResult, LeafAnalysisOrchestrator
from backend.agents.plant_identifier import IdentifyPlantInput, PlantIdentification, PlantIdentificationAgent
from backend.agents.treatment_advisor import SuggestTreatmentInput, TreatmentAdvisorAgent, TreatmentSuggestion
from backend.errors import AnalysisError, GeminiConfigurationError, ImageValidationError
from backend.services.gemini import GeminiClient, get_gemini_client
from backend.services.imaging import (
    InlineImage,
    load_image_from_url,
    parse_data_uri,
    prepare_image,
    to_data_uri,
    validate_image_bytes,
)
from backend.services.localization import (
    DEFAULT_LANGUAGE,
    SUPPORTED_LANGUAGES,
    ResultView,
    build_result_view,
    normalize_language,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="LeafWise API", version="0.2.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AnalyzeRequest(BaseModel):
    image_data_uri: Optional[str] = None
    image_url: Optional[str] = None
    language: Optional[str] = DEFAULT_LANGUAGE  # en | ur


class AnalyzeResponse(BaseModel):
    result: AnalysisResult
    view: ResultView


class RenderRequest(BaseModel):
    result: Optional[AnalysisResult] = None
    language: Optional[str] = DEFAULT_LANGUAGE


class LanguageEntry(BaseModel):
    code: str
    name: str
    direction: str


def get_client() -> GeminiClient:
    return get_gemini_client()


def get_orchestrator(client: GeminiClient = Depends(get_client)) -> LeafAnalysisOrchestrator:
    return LeafAnalysisOrchestrator(client=client)


def get_identifier(client: GeminiClient = Depends(get_client)) -> PlantIdentificationAgent:
    return PlantIdentificationAgent(client)


def get_detector(client: GeminiClient = Depends(get_client)) -> DiseaseDetectionAgent:
    return DiseaseDetectionAgent(client)


def get_advisor(client: GeminiClient = Depends(get_client)) -> TreatmentAdvisorAgent:
    return TreatmentAdvisorAgent(client)


@app.exception_handler(ImageValidationError)
async def image_validation_error_handler(request: Request, exc: ImageValidationError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _no_store(response: Response):
    # Each analysis is fresh; never let clients or proxies cache it
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    response.headers["Pragma"] = "no-cache"


def _language_or_400(language: Optional[str]) -> str:
    try:
        return normalize_language(language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _run_analysis(orchestrator: LeafAnalysisOrchestrator, image: InlineImage, language: str) -> AnalyzeResponse:
    start_time = time.time()
    image = prepare_image(image)
    result = orchestrator.analyze(to_data_uri(image))
    latency = (time.time() - start_time) * 1000
    logger.info(
        "[Pipeline] %s finished in %.0f ms (error: %s)",
        result.session,
        latency,
        result.error is not None,
    )
    return AnalyzeResponse(result=result, view=build_result_view(result, language))


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/languages", response_model=List[LanguageEntry])
def languages():
    return [
        LanguageEntry(code=code, name=name, direction="rtl" if code == "ur" else "ltr")
        for code, name in SUPPORTED_LANGUAGES.items()
    ]


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze(req: AnalyzeRequest, response: Response, orchestrator: LeafAnalysisOrchestrator = Depends(get_orchestrator)):
    """Identify the plant, scan for disease and suggest treatment from one leaf image.

    Stage failures come back in `result.error` with whatever finished before them.
    """
    language = _language_or_400(req.language)
    _no_store(response)

    if req.image_data_uri:
        image = parse_data_uri(req.image_data_uri)
    elif req.image_url:
        image = load_image_from_url(req.image_url)
    else:
        raise HTTPException(status_code=400, detail="Please select an image file.")

    return _run_analysis(orchestrator, image, language)


@app.post("/api/analyze/upload", response_model=AnalyzeResponse)
def analyze_upload(
    response: Response,
    file: UploadFile = File(...),
    language: str = Form(DEFAULT_LANGUAGE),
    orchestrator: LeafAnalysisOrchestrator = Depends(get_orchestrator),
):
    """Multipart variant of /api/analyze accepting a PNG, JPG or WEBP file."""
    language = _language_or_400(language)
    _no_store(response)

    content_type = (file.content_type or "").lower()
    if content_type and content_type not in config.ALLOWED_IMAGE_TYPES and content_type != "application/octet-stream":
        raise HTTPException(status_code=415, detail=f"Unsupported image type '{content_type}'. Use PNG, JPG, or WEBP.")

    # Read one byte past the limit so oversize uploads are rejected without buffering everything
    data = file.file.read(config.MAX_UPLOAD_BYTES + 1)
    image = validate_image_bytes(data, content_type or None)
    return _run_analysis(orchestrator, image, language)


@app.post("/api/identify_plant", response_model=PlantIdentification)
def identify_plant(req: IdentifyPlantInput, agent: PlantIdentificationAgent = Depends(get_identifier)):
    try:
        return agent.identify(req)
    except AnalysisError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)


@app.post("/api/detect_disease", response_model=DiseaseDetection)
def detect_disease(req: DetectDiseaseInput, agent: DiseaseDetectionAgent = Depends(get_detector)):
    try:
        return agent.detect(req)
    except AnalysisError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)


@app.post("/api/suggest_treatment", response_model=TreatmentSuggestion)
def suggest_treatment(req: SuggestTreatmentInput, agent: TreatmentAdvisorAgent = Depends(get_advisor)):
    try:
        return agent.suggest(req)
    except AnalysisError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.message)


@app.post("/api/render", response_model=ResultView)
def render(req: RenderRequest):
    """Rebuild the result view in another language without re-running analysis."""
    return build_result_view(req.result, _language_or_400(req.language))


def _status_for(exc: AnalysisError) -> int:
    # Missing API keys are a deployment problem, not an upstream failure
    if isinstance(exc.__cause__, GeminiConfigurationError):
        return 503
    return 502


def _describe_config() -> Dict[str, Any]:
    return {
        "model": config.GEMINI_MODEL,
        "transport": config.GEMINI_TRANSPORT,
        "max_upload_bytes": config.MAX_UPLOAD_BYTES,
        "image_max_dimension": config.IMAGE_MAX_DIMENSION,
    }


@app.on_event("startup")
def log_startup_config():
    logger.info("[Startup] LeafWise API config: %s", _describe_config())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
