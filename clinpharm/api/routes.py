"""
API routes for AI Clinical Pharmacist.

Defines the JSON analysis endpoints and the HTML fragment endpoint
used by the single-page UI.
"""

from typing import Optional

from fastapi import APIRouter, File, UploadFile, Request, Depends, Form
from fastapi.responses import HTMLResponse

from clinpharm.api.middleware import limiter
from clinpharm.config import settings
from clinpharm.core.llm_engine import AnalysisError, GENERIC_ANALYSIS_ERROR
from clinpharm.models.schemas import (
    AnalysisResponse,
    ClientConfigResponse,
    DocumentDataRequest,
    ErrorResponse,
    HealthResponse,
    InputMode,
    TextAnalysisRequest,
)
from clinpharm.services.analyzer import (
    ClinicalAnalyzer,
    InputError,
    MISSING_INPUT_MESSAGE,
    get_analyzer,
)
from clinpharm.services.result_renderer import result_renderer
from clinpharm.utils.file_validators import FileValidationError
from clinpharm.utils.logger import get_logger

logger = get_logger("routes")

router = APIRouter()

ANALYSIS_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Missing or invalid input"},
    429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
    502: {"model": ErrorResponse, "description": "Model call failed"},
}

SPEECH_UNSUPPORTED_MESSAGE = "Speech recognition is not supported in your browser."
SPEECH_ERROR_TEMPLATE = (
    "Speech recognition error: {error}. "
    "Please ensure microphone access is granted."
)


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """
    Check if the service is healthy and running.

    Returns version information and whether the model API key is set.
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        llm_configured=settings.llm_configured
    )


@router.get(
    "/client-config",
    response_model=ClientConfigResponse,
    tags=["System"],
    summary="Settings for the browser UI"
)
async def client_config():
    """Dictation language, upload limits and user-facing messages."""
    return ClientConfigResponse(
        speech_language=settings.speech_language,
        max_file_size_bytes=settings.max_file_size_bytes,
        accepted_image_extensions=settings.image_extensions,
        messages={
            "missing_input": MISSING_INPUT_MESSAGE,
            "analysis_failed": GENERIC_ANALYSIS_ERROR,
            "speech_unsupported": SPEECH_UNSUPPORTED_MESSAGE,
            "speech_error": SPEECH_ERROR_TEMPLATE,
        }
    )


# =============================================================================
# Analysis (JSON)
# =============================================================================

@router.post(
    "/analyze/document",
    response_model=AnalysisResponse,
    tags=["Analysis"],
    summary="Analyze a prescription or lab report image",
    responses=ANALYSIS_ERROR_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def analyze_document(
    request: Request,
    file: UploadFile = File(..., description="Prescription or lab report image"),
    analyzer: ClinicalAnalyzer = Depends(get_analyzer)
):
    """
    Upload a document image for clinical analysis.

    Supports PNG, JPEG, GIF, WebP and BMP images. The image is sent to
    the model together with the analysis prompt.
    """
    content = await file.read()

    logger.info(
        "Document received",
        filename=file.filename,
        content_type=file.content_type,
        size=len(content)
    )

    return await analyzer.analyze_document(content, file.filename or "upload")


@router.post(
    "/analyze/document-data",
    response_model=AnalysisResponse,
    tags=["Analysis"],
    summary="Analyze an image sent as a base64 data URL",
    responses=ANALYSIS_ERROR_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def analyze_document_data(
    request: Request,
    body: DocumentDataRequest,
    analyzer: ClinicalAnalyzer = Depends(get_analyzer)
):
    """Same as /analyze/document for clients that hold the image as a data URL."""
    return await analyzer.analyze_data_url(body.image, body.filename)


@router.post(
    "/analyze/text",
    response_model=AnalysisResponse,
    tags=["Analysis"],
    summary="Analyze typed or dictated medical text",
    responses=ANALYSIS_ERROR_RESPONSES
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def analyze_text(
    request: Request,
    body: TextAnalysisRequest,
    analyzer: ClinicalAnalyzer = Depends(get_analyzer)
):
    """
    Analyze prescription text, clinical notes or lab results.

    Set ``mode`` to ``voice`` for dictated transcripts; the text is
    analyzed the same way.
    """
    return await analyzer.analyze_text(body.text, body.mode)


# =============================================================================
# Analysis (HTML fragment for the UI)
# =============================================================================

@router.post(
    "/ui/analyze",
    response_class=HTMLResponse,
    tags=["UI"],
    summary="Analyze and render the result tabs"
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def analyze_for_ui(
    request: Request,
    mode: InputMode = Form(InputMode.UPLOAD),
    text: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    analyzer: ClinicalAnalyzer = Depends(get_analyzer)
):
    """
    Run an analysis for the browser and return an HTML fragment.

    On success the fragment holds the three result tabs; on failure it
    holds the error banner and no result.
    """
    content = await file.read() if file is not None else None
    filename = file.filename if file is not None else None

    try:
        response = await analyzer.analyze(
            mode,
            file_content=content,
            filename=filename,
            text=text
        )
    except (InputError, FileValidationError) as e:
        return HTMLResponse(result_renderer.render_error(e.message), status_code=400)
    except AnalysisError as e:
        return HTMLResponse(result_renderer.render_error(e.message), status_code=502)

    return HTMLResponse(result_renderer.render_result(response.result))
