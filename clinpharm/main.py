"""
AI Clinical Pharmacist - FastAPI Application

Serves the single-page UI and the analysis API. Clinicians upload a
prescription image, type notes or dictate them, and receive potential
medication errors, drug summaries and lab interpretations.

IMPORTANT: For clinical decision support only.
"""

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from clinpharm.config import settings
from clinpharm.api.routes import router
from clinpharm.api.middleware import (
    RequestLoggingMiddleware,
    ErrorHandlingMiddleware,
    setup_error_handlers,
    setup_rate_limiting
)
from clinpharm.core.llm_engine import get_llm_engine
from clinpharm.utils.logger import get_logger, configure_logging

logger = get_logger("main")

FRONTEND_PATH = Path(__file__).parent.parent / "frontend"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    configure_logging(
        log_level=settings.log_level,
        json_format=not settings.debug
    )

    logger.info(
        "Starting AI Clinical Pharmacist",
        version=settings.app_version,
        debug=settings.debug
    )

    status = get_llm_engine().get_status()
    if not status["available"]:
        logger.warning("GEMINI_API_KEY is not set; every analysis will fail")
    logger.info("Application ready", **status)

    yield

    logger.info("Shutting down AI Clinical Pharmacist")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    app = FastAPI(
        title=settings.app_name,
        description="""
## AI Clinical Pharmacist

Medication review assistant for healthcare professionals. Submit a
prescription or lab report image, typed text, or a dictated transcript
and receive a structured analysis.

### ⚠️ For Clinical Decision Support Only

This tool does not replace professional medical judgment. Verify all
information with clinical guidelines and patient context.

### API Endpoints

| Endpoint | Method | Description |
|----------|--------|-------------|
| `/analyze/document` | POST | Upload a document image |
| `/analyze/document-data` | POST | Document image as a base64 data URL |
| `/analyze/text` | POST | Typed or dictated text |
| `/ui/analyze` | POST | Analysis rendered as HTML tabs |
| `/client-config` | GET | Browser UI settings |
| `/health` | GET | Health check |
        """,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc" if settings.debug else None,
    )

    # Middleware order matters - first added is innermost

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_error_handlers(app)
    setup_rate_limiting(app)

    app.include_router(router)

    if FRONTEND_PATH.exists():
        app.mount("/static", StaticFiles(directory=str(FRONTEND_PATH)), name="static")

        @app.get("/", include_in_schema=False)
        async def serve_frontend():
            return FileResponse(str(FRONTEND_PATH / "index.html"))

    return app


app = create_app()


# Run with: uvicorn clinpharm.main:app --reload
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "clinpharm.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
