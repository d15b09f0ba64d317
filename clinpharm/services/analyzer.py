"""
Clinical analyzer service for AI Clinical Pharmacist.

Orchestrates one analysis request: input checks, image preparation and
the model call. Nothing is kept between requests.
"""

import time
from typing import Optional

from clinpharm.config import settings
from clinpharm.core.image_processor import image_processor, split_data_url
from clinpharm.core.llm_engine import LLMEngine, EngineResponse, get_llm_engine
from clinpharm.models.schemas import AnalysisResponse, InputMode
from clinpharm.utils.file_validators import FileValidationError, file_validator
from clinpharm.utils.logger import get_logger

logger = get_logger("analyzer")

MISSING_INPUT_MESSAGE = "Please provide input before analyzing."


class InputError(ValueError):
    """Raised when a request is rejected before any model call."""

    def __init__(self, message: str, error_code: str = "INVALID_INPUT"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class MissingInputError(InputError):
    """Raised when analysis is requested without a file or text."""

    def __init__(self):
        super().__init__(MISSING_INPUT_MESSAGE, error_code="MISSING_INPUT")


class ClinicalAnalyzer:
    """
    Main analysis orchestrator.

    Coordinates:
    - Input presence and size checks
    - Upload validation and image preparation
    - The Gemini call and response validation

    At most one model call is made per request; failures propagate
    as InputError, FileValidationError or AnalysisError.
    """

    def __init__(self, engine: Optional[LLMEngine] = None):
        self._engine = engine

    @property
    def engine(self) -> LLMEngine:
        if self._engine is None:
            self._engine = get_llm_engine()
        return self._engine

    async def analyze(
        self,
        mode: InputMode,
        file_content: Optional[bytes] = None,
        filename: Optional[str] = None,
        text: Optional[str] = None
    ) -> AnalysisResponse:
        """
        Analyze whichever input the selected mode uses.

        Upload mode analyzes the file; text and voice modes analyze the
        text buffer. The other input is ignored.

        Raises:
            MissingInputError: If the selected mode has no input
        """
        if mode == InputMode.UPLOAD and file_content:
            return await self.analyze_document(file_content, filename or "upload")
        if mode in (InputMode.TEXT, InputMode.VOICE) and text and text.strip():
            return await self.analyze_text(text, mode)

        logger.info("Analysis rejected, no input", mode=mode.value)
        raise MissingInputError()

    async def analyze_document(
        self,
        file_content: bytes,
        filename: str
    ) -> AnalysisResponse:
        """
        Analyze an uploaded prescription or lab report image.

        Args:
            file_content: Raw uploaded bytes
            filename: Original filename

        Returns:
            AnalysisResponse
        """
        if not file_content:
            raise MissingInputError()

        start_time = time.time()

        file_validator.validate(file_content, filename)
        try:
            image = image_processor.prepare(file_content, filename)
        except (OSError, ValueError) as e:
            logger.warning("Image could not be decoded", filename=filename, error=str(e))
            raise FileValidationError(
                f"Image '{filename}' could not be decoded",
                error_code="INVALID_FILE"
            ) from e

        response = await self.engine.analyze_document(image.data, image.mime_type)
        return self._build_response(response, InputMode.UPLOAD, start_time)

    async def analyze_data_url(
        self,
        data_url: str,
        filename: Optional[str] = None
    ) -> AnalysisResponse:
        """Analyze an image sent as a base64 data URL."""
        try:
            _, content = split_data_url(data_url)
        except ValueError as e:
            raise InputError(f"Invalid image data: {e}", error_code="INVALID_FILE") from e

        return await self.analyze_document(content, filename or "upload")

    async def analyze_text(
        self,
        text: str,
        mode: InputMode = InputMode.TEXT
    ) -> AnalysisResponse:
        """
        Analyze typed or dictated medical text.

        The text is sent as entered; only the emptiness check trims it.
        """
        if not text or not text.strip():
            raise MissingInputError()
        if len(text) > settings.max_text_chars:
            raise InputError(
                f"Text exceeds maximum length of {settings.max_text_chars} characters",
                error_code="TEXT_TOO_LONG"
            )

        start_time = time.time()
        response = await self.engine.analyze_text(text)
        return self._build_response(response, mode, start_time)

    def _build_response(
        self,
        response: EngineResponse,
        source: InputMode,
        start_time: float
    ) -> AnalysisResponse:
        processing_time = int((time.time() - start_time) * 1000)

        logger.info(
            "Analysis complete",
            source=source.value,
            model=response.model,
            processing_time_ms=processing_time,
            empty=response.result.is_empty
        )

        return AnalysisResponse(
            result=response.result,
            source=source,
            model=response.model,
            processing_time_ms=processing_time
        )


# Singleton instance
_analyzer_instance: Optional[ClinicalAnalyzer] = None


def get_analyzer() -> ClinicalAnalyzer:
    """Get or create the shared analyzer (FastAPI dependency)."""
    global _analyzer_instance
    if _analyzer_instance is None:
        _analyzer_instance = ClinicalAnalyzer()
    return _analyzer_instance
