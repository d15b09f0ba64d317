"""
AI Clinical Pharmacist - LLM Processing Engine

Sends prescription images or medical text to Gemini together with a fixed
instruction prompt and a response schema, and validates the structured
JSON that comes back.

IMPORTANT: The model's clinical claims are not verified here.
All outputs require review by qualified healthcare professionals.
"""

import json
import re
from dataclasses import dataclass
from typing import Optional, Dict, Any

from dotenv import load_dotenv
from google import genai
from google.genai import types
from pydantic import ValidationError

# google-genai reads its own GOOGLE_* options from the environment
load_dotenv()

from clinpharm.config import settings
from clinpharm.core.prompts import ANALYSIS_SCHEMA, build_image_prompt, build_text_prompt
from clinpharm.models.schemas import AnalysisResult
from clinpharm.utils.logger import get_logger

logger = get_logger("llm_engine")

GENERIC_ANALYSIS_ERROR = (
    "An error occurred during analysis. The input may be unclear or the "
    "format unsupported. Please try again."
)

_CODE_FENCE = re.compile(r"```(?:json)?")


class AnalysisError(Exception):
    """
    Raised when the model call fails or returns unusable content.

    ``message`` is the user-facing text and is the same for every cause;
    ``reason`` carries the detail for logs.
    """

    def __init__(self, reason: str, error_code: str = "ANALYSIS_FAILED"):
        self.reason = reason
        self.error_code = error_code
        self.message = GENERIC_ANALYSIS_ERROR
        super().__init__(self.message)


@dataclass
class EngineResponse:
    """Validated analysis plus provenance."""
    result: AnalysisResult
    model: str


def parse_analysis(text: Optional[str]) -> AnalysisResult:
    """
    Turn the model's reply into an AnalysisResult.

    Strips Markdown code fences the model sometimes wraps JSON in.

    Raises:
        AnalysisError: If the reply is empty, not JSON, or off-schema
    """
    if not text or not text.strip():
        raise AnalysisError("API returned an empty response.")

    cleaned = _CODE_FENCE.sub("", text).strip()
    if not cleaned:
        raise AnalysisError("API returned an empty response.")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"Response is not valid JSON: {e}") from e

    try:
        return AnalysisResult.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(
            f"Response does not match the analysis schema: {e.error_count()} error(s)"
        ) from e


class LLMEngine:
    """
    Gemini integration for clinical medication review.

    One call per analysis: no retries, no caching. Every failure is
    reported as an AnalysisError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        client: Optional[Any] = None
    ):
        """
        Initialize the analysis engine.

        Args:
            api_key: Gemini API key (defaults to settings.gemini_api_key)
            model: Model name (defaults to settings.gemini_model)
            client: Pre-built client, mainly for tests
        """
        self.api_key = settings.gemini_api_key if api_key is None else api_key
        self.model = model or settings.gemini_model
        self.provider = "gemini"
        self.client = client
        if self.client is None:
            self._initialize_client()

    def _initialize_client(self) -> None:
        """Create the Gemini client when an API key is available."""
        if not self.api_key.strip():
            logger.warning(
                "Gemini API key not configured, analysis requests will fail",
                model=self.model
            )
            return

        self.client = genai.Client(api_key=self.api_key)
        logger.info("Gemini client initialized", model=self.model)

    @staticmethod
    def build_document_contents(image_bytes: bytes, mime_type: str) -> types.Content:
        """Request contents for an uploaded document image: image part, then prompt."""
        return types.Content(
            role="user",
            parts=[
                types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                types.Part.from_text(text=build_image_prompt()),
            ],
        )

    @staticmethod
    def build_text_contents(text: str) -> types.Content:
        """Request contents for typed or dictated text: a single text part."""
        return types.Content(
            role="user",
            parts=[types.Part.from_text(text=build_text_prompt(text))],
        )

    def generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=ANALYSIS_SCHEMA,
        )

    async def analyze_document(
        self,
        image_bytes: bytes,
        mime_type: str
    ) -> EngineResponse:
        """
        Analyze a prescription or lab report image.

        Args:
            image_bytes: Encoded image data (PNG, JPEG, ...)
            mime_type: MIME type of image_bytes

        Returns:
            EngineResponse with the validated analysis
        """
        logger.info(
            "Starting document analysis",
            mime_type=mime_type,
            size=len(image_bytes)
        )
        contents = self.build_document_contents(image_bytes, mime_type)
        return await self._perform_analysis(contents)

    async def analyze_text(self, text: str) -> EngineResponse:
        """
        Analyze typed or dictated medical text.

        Args:
            text: Prescription, clinical notes or lab results

        Returns:
            EngineResponse with the validated analysis
        """
        logger.info("Starting text analysis", chars=len(text))
        contents = self.build_text_contents(text)
        return await self._perform_analysis(contents)

    async def _perform_analysis(self, contents: types.Content) -> EngineResponse:
        if self.client is None:
            logger.error("Analysis requested without a configured Gemini client")
            raise AnalysisError("Gemini API key not configured", "LLM_NOT_CONFIGURED")

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=self.generation_config(),
            )
            text = response.text
        except Exception as e:
            logger.error("Error calling Gemini API", model=self.model, error=str(e))
            raise AnalysisError(str(e)) from e

        try:
            result = parse_analysis(text)
        except AnalysisError as e:
            logger.error("Unusable Gemini response", model=self.model, reason=e.reason)
            raise

        logger.info(
            "Analysis completed",
            model=self.model,
            potential_errors=len(result.potential_errors),
            drugs=len(result.drug_information),
            lab_values=len(result.lab_interpretation)
        )

        return EngineResponse(result=result, model=self.model)

    def is_available(self) -> bool:
        """Check if the engine can serve requests."""
        return self.client is not None

    def get_status(self) -> Dict[str, Any]:
        """Get engine status information."""
        return {
            "available": self.is_available(),
            "provider": self.provider,
            "model": self.model,
        }


# Module-level singleton
_engine_instance: Optional[LLMEngine] = None


def get_llm_engine() -> LLMEngine:
    """Get or create singleton engine instance."""
    global _engine_instance
    if _engine_instance is None:
        _engine_instance = LLMEngine()
    return _engine_instance
