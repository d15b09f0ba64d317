"""
Tests for the analyzer service.
"""

import pytest

from clinpharm.config import settings
from clinpharm.core.image_processor import image_processor
from clinpharm.models.schemas import InputMode
from clinpharm.services.analyzer import ClinicalAnalyzer, InputError, MissingInputError
from clinpharm.utils.file_validators import FileValidationError

from tests.conftest import make_png


class TestModeDispatch:
    """Test that each mode analyzes only its own input."""

    @pytest.mark.asyncio
    async def test_upload_mode(self, engine, genai_client):
        analyzer = ClinicalAnalyzer(engine=engine)

        response = await analyzer.analyze(
            InputMode.UPLOAD, file_content=make_png(), filename="rx.png", text="ignored"
        )

        assert response.source == InputMode.UPLOAD
        contents = genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert contents.parts[0].inline_data is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", [InputMode.TEXT, InputMode.VOICE])
    async def test_text_modes_ignore_file(self, engine, genai_client, mode):
        analyzer = ClinicalAnalyzer(engine=engine)

        response = await analyzer.analyze(mode, file_content=make_png(), text="Lasix 40mg")

        assert response.source == mode
        contents = genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert len(contents.parts) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode,file_content,text", [
        (InputMode.UPLOAD, None, "text only"),
        (InputMode.UPLOAD, b"", None),
        (InputMode.TEXT, make_png(), None),
        (InputMode.VOICE, None, "  \t "),
    ])
    async def test_missing_input(self, engine, genai_client, mode, file_content, text):
        analyzer = ClinicalAnalyzer(engine=engine)

        with pytest.raises(MissingInputError):
            await analyzer.analyze(mode, file_content=file_content, text=text)

        genai_client.aio.models.generate_content.assert_not_called()


class TestLimits:
    """Test input limits enforced before the model call."""

    @pytest.mark.asyncio
    async def test_text_too_long(self, engine, genai_client):
        analyzer = ClinicalAnalyzer(engine=engine)

        with pytest.raises(InputError) as exc_info:
            await analyzer.analyze_text("x" * (settings.max_text_chars + 1))

        assert exc_info.value.error_code == "TEXT_TOO_LONG"
        genai_client.aio.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_image_rejected(self, engine, genai_client, monkeypatch):
        def fail_prepare(source, filename=None):
            raise OSError("image file is truncated")

        monkeypatch.setattr(image_processor, "prepare", fail_prepare)
        analyzer = ClinicalAnalyzer(engine=engine)

        with pytest.raises(FileValidationError) as exc_info:
            await analyzer.analyze_document(make_png(), "rx.png")

        assert exc_info.value.error_code == "INVALID_FILE"
        genai_client.aio.models.generate_content.assert_not_called()

    @pytest.mark.asyncio
    async def test_processing_time_recorded(self, engine):
        analyzer = ClinicalAnalyzer(engine=engine)

        response = await analyzer.analyze_text("Amoxicillin 500mg TID")

        assert response.processing_time_ms is not None
        assert response.processing_time_ms >= 0
