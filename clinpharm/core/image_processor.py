"""
Image preparation for AI Clinical Pharmacist.

Normalizes uploaded prescription and lab report images before they are
inlined into the model request, and converts between raw bytes and
base64 data URLs.
"""

import base64
import binascii
import io
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image

from clinpharm.config import settings
from clinpharm.utils.logger import get_logger

logger = get_logger("image_processor")


@dataclass
class EncodedImage:
    """Image bytes ready to be inlined in a model request."""

    data: bytes
    mime_type: str
    width: int
    height: int
    preprocessing_applied: list[str]


def split_data_url(data_url: str) -> Tuple[str, bytes]:
    """
    Split a ``data:<mime>;base64,<payload>`` URL into MIME type and bytes.

    Raises:
        ValueError: If the string is not a base64 data URL
    """
    if not data_url.startswith("data:") or "," not in data_url:
        raise ValueError("Not a data URL")

    header, payload = data_url.split(",", 1)
    meta = header[len("data:"):].split(";")
    if "base64" not in meta[1:]:
        raise ValueError("Data URL is not base64 encoded")

    mime_type = meta[0] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e

    return mime_type, data


class ImageProcessor:
    """
    Prepares document images for the model.

    Handles:
    - Mode conversion (RGBA, palette, CMYK) to RGB
    - Downscaling oversized scans
    - MIME type detection from the decoded format
    """

    # Formats the model accepts as-is
    PASSTHROUGH_FORMATS = {
        "PNG": "image/png",
        "JPEG": "image/jpeg",
        "WEBP": "image/webp",
    }

    def __init__(self, max_dimension: Optional[int] = None):
        self.max_dimension = max_dimension or settings.max_image_dimension

    def prepare(self, source: bytes, filename: Optional[str] = None) -> EncodedImage:
        """
        Load an uploaded image and return bytes ready for the request.

        Images in a passthrough format that need no changes are sent
        unmodified; everything else is re-encoded.

        Args:
            source: Raw uploaded bytes
            filename: Optional filename for logging

        Returns:
            EncodedImage
        """
        preprocessing_steps = []

        pil_image = Image.open(io.BytesIO(source))
        original_format = (pil_image.format or "UNKNOWN").upper()

        if pil_image.mode not in ("RGB", "L"):
            preprocessing_steps.append(f"{pil_image.mode}_to_RGB")
            pil_image = pil_image.convert("RGB")

        if max(pil_image.size) > self.max_dimension:
            pil_image.thumbnail((self.max_dimension, self.max_dimension))
            preprocessing_steps.append(f"resized_to_{self.max_dimension}")

        if not preprocessing_steps and original_format in self.PASSTHROUGH_FORMATS:
            data = source
            mime_type = self.PASSTHROUGH_FORMATS[original_format]
        else:
            target_format = "JPEG" if original_format == "JPEG" else "PNG"
            buf = io.BytesIO()
            pil_image.save(buf, format=target_format)
            data = buf.getvalue()
            mime_type = self.PASSTHROUGH_FORMATS[target_format]
            preprocessing_steps.append(f"encoded_{target_format}")

        logger.info(
            "Image prepared",
            filename=filename,
            format=original_format,
            mime_type=mime_type,
            size=len(data),
            preprocessing=preprocessing_steps
        )

        return EncodedImage(
            data=data,
            mime_type=mime_type,
            width=pil_image.width,
            height=pil_image.height,
            preprocessing_applied=preprocessing_steps,
        )


# Singleton instance
image_processor = ImageProcessor()
