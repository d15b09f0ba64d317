"""
File validation utilities for AI Clinical Pharmacist.

Handles validation of uploaded document images including:
- File size limits
- File extension validation
- Content type verification
- Corruption detection
"""

import io
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from clinpharm.config import settings


class FileValidationError(Exception):
    """Raised when file validation fails."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        self.message = message
        self.error_code = error_code
        super().__init__(self.message)


class FileValidator:
    """
    Validates uploaded prescription and lab report images.

    Ensures files are:
    - Within size limits
    - Have allowed extensions
    - Are not corrupt
    - Match a known image signature
    """

    MIN_DIMENSION = 32
    MAX_DIMENSION = 10000

    def __init__(self):
        self.max_file_size = settings.max_file_size_bytes
        self.image_extensions = settings.image_extensions

    def validate_file_size(self, file_content: bytes, filename: str) -> bool:
        """
        Check if file is within size limits.

        Raises:
            FileValidationError: If file is empty or exceeds size limit
        """
        if len(file_content) == 0:
            raise FileValidationError(
                f"File '{filename}' is empty",
                error_code="EMPTY_FILE"
            )
        if len(file_content) > self.max_file_size:
            raise FileValidationError(
                f"File '{filename}' exceeds maximum size of {settings.max_file_size_mb}MB",
                error_code="FILE_TOO_LARGE"
            )
        return True

    def validate_extension(self, filename: str) -> bool:
        """
        Check if file has an allowed image extension.

        Files without an extension are accepted; the signature check
        decides for them.

        Raises:
            FileValidationError: If extension not allowed
        """
        ext = Path(filename).suffix.lower()
        if ext and ext not in self.image_extensions:
            raise FileValidationError(
                f"File extension '{ext}' not allowed. "
                f"Allowed: {', '.join(self.image_extensions)}",
                error_code="INVALID_EXTENSION"
            )
        return True

    def detect_mime_type(self, file_content: bytes) -> str:
        """
        Detect the MIME type of file content using file signatures.

        Returns:
            Detected MIME type string
        """
        if file_content[:8] == b'\x89PNG\r\n\x1a\n':
            return 'image/png'
        if file_content[:3] == b'\xff\xd8\xff':
            return 'image/jpeg'
        if file_content[:6] in (b'GIF87a', b'GIF89a'):
            return 'image/gif'
        if file_content[:4] == b'RIFF' and file_content[8:12] == b'WEBP':
            return 'image/webp'
        if file_content[:2] == b'BM':
            return 'image/bmp'
        return 'application/octet-stream'

    def validate_image(
        self,
        file_content: bytes,
        filename: str
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate a document image.

        Checks:
        - Extension is allowed
        - File size is within limits
        - Signature is a supported image format
        - Image is not corrupt
        - Image has usable dimensions

        Returns:
            Tuple of (is_valid, error_message)
        """
        try:
            self.validate_extension(filename)
            self.validate_file_size(file_content, filename)

            if self.detect_mime_type(file_content) == 'application/octet-stream':
                raise FileValidationError(
                    f"File '{filename}' is not a supported image",
                    error_code="UNSUPPORTED_IMAGE"
                )

            img = Image.open(io.BytesIO(file_content))
            img.verify()

            # verify() leaves the image unusable; reopen for dimensions
            img = Image.open(io.BytesIO(file_content))
            width, height = img.size

            if width < self.MIN_DIMENSION or height < self.MIN_DIMENSION:
                raise FileValidationError(
                    "Image dimensions too small for analysis",
                    error_code="IMAGE_TOO_SMALL"
                )
            if width > self.MAX_DIMENSION or height > self.MAX_DIMENSION:
                raise FileValidationError(
                    "Image dimensions too large",
                    error_code="IMAGE_TOO_LARGE"
                )

            # verify() barely inspects JPEG data; decoding catches truncation
            img.load()

            return True, None

        except FileValidationError as e:
            return False, e.message
        except Exception as e:
            return False, f"Image validation failed: {str(e)}"

    def validate(self, file_content: bytes, filename: str) -> None:
        """
        Validate an upload, raising on the first problem.

        Raises:
            FileValidationError: With a message suitable for the client
        """
        is_valid, error = self.validate_image(file_content, filename)
        if not is_valid:
            raise FileValidationError(error, error_code="INVALID_FILE")


# Singleton instance for easy access
file_validator = FileValidator()
