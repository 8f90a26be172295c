"""
File validation and storage for property photo uploads.
"""

import io
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import aiofiles
from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from propertyhub.config import settings
from propertyhub.utils.exceptions import FileSizeExceededError, FileUploadError, UnsupportedFileTypeError

import logging

logger = logging.getLogger(__name__)

# MIME type -> (Pillow format, stored extension)
IMAGE_FORMATS: Dict[str, tuple] = {
    "image/jpeg": ("JPEG", ".jpg"),
    "image/jpg": ("JPEG", ".jpg"),
    "image/png": ("PNG", ".png"),
    "image/webp": ("WEBP", ".webp"),
}

MAX_DIMENSION = 10000


@dataclass
class ValidatedImage:
    content: bytes
    mime_type: str
    extension: str
    width: int
    height: int

    @property
    def size(self) -> int:
        return len(self.content)


class FileValidator:
    """Checks uploaded files against the configured type and size limits."""

    @staticmethod
    def allowed_types() -> List[str]:
        return [t for t in settings.allowed_file_types if t in IMAGE_FORMATS]

    @classmethod
    def validate_mime_type(cls, mime_type: Optional[str]) -> str:
        mime_type = (mime_type or "").lower()
        if mime_type not in cls.allowed_types():
            raise UnsupportedFileTypeError(mime_type or "unknown", cls.allowed_types())
        return mime_type

    @staticmethod
    def validate_file_size(file_size: int, max_size: Optional[int] = None) -> int:
        if file_size <= 0:
            raise FileUploadError("File is empty")

        max_allowed = max_size or settings.max_file_size
        if file_size > max_allowed:
            raise FileSizeExceededError(file_size, max_allowed)
        return file_size

    @classmethod
    async def validate_upload_file(cls, file: UploadFile) -> ValidatedImage:
        """
        Read and validate an uploaded image.

        The declared content type must be allowed and Pillow must recognise the
        bytes as the same format.

        Raises:
            UnsupportedFileTypeError: If the type is not an allowed image type
            FileSizeExceededError: If the file is larger than the limit
            FileUploadError: If the bytes are not a valid image
        """
        mime_type = cls.validate_mime_type(file.content_type)

        await file.seek(0)
        content = await file.read()
        cls.validate_file_size(len(content))

        expected_format, extension = IMAGE_FORMATS[mime_type]
        try:
            with Image.open(io.BytesIO(content)) as img:
                img.verify()
            # verify() leaves the image unusable, so reopen for the size
            with Image.open(io.BytesIO(content)) as img:
                width, height = img.size
                actual_format = img.format
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise FileUploadError(f"Invalid image file: {e}")

        if actual_format != expected_format:
            raise FileUploadError(
                f"Image format '{(actual_format or 'unknown').lower()}' doesn't match MIME type '{mime_type}'"
            )

        if width > MAX_DIMENSION or height > MAX_DIMENSION:
            raise FileUploadError(f"Image dimensions {width}x{height} exceed {MAX_DIMENSION}px")

        return ValidatedImage(content, mime_type, extension, width, height)


class FileStorage:
    """
    Local disk storage under ``upload_dir/properties/<property_id>/``.

    Stored paths are relative to the upload directory and served under
    ``upload_url_prefix``.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def get_property_directory(self, property_id: uuid.UUID) -> Path:
        property_dir = self.base_dir / "properties" / str(property_id)
        property_dir.mkdir(parents=True, exist_ok=True)
        return property_dir

    def generate_file_path(self, property_id: uuid.UUID, extension: str) -> Path:
        return self.get_property_directory(property_id) / f"{uuid.uuid4()}{extension}"

    def get_relative_path(self, full_path: Path) -> str:
        return full_path.relative_to(self.base_dir).as_posix()

    def public_url(self, relative_path: str) -> str:
        return f"{settings.upload_url_prefix.rstrip('/')}/{relative_path}"

    async def save_bytes(self, content: bytes, file_path: Path) -> int:
        """
        Write file content to disk.

        Raises:
            FileUploadError: If writing fails; partial files are removed
        """
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(content)
            return len(content)
        except OSError as e:
            file_path.unlink(missing_ok=True)
            raise FileUploadError(f"Failed to save file: {e}")

    def delete_file(self, relative_path: str) -> bool:
        """Remove a stored file; missing files are not an error."""
        file_path = self.base_dir / relative_path
        try:
            if file_path.exists():
                file_path.unlink()
                return True
            return False
        except OSError as e:
            logger.warning(f"Could not delete stored file {relative_path}: {e}")
            return False

    def cleanup_empty_directories(self, property_id: uuid.UUID) -> bool:
        property_dir = self.base_dir / "properties" / str(property_id)
        try:
            if property_dir.exists() and not any(property_dir.iterdir()):
                property_dir.rmdir()
                return True
            return False
        except OSError:
            return False
