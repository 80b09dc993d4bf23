"""
File upload utilities for listing images.
Provides image validation, filename sanitizing and storage key generation.
"""

import re
import time
import uuid
from typing import List, Optional, Sequence, Union

from fastapi import UploadFile

from housing.schemas.image import ImageUpload
from housing.utils.exceptions import FileSizeExceededError, UnsupportedFileTypeError

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


class ImageValidator:
    """Checks the declared type and size of an uploaded image."""

    # Maximum file size (5MiB by default)
    MAX_FILE_SIZE = 5 * 1024 * 1024

    def __init__(self, max_size: Optional[int] = None):
        self.max_size = max_size or self.MAX_FILE_SIZE

    @staticmethod
    def validate_content_type(content_type: Optional[str], filename: Optional[str] = None) -> str:
        """
        Validate the declared MIME type.

        Raises:
            UnsupportedFileTypeError: If the type is not an image type
        """
        if not content_type or not content_type.lower().startswith("image/"):
            raise UnsupportedFileTypeError(content_type, filename)
        return content_type

    def validate_size(self, size: int, filename: Optional[str] = None) -> int:
        """
        Validate the file size against the configured limit.

        Raises:
            FileSizeExceededError: If file size exceeds limit
        """
        if size > self.max_size:
            raise FileSizeExceededError(size, self.max_size, filename)
        return size

    def validate(self, upload: ImageUpload) -> None:
        """Run every check on an upload."""
        self.validate_content_type(upload.content_type, upload.filename)
        self.validate_size(upload.size, upload.filename)


def sanitize_filename(name: str) -> str:
    """
    Restrict a filename to letters, digits, dots and dashes.

    Any other character becomes an underscore, runs of underscores collapse
    into one and the result is lowercased.
    """
    cleaned = _UNSAFE_CHARS.sub("_", name)
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned)
    return cleaned.lower() or "image"


def build_storage_key(
    landlord_id: Union[uuid.UUID, str],
    property_id: Union[uuid.UUID, str],
    filename: str,
    timestamp_ms: Optional[int] = None
) -> str:
    """
    Build the storage key for an image: <landlord>/<property>/<epoch ms>-<name>.
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{landlord_id}/{property_id}/{timestamp_ms}-{sanitize_filename(filename)}"


async def read_uploads(files: Optional[Sequence[UploadFile]]) -> List[ImageUpload]:
    """
    Read multipart file fields into memory, in submission order.

    Browsers send an empty part when no file was chosen; those are skipped.
    """
    uploads = []
    for file in files or []:
        if not file.filename:
            continue
        data = await file.read()
        uploads.append(ImageUpload(
            filename=file.filename,
            content_type=file.content_type or "",
            data=data
        ))
    return uploads
