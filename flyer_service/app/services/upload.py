"""
upload.py

Checks an uploaded flyer photo before it is sent to OCR.
"""

import logging
from typing import List, Optional

from app.config import ALLOWED_IMAGE_TYPES, MAX_UPLOAD_SIZE_BYTES
from app.services.errors import InvalidUploadError, UploadTooLargeError

logger = logging.getLogger(__name__)


def validate_upload(
    filename: Optional[str],
    content_type: Optional[str],
    file_bytes: bytes,
    allowed_types: Optional[List[str]] = None,
    max_size: Optional[int] = None
) -> None:
    """
    Validate an uploaded image.

    Parameters:
    - filename: original file name (required)
    - content_type: MIME type sent by the client
    - file_bytes: file content
    - allowed_types: accepted MIME types, defaults to ALLOWED_IMAGE_TYPES
    - max_size: size limit in bytes, defaults to MAX_UPLOAD_SIZE_BYTES

    Raises:
    - InvalidUploadError: missing file, empty file or disallowed type
    - UploadTooLargeError: file bigger than the limit
    """

    allowed_types = ALLOWED_IMAGE_TYPES if allowed_types is None else allowed_types
    max_size = MAX_UPLOAD_SIZE_BYTES if max_size is None else max_size

    if not filename:
        raise InvalidUploadError("Image file is required")

    # Parameters such as "; charset=..." are not part of the type
    mime_type = (content_type or "").split(";")[0].strip().lower()
    if mime_type not in allowed_types:
        raise InvalidUploadError(
            f"Invalid file type '{mime_type or 'unknown'}'. "
            f"Allowed types: {', '.join(allowed_types)}",
            unsupported_type=True
        )

    if not file_bytes:
        raise InvalidUploadError("Uploaded image is empty")

    if len(file_bytes) > max_size:
        raise UploadTooLargeError(
            f"Uploaded image is {len(file_bytes)} bytes, "
            f"the limit is {max_size} bytes"
        )

    logger.info(f"Accepted upload {filename} ({mime_type}, {len(file_bytes)} bytes)")
