"""
errors.py (API)

Maps service exceptions to HTTP errors, so every route answers the
same way for the same problem.
"""

import logging

from fastapi import HTTPException, status

from app.services.errors import InvalidUploadError, OCREngineError, UploadTooLargeError

logger = logging.getLogger(__name__)


def to_http_exception(error: Exception, action: str) -> HTTPException:
    """
    Convert an exception raised while handling a request.

    Parameters:
    - error: the exception raised by a service
    - action: what was being done, used in 5xx messages
      (e.g. "extract text from the image")
    """

    if isinstance(error, UploadTooLargeError):
        return HTTPException(
            status_code=413,
            detail=str(error)
        )

    if isinstance(error, InvalidUploadError) and error.unsupported_type:
        return HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=str(error)
        )

    # Known caller mistakes: empty file, unknown language, bad image
    if isinstance(error, ValueError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(error)
        )

    if isinstance(error, OCREngineError):
        logger.error(f"OCR engine failed: {error}")
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}: {error}"
        )

    logger.exception(f"Unexpected error while trying to {action}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}"
    )
