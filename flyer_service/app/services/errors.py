"""
errors.py

Exceptions raised by the services.

Known caller mistakes are ValueError subclasses (the API turns them
into 4xx responses), engine failures are RuntimeError subclasses (5xx).
"""


class InvalidUploadError(ValueError):
    """Uploaded file is missing, empty, of a disallowed type or unreadable."""

    def __init__(self, message: str, unsupported_type: bool = False):
        super().__init__(message)
        self.unsupported_type = unsupported_type


class UploadTooLargeError(InvalidUploadError):
    """Uploaded file is bigger than MAX_UPLOAD_SIZE_MB."""


class UnsupportedLanguageError(ValueError):
    """Requested OCR language is not installed in Tesseract."""


class OCREngineError(RuntimeError):
    """Tesseract is missing or failed while reading the image."""
