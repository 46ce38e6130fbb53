"""
ocr.py (API Route)

This file defines the OCR API endpoint for the flyer service.

What this file does:
- Defines the /ocr/extract endpoint
- Accepts flyer photo uploads
- Validates uploaded files (type and size)
- Calls OCRService to extract text
- Returns extracted text as JSON response

What this file does NOT do:
- Save files to disk (everything stays in memory)
- Process images directly (delegates to OCRService)
- Parse offers (see app/api/offers.py)

Flow:
User uploads photo → This API → OCRService → Extract text → Return JSON
"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.api.errors import to_http_exception
from app.config import OCR_DEFAULT_LANGUAGE
from app.schemas.ocr import OCRResponse
from app.services.ocr import OCRService, get_ocr_service
from app.services.upload import validate_upload

logger = logging.getLogger(__name__)

# Create a router for OCR-related endpoints
# This router will be registered in main.py
router = APIRouter()


@router.post(
    "/extract",
    response_model=OCRResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Extract text from a flyer photo using OCR",
    description=(
        "Upload a PNG, JPEG or WEBP photo of a promotion flyer and get "
        "the recognised text. Set include_words=true to also receive "
        "per-word bounding boxes."
    )
)
async def extract_text_from_image(
    file: UploadFile = File(...),
    language: str = Query(
        default=OCR_DEFAULT_LANGUAGE,
        description="Tesseract language code(s), e.g. 'spa' or 'spa+eng'"
    ),
    include_words: bool = Query(default=False),
    ocr_service: OCRService = Depends(get_ocr_service)
):
    """
    OCR extraction endpoint.

    Step-by-step process:
    1. Read the uploaded file into memory
    2. Validate name, type, size
    3. Extract text (and word boxes when requested)
    4. Return JSON

    Errors:
    - 400 Bad Request: empty file, unreadable image, unsupported language
    - 413: file too large
    - 415: not an allowed image type
    - 500 Internal Server Error: OCR processing failed
    """

    try:
        file_bytes = await file.read()
        validate_upload(file.filename, file.content_type, file_bytes)

        logger.info(f"Running OCR on {file.filename} with language {language}")

        # OCR is CPU bound, keep it off the event loop
        raw_text = await run_in_threadpool(ocr_service.extract_text, file_bytes, language)

        words = None
        if include_words:
            words = await run_in_threadpool(ocr_service.extract_words, file_bytes, language)

    except Exception as error:
        raise to_http_exception(error, "extract text from the image")

    return OCRResponse(raw_text=raw_text, language=language, words=words)
