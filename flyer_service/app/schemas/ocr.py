"""
ocr.py (Schemas)

This file defines the data structure (schemas) used for OCR-related APIs.

Purpose of this file:
- Clearly define what data the OCR API will return
- Help FastAPI generate clean and user-friendly API documentation
- Validate response data automatically

This file does NOT:
- Perform OCR
- Handle file uploads
- Call any services
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class OCRWord(BaseModel):
    """
    OCRWord

    One word recognised by Tesseract with its bounding box in pixels
    of the original image. Offer parsing does not use these, they are
    returned for clients that want to highlight text on the photo.
    """

    text: str
    confidence: float = Field(..., description="Tesseract confidence, 0-100")
    left: int
    top: int
    width: int
    height: int


class OCRResponse(BaseModel):
    """
    OCRResponse

    This schema represents the response returned after
    successfully extracting text from a flyer photo.
    """

    raw_text: str = Field(
        ...,
        description=(
            "The full text extracted from the uploaded image. "
            "This text comes directly from OCR "
            "and has not been modified or interpreted."
        ),
        examples=["DESCUENTOS JULIO 2025\nMARTES\nRestobar Visa 30% Dcto"]
    )
    language: str = Field(
        ...,
        description="Tesseract language hint used for recognition",
        examples=["spa"]
    )
    words: Optional[List[OCRWord]] = Field(
        default=None,
        description="Per-word bounding boxes, only when include_words=true"
    )
