"""
offers.py (API)

Offer extraction endpoints.

These endpoints turn flyer text into structured offers:
(day, merchant, discount percentage, card).

Endpoints:
- POST /offers/parse-image - OCR a flyer photo, then parse offers
- POST /offers/parse-text  - Parse offers from already recognised text
- GET  /offers/config      - Vocabularies the parser is using
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.api.errors import to_http_exception
from app.config import OCR_DEFAULT_LANGUAGE
from app.schemas.offers import OfferParserConfig, OffersResponse, OfferTextRequest
from app.services.ocr import OCRService, get_ocr_service
from app.services.offer_parser import OfferParserService, get_offer_parser
from app.services.upload import validate_upload

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


@router.post(
    "/parse-image",
    response_model=OffersResponse,
    status_code=status.HTTP_200_OK,
    summary="Extract offers from a flyer photo",
    description=(
        "Upload a photo of a promotion flyer. The text is recognised with OCR "
        "and every offer row is returned with its day, merchant, discount and card."
    )
)
async def parse_offers_from_image(
    file: UploadFile = File(...),
    language: str = Query(
        default=OCR_DEFAULT_LANGUAGE,
        description="Tesseract language code(s) of the flyer"
    ),
    ocr_service: OCRService = Depends(get_ocr_service),
    parser: OfferParserService = Depends(get_offer_parser)
):
    """
    Flow:
    1. Validate the upload
    2. OCR the photo
    3. Parse offers from the text
    4. Return offers together with the raw text
    """

    try:
        file_bytes = await file.read()
        validate_upload(file.filename, file.content_type, file_bytes)

        raw_text = await run_in_threadpool(ocr_service.extract_text, file_bytes, language)

    except Exception as error:
        raise to_http_exception(error, "extract text from the image")

    if not raw_text.strip():
        logger.warning(f"OCR found no text in {file.filename}")

    offers = await run_in_threadpool(parser.parse, raw_text)

    return OffersResponse(
        offers=offers,
        total=len(offers),
        raw_text=raw_text,
        language=language
    )


@router.post(
    "/parse-text",
    response_model=OffersResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Extract offers from flyer text",
    description=(
        "Send text already recognised from a flyer. Optionally send a config "
        "object to use different day names, card or bank keywords for this request."
    )
)
async def parse_offers_from_text_request(
    request: OfferTextRequest,
    parser: OfferParserService = Depends(get_offer_parser)
):
    # Step 1: Validate input text is not empty
    if not request.raw_text.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Raw text cannot be empty"
        )

    # Step 2: Per-request vocabularies replace the service ones
    if request.config is not None:
        parser = OfferParserService(request.config.apply_to(parser.config))

    logger.info(f"Parsing offers from {len(request.raw_text)} characters of text")

    # Parsing is CPU bound, keep it off the event loop
    offers = await run_in_threadpool(parser.parse, request.raw_text)

    return OffersResponse(offers=offers, total=len(offers))


@router.get(
    "/config",
    response_model=OfferParserConfig,
    summary="Parser vocabularies",
    description="Header fragments, day names, card and bank keywords currently in use."
)
def get_parser_config(parser: OfferParserService = Depends(get_offer_parser)):
    return parser.config
