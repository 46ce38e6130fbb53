from fastapi import APIRouter

from app.config import MAX_UPLOAD_SIZE_MB, OCR_DEFAULT_LANGUAGE

router = APIRouter()


@router.get(
    "",
    status_code=200,
    summary="Health check",
    description="Liveness check, also reports the OCR defaults clients should expect"
)
def health_check():
    return {
        "status": "ok",
        "ocr_default_language": OCR_DEFAULT_LANGUAGE,
        "max_upload_size_mb": MAX_UPLOAD_SIZE_MB,
    }
