"""
config.py

Central place to load environment variables.
"""

from dotenv import load_dotenv
import os

# Load variables from .env file into environment
load_dotenv()

# OpenAI Vision is optional, Tesseract is used when the key is missing
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_VISION_MODEL = os.getenv("OPENAI_VISION_MODEL", "gpt-4.1")

# Tesseract binary location (only needed when it is not on PATH)
TESSERACT_CMD = os.getenv("TESSERACT_CMD")

# Flyers are printed in Spanish
OCR_DEFAULT_LANGUAGE = os.getenv("OCR_DEFAULT_LANGUAGE", "spa")

# Upload limits
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "5"))
MAX_UPLOAD_SIZE_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024
ALLOWED_IMAGE_TYPES = [
    content_type.strip().lower()
    for content_type in os.getenv(
        "ALLOWED_IMAGE_TYPES", "image/png,image/jpeg,image/jpg,image/webp"
    ).split(",")
    if content_type.strip()
]

# Longest text accepted by POST /offers/parse-text
MAX_TEXT_LENGTH = int(os.getenv("MAX_TEXT_LENGTH", "100000"))

# Optional JSON file overriding the offer parser vocabularies
OFFER_PARSER_CONFIG = os.getenv("OFFER_PARSER_CONFIG")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
