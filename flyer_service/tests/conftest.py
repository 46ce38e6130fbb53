"""
Common test fixtures and configuration.
"""
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.main import create_app
from app.services.ocr import get_ocr_service
from app.services.offer_parser import OfferParserService


class FakeOCRService:
    """Stands in for OCRService so API tests need no Tesseract binary."""

    def __init__(self, text="", words=None, error=None):
        self.text = text
        self.words = words or []
        self.error = error
        self.languages = []

    def extract_text(self, file_bytes, language):
        self.languages.append(language)
        if self.error:
            raise self.error
        return self.text

    def extract_words(self, file_bytes, language):
        return self.words


@pytest.fixture
def parser():
    return OfferParserService()


@pytest.fixture
def fake_ocr():
    return FakeOCRService()


@pytest.fixture
def client(fake_ocr):
    app = create_app()
    app.dependency_overrides[get_ocr_service] = lambda: fake_ocr
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (400, 200), "white").save(buffer, format="PNG")
    return buffer.getvalue()
