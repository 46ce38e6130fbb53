"""
ocr.py

This file is used to read uploaded flyer photos
and extract readable text from them.

Supported file types:
- PNG / JPG / JPEG / WEBP (image files)

Uses multiple extraction methods:
1. OpenAI Vision API (when an API key is configured)
2. Tesseract OCR with the requested language (fallback)

This file:
- Only returns extracted text (and optional word boxes)
- Does NOT parse offers out of the text
- Does NOT save files anywhere
- Does NOT contain FastAPI routes
"""

import io
import base64
import logging
from typing import List, Optional, Tuple

import cv2
import numpy as np
from openai import OpenAI

from PIL import Image, UnidentifiedImageError  # Used for image handling
import pytesseract  # OCR engine to read text from images

from app.config import OPENAI_API_KEY, OPENAI_VISION_MODEL, TESSERACT_CMD
from app.schemas.ocr import OCRWord
from app.services.errors import OCREngineError, InvalidUploadError, UnsupportedLanguageError

# Setup logging
logger = logging.getLogger(__name__)

# Flyer tables read best as a uniform block (6) or a single column (4)
PSM_MODES = [6, 4, 3]

# Vision results shorter than this are treated as a failed read
MIN_VISION_TEXT_LENGTH = 20


class OCRService:
    """
    OCRService is responsible for one job only:
    reading flyer photos and extracting text from them.

    This class can use two methods:
    1. OpenAI Vision API - when a key is configured
    2. Tesseract OCR - free, offline, language aware
    """

    def __init__(
        self,
        openai_api_key: Optional[str] = None,
        tesseract_cmd: Optional[str] = None,
        vision_model: str = "gpt-4.1"
    ):
        """
        Initialize OCR service.

        Parameters:
        - openai_api_key: Optional OpenAI API key for Vision API
        - tesseract_cmd: Optional path to the tesseract binary
        - vision_model: OpenAI model used for Vision requests
        """

        # Store OpenAI client (will be None if no key provided)
        self.openai_client = None
        self.vision_model = vision_model

        # If API key is provided, create OpenAI client
        if openai_api_key:
            self.openai_client = OpenAI(api_key=openai_api_key)

        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def extract_text(self, file_bytes: bytes, language: str) -> str:
        """
        Main entry point used by the application.

        What happens here:
        1. Check the language is installed in Tesseract
        2. Load the image from memory
        3. Try OpenAI Vision first if available
        4. Fallback to Tesseract with preprocessing

        Parameters:
        - file_bytes: uploaded image data (kept in memory)
        - language: Tesseract language code(s), e.g. "spa" or "spa+eng"

        Returns:
        - extracted text as a single string

        Raises:
        - UnsupportedLanguageError: language not installed
        - InvalidUploadError: bytes are not a readable image
        - OCREngineError: Tesseract is missing or crashed

        Called by:
        - API routes in app/api/ocr.py and app/api/offers.py
        """

        self.validate_language(language)
        image, mime_type = self._load_image(file_bytes)

        # Strategy 1: OpenAI Vision
        if self.openai_client:
            vision_text = self._extract_with_openai_vision(file_bytes, language, mime_type)

            if vision_text and len(vision_text.strip()) > MIN_VISION_TEXT_LENGTH:
                return vision_text

            logger.warning("OpenAI Vision returned no usable text, falling back to Tesseract")

        # Strategy 2: Tesseract
        return self._extract_with_tesseract(image, language)

    def extract_words(self, file_bytes: bytes, language: str) -> List[OCRWord]:
        """
        Return every recognised word with its bounding box.

        Boxes are in pixels of the uploaded image, so the image is not
        preprocessed here (preprocessing resizes it).
        """

        self.validate_language(language)
        image, _ = self._load_image(file_bytes)

        try:
            data = pytesseract.image_to_data(
                image,
                lang=language,
                config="--oem 3 --psm 6",
                output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as error:
            raise OCREngineError(f"Tesseract failed: {error}") from error

        words: List[OCRWord] = []
        for index, text in enumerate(data["text"]):
            text = text.strip()
            confidence = float(data["conf"][index])

            # Tesseract reports -1 for layout rows that hold no word
            if not text or confidence < 0:
                continue

            words.append(OCRWord(
                text=text,
                confidence=confidence,
                left=int(data["left"][index]),
                top=int(data["top"][index]),
                width=int(data["width"][index]),
                height=int(data["height"][index]),
            ))

        return words

    def validate_language(self, language: str) -> None:
        """
        Make sure every language in a "spa+eng" style hint is installed.

        Raises UnsupportedLanguageError for unknown languages and
        OCREngineError when Tesseract itself is not available.
        """

        requested = [code.strip() for code in language.split("+") if code.strip()]
        if not requested:
            raise UnsupportedLanguageError("Language hint cannot be empty")

        try:
            installed = set(pytesseract.get_languages(config=""))
        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as error:
            raise OCREngineError(f"Tesseract is not available: {error}") from error

        missing = [code for code in requested if code not in installed]
        if missing:
            raise UnsupportedLanguageError(
                f"Unsupported OCR language: {', '.join(missing)}. "
                f"Installed languages: {', '.join(sorted(installed))}"
            )

    def _load_image(self, file_bytes: bytes) -> Tuple[Image.Image, str]:
        """Open the upload and return it with the MIME type of its real format."""
        try:
            image = Image.open(io.BytesIO(file_bytes))
            image.load()
        except (UnidentifiedImageError, OSError) as error:
            raise InvalidUploadError("Uploaded file is not a readable image") from error

        mime_type = Image.MIME.get(image.format or "", "image/jpeg")

        # Tesseract and OpenCV both expect RGB or grayscale
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        return image, mime_type

    def _extract_with_openai_vision(
        self,
        file_bytes: bytes,
        language: str,
        mime_type: str = "image/jpeg"
    ) -> Optional[str]:
        """
        Extract text using OpenAI Vision API.

        The prompt asks for a line by line transcription so that day
        rows and offer rows of the flyer table stay on separate lines,
        which is what the offer parser expects.

        Returns:
        - extracted text or None if API call fails
        """

        # If no OpenAI client, return None
        if not self.openai_client:
            return None

        try:
            # Step 1: Convert image bytes to base64 string
            base64_image = base64.b64encode(file_bytes).decode('utf-8')

            # Step 2: Call OpenAI Vision API
            response = self.openai_client.chat.completions.create(
                model=self.vision_model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "text",
                                "text": (
                                    "Transcribe ALL text from this promotion flyer. "
                                    f"The flyer is written in language '{language}' (Tesseract code). "
                                    "Write one table row per line, left to right. "
                                    "Keep day names, merchant names, bank and card names and "
                                    "percentages exactly as printed. "
                                    "Return ONLY the transcribed text."
                                )
                            },
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:{mime_type};base64,{base64_image}"
                                }
                            }
                        ]
                    }
                ],
                max_tokens=1500
            )

            # Step 3: Extract text from API response
            extracted_text = response.choices[0].message.content or ""

            return extracted_text.strip()

        except Exception as e:
            # The calling function will try Tesseract as fallback
            logger.warning(f"OpenAI Vision API failed: {str(e)}")
            return None

    def _extract_with_tesseract(self, image: Image.Image, language: str) -> str:
        """
        Run Tesseract on a preprocessed copy of the image.

        What happens here:
        1. Preprocess the photo (contrast, threshold)
        2. Try several page segmentation modes, keep the most confident
        3. If nothing was read, run Tesseract on the untouched image
        """

        try:
            processed = self._preprocess_image(image)
            text = self._ocr_with_multiple_psm(processed, language)

            if text:
                return text

            logger.warning("No text after preprocessing, retrying on the original image")
            return pytesseract.image_to_string(image, lang=language).strip()

        except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as error:
            raise OCREngineError(f"Tesseract failed: {error}") from error

    def _preprocess_image(self, image: Image.Image) -> Image.Image:
        """
        Preprocessing for photographed printed flyers.

        What happens here:
        1. Resize if too small
        2. Convert to grayscale
        3. Increase contrast (flyers are often printed on colour)
        4. Remove noise
        5. Apply adaptive thresholding

        Parameters:
        - image: PIL Image object

        Returns:
        - processed PIL Image ready for OCR
        """

        # Step 1: Convert PIL Image to numpy array
        img_array = np.array(image)

        # Step 2: Resize if image is too small
        height, width = img_array.shape[:2]
        if width < 1000:
            scale = 1000 / width
            img_array = cv2.resize(
                img_array,
                (1000, int(height * scale)),
                interpolation=cv2.INTER_CUBIC
            )

        # Step 3: Convert to grayscale
        if len(img_array.shape) == 3:
            gray = cv2.cvtColor(img_array, cv2.COLOR_RGB2GRAY)
        else:
            gray = img_array

        # Step 4: Enhance contrast using CLAHE
        clahe = cv2.createCLAHE(clipLimit=2.0, tileGridSize=(8, 8))
        contrast_enhanced = clahe.apply(gray)

        # Step 5: Remove noise while preserving edges
        denoised = cv2.bilateralFilter(contrast_enhanced, 9, 75, 75)

        # Step 6: Adaptive thresholding, text black and background white
        thresh = cv2.adaptiveThreshold(
            denoised,
            255,
            cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
            cv2.THRESH_BINARY,
            15,
            10
        )

        # Step 7: White text on dark cells comes out inverted
        if np.mean(thresh) < 127:
            thresh = cv2.bitwise_not(thresh)

        return Image.fromarray(thresh)

    def _ocr_with_multiple_psm(self, processed_image: Image.Image, language: str) -> str:
        """
        Try multiple PSM (Page Segmentation Mode) settings.

        Returns the text of the mode with the highest average word
        confidence, or an empty string when no mode read anything.
        """

        best_text = ""
        max_confidence = -1.0

        for psm in PSM_MODES:
            custom_config = f'--oem 3 --psm {psm}'

            text = pytesseract.image_to_string(
                processed_image,
                lang=language,
                config=custom_config
            )

            data = pytesseract.image_to_data(
                processed_image,
                lang=language,
                config=custom_config,
                output_type=pytesseract.Output.DICT
            )

            # Filter out -1 which means no data
            confidences = [float(conf) for conf in data['conf'] if float(conf) >= 0]
            avg_confidence = sum(confidences) / len(confidences) if confidences else 0.0

            logger.debug(f"PSM {psm}: confidence {avg_confidence:.1f}")

            if avg_confidence > max_confidence and text.strip():
                max_confidence = avg_confidence
                best_text = text

        return best_text.strip()


def get_ocr_service() -> OCRService:
    """
    Build an OCRService from the environment settings.

    Used as a FastAPI dependency so tests can swap the engine.
    """
    return OCRService(
        openai_api_key=OPENAI_API_KEY,
        tesseract_cmd=TESSERACT_CMD,
        vision_model=OPENAI_VISION_MODEL
    )
