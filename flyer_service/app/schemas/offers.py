"""
offers.py (Schemas)

Pydantic models for the offer parsing pipeline and its API endpoints.

These schemas define:
- OfferParserConfig: the vocabularies the parser works with
- OfferRecord: one structured offer extracted from a flyer line
- Request and response formats for /offers endpoints

Nothing in this file parses text. The parsing itself lives in
app/services/offer_parser.py.
"""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import MAX_TEXT_LENGTH


# Default vocabularies, taken from the Chilean bank promotion flyers
# the service was built for.
DEFAULT_HEADER_FRAGMENTS = [
    "DESCUENTOS",
    "COMERCIO",
    "BENEFICIO",
]

DEFAULT_DAY_NAMES = [
    "LUNES",
    "MARTES",
    "MIERCOLES",
    "JUEVES",
    "VIERNES",
    "SABADO",
    "DOMINGO",
]

DEFAULT_CARD_KEYWORDS = [
    "VISA",
    "MASTERCARD",
    "AMERICAN EXPRESS",
    "AMEX",
    "DINERS",
    "MAGNA",
    "REDCOMPRA",
]

DEFAULT_BANK_KEYWORDS = [
    "BANCO DE CHILE",
    "BANCO CHILE",
    "BANCO ESTADO",
    "SANTANDER",
    "SCOTIABANK",
    "FALABELLA",
    "RIPLEY",
    "ITAU",
    "BCI",
    "BICE",
    "SECURITY",
    "CONSORCIO",
]

DEFAULT_NOISE_PATTERN = r"\b(?:d[eé]bito|cr[eé]dito|descuentos?|dcto|dscto|dto|desc)\b\.?"

DEFAULT_PERCENT_PATTERN = r"\d{1,3}%"


def _check_day_names(value: List[str]) -> List[str]:
    if len(value) != 7:
        raise ValueError(f"day_names must contain exactly 7 entries, got {len(value)}")
    if any(not day.strip() for day in value):
        raise ValueError("day_names cannot contain blank entries")
    return value


def _check_keywords(value: List[str]) -> List[str]:
    # An empty keyword would match every line
    if any(not keyword.strip() for keyword in value):
        raise ValueError("keyword lists cannot contain blank entries")
    return value


class OfferParserConfig(BaseModel):
    """
    Vocabularies and patterns used by the offer parser.

    Every list is scanned in declaration order and the first match wins,
    so put longer or more specific keywords before shorter ones
    (e.g. "BANCO DE CHILE" before "BANCO CHILE").
    """

    model_config = ConfigDict(frozen=True)

    header_fragments: List[str] = Field(
        default_factory=lambda: list(DEFAULT_HEADER_FRAGMENTS),
        description="Case-sensitive fragments that mark a line as flyer boilerplate"
    )
    day_names: List[str] = Field(
        default_factory=lambda: list(DEFAULT_DAY_NAMES),
        description="The seven day tokens, Monday first"
    )
    card_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_CARD_KEYWORDS),
        description="Payment card names, matched case-insensitively"
    )
    bank_keywords: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BANK_KEYWORDS),
        description="Bank names, matched case-insensitively and kept in the merchant"
    )
    noise_pattern: str = Field(
        default=DEFAULT_NOISE_PATTERN,
        description="Regex of debit/credit/discount words removed from the merchant"
    )
    percent_pattern: str = Field(
        default=DEFAULT_PERCENT_PATTERN,
        description="Regex of a discount percentage"
    )
    unknown_value: str = Field(
        default="Unknown",
        description="Value used when merchant or card cannot be extracted"
    )

    @field_validator("day_names")
    @classmethod
    def validate_day_names(cls, value: List[str]) -> List[str]:
        return _check_day_names(value)

    @field_validator("header_fragments", "card_keywords", "bank_keywords")
    @classmethod
    def validate_keywords(cls, value: List[str]) -> List[str]:
        return _check_keywords(value)

    @field_validator("noise_pattern", "percent_pattern")
    @classmethod
    def validate_pattern(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as error:
            raise ValueError(f"invalid regular expression {value!r}: {error}")
        return value


class OfferRecord(BaseModel):
    """
    One offer found on the flyer.

    Example:
    {"day": "MARTES", "merchant": "Restobar", "discount_percent": "30%", "card": "VISA"}
    """

    model_config = ConfigDict(frozen=True)

    day: str = Field(..., description="Day token the offer applies to", examples=["MARTES"])
    merchant: str = Field(..., description="Merchant or bank name", examples=["Restobar"])
    discount_percent: str = Field(..., description="Discount as printed", examples=["30%"])
    card: str = Field(..., description="Payment card keyword", examples=["VISA"])


class OfferVocabularyOverride(BaseModel):
    """
    Vocabulary lists a client may replace for a single request.

    Regex patterns are only configurable by the operator
    (OFFER_PARSER_CONFIG), so sending noise_pattern or
    percent_pattern here is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    header_fragments: Optional[List[str]] = None
    day_names: Optional[List[str]] = None
    card_keywords: Optional[List[str]] = None
    bank_keywords: Optional[List[str]] = None
    unknown_value: Optional[str] = None

    @field_validator("day_names")
    @classmethod
    def validate_day_names(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return value if value is None else _check_day_names(value)

    @field_validator("header_fragments", "card_keywords", "bank_keywords")
    @classmethod
    def validate_keywords(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        return value if value is None else _check_keywords(value)

    def apply_to(self, config: OfferParserConfig) -> OfferParserConfig:
        """Return config with the lists sent in this override replaced."""
        return config.model_copy(update=self.model_dump(exclude_none=True))


class OfferTextRequest(BaseModel):
    """
    Request schema for POST /offers/parse-text.

    config is optional. When present its lists replace the service
    vocabularies for this request only.
    """

    raw_text: str = Field(
        ...,
        max_length=MAX_TEXT_LENGTH,
        description="Text recognised from a promotion flyer",
        examples=["DESCUENTOS JULIO 2025\nMARTES\nRestobar Visa 30% Dcto"]
    )
    config: Optional[OfferVocabularyOverride] = Field(
        default=None,
        description="Per-request vocabulary override (OPTIONAL)"
    )


class OffersResponse(BaseModel):
    """Offers extracted from one flyer, in the order they were printed."""

    offers: List[OfferRecord] = Field(default_factory=list)
    total: int = Field(..., description="Number of offers found")
    raw_text: Optional[str] = Field(
        default=None,
        description="OCR text the offers were parsed from (image endpoint only)"
    )
    language: Optional[str] = Field(
        default=None,
        description="Language hint used for OCR (image endpoint only)"
    )
