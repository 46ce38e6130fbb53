"""
offer_parser.py

Turns the text recognised from a bank promotion flyer into
structured offers: (day, merchant, discount percentage, card).

Flyers are tables where a day row ("MARTES") is followed by the
offers valid that day ("Restobar Visa 30% Dcto"). The parser reads
the text once, top to bottom, remembering the last day it saw.

Stages:
1. normalize_lines   - split text into trimmed, non-empty lines
2. classify_line     - header (skip), day marker (remember day), candidate
3. extract_entities  - percentage, card and merchant from a candidate line
4. emit_record       - build an OfferRecord when a day is known

This file:
- Does NOT call OCR (it only receives text)
- Does NOT contain FastAPI routes
- Never raises on bad input, unparseable lines are skipped
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import List, Optional, Tuple

from app.config import OFFER_PARSER_CONFIG
from app.schemas.offers import OfferParserConfig, OfferRecord

# Setup logging
logger = logging.getLogger(__name__)


class LineKind(str, Enum):
    """What the classifier decided about a line."""

    HEADER = "header"
    DAY_MARKER = "day_marker"
    CANDIDATE = "candidate"


@dataclass(frozen=True)
class ParseState:
    """
    State carried from one line to the next.

    current_day is None until the first day marker is seen,
    afterwards it always holds one of the configured day tokens.
    """

    current_day: Optional[str] = None


@dataclass(frozen=True)
class ExtractedOffer:
    """Fields pulled out of one candidate line, before the day is attached."""

    discount_percent: str
    merchant: str
    card: str


def _keyword_regex(keyword: str) -> "re.Pattern[str]":
    # Finding and removing a keyword must agree on what matches
    return re.compile(re.escape(keyword), re.IGNORECASE)


def _remove_first(text: str, keyword: str) -> str:
    """Remove the first case-insensitive occurrence of keyword from text."""
    return _keyword_regex(keyword).sub("", text, count=1)


def _find_keyword(text: str, keywords: List[str]) -> Optional[str]:
    """
    Return the first keyword (in list order) contained in text.

    Matching is case-insensitive. The position of the keyword inside
    the line does not matter, only the order of the list.
    """
    for keyword in keywords:
        if _keyword_regex(keyword).search(text):
            return keyword
    return None


def _fold_accents(text: str) -> str:
    """Lowercase text and drop accents, "MIÉRCOLES" -> "miercoles"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char)).casefold()


def _find_day(line: str, day_names: List[str]) -> Optional[str]:
    """
    Return the first configured day name found in line.

    OCR output may or may not keep accents ("SÁBADO" / "SABADO"), so
    both sides are compared without them. The configured token is
    returned unchanged.
    """
    folded = _fold_accents(line)
    for day in day_names:
        if _fold_accents(day) in folded:
            return day
    return None


class OfferParserService:
    """
    OfferParserService converts flyer text into OfferRecord objects.

    The service holds only configuration. Each call to parse() starts
    from a fresh ParseState, so one instance can be shared between
    requests and threads.
    """

    def __init__(self, config: Optional[OfferParserConfig] = None):
        """
        Initialize the parser.

        Parameters:
        - config: vocabularies and patterns to use. Defaults to the
          built-in Spanish vocabulary when not provided.
        """
        self.config = config or OfferParserConfig()

        # Compile patterns once per service
        self._percent_regex = re.compile(self.config.percent_pattern)
        self._noise_regex = re.compile(self.config.noise_pattern, re.IGNORECASE)

    def parse(self, raw_text: str) -> List[OfferRecord]:
        """
        Main entry point used by the application.

        What happens here:
        1. Split the text into lines
        2. Classify every line, updating the current day on day markers
        3. Extract percentage, card and merchant from candidate lines
        4. Emit a record when both a day and a percentage are known

        Parameters:
        - raw_text: full OCR output for one flyer

        Returns:
        - offers in the same order as their lines appear in the text

        Called by:
        - parse_offers_from_text() below
        - API routes in app/api/offers.py
        """

        lines = self.normalize_lines(raw_text)
        logger.info(f"Parsing offers from {len(lines)} lines")

        state = ParseState()
        records: List[OfferRecord] = []

        for line in lines:
            kind, state = self.classify_line(line, state)
            logger.debug(f"{kind.value}: {line!r}")

            if kind is not LineKind.CANDIDATE:
                continue

            extracted = self.extract_entities(line)
            record = self.emit_record(state, extracted)

            if record is not None:
                records.append(record)

        logger.info(f"Extracted {len(records)} offers")
        return records

    def normalize_lines(self, raw_text: str) -> List[str]:
        """Split text on any line break, trim each line and drop empty ones."""
        return [line.strip() for line in raw_text.splitlines() if line.strip()]

    def classify_line(self, line: str, state: ParseState) -> Tuple[LineKind, ParseState]:
        """
        Decide what a line is and return the (possibly updated) state.

        Header fragments are checked first and case-sensitively, so a
        title like "DESCUENTOS JULIO 2025" is skipped without touching
        the current day. Day names are matched ignoring case and accents;
        when a line contains several, the first one in the configured
        list wins.
        """

        if any(fragment in line for fragment in self.config.header_fragments):
            return LineKind.HEADER, state

        day = _find_day(line, self.config.day_names)
        if day is not None:
            return LineKind.DAY_MARKER, ParseState(current_day=day)

        return LineKind.CANDIDATE, state

    def extract_entities(self, line: str) -> Optional[ExtractedOffer]:
        """
        Extract the discount, card and merchant from a candidate line.

        What happens here:
        1. Take the first percentage, give up if there is none
        2. Take the first known card keyword out of the rest of the line
        3. Build the merchant, keeping a bank name in front when found
        4. Clean debit/credit/discount noise out of the merchant

        Returns:
        - ExtractedOffer, or None when the line has no percentage

        Example:
        "Restobar Visa 30% Dcto" -> ExtractedOffer("30%", "Restobar", "VISA")
        """

        percentage, remaining = self._take_percentage(line)
        if percentage is None:
            return None

        card, remaining = self._take_card(remaining)
        merchant = self._clean_merchant(self._build_merchant(remaining))

        return ExtractedOffer(
            discount_percent=percentage,
            merchant=merchant or self.config.unknown_value,
            card=card or self.config.unknown_value,
        )

    def emit_record(
        self,
        state: ParseState,
        extracted: Optional[ExtractedOffer]
    ) -> Optional[OfferRecord]:
        """Build an OfferRecord when a day is known and a percentage was found."""

        if state.current_day is None or extracted is None:
            return None

        return OfferRecord(
            day=state.current_day,
            merchant=extracted.merchant,
            discount_percent=extracted.discount_percent,
            card=extracted.card,
        )

    def _take_percentage(self, line: str) -> Tuple[Optional[str], str]:
        match = self._percent_regex.search(line)
        if match is None:
            return None, line

        remaining = line[:match.start()] + line[match.end():]
        return match.group(0), remaining

    def _take_card(self, remaining: str) -> Tuple[Optional[str], str]:
        card = _find_keyword(remaining, self.config.card_keywords)
        if card is None:
            return None, remaining

        return card, _remove_first(remaining, card)

    def _build_merchant(self, remaining: str) -> str:
        """
        Build the merchant text from what is left of the line.

        Flyers published by a bank list the bank itself as the merchant,
        so a bank keyword is moved to the front instead of being dropped
        (unlike card keywords, which only fill the card field).
        """

        bank = _find_keyword(remaining, self.config.bank_keywords)
        if bank is None:
            return remaining

        return f"{bank} {_remove_first(remaining, bank)}".strip()

    def _clean_merchant(self, merchant: str) -> str:
        # Leftover percentages (a second "50%" on the line) are noise too
        merchant = self._noise_regex.sub(" ", merchant)
        merchant = self._percent_regex.sub(" ", merchant)

        return " ".join(merchant.split()).strip("-|/:,;· ")


def parse_offers_from_text(
    raw_text: str,
    config: Optional[OfferParserConfig] = None
) -> List[OfferRecord]:
    """
    Parse flyer text into offers.

    Convenience wrapper around OfferParserService for callers that
    parse a single text.
    """
    return OfferParserService(config).parse(raw_text)


def load_parser_config(path: Optional[str] = None) -> OfferParserConfig:
    """
    Load parser vocabularies from a JSON file.

    Keys missing from the file keep their default values. Without a
    path the built-in vocabulary is returned.

    Raises:
    - FileNotFoundError when the file does not exist
    - pydantic.ValidationError when the file content is invalid
    """

    if not path:
        return OfferParserConfig()

    logger.info(f"Loading offer parser config from {path}")

    with open(path, encoding="utf-8") as config_file:
        return OfferParserConfig.model_validate_json(config_file.read())


@lru_cache(maxsize=1)
def get_offer_parser() -> OfferParserService:
    """
    Return the parser configured from OFFER_PARSER_CONFIG.

    The config file is read once per process. create_app() calls this
    at startup so a broken config file stops the service from starting.
    """
    return OfferParserService(load_parser_config(OFFER_PARSER_CONFIG))
