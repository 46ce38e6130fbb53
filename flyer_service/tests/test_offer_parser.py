import pytest

from app.schemas.offers import OfferParserConfig, OfferRecord
from app.services.offer_parser import (
    ExtractedOffer,
    LineKind,
    OfferParserService,
    ParseState,
    parse_offers_from_text,
)


def as_dicts(records):
    return [record.model_dump() for record in records]


def test_day_then_offer_with_card_and_noise():
    records = parse_offers_from_text("MARTES\nRestobar Visa 30% Dcto")
    assert as_dicts(records) == [
        {"day": "MARTES", "merchant": "Restobar", "discount_percent": "30%", "card": "VISA"}
    ]


def test_percentage_only_line_uses_unknown():
    records = parse_offers_from_text("LUNES\n50%")
    assert as_dicts(records) == [
        {"day": "LUNES", "merchant": "Unknown", "discount_percent": "50%", "card": "Unknown"}
    ]


def test_no_day_means_no_records():
    text = "Restobar Visa 30%\nBanco Chile 20%\n15%"
    assert parse_offers_from_text(text) == []


def test_empty_text():
    assert parse_offers_from_text("") == []
    assert parse_offers_from_text("\n  \n\t\n") == []


def test_line_without_percentage_keeps_day():
    text = "JUEVES\nSolo presencial\nCafe Central 15%"
    records = parse_offers_from_text(text)
    assert as_dicts(records) == [
        {"day": "JUEVES", "merchant": "Cafe Central", "discount_percent": "15%", "card": "Unknown"}
    ]


@pytest.mark.parametrize("text", [
    "DESCUENTOS JULIO 2025\nMARTES\nRestobar Visa 30% Dcto",
    "MARTES\nDESCUENTOS JULIO 2025\nRestobar Visa 30% Dcto",
    "MARTES\nRestobar Visa 30% Dcto\nDESCUENTOS JULIO 2025",
])
def test_header_never_leaks_or_resets_day(text):
    records = parse_offers_from_text(text)
    assert len(records) == 1
    assert records[0].day == "MARTES"
    assert records[0].merchant == "Restobar"


def test_header_line_with_percentage_is_skipped():
    records = parse_offers_from_text("LUNES\nDESCUENTOS HASTA 40%")
    assert records == []


def test_header_match_is_case_sensitive():
    records = parse_offers_from_text("MARTES\nDescuentos Jumbo 10%")
    assert as_dicts(records) == [
        {"day": "MARTES", "merchant": "Jumbo", "discount_percent": "10%", "card": "Unknown"}
    ]


def test_only_first_percentage_is_used():
    records = parse_offers_from_text("VIERNES\nBanco Chile 20% 50%")
    assert len(records) == 1
    assert records[0].discount_percent == "20%"
    assert records[0].merchant == "BANCO CHILE"
    assert "50" not in records[0].merchant


def test_records_keep_line_order():
    text = "\n".join([
        "LUNES",
        "Pizzeria Roma 10%",
        "MARTES",
        "Sushi Kai 20%",
        "Libreria Norte 30%",
    ])
    records = parse_offers_from_text(text)
    assert [(r.day, r.merchant, r.discount_percent) for r in records] == [
        ("LUNES", "Pizzeria Roma", "10%"),
        ("MARTES", "Sushi Kai", "20%"),
        ("MARTES", "Libreria Norte", "30%"),
    ]


def test_duplicate_lines_are_not_merged():
    records = parse_offers_from_text("SABADO\nSushi Kai 20%\nSushi Kai 20%")
    assert len(records) == 2
    assert records[0] == records[1]


def test_parse_is_idempotent(parser):
    text = "DESCUENTOS JULIO 2025\nLUNES\nRestobar Visa 30% Dcto\nDOMINGO\nBanco Estado 25%"
    assert parser.parse(text) == parser.parse(text)
    assert parse_offers_from_text(text) == parse_offers_from_text(text)


def test_day_state_does_not_leak_between_calls(parser):
    assert len(parser.parse("LUNES\nPizzeria Roma 10%")) == 1
    assert parser.parse("Pizzeria Roma 10%") == []


def test_windows_line_endings():
    records = parse_offers_from_text("MIERCOLES\r\nRestobar Visa 30%\r\n")
    assert [(r.day, r.merchant) for r in records] == [("MIERCOLES", "Restobar")]


def test_bank_name_goes_in_front_of_merchant():
    records = parse_offers_from_text("DOMINGO\nJumbo Santander Visa 40% Débito")
    assert as_dicts(records) == [
        {"day": "DOMINGO", "merchant": "SANTANDER Jumbo", "discount_percent": "40%", "card": "VISA"}
    ]


def test_card_name_is_dropped_from_merchant():
    records = parse_offers_from_text("LUNES\nFarmacia Amex 15%")
    assert records[0].card == "AMEX"
    assert records[0].merchant == "Farmacia"


# --- Line normalizer -------------------------------------------------------

def test_normalize_lines(parser):
    text = "  LUNES  \r\n\n\tRestobar 30%\rFIN\n   "
    assert parser.normalize_lines(text) == ["LUNES", "Restobar 30%", "FIN"]


# --- Line classifier -------------------------------------------------------

def test_classify_header_keeps_state(parser):
    state = ParseState(current_day="LUNES")
    kind, new_state = parser.classify_line("DESCUENTOS JULIO 2025", state)
    assert kind is LineKind.HEADER
    assert new_state == state


def test_classify_day_marker_is_case_insensitive(parser):
    kind, state = parser.classify_line("miercoles", ParseState())
    assert kind is LineKind.DAY_MARKER
    assert state.current_day == "MIERCOLES"


@pytest.mark.parametrize("line,expected", [
    ("LUNES Y MARTES", "LUNES"),
    ("DOMINGO / LUNES", "LUNES"),
    ("Viernes y Sabado", "VIERNES"),
])
def test_classify_first_day_in_list_order_wins(parser, line, expected):
    _, state = parser.classify_line(line, ParseState())
    assert state.current_day == expected


def test_last_day_marker_wins(parser):
    records = parser.parse("LUNES\nMARTES\nRestobar 30%")
    assert records[0].day == "MARTES"


def test_classify_candidate(parser):
    state = ParseState(current_day="JUEVES")
    kind, new_state = parser.classify_line("Restobar Visa 30%", state)
    assert kind is LineKind.CANDIDATE
    assert new_state is state


# --- Entity extractor ------------------------------------------------------

def test_extract_without_percentage(parser):
    assert parser.extract_entities("Restobar Visa") is None


def test_extract_card_tie_break_uses_list_order(parser):
    extracted = parser.extract_entities("Tienda Mastercard Visa 25%")
    assert extracted == ExtractedOffer(
        discount_percent="25%", merchant="Tienda Mastercard", card="VISA"
    )


@pytest.mark.parametrize("line,merchant", [
    ("Restobar 30% Dcto.", "Restobar"),
    ("Restobar 30% dscto", "Restobar"),
    ("Restobar Crédito 30%", "Restobar"),
    ("Restobar debito 30%", "Restobar"),
    ("Restobar 30% - ", "Restobar"),
])
def test_extract_cleans_noise_words(parser, line, merchant):
    assert parser.extract_entities(line).merchant == merchant


def test_extract_noise_only_becomes_unknown(parser):
    extracted = parser.extract_entities("Visa 20% Dcto")
    assert extracted.merchant == "Unknown"
    assert extracted.card == "VISA"


def test_emit_record_needs_day(parser):
    extracted = ExtractedOffer(discount_percent="10%", merchant="Jumbo", card="Unknown")
    assert parser.emit_record(ParseState(), extracted) is None
    assert parser.emit_record(ParseState(current_day="LUNES"), None) is None
    assert parser.emit_record(ParseState(current_day="LUNES"), extracted) == OfferRecord(
        day="LUNES", merchant="Jumbo", discount_percent="10%", card="Unknown"
    )


# --- Custom vocabularies ---------------------------------------------------

def test_synthetic_vocabulary():
    config = OfferParserConfig(
        header_fragments=["WEEKLY DEALS"],
        day_names=["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"],
        card_keywords=["GOLDCARD"],
        bank_keywords=["ACME BANK"],
        noise_pattern=r"\b(?:debit|credit|off)\b",
        unknown_value="N/A",
    )
    text = "WEEKLY DEALS\nmonday\nAcme Bank Goldcard 15% off\nBakery 5%"
    records = parse_offers_from_text(text, config)
    assert as_dicts(records) == [
        {"day": "MONDAY", "merchant": "ACME BANK", "discount_percent": "15%", "card": "GOLDCARD"},
        {"day": "MONDAY", "merchant": "Bakery", "discount_percent": "5%", "card": "N/A"},
    ]


def test_spanish_days_ignored_with_english_vocabulary():
    config = OfferParserConfig(
        day_names=["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]
    )
    assert parse_offers_from_text("LUNES\nRestobar 30%", config) == []


# --- Accents, headers and keyword folding ----------------------------------

def test_accented_day_names_switch_the_day():
    text = "MARTES\nSushi Kai 20%\nMIÉRCOLES\nPizzeria Roma 10%\nSÁBADO\nJumbo 5%"
    records = parse_offers_from_text(text)
    assert [(r.day, r.merchant) for r in records] == [
        ("MARTES", "Sushi Kai"),
        ("MIERCOLES", "Pizzeria Roma"),
        ("SABADO", "Jumbo"),
    ]


def test_accented_day_tokens_are_emitted_as_configured():
    config = OfferParserConfig(
        day_names=["LUNES", "MARTES", "MIÉRCOLES", "JUEVES", "VIERNES", "SÁBADO", "DOMINGO"]
    )
    records = parse_offers_from_text("miercoles\nSushi Kai 20%\nSabado\nJumbo 5%", config)
    assert [r.day for r in records] == ["MIÉRCOLES", "SÁBADO"]


@pytest.mark.parametrize("line,merchant", [
    ("MENU MEDIODÍA 20%", "MENU MEDIODÍA"),
    ("TODOS LOS DÍAS Jumbo 15%", "TODOS LOS DÍAS Jumbo"),
])
def test_capitalised_dia_inside_offer_is_not_a_header(line, merchant):
    records = parse_offers_from_text(f"LUNES\n{line}")
    assert [r.merchant for r in records] == [merchant]


def test_column_header_row_is_skipped():
    records = parse_offers_from_text("DÍA COMERCIO TARJETA\nLUNES\nJumbo 5%")
    assert [(r.day, r.merchant) for r in records] == [("LUNES", "Jumbo")]


def test_found_keyword_is_always_removed():
    config = OfferParserConfig(card_keywords=["GROẞ"], bank_keywords=["STRAẞE BANK"])
    extracted = OfferParserService(config).extract_entities("Café Groß Straße Bank 10%")
    assert extracted.card == "GROẞ"
    assert extracted.merchant == "STRAẞE BANK Café"
