import pytest

from mtg_grid_scanner.models import IdentityHint, RecognizedText
from mtg_grid_scanner.parser import (parse_hint, normalize_collector_number, extract_rarity,
                                     extract_set_code, extract_collector_number, extract_name, join_texts)


def _texts(*lines):
    return [RecognizedText(t, (0, 0, 10, 10), 0.9) for t in lines]


@pytest.mark.parametrize("text,expected", [
    ("Lightning Bolt DMU•EN 0123 C", IdentityHint("Lightning Bolt", "123", "DMU", "common", "Lightning Bolt DMU•EN 0123 C")),
    ("Counterspell DMU•EN 0456 U", IdentityHint("Counterspell", "456", "DMU", "uncommon", "Counterspell DMU•EN 0456 U")),
    ("Black Lotus VIN•EN 0001 R", IdentityHint("Black Lotus", "1", "VIN", "rare", "Black Lotus VIN•EN 0001 R")),
])
def test_parse_modern_collector_line(text, expected):
    assert parse_hint(_texts(text)) == expected


def test_lines_are_joined_with_single_spaces():
    hint = parse_hint(_texts("  Shivan Dragon ", "", "M2I 0147 R"))
    assert hint.raw_text == "Shivan Dragon M2I 0147 R"
    assert hint.name == "Shivan Dragon M2I"   # M2I is not three letters
    assert hint.collector_number == "147"
    assert hint.rarity == "rare"


def test_plain_strings_are_accepted():
    assert parse_hint(["Opt", "XLN 0065 C"]).set_code == "XLN"


def test_fraction_collector_number():
    hint = parse_hint(_texts("Shock 123/280"))
    assert hint.collector_number == "123"
    assert hint.name == "Shock"
    assert hint.set_code is None
    assert hint.rarity is None


def test_number_before_rarity_letter():
    hint = parse_hint(_texts("Opt 45 C"))
    assert hint.collector_number == "45"
    assert hint.rarity == "common"
    assert hint.name == "Opt"


def test_four_digit_beats_fraction():
    assert extract_collector_number("12/280 0099") == "99"


def test_set_with_language_beats_bare_code():
    assert extract_set_code("ABC Llanowar Elves M19•EN DOM•EN") == "DOM"
    assert extract_set_code("Llanowar Elves DOM") == "DOM"
    assert extract_set_code("no codes here") is None


def test_rarity_order_is_c_u_r_m():
    # both U and R present: first in C, U, R, M order wins
    assert extract_rarity("XLN 0012 R U") == "uncommon"
    assert extract_rarity("M R") == "rare"
    assert extract_rarity("Mox M") == "mythic"
    assert extract_rarity("Counterspell") is None


def test_name_stripped_of_all_codes():
    assert extract_name("Llanowar Elves DOM•EN 0168 C") == "Llanowar Elves"
    assert extract_name("XLN 0012 U R") is None


def test_short_name_discarded():
    assert extract_name("Ox") is None
    assert extract_name("Opt") == "Opt"


def test_empty_input_gives_empty_hint():
    hint = parse_hint([])
    assert hint.is_empty
    assert hint.raw_text == ""
    assert join_texts(None) == ""


@pytest.mark.parametrize("raw,expected", [
    ("0456", "456"),
    ("0001", "1"),
    ("0000", "0"),
    ("123", "123"),
    ("123/280", "123"),
    ("045a", "45a"),
    ("", ""),
    (None, ""),
    ("abc", ""),
])
def test_normalize_collector_number(raw, expected):
    assert normalize_collector_number(raw) == expected
