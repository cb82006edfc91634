"""
Heuristic card-identity extraction from OCR text.

Each field is found by its own precedence-ordered regex rules. Nothing is
required and false hits are expected; the card database lookup is what
confirms or rejects a hint.

Rarity is decided by the first standalone letter found in the fixed order
C, U, R, M. Text holding both "U" and "R" therefore reads as uncommon.
That ordering is a known ambiguity kept for compatibility with scans that
were already collected.
"""
import re

from .models import IdentityHint

# Collector number, in precedence order
RX_NUMBER_4DIGIT  = re.compile(r"\b(\d{4})\b")                       # 0123
RX_NUMBER_SLASH   = re.compile(r"\b(\d{1,4})\s*/\s*(\d{1,4})\b")    # 123/280
RX_NUMBER_RARITY  = re.compile(r"\b(\d{1,4})\s*[CURM]\b")           # 123 C

# Set code, in precedence order
RX_SET_LANG = re.compile(r"\b([A-Z]{3})\s?[•·]\s?([A-Z]{2})\b")     # DMU•EN
RX_SET      = re.compile(r"\b([A-Z]{3})\b")

RARITY_LETTERS = (
    ("C", "common"),
    ("U", "uncommon"),
    ("R", "rare"),
    ("M", "mythic"),
)
RX_RARITY_ANY = re.compile(r"\b[CURM]\b")

MIN_NAME_LEN = 3


def normalize_collector_number(raw):
    """'0456' -> '456', '123/280' -> '123', '0000' -> '0'. Empty in, empty out."""
    if not raw:
        return ""
    s = str(raw).strip()
    m = re.search(r"(\d{1,4})\s*/\s*\d{1,4}", s)
    if m:
        s = m.group(1)
    else:
        m = re.search(r"\d+[a-zA-Z★]?", s)
        if not m:
            return ""
        s = m.group(0)
    return s.lstrip("0") or "0"


def join_texts(texts):
    parts = []
    for t in texts or ():
        s = t if isinstance(t, str) else getattr(t, "text", "")
        s = (s or "").strip()
        if s:
            parts.append(s)
    return " ".join(parts)


def extract_collector_number(text):
    m = RX_NUMBER_4DIGIT.search(text)
    if m:
        return normalize_collector_number(m.group(1))
    m = RX_NUMBER_SLASH.search(text)
    if m:
        return normalize_collector_number(m.group(1))
    m = RX_NUMBER_RARITY.search(text)
    if m:
        return normalize_collector_number(m.group(1))
    return None


def extract_set_code(text):
    m = RX_SET_LANG.search(text)
    if m:
        return m.group(1)
    m = RX_SET.search(text)
    if m:
        return m.group(1)
    return None


def extract_rarity(text):
    for letter, rarity in RARITY_LETTERS:
        if re.search(rf"\b{letter}\b", text):
            return rarity
    return None


def extract_name(text):
    s = RX_NUMBER_4DIGIT.sub(" ", text)
    s = RX_NUMBER_SLASH.sub(" ", s)
    s = RX_NUMBER_RARITY.sub(" ", s)
    s = RX_SET_LANG.sub(" ", s)
    s = RX_SET.sub(" ", s)
    s = RX_RARITY_ANY.sub(" ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s if len(s) >= MIN_NAME_LEN else None


def parse_hint(texts) -> IdentityHint:
    raw = join_texts(texts)
    return IdentityHint(
        name=extract_name(raw),
        collector_number=extract_collector_number(raw),
        set_code=extract_set_code(raw),
        rarity=extract_rarity(raw),
        raw_text=raw,
    )
