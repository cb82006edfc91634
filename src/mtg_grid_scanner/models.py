"""
Value types passed between pipeline stages.

Everything here is created fresh per pipeline run; nothing is shared
between runs.
"""
from __future__ import annotations

import re, uuid
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class Region:
    """Axis-aligned rectangle in image pixels; right/bottom are exclusive."""
    left: int
    top: int
    right: int
    bottom: int

    def __post_init__(self):
        if self.right <= self.left or self.bottom <= self.top:
            raise ValueError(f"degenerate region {self.as_tuple()}")

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def center(self):
        return ((self.left + self.right) / 2.0, (self.top + self.bottom) / 2.0)

    def as_tuple(self):
        return (self.left, self.top, self.right, self.bottom)

    def intersects(self, other: "Region") -> bool:
        return (self.left < other.right and other.left < self.right and
                self.top < other.bottom and other.top < self.bottom)


@dataclass(frozen=True)
class RecognizedText:
    text: str
    bbox: tuple = (0, 0, 0, 0)
    confidence: float = 0.0


# One region's recognizer output; empty means nothing was recognized.
ExtractedText = Sequence[RecognizedText]


@dataclass(frozen=True)
class IdentityHint:
    name: Optional[str] = None
    collector_number: Optional[str] = None
    set_code: Optional[str] = None
    rarity: Optional[str] = None
    raw_text: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.collector_number or self.set_code or self.rarity)

    def to_dict(self):
        return {
            "name": self.name,
            "collector_number": self.collector_number,
            "set_code": self.set_code,
            "rarity": self.rarity,
            "raw_text": self.raw_text,
        }

    @classmethod
    def from_dict(cls, d):
        def _s(key):
            v = (d or {}).get(key)
            v = str(v).strip() if v is not None else ""
            return v or None
        return cls(
            name=_s("name"),
            collector_number=_s("collector_number"),
            set_code=_s("set_code"),
            rarity=_s("rarity"),
            raw_text=str((d or {}).get("raw_text") or ""),
        )


def _parse_price(v) -> float:
    try:
        return float(v) if v not in (None, "") else 0.0
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class CardRecord:
    """The part of a Scryfall card object this package reads."""
    id: str
    name: str
    set_code: str
    set_name: str
    collector_number: str
    rarity: str
    price: float = 0.0
    image_uri: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_json(cls, data: dict) -> "CardRecord":
        data = data or {}
        img = (data.get("image_uris") or {}).get("normal")
        if not img and data.get("card_faces"):
            img = ((data["card_faces"][0].get("image_uris") or {}).get("normal"))
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or ""),
            set_code=str(data.get("set") or ""),
            set_name=str(data.get("set_name") or ""),
            collector_number=str(data.get("collector_number") or ""),
            rarity=str(data.get("rarity") or ""),
            price=_parse_price((data.get("prices") or {}).get("usd")),
            image_uri=img,
            raw=dict(data),
        )


UNKNOWN_NAME = "Unknown Card"
UNKNOWN_SET = "Unknown Set"
UNKNOWN_NUMBER = "???"
UNKNOWN_RARITY = "unknown"


@dataclass
class ResolvedCard:
    name: str
    set_name: str
    collector_number: str
    rarity: str
    price: float = 0.0
    record: Optional[CardRecord] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex, compare=False)

    @property
    def is_placeholder(self) -> bool:
        return self.record is None

    @property
    def set_code(self) -> str:
        return self.record.set_code if self.record else ""

    @classmethod
    def from_record(cls, record: CardRecord) -> "ResolvedCard":
        return cls(
            name=record.name,
            set_name=record.set_name,
            collector_number=record.collector_number,
            rarity=record.rarity,
            price=record.price,
            record=record,
        )

    @classmethod
    def placeholder(cls, hint: IdentityHint) -> "ResolvedCard":
        """Best-effort card built from OCR data alone when lookup failed."""
        return cls(
            name=hint.name or UNKNOWN_NAME,
            set_name=UNKNOWN_SET,
            collector_number=hint.collector_number or UNKNOWN_NUMBER,
            rarity=hint.rarity or UNKNOWN_RARITY,
            price=0.0,
            record=None,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "set_name": self.set_name,
            "set_code": self.set_code,
            "collector_number": self.collector_number,
            "rarity": self.rarity,
            "price": self.price,
            "placeholder": self.is_placeholder,
            "scryfall": self.record.raw if self.record else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ResolvedCard":
        raw = d.get("scryfall")
        kw = {}
        if d.get("id"):
            kw["id"] = str(d["id"])
        return cls(
            name=str(d.get("name") or UNKNOWN_NAME),
            set_name=str(d.get("set_name") or UNKNOWN_SET),
            collector_number=str(d.get("collector_number") or UNKNOWN_NUMBER),
            rarity=str(d.get("rarity") or UNKNOWN_RARITY),
            price=_parse_price(d.get("price")),
            record=CardRecord.from_json(raw) if raw else None,
            **kw,
        )


_GRID_RE = re.compile(r"^\s*(\d+)\s*[xX×]\s*(\d+)\s*$")


@dataclass(frozen=True)
class GridMode:
    rows: int
    cols: int
    description: str = ""

    @property
    def card_count(self) -> int:
        return self.rows * self.cols

    @property
    def key(self) -> str:
        return f"{self.rows}x{self.cols}"

    @classmethod
    def parse(cls, value: Any) -> "GridMode":
        if isinstance(value, GridMode):
            return value
        m = _GRID_RE.match(str(value or ""))
        if not m:
            raise ValueError(f"grid mode must look like '3x3', got {value!r}")
        rows, cols = int(m.group(1)), int(m.group(2))
        for preset in (GRID_3X3, GRID_4X3):
            if (preset.rows, preset.cols) == (rows, cols):
                return preset
        return cls(rows, cols, f"{rows}×{cols} Grid ({rows * cols} cards)")


GRID_3X3 = GridMode(3, 3, "3×3 Grid (9 cards)")
GRID_4X3 = GridMode(4, 3, "4×3 Grid (12 cards)")
GRID_MODES = {g.key: g for g in (GRID_3X3, GRID_4X3)}
