"""Shared fakes for the OCR engine and the card database."""
import threading, time

import numpy as np
import pytest

from mtg_grid_scanner.errors import ExtractionFailure, NotFound
from mtg_grid_scanner.models import CardRecord, RecognizedText
from mtg_grid_scanner.recognizer import TextRecognizer


def card_json(name, set_code="dmu", collector_number="1", rarity="common", price=None, set_name="Dominaria United"):
    data = {
        "object": "card",
        "id": f"{set_code}-{collector_number}-{name}".replace(" ", "-").lower(),
        "name": name,
        "set": set_code,
        "set_name": set_name,
        "collector_number": collector_number,
        "rarity": rarity,
        "prices": {"usd": None if price is None else str(price), "usd_foil": None},
        "image_uris": {"normal": f"https://cards.scryfall.io/normal/{set_code}/{collector_number}.jpg"},
    }
    return data


def card_record(*args, **kw):
    return CardRecord.from_json(card_json(*args, **kw))


class FakeRecognizer(TextRecognizer):
    """
    Returns canned text per grid index. Indices are assigned to regions in the
    order they are first seen, which is grid order for a fresh run.
    """

    def __init__(self, texts=None, fail=(), broken=None):
        self.texts = dict(texts or {})
        self.fail = set(fail)
        self.broken = broken
        self.calls = []
        self._index = {}

    def recognize(self, image, region):
        if self.broken is not None:
            raise self.broken
        idx = self._index.setdefault(region, len(self._index))
        self.calls.append(idx)
        if idx in self.fail:
            raise ExtractionFailure("blurry", region_index=idx)
        text = self.texts.get(idx, "")
        if not text:
            return []
        return [RecognizedText(text, region.as_tuple(), 0.9)]


class FakeClient:
    """
    resolve() answers by hint name. A value may be a CardRecord, an exception
    instance to raise, or a callable taking the hint.
    """

    def __init__(self, answers=None, limiter=None):
        self.answers = dict(answers or {})
        self.limiter = limiter
        self.calls = []
        self._lock = threading.Lock()

    def resolve(self, hint, cancel=None):
        if self.limiter is not None:
            self.limiter.acquire(cancel)
        with self._lock:
            self.calls.append((hint.name, time.monotonic()))
        ans = self.answers.get(hint.name)
        if callable(ans) and not isinstance(ans, CardRecord):
            ans = ans(hint)
        if ans is None:
            raise NotFound(f"no card named {hint.name!r}")
        if isinstance(ans, BaseException):
            raise ans
        return ans

    def calls_for(self, name):
        with self._lock:
            return [t for n, t in self.calls if n == name]


SCENARIO_TEXTS = {
    0: "Lightning Bolt DMU•EN 0123 C",
    1: "Counterspell DMU•EN 0456 U",
    2: "Black Lotus VIN•EN 0001 R",
}


@pytest.fixture
def grid_image():
    return np.zeros((600, 800, 3), np.uint8)


@pytest.fixture
def scenario_records():
    return {
        "Lightning Bolt": card_record("Lightning Bolt", "dmu", "123", "common", 0.25),
        "Counterspell": card_record("Counterspell", "dmu", "456", "uncommon", 0.50),
        "Black Lotus": card_record("Black Lotus", "vin", "1", "rare", 1000.0, set_name="Vintage"),
    }
