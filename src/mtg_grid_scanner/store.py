# =========================
# PERSISTENCE (card collection)
# =========================
# One <id>.json per card under CARD_STORE_DIR; unreadable files are moved to
# CARD_STORE_DIR/bad on load.
import glob, json, os, shutil, threading, time

from .config import CARD_STORE_DIR, CARD_JSON_EXT
from .log import dbg
from .models import ResolvedCard


class CardStore:

    def __init__(self, directory=CARD_STORE_DIR, ext=CARD_JSON_EXT):
        self.directory = directory
        self.ext = ext
        self.bad_dir = os.path.join(directory, "bad")
        self._lock = threading.Lock()
        self._cards = {}   # id -> (ts, ResolvedCard)
        os.makedirs(self.directory, exist_ok=True)
        self._load()

    def _path(self, card_id):
        return os.path.join(self.directory, f"{card_id}{self.ext}")

    def _quarantine(self, path, reason="badjson"):
        os.makedirs(self.bad_dir, exist_ok=True)
        dst = os.path.join(self.bad_dir, f"{os.path.basename(path)}.{reason}")
        try:
            shutil.move(path, dst)
        except OSError as e:
            dbg("STORE ERROR", f"quarantine failed {path}: {e}")

    def _load(self):
        loaded = {}
        for meta in glob.glob(os.path.join(self.directory, f"*{self.ext}")):
            try:
                with open(meta, "r", encoding="utf-8") as f:
                    e = json.load(f)
                card = ResolvedCard.from_dict(e["card"])
                loaded[card.id] = (float(e.get("ts") or 0.0), card)
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as err:
                dbg("STORE ERROR", f"load failed {meta}: {err}")
                self._quarantine(meta)
        with self._lock:
            self._cards = loaded
        dbg("STORE", f"Loaded {len(loaded)} cards from {self.directory}")

    def save(self, card):
        entry = {"ts": time.time(), "card": card.to_dict()}
        tmp = self._path(card.id) + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(entry, f)
        os.replace(tmp, self._path(card.id))
        with self._lock:
            self._cards[card.id] = (entry["ts"], card)
        return card.id

    def save_many(self, cards):
        return [self.save(c) for c in cards]

    def get(self, card_id):
        with self._lock:
            hit = self._cards.get(card_id)
        return hit[1] if hit else None

    def delete(self, card_id):
        with self._lock:
            hit = self._cards.pop(card_id, None)
        p = self._path(card_id)
        if os.path.exists(p):
            os.remove(p)
        return hit is not None

    def all(self):
        """Newest first."""
        with self._lock:
            rows = list(self._cards.values())
        rows.sort(key=lambda r: r[0], reverse=True)
        return [c for _, c in rows]

    def search(self, query):
        q = (query or "").strip().lower()
        if not q:
            return self.all()
        return [c for c in self.all() if q in c.name.lower() or q in c.set_name.lower()]

    def count(self):
        with self._lock:
            return len(self._cards)

    def total_value(self):
        return round(sum(c.price for c in self.all()), 2)

    def rarity_distribution(self):
        counts = {}
        for c in self.all():
            counts[c.rarity] = counts.get(c.rarity, 0) + 1
        return counts

    def top_sets(self, limit=10):
        counts = {}
        for c in self.all():
            if c.set_code:
                counts[c.set_code] = counts.get(c.set_code, 0) + 1
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return dict(ranked[:limit])
