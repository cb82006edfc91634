import re, threading

from rapidfuzz import process, fuzz

from .config import NAME_MATCH_TH


def _norm_name_for_match(s: str) -> str:
    return re.sub(r"[^a-z0-9 ]+", "", (s or "").lower()).strip()


class NameLexicon:
    """Known card names; snaps noisy OCR titles onto a real card name."""

    def __init__(self, names=(), threshold=NAME_MATCH_TH):
        self.threshold = float(threshold)
        self._lock = threading.Lock()
        self._names = []
        self._by_lower = {}
        self.load(names)

    def load(self, names):
        # Deduplicate while preserving order
        seen = {}
        dedup = []
        for n in names or ():
            n = (n or "").strip()
            nl = n.lower()
            if not n or nl in seen:
                continue
            seen[nl] = n
            dedup.append(n)
        with self._lock:
            self._names = dedup
            self._by_lower = seen

    def __len__(self):
        return len(self._names)

    def __contains__(self, name):
        return (name or "").strip().lower() in self._by_lower

    def correct(self, text):
        if not text:
            return text
        original = text.strip()
        with self._lock:
            names, by_lower = self._names, self._by_lower
        exact = by_lower.get(original.lower())
        if exact:
            return exact
        if not names:
            return original

        # strong whole-string match
        best = process.extractOne(original, names, scorer=fuzz.WRatio, processor=_norm_name_for_match)
        cand, score = (best[0], best[1]) if best else (None, 0.0)
        if cand and score >= self.threshold:
            return cand

        # partial expansion (prefix/substring -> full title)
        for c, sc, _ in process.extract(original, names, scorer=fuzz.partial_ratio, limit=5,
                                        processor=_norm_name_for_match):
            if sc >= 95:
                return c

        # two-word swap ("Bolt Lightning")
        toks = re.findall(r"[A-Za-z']+", original)
        if len(toks) == 2:
            swapped = f"{toks[1]} {toks[0]}"
            if swapped.lower() in by_lower:
                return by_lower[swapped.lower()]
            best_swap = process.extractOne(swapped, names, scorer=fuzz.WRatio, processor=_norm_name_for_match)
            if best_swap and (best_swap[1] - score) >= 3 and best_swap[1] >= self.threshold:
                return best_swap[0]
        return original
