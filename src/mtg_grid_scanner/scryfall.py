# =========================
# SCRYFALL
# =========================
import time
from urllib.parse import quote, urljoin

import requests

from .config import SCRYFALL_BASE_URL, SCRYFALL_TIMEOUT, SCRYFALL_RATE_LIMIT_S, SCRYFALL_USER_AGENT
from .errors import NotFound, TransientError
from .log import dbg, dbg2
from .models import CardRecord
from .parser import normalize_collector_number
from .ratelimit import RateLimiter


def exact_name_query(name: str) -> str:
    return '!"{}"'.format((name or "").replace('"', "").strip())


class ScryfallClient:
    """
    Card database client. Every request goes through one shared RateLimiter.

    Errors are classified, never retried here: 404 / not_found error objects
    raise NotFound; other non-2xx statuses, request exceptions and bad JSON
    raise TransientError.
    """

    def __init__(self, base_url=SCRYFALL_BASE_URL, timeout=SCRYFALL_TIMEOUT,
                 limiter=None, session=None, user_agent=SCRYFALL_USER_AGENT):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self.limiter = limiter if limiter is not None else RateLimiter(SCRYFALL_RATE_LIMIT_S)
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"User-Agent": user_agent, "Accept": "application/json;q=0.9,*/*;q=0.8"})

    def _get(self, path, params=None, cancel=None):
        url = urljoin(self.base_url, path)
        self.limiter.acquire(cancel)
        t0 = time.perf_counter()
        try:
            r = self.session.get(url, params=params or {}, timeout=self.timeout)
        except requests.RequestException as e:
            dbg("SCRYFALL ERROR", f"{path} failed: {e}")
            raise TransientError(f"request failed: {e}") from e
        dbg2("PERF SCRY", f"{path} status={r.status_code} {time.perf_counter() - t0:.3f}s")

        try:
            data = r.json()
        except ValueError:
            data = None

        if isinstance(data, dict) and data.get("object") == "error":
            if data.get("code") == "not_found" or r.status_code == 404:
                raise NotFound(data.get("details") or f"not found: {path}")
            raise TransientError(data.get("details") or f"scryfall error {r.status_code}", status=r.status_code)
        if r.status_code == 404:
            raise NotFound(f"not found: {path}")
        if not (200 <= r.status_code < 300):
            raise TransientError(f"HTTP {r.status_code} for {path}", status=r.status_code)
        if not isinstance(data, dict):
            raise TransientError(f"undecodable response for {path}", status=r.status_code)
        return data

    def card_by_number(self, set_code, collector_number, cancel=None) -> CardRecord:
        path = "cards/{}/{}".format(quote(set_code.lower(), safe=""), quote(str(collector_number), safe=""))
        return CardRecord.from_json(self._get(path, cancel=cancel))

    def search_exact_name(self, name, cancel=None) -> CardRecord:
        data = self._get("cards/search", {"q": exact_name_query(name)}, cancel=cancel)
        cards = data.get("data") or []
        if not cards:
            raise NotFound(f"no card named {name!r}")
        return CardRecord.from_json(cards[0])

    def resolve(self, hint, cancel=None) -> CardRecord:
        """
        Look up one hint: set+number first, then exact name.

        A set+number miss falls through to the name search when the hint has
        a name. A transient failure on either query is raised as is. cancel
        cuts short a wait for a rate-limit slot.
        """
        cn = normalize_collector_number(hint.collector_number)
        if hint.set_code and cn:
            try:
                card = self.card_by_number(hint.set_code, cn, cancel=cancel)
                dbg("SCRYFALL", f"Set='{hint.set_code}', Card Number='{cn}', Matching Algorithm='set_cn'")
                return card
            except NotFound:
                if not hint.name:
                    raise
                dbg2("SCRYFALL", f"Set='{hint.set_code}' Card Number='{cn}' missed; trying name")
        if hint.name:
            card = self.search_exact_name(hint.name, cancel=cancel)
            dbg("SCRYFALL", f"Card Name='{hint.name}', Matching Algorithm='exact_name'")
            return card
        raise NotFound("hint has neither set code + collector number nor a name")

    def fetch_card_names(self):
        data = self._get("catalog/card-names")
        return [n for n in (data.get("data") or []) if isinstance(n, str)]
