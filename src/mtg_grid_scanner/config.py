# config.py
import os, json

SETTINGS_PATH = os.environ.get("SETTINGS_PATH", "./settings.json")
try:
    with open(SETTINGS_PATH, "r", encoding="utf-8") as _f:
        _SET = json.load(_f) or {}
except (OSError, ValueError):
    _SET = {}

def _get(name, default, cast=str):
    if name in os.environ:
        v = os.environ[name]
    elif name in _SET:
        v = _SET[name]
    else:
        v = default
    if cast is bool:
        if isinstance(v, bool): return v
        return str(v).lower() in ("1","true","on","yes")
    if cast is list:
        return list(v) if isinstance(v, (list,tuple)) else list(default)
    try:
        return cast(v)
    except (TypeError, ValueError):
        return default

# =========================
# GRID / REGIONS
# =========================
GRID_PADDING = _get("GRID_PADDING", 0.05, float)   # fraction of each image side excluded as border
CARD_ASPECT  = _get("CARD_ASPECT", 0.715, float)   # width / height of a standard card
DEFAULT_GRID = _get("DEFAULT_GRID", "3x3", str)

# =========================
# OCR
# =========================
OCR_MAX_WIDTH = _get("OCR_MAX_WIDTH", 960, int)    # downscale wider crops before tesseract
OCR_MIN_WIDTH = _get("OCR_MIN_WIDTH", 320, int)    # upscale narrower crops so small print survives
OCR_MIN_CONF  = _get("OCR_MIN_CONF", 30.0, float)  # drop words under this tesseract confidence (0-100)
OCR_PSM       = _get("OCR_PSM", 11, int)           # sparse text; card text is scattered over the crop
OCR_LANG      = _get("OCR_LANG", "eng", str)

# =========================
# SCRYFALL
# =========================
SCRYFALL_BASE_URL     = _get("SCRYFALL_BASE_URL", "https://api.scryfall.com/", str)
SCRYFALL_TIMEOUT      = _get("SCRYFALL_TIMEOUT", 6.0, float)
SCRYFALL_RATE_LIMIT_S = _get("SCRYFALL_RATE_LIMIT_S", 0.1, float)  # min gap between request starts
SCRYFALL_USER_AGENT   = _get("SCRYFALL_USER_AGENT", "mtg-grid-scanner/0.1", str)

# =========================
# RESOLUTION / RETRY
# =========================
RESOLVE_MAX_ATTEMPTS = _get("RESOLVE_MAX_ATTEMPTS", 3, int)
RESOLVE_BACKOFF_S    = _get("RESOLVE_BACKOFF_S", 0.1, float)  # linear: backoff * attempt
NAME_CORRECTION      = _get("NAME_CORRECTION", False, bool)   # snap OCR names to the Scryfall catalog
NAME_MATCH_TH        = _get("NAME_MATCH_TH", 90.0, float)

# =========================
# PERSISTENCE (card store)
# =========================
CARD_STORE_DIR = _get("CARD_STORE_DIR", "./cards", str)
CARD_JSON_EXT  = _get("CARD_JSON_EXT", ".json", str)

# =========================
# SERVER
# =========================
HOST = _get("HOST", "0.0.0.0", str)
PORT = _get("PORT", 5000, int)
MAX_UPLOAD_MB = _get("MAX_UPLOAD_MB", 32, int)

# =========================
# DEBUG
# =========================
DEBUG_LEVEL   = _get("DEBUG_LEVEL", 1, int)
LOG_RING_SIZE = _get("LOG_RING_SIZE", 1200, int)
