# =======================================
# Logging (colorized, unified)
# =======================================
# One logger for the whole package:
#   dbg(tag, msg, level=1)   -> normal
#   dbg2(tag, msg)           -> verbose (level=2)
# Colorized [TAG] only; color encodes severity inferred from tag/msg/level.
# Every line also lands in a ring buffer served by /api/logs.
import os, sys, threading, time
from collections import deque

from .config import DEBUG_LEVEL, LOG_RING_SIZE

# ANSI palette
_ANSI = {
    "reset": "\033[0m",
    "ok":    "\033[32m",   # green
    "info":  "\033[36m",   # cyan
    "warn":  "\033[33m",   # yellow
    "err":   "\033[31m",   # red
}

def _supports_color():
    mode = str(os.environ.get("LOG_COLOR_MODE", "auto")).lower()
    if mode == "always": return True
    if mode == "never":  return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False

def _infer_severity(tag: str, msg: str, level: int) -> str:
    T = f"{tag or ''} {msg or ''}".upper()
    if ("ERROR" in T) or ("EXCEPTION" in T) or ("TRACEBACK" in T) or level >= 4:
        return "err"
    if ("WARN" in T) or ("DEPRECATED" in T) or ("RETRY" in T):
        return "warn"
    if ("READY" in T) or ("LOADED" in T) or ("SUCCESS" in T) or ("COMPLETED" in T) or level <= 0:
        return "ok"
    return "info"

log_lock = threading.Lock()
LOG_RING = deque(maxlen=max(1, LOG_RING_SIZE))
LOG_SEQ = 0

def _push_log(tag: str, msg: str, level: int = 1):
    """Store a line for the UI. Also infers severity."""
    global LOG_SEQ
    sev = _infer_severity(tag, msg, level)
    with log_lock:
        LOG_SEQ += 1
        LOG_RING.append({
            "id":  LOG_SEQ,
            "ts":  time.time(),
            "tag": str(tag or ""),
            "msg": str(msg or ""),
            "lvl": int(level or 1),
            "sev": sev,
        })

def _print_console(tag: str, msg: str, level: int = 1):
    """Console print with colored [TAG] only; no extra severity words."""
    sev = _infer_severity(tag, msg, level)
    tag_str = f"[{tag}]"
    if _supports_color():
        color = _ANSI.get(sev, _ANSI["info"])
        out = f"{color}{tag_str}{_ANSI['reset']} {msg}"
    else:
        out = f"{tag_str} {msg}"
    print(out, flush=True)

def dbg(tag, msg, level=1):
    _push_log(tag, msg, level)
    if (level == 1 and DEBUG_LEVEL > 0) or (level == 2 and DEBUG_LEVEL > 1) or (level <= 0) or (level >= 3):
        _print_console(tag, msg, level)

def dbg2(tag, msg):
    dbg(tag, msg, level=2)

def recent_logs(since: int = 0, limit: int = 500):
    """Ring-buffer lines with id > since, oldest first."""
    with log_lock:
        rows = [dict(r) for r in LOG_RING if r["id"] > since]
    if limit and len(rows) > limit:
        rows = rows[-limit:]
    return rows

def clear_logs():
    with log_lock:
        LOG_RING.clear()
