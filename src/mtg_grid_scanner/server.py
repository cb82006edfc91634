import json, threading, time

import cv2, numpy as np
from flask import Flask, Response, jsonify, request
from werkzeug.serving import make_server, WSGIRequestHandler

from .config import DEFAULT_GRID, MAX_UPLOAD_MB, NAME_CORRECTION
from .errors import TransientError
from .events import Completed, Failed, event_to_dict
from .log import dbg, recent_logs, clear_logs
from .models import IdentityHint
from .version import get_current_version

WSGIRequestHandler.log_request = lambda *a, **k: None


def _truthy(v):
    return str(v or "").lower() in ("1", "true", "on", "yes")


def _decode_image(bts):
    if not bts:
        return None
    data = np.frombuffer(bts, np.uint8)
    return cv2.imdecode(data, cv2.IMREAD_COLOR)


def create_app(pipeline, store=None):
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_MB * 1024 * 1024
    app.config["PIPELINE"] = pipeline
    app.config["STORE"] = store

    @app.post("/api/scan")
    def api_scan():
        f = request.files.get("image")
        if f is None:
            return jsonify({"ok": False, "error": "missing 'image' upload"}), 400
        img = _decode_image(f.read())
        if img is None:
            return jsonify({"ok": False, "error": "could not decode image"}), 400
        grid = request.args.get("grid") or request.form.get("grid") or DEFAULT_GRID
        save = _truthy(request.args.get("save")) and store is not None

        if _truthy(request.args.get("stream")):
            def _gen():
                for ev in pipeline.process_grid_image(img, grid):
                    if save and isinstance(ev, Completed):
                        store.save_many(ev.cards)
                    yield json.dumps(event_to_dict(ev)) + "\n"
            return Response(_gen(), mimetype="application/x-ndjson")

        events, cards, error = [], [], None
        for ev in pipeline.process_grid_image(img, grid):
            events.append(event_to_dict(ev))
            if isinstance(ev, Completed):
                cards = ev.cards
            elif isinstance(ev, Failed):
                error = ev.message
        if error is not None:
            return jsonify({"ok": False, "error": error, "events": events}), 422
        if save:
            store.save_many(cards)
        return jsonify({"ok": True, "events": events, "cards": [c.to_dict() for c in cards]})

    @app.post("/api/identify")
    def api_identify():
        hint = IdentityHint.from_dict(request.get_json(silent=True) or {})
        if hint.is_empty:
            return jsonify({"ok": False, "error": "give a name or set_code + collector_number"}), 400
        try:
            card = pipeline.identify_single(hint)
        except TransientError as e:
            return jsonify({"ok": False, "error": str(e)}), 502
        return jsonify({"ok": True, "card": card.to_dict() if card else None})

    @app.get("/api/cards")
    def api_cards():
        if store is None:
            return jsonify({"ok": False, "error": "no card store configured"}), 404
        rows = store.search(request.args.get("q") or "")
        return jsonify({"ok": True, "cards": [c.to_dict() for c in rows]})

    @app.delete("/api/cards/<card_id>")
    def api_card_delete(card_id):
        if store is None or not store.delete(card_id):
            return jsonify({"ok": False, "error": "not found"}), 404
        return jsonify({"ok": True})

    @app.get("/api/stats")
    def api_stats():
        if store is None:
            return jsonify({"ok": False, "error": "no card store configured"}), 404
        return jsonify({
            "ok": True,
            "count": store.count(),
            "total_value": store.total_value(),
            "rarity": store.rarity_distribution(),
            "top_sets": store.top_sets(int(request.args.get("limit") or 10)),
        })

    @app.get("/api/logs")
    def api_logs():
        try:
            since = int(request.args.get("since") or 0)
        except ValueError:
            since = 0
        return jsonify({"ok": True, "logs": recent_logs(since)})

    @app.post("/api/logs/clear")
    def api_logs_clear():
        clear_logs()
        return jsonify({"ok": True})

    @app.get("/api/version")
    def api_version():
        return jsonify({"current": get_current_version()})

    return app


# ---------------------------
# Startup
# ---------------------------
def _start_name_warmup(client, lexicon):
    """Fill the name lexicon from the Scryfall catalog in the background."""
    def _worker():
        try:
            lexicon.load(client.fetch_card_names())
            dbg("SCRYFALL DATA", f"Loaded {len(lexicon)} card names.")
        except Exception as e:
            dbg("SCRYFALL DATA ERROR", f"load failed: {e}")
    threading.Thread(target=_worker, daemon=True).start()


def build_default_pipeline():
    from .names import NameLexicon
    from .pipeline import IdentificationPipeline
    from .recognizer import TesseractRecognizer
    from .scryfall import ScryfallClient

    client = ScryfallClient()
    lexicon = None
    if NAME_CORRECTION:
        lexicon = NameLexicon()
        _start_name_warmup(client, lexicon)
    return IdentificationPipeline(TesseractRecognizer(), client, lexicon=lexicon)


def run_server(host: str, port: int):
    from .store import CardStore

    app = create_app(build_default_pipeline(), CardStore())
    httpd = make_server(host, port, app, threaded=True, request_handler=WSGIRequestHandler)
    dbg("WEB SERVER", f"Serving on http://{host}:{port}")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        # normal Ctrl+C path
        pass
    finally:
        httpd.server_close()
        time.sleep(0.2)
