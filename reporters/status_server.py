"""
goal: optional read-only HTTP view of the latest snapshot. the tracker delivers into a LatestSnapshot
holder like any other reporter, and a small flask app serves it. only the most recent snapshot is kept,
each delivery replaces the previous one.

routes:
- GET /api/ping             liveness, plus whether a snapshot is available yet
- GET /api/snapshot         the canonical {host, connections} document
- GET /api/ports/<port>     the flat record for one port
"""

from __future__ import annotations

import threading

from flask import Flask, jsonify

from agent.snapshot import Snapshot

# single waitress optional block, flask's dev server is the fallback
try:
    from waitress import serve as _serve  # type: ignore[import-untyped]

    HAVE_WAITRESS = True
except Exception:
    HAVE_WAITRESS = False
    _serve = None  # type: ignore


class LatestSnapshot:
    """reporter that remembers only the newest snapshot"""

    name = "status"

    def __init__(self) -> None:
        self._snap: Snapshot | None = None
        self._lock = threading.Lock()  # written by the tracker thread, read by request threads

    def deliver(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._snap = snapshot

    def get(self) -> Snapshot | None:
        with self._lock:
            return self._snap

    def close(self) -> None:
        pass


def build_app(latest: LatestSnapshot) -> Flask:
    app = Flask(__name__)

    @app.get("/api/ping")
    def ping():
        snap = latest.get()
        return jsonify({"ok": True, "ready": snap is not None})

    @app.get("/api/snapshot")
    def snapshot():
        snap = latest.get()
        if snap is None:
            return jsonify({"error": "no snapshot captured yet"}), 503
        return jsonify(snap.to_document())

    @app.get("/api/ports/<int:port>")
    def port_entry(port: int):
        snap = latest.get()
        if snap is None:
            return jsonify({"error": "no snapshot captured yet"}), 503
        obs = snap.get(port)
        if obs is None:
            return jsonify({"error": f"no established connections on port {port}"}), 404
        return jsonify({"host": snap.host, **obs.to_entry()})

    return app


def run_status_server(latest: LatestSnapshot, host: str, port: int) -> None:
    app = build_app(latest)
    if HAVE_WAITRESS:
        try:
            _serve(app, host=host, port=port)
        except (SystemExit, KeyboardInterrupt):
            pass  # expected when shutting down
    else:
        try:
            app.run(host=host, port=port, debug=False, use_reloader=False)
        except (SystemExit, KeyboardInterrupt):
            pass  # expected when shutting down


def start_status_server(latest: LatestSnapshot, host: str, port: int) -> threading.Thread:
    t = threading.Thread(
        target=run_status_server, args=(latest, host, port), name="status-server", daemon=True
    )
    t.start()
    return t
