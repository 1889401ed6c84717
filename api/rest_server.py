"""
REST API Server for the Sidr Garden viewer

Runs in a separate thread alongside the Panda3D application.
The persistence/reducer layer pushes engagement snapshots here; developer
tools push growth and time overrides. Nothing in this thread touches the
scene: inputs are queued in an InputMailbox that the render loop drains.

Endpoints:
  GET    /            — Endpoint index
  GET    /status      — Stage, progress, growth, day/night (published by the viewer)
  GET    /stages      — The tree stage table
  POST   /snapshot    — Replace the engagement snapshot (reducer JSON shape)
  POST   /override    — Developer override {growth} or a full parameter mapping
  DELETE /override    — Clear the developer override
  POST   /time        — Time-of-day override {hour}; null follows the wall clock
"""

import math
import threading
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify
from flask_cors import CORS

from growth.params import EngagementSnapshot, GrowthParameters
from growth.stages import TREE_STAGES, classify

logger = logging.getLogger("sidr_api")


# =========================================================
# INPUT MAILBOX
# =========================================================

@dataclass
class PendingInputs:
    """Everything posted since the last drain."""
    snapshot: Optional[EngagementSnapshot] = None
    override_changed: bool = False
    override: Optional[GrowthParameters] = None
    hour_changed: bool = False
    hour: Optional[float] = None

    @property
    def empty(self) -> bool:
        return self.snapshot is None and not self.override_changed and not self.hour_changed


class InputMailbox:
    """
    Lock-protected hand-off from the API thread to the render thread.

    Later posts replace earlier ones of the same kind; drain() hands the
    latest of each to the caller and resets the box.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending = PendingInputs()
        self._status: Optional[Dict[str, Any]] = None

    def post_snapshot(self, snapshot: EngagementSnapshot):
        with self._lock:
            self._pending.snapshot = snapshot

    def post_override(self, override: Optional[GrowthParameters]):
        with self._lock:
            self._pending.override_changed = True
            self._pending.override = override

    def post_hour(self, hour: Optional[float]):
        with self._lock:
            self._pending.hour_changed = True
            self._pending.hour = hour

    def drain(self) -> PendingInputs:
        with self._lock:
            pending, self._pending = self._pending, PendingInputs()
        return pending

    def publish_status(self, status: Dict[str, Any]):
        """Called by the viewer after it applies new inputs."""
        with self._lock:
            self._status = dict(status)

    def status(self) -> Optional[Dict[str, Any]]:
        with self._lock:
            return None if self._status is None else dict(self._status)


def stage_to_dict(stage) -> Dict[str, Any]:
    return {
        "key": stage.key,
        "label": stage.label,
        "emoji": stage.emoji,
        "description": stage.description,
        "min_pages": stage.min_pages,
        "min_khatms": stage.min_khatms,
    }


# =========================================================
# SERVER
# =========================================================

class GardenAPI:
    """REST bridge into the garden viewer, runs in background thread."""

    def __init__(self, mailbox: Optional[InputMailbox] = None,
                 host="127.0.0.1", port=8430):
        self.host = host
        self.port = port
        self.mailbox = mailbox or InputMailbox()
        self.app = Flask("sidr_api")
        CORS(self.app)

        # Suppress Flask request logging
        log = logging.getLogger('werkzeug')
        log.setLevel(logging.WARNING)

        self._setup_routes()
        self._thread = None

    def start(self):
        """Start API server in background thread."""
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="sidr_api"
        )
        self._thread.start()
        logger.info(f"REST API started on http://{self.host}:{self.port}")

    def _run(self):
        self.app.run(
            host=self.host,
            port=self.port,
            threaded=True,
            use_reloader=False,
        )

    def _setup_routes(self):
        app = self.app

        def json_body():
            data = request.get_json(force=True, silent=True)
            return data if isinstance(data, dict) else None

        @app.route("/status", methods=["GET"])
        def get_status():
            status = self.mailbox.status()
            if status is None:
                return jsonify({"error": "not initialized"}), 503
            return jsonify(status)

        @app.route("/stages", methods=["GET"])
        def get_stages():
            return jsonify({"stages": [stage_to_dict(s) for s in TREE_STAGES]})

        @app.route("/snapshot", methods=["POST"])
        def post_snapshot():
            data = json_body()
            if data is None:
                return jsonify({"error": "expected a JSON object"}), 400

            snapshot = EngagementSnapshot.from_dict(data)
            self.mailbox.post_snapshot(snapshot)
            status = classify(snapshot.total_pages, snapshot.khatms)
            logger.info(f"Snapshot received: {snapshot.total_pages} pages, "
                        f"{snapshot.khatms} khatms -> {status.stage.label}")
            return jsonify({
                "ok": True,
                "stage": status.stage.key,
                "progress": round(status.progress, 4),
            })

        @app.route("/override", methods=["POST"])
        def post_override():
            data = json_body()
            if data is None:
                return jsonify({"error": "expected a JSON object"}), 400

            try:
                if set(data) == {"growth"}:
                    params = GrowthParameters.from_growth(data["growth"])
                else:
                    params = GrowthParameters.from_override(data)
            except (ValueError, TypeError) as e:
                return jsonify({"error": str(e)}), 400

            self.mailbox.post_override(params)
            return jsonify({"ok": True, "growth": params.growth})

        @app.route("/override", methods=["DELETE"])
        def clear_override():
            self.mailbox.post_override(None)
            return jsonify({"ok": True, "growth": None})

        @app.route("/time", methods=["POST"])
        def post_time():
            data = json_body()
            if data is None or "hour" not in data:
                return jsonify({"error": "provide hour (number or null)"}), 400

            hour = data["hour"]
            if hour is not None:
                try:
                    hour = float(hour)
                except (ValueError, TypeError):
                    return jsonify({"error": f"invalid hour {hour!r}"}), 400
                if not math.isfinite(hour):
                    return jsonify({"error": "hour must be finite"}), 400
                hour %= 24.0

            self.mailbox.post_hour(hour)
            return jsonify({"ok": True, "hour": hour})

        @app.route("/", methods=["GET"])
        def index():
            return jsonify({
                "name": "Sidr Garden API",
                "version": "1.0",
                "endpoints": [
                    "GET    /status",
                    "GET    /stages",
                    "POST   /snapshot {totalPages, totalMinutes, dayStreak, khatms, memo}",
                    "POST   /override {growth} | {<all parameters>}",
                    "DELETE /override",
                    "POST   /time {hour}",
                ],
            })
