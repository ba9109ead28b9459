"""
X-Ray - Ingestion Server
Flask application exposing the trace log to submitters and the dashboard.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from .config import AppConfig, ConfigManager
from .errors import StorageError, TraceFormatError
from .models.trace import Trace
from .store import TraceLogStore

logger = logging.getLogger(__name__)


def create_app(
    config_path: Optional[str] = None,
    config: Optional[AppConfig] = None,
    store: Optional[TraceLogStore] = None
) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_path: Optional base path holding config/default.yaml.
        config: Already-loaded configuration; takes precedence over config_path.
        store: Trace log store to serve; built from the config if omitted.

    Returns:
        Configured Flask application.
    """
    if config is None:
        base_path = Path(config_path) if config_path else Path(__file__).parent.parent
        config = ConfigManager(base_path).load()

    if store is None:
        store = config.build_store()

    app = Flask(__name__)

    # The dashboard is served from a different origin
    CORS(app)

    app.config["XRAY_CONFIG"] = config
    app.config["XRAY_STORE"] = store

    register_routes(app)

    return app


def register_routes(app: Flask):
    """Register all application routes."""

    # =========================================================================
    # Ingestion API
    # =========================================================================

    @app.route("/api/ingest", methods=["POST"])
    def ingest_trace():
        """Append a submitted trace to the log."""
        store: TraceLogStore = app.config["XRAY_STORE"]

        data = request.get_json(silent=True)
        if data is None:
            return jsonify({"success": False, "error": "Request body must be a JSON trace"}), 400

        try:
            trace = Trace.from_dict(data)
        except TraceFormatError as e:
            return jsonify({"success": False, "error": str(e)}), 400

        try:
            store.append(trace)
        except StorageError as e:
            logger.error("Failed to save trace %s: %s", trace.trace_id, e)
            return jsonify({"success": False, "error": "Failed to save trace"}), 500

        return jsonify({"success": True, "id": trace.trace_id})

    @app.route("/api/ingest", methods=["GET"])
    def list_traces():
        """Get the most recent traces, newest first."""
        store: TraceLogStore = app.config["XRAY_STORE"]
        config: AppConfig = app.config["XRAY_CONFIG"]

        limit = request.args.get("limit", default=config.storage.read_limit, type=int)
        traces = store.read(limit)
        return jsonify([t.to_dict() for t in traces])

    @app.route("/api/ingest", methods=["DELETE"])
    def clear_traces():
        """Reset the trace log."""
        store: TraceLogStore = app.config["XRAY_STORE"]

        try:
            store.truncate()
        except StorageError as e:
            logger.error("Failed to clear trace log: %s", e)
            return jsonify({"success": False, "error": "Failed to clear traces"}), 500

        return jsonify({"success": True})

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.route("/api/health", methods=["GET"])
    def health_check():
        """Health check endpoint."""
        config: AppConfig = app.config["XRAY_CONFIG"]
        return jsonify({
            "status": "healthy",
            "environment": config.environment
        })
