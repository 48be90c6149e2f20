"""
Compression Server — Flask application factory and runner.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

from flask import Flask, g, jsonify, request

from ..compression.pipeline import CompressionPipeline
from ..config.loader import Settings, load_settings
from ..observability.health import HealthChecker
from .routes_ops import ops_bp
from .routes_upload import upload_bp

logger = logging.getLogger(__name__)

# Frequent polling endpoints logged at DEBUG
QUIET_PATHS = ("/health", "/metrics")


def create_app(
    settings: Optional[Settings] = None,
    pipeline: Optional[CompressionPipeline] = None,
) -> Flask:
    """
    Create the Flask application.

    Args:
        settings: Server settings (default: from environment).
        pipeline: Pre-built pipeline, e.g. with a fake transcoder in tests.
    """
    settings = settings or load_settings()
    pipeline = pipeline or CompressionPipeline.from_settings(settings)

    package_dir = Path(__file__).parent
    app = Flask(
        __name__,
        static_folder=str(package_dir / "static"),
        static_url_path="/static",
        template_folder=str(package_dir / "templates"),
    )

    app.config["SETTINGS"] = settings
    app.config["PIPELINE"] = pipeline
    app.config["HEALTH_CHECKER"] = HealthChecker(pipeline.work_dir, pipeline.platform)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes

    # ── Register Blueprints ───────────────────────────────────────
    app.register_blueprint(upload_bp)   # /, /upload
    app.register_blueprint(ops_bp)      # /health, /metrics

    # ── Error Handlers ────────────────────────────────────────────

    @app.errorhandler(413)
    def request_entity_too_large(e):
        max_mb = app.config.get("MAX_CONTENT_LENGTH", 0) / (1024 * 1024)
        logger.warning(f"Rejected upload over {max_mb:.0f} MB from {request.remote_addr}")
        return jsonify({
            "success": False,
            "error": f"File too large (max {max_mb:.0f} MB)",
        }), 413

    @app.errorhandler(500)
    def internal_server_error(e):
        """Catch-all so clients never see a raw HTML error page."""
        original = getattr(e, "original_exception", None) or e
        logger.error(
            f"Unhandled 500 on {request.method} {request.path}: {original}",
            exc_info=original if isinstance(original, BaseException) else None,
        )
        return jsonify({"success": False, "error": "Internal server error"}), 500

    # ── Request Logging ───────────────────────────────────────────

    @app.before_request
    def log_request_start():
        g.start_time = time.monotonic()

    @app.after_request
    def log_request_end(response):
        if request.path.startswith("/static/"):
            return response
        duration_ms = int((time.monotonic() - g.get("start_time", time.monotonic())) * 1000)
        log_fn = logger.debug if request.path in QUIET_PATHS else logger.info
        log_fn(f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)")
        return response

    logger.info(
        f"Compression server initialized (profile={settings.profile.name}, "
        f"work_dir={pipeline.work_dir}, ffmpeg={pipeline.platform.ffmpeg_path})"
    )
    return app


def run_server(
    settings: Optional[Settings] = None,
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
) -> None:
    """
    Run the development server.

    Args:
        settings: Server settings (default: from environment).
        host: Bind address override.
        port: Port override.
        debug: Enable Flask debug mode.
    """
    settings = settings or load_settings()
    host = host or settings.host
    port = port or settings.port

    app = create_app(settings)
    logger.info(f"Server started at http://localhost:{port}")
    # The reloader forks the process and would build a second pipeline
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
