"""
Operational endpoints.

Blueprint: ops_bp
Routes:
    GET    /health    # Work dir + ffmpeg availability (503 when unhealthy)
    GET    /metrics   # Prometheus text exposition
"""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify

from ..observability.health import HealthChecker, HealthStatus
from ..observability.metrics import metrics

ops_bp = Blueprint("ops", __name__)


@ops_bp.route("/health", methods=["GET"])
def api_health():
    """Health report for load balancers and humans."""
    checker: HealthChecker = current_app.config["HEALTH_CHECKER"]
    report = checker.check()
    status = 503 if report.status == HealthStatus.UNHEALTHY else 200
    return jsonify(report.to_dict()), status


@ops_bp.route("/metrics", methods=["GET"])
def api_metrics():
    """Job counters and durations for Prometheus."""
    return Response(
        metrics.export_prometheus(),
        content_type="text/plain; version=0.0.4; charset=utf-8",
    )
