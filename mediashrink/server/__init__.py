"""
Compression Server — Flask front end for the pipeline.

Usage:
    python -m mediashrink serve
    # Opens http://localhost:8080

Routes:
    - GET  /         upload form
    - POST /upload   compress and download
    - GET  /health   host readiness
    - GET  /metrics  Prometheus metrics
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
