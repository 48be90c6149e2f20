"""
Observability Module — Metrics and health checks.
"""

from .health import ComponentHealth, HealthChecker, HealthStatus, HealthReport
from .metrics import Counter, Histogram, MetricsRegistry, metrics

__all__ = [
    "metrics",
    "MetricsRegistry",
    "Counter",
    "Histogram",
    "HealthChecker",
    "HealthStatus",
    "HealthReport",
    "ComponentHealth",
]
