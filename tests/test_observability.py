"""
Tests for the Observability Module — Metrics and Health Checks.
"""

import json
import logging
import threading

from mediashrink.compression.platform import Platform
from mediashrink.logging_config import HumanFormatter, JSONFormatter
from mediashrink.observability.health import (
    ComponentHealth,
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from mediashrink.observability.metrics import Counter, Histogram, MetricsRegistry


class TestCounter:
    """Tests for Counter metric."""

    def test_increment(self):
        """Test counter increment."""
        counter = Counter("test_counter")

        counter.inc()
        counter.inc()
        counter.inc(5)

        assert counter.get() == 7

    def test_increment_with_labels(self):
        """Test counter with labels."""
        counter = Counter("test_counter")

        counter.inc(1, labels={"kind": "image"})
        counter.inc(2, labels={"kind": "video"})
        counter.inc(1, labels={"kind": "image"})

        assert counter.get(labels={"kind": "image"}) == 2
        assert counter.get(labels={"kind": "video"}) == 2
        assert counter.total() == 4

    def test_render(self):
        """Test counter Prometheus lines."""
        counter = Counter("jobs")
        counter.inc(3, labels={"kind": "image"})

        assert counter.render() == ['jobs{kind="image"} 3.0']


class TestHistogram:
    """Tests for Histogram metric."""

    def test_observe(self):
        """Test histogram observations land in cumulative buckets."""
        hist = Histogram("duration", buckets=(1, 10, float("inf")))

        hist.observe(0.5)
        hist.observe(5)
        hist.observe(50)

        assert hist.count() == 3
        lines = hist.render()
        assert 'duration_bucket{le="1"} 1' in lines
        assert 'duration_bucket{le="10"} 2' in lines
        assert 'duration_bucket{le="+Inf"} 3' in lines
        assert "duration_sum 55.5" in lines

    def test_labels_are_separate_series(self):
        """Test labelled observations are tracked per label set."""
        hist = Histogram("stage")

        hist.observe(1, labels={"stage": "video pass 1"})
        hist.observe(2, labels={"stage": "video pass 2"})

        assert hist.count(labels={"stage": "video pass 1"}) == 1
        assert hist.count(labels={"stage": "gif palette"}) == 0


class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_counter_creation(self):
        """Test counters are created once and prefixed."""
        registry = MetricsRegistry(prefix="test")

        first = registry.counter("uploads")
        second = registry.counter("uploads")

        assert first is second
        assert first.name == "test_uploads"

    def test_convenience_methods(self):
        """Test increment and timing helpers."""
        registry = MetricsRegistry(prefix="test")

        registry.increment("jobs_total", labels={"kind": "image", "outcome": "ok"})
        registry.timing("job_duration_seconds", 0.2, labels={"kind": "image"})

        assert registry.counter("jobs_total").get(labels={"kind": "image", "outcome": "ok"}) == 1
        assert registry.histogram("job_duration_seconds").count(labels={"kind": "image"}) == 1

    def test_export_prometheus(self):
        """Test Prometheus text export."""
        registry = MetricsRegistry(prefix="test")
        registry.increment("jobs_total", labels={"kind": "video", "outcome": "TranscodeError"})

        output = registry.export_prometheus()

        assert "# TYPE test_jobs_total counter" in output
        assert 'test_jobs_total{kind="video",outcome="TranscodeError"} 1.0' in output
        assert "# TYPE test_transcode_duration_seconds histogram" in output
        assert output.endswith("\n")

    def test_export_while_new_series_appear(self):
        """Test export stays consistent while other threads add label sets."""
        registry = MetricsRegistry(prefix="test")
        writers = 4
        per_writer = 500
        errors = []
        done = threading.Event()

        def write(n):
            for i in range(per_writer):
                labels = {"kind": f"k{n}_{i}", "outcome": "ok"}
                registry.increment("jobs_total", labels=labels)
                registry.timing("job_duration_seconds", 0.01, labels=labels)

        def export():
            while not done.is_set():
                try:
                    registry.export_prometheus()
                except RuntimeError as e:
                    errors.append(e)

        reader = threading.Thread(target=export)
        reader.start()
        threads = [threading.Thread(target=write, args=(n,)) for n in range(writers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        done.set()
        reader.join()

        assert errors == []
        assert registry.counter("jobs_total").total() == writers * per_writer
        output = registry.export_prometheus()
        assert output.count("test_jobs_total{") == writers * per_writer


class TestHealthChecker:
    """Tests for HealthChecker."""

    def test_healthy_with_ffmpeg(self, tmp_path):
        """Test a writable work dir and an existing binary is healthy."""
        binary = tmp_path / "ffmpeg"
        binary.write_text("#!/bin/sh\n")
        platform = Platform(name="posix", ffmpeg_path=str(binary), null_device="/dev/null")

        report = HealthChecker(tmp_path / "work", platform).check()

        assert report.status == HealthStatus.HEALTHY
        assert report.healthy
        assert {c.name for c in report.components} == {"work_dir", "ffmpeg"}

    def test_missing_ffmpeg_degrades(self, tmp_path):
        """Test a missing binary degrades instead of failing."""
        platform = Platform(name="posix", ffmpeg_path=str(tmp_path / "nope"), null_device="/dev/null")

        report = HealthChecker(tmp_path, platform).check()

        assert report.status == HealthStatus.DEGRADED
        assert not report.healthy

    def test_unwritable_work_dir_unhealthy(self, tmp_path, posix_platform):
        """Test a work dir that cannot be created is unhealthy."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        report = HealthChecker(blocker / "work", posix_platform).check()

        assert report.status == HealthStatus.UNHEALTHY

    def test_writability_check_leaves_nothing(self, tmp_path, posix_platform):
        """Test the writability check leaves no file behind."""
        HealthChecker(tmp_path, posix_platform).check()
        assert list(tmp_path.iterdir()) == []

    def test_to_dict(self, tmp_path, posix_platform):
        """Test health serialization."""
        data = HealthChecker(tmp_path, posix_platform).check().to_dict()

        assert data["status"] in ("healthy", "degraded")
        assert "checked_at" in data
        assert "uptime_seconds" in data
        assert len(data["components"]) == 2
        json.dumps(data)


class TestHealthReport:
    """Tests for HealthReport."""

    def test_healthy_property(self):
        """Test healthy property."""
        health = HealthReport(
            status=HealthStatus.HEALTHY,
            checked_at="2026-01-01T00:00:00Z",
            uptime_seconds=1.0,
            components=[ComponentHealth(name="work_dir", status=HealthStatus.HEALTHY)],
        )
        assert health.healthy

    def test_unhealthy_property(self):
        """Test unhealthy property."""
        health = HealthReport(
            status=HealthStatus.UNHEALTHY,
            checked_at="2026-01-01T00:00:00Z",
            uptime_seconds=1.0,
            components=[],
        )
        assert not health.healthy


# ═══════════════════════════════════════════════════════════════════
# Ops endpoints
# ═══════════════════════════════════════════════════════════════════


class TestOpsRoutes:
    """Tests for /health and /metrics."""

    def test_health_ok(self, client):
        """Test /health answers 200 unless unhealthy."""
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.get_json()["status"] in ("healthy", "degraded")

    def test_health_unhealthy_is_503(self, app, tmp_path, posix_platform):
        """Test /health answers 503 when the work dir is unusable."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        app.config["HEALTH_CHECKER"] = HealthChecker(blocker / "work", posix_platform)

        resp = app.test_client().get("/health")

        assert resp.status_code == 503
        assert resp.get_json()["healthy"] is False

    def test_metrics_text(self, client, make_image):
        """Test /metrics exposes job counters after an upload."""
        import io

        client.post(
            "/upload",
            data={"image": (io.BytesIO(make_image(40, 40)), "m.png")},
            content_type="multipart/form-data",
            buffered=True,
        )

        resp = client.get("/metrics")

        assert resp.status_code == 200
        assert resp.content_type.startswith("text/plain")
        body = resp.get_data(as_text=True)
        assert 'mediashrink_jobs_total{kind="image",outcome="ok"}' in body


# ═══════════════════════════════════════════════════════════════════
# Logging formatters
# ═══════════════════════════════════════════════════════════════════


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("mediashrink.compression.pipeline", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for the log formatters."""

    def test_json_includes_job_fields(self):
        """Test job context extras appear in JSON output."""
        line = JSONFormatter().format(_record("done", job_id="abc", stage="video pass 1"))

        entry = json.loads(line)
        assert entry["message"] == "done"
        assert entry["level"] == "INFO"
        assert entry["job_id"] == "abc"
        assert entry["stage"] == "video pass 1"
        assert "kind" not in entry

    def test_human_uses_short_module(self):
        """Test human output shows the last logger component."""
        line = HumanFormatter().format(_record("hello"))
        assert "[pipeline" in line
        assert line.endswith("hello")
