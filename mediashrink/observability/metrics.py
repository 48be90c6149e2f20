"""
Metrics — Per-process job counters and timings.

Exposed in Prometheus text format on the server's /metrics endpoint.
Values live in memory and reset when the process restarts.

## Usage

    from mediashrink.observability.metrics import metrics

    metrics.increment("jobs_total", labels={"kind": "image", "outcome": "ok"})
    metrics.timing("job_duration_seconds", 1.7, labels={"kind": "image"})

    text = metrics.export_prometheus()
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, List, Optional, Tuple

Labels = Optional[Dict[str, str]]
SeriesKey = Tuple[Tuple[str, str], ...]

INF = float("inf")


def _series(labels: Labels) -> SeriesKey:
    return tuple(sorted((labels or {}).items()))


def _label_text(key: SeriesKey) -> str:
    if not key:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in key) + "}"


class _Metric:
    kind = "untyped"

    def __init__(self, name: str, help_text: str = ""):
        self.name = name
        self.help_text = help_text
        self._guard = threading.Lock()

    def render(self) -> List[str]:
        raise NotImplementedError

    def exposition(self) -> Iterator[str]:
        yield f"# HELP {self.name} {self.help_text}"
        yield f"# TYPE {self.name} {self.kind}"
        yield from self.render()


class Counter(_Metric):
    """Monotonic total per label set."""

    kind = "counter"

    def __init__(self, name: str, help_text: str = ""):
        super().__init__(name, help_text)
        self._totals: Dict[SeriesKey, float] = {}

    def inc(self, value: float = 1, labels: Labels = None) -> None:
        key = _series(labels)
        with self._guard:
            self._totals[key] = self._totals.get(key, 0.0) + value

    def get(self, labels: Labels = None) -> float:
        return self._totals.get(_series(labels), 0.0)

    def total(self) -> float:
        with self._guard:
            return sum(self._totals.values())

    def render(self) -> List[str]:
        with self._guard:
            snapshot = sorted(self._totals.items())
        return [f"{self.name}{_label_text(key)} {value}" for key, value in snapshot]


class Histogram(_Metric):
    """Cumulative buckets tuned for encode durations (seconds)."""

    kind = "histogram"
    DEFAULT_BUCKETS = (0.1, 0.5, 1, 2.5, 5, 10, 30, 60, 120, 300, 600, INF)

    def __init__(self, name: str, help_text: str = "", buckets: Optional[tuple] = None):
        super().__init__(name, help_text)
        self.buckets = tuple(buckets or self.DEFAULT_BUCKETS)
        if self.buckets[-1] != INF:
            self.buckets += (INF,)
        # series -> (per-bucket cumulative counts, sum)
        self._series: Dict[SeriesKey, Tuple[List[int], float]] = {}

    def observe(self, value: float, labels: Labels = None) -> None:
        key = _series(labels)
        with self._guard:
            counts, total = self._series.get(key, ([0] * len(self.buckets), 0.0))
            for i, upper in enumerate(self.buckets):
                if value <= upper:
                    counts[i] += 1
            self._series[key] = (counts, total + value)

    def count(self, labels: Labels = None) -> int:
        entry = self._series.get(_series(labels))
        return entry[0][-1] if entry else 0

    def render(self) -> List[str]:
        with self._guard:
            snapshot = sorted(
                (key, (list(counts), total)) for key, (counts, total) in self._series.items()
            )
        lines: List[str] = []
        for key, (counts, total) in snapshot:
            for upper, seen in zip(self.buckets, counts):
                le = "+Inf" if upper == INF else str(upper)
                lines.append(f"{self.name}_bucket{_label_text(key + (('le', le),))} {seen}")
            lines.append(f"{self.name}_sum{_label_text(key)} {total}")
            lines.append(f"{self.name}_count{_label_text(key)} {counts[-1]}")
        return lines


class MetricsRegistry:
    """Every metric of the service, under one name prefix."""

    def __init__(self, prefix: str = "mediashrink"):
        self.prefix = prefix
        self._metrics: Dict[str, _Metric] = {}
        self._guard = threading.Lock()

        self.counter("jobs_total", "Compression jobs by kind and outcome")
        self.counter("input_bytes_total", "Bytes received for compression")
        self.counter("output_bytes_total", "Bytes produced by compression")
        self.histogram("job_duration_seconds", "Compression job duration")
        self.histogram("transcode_duration_seconds", "ffmpeg stage duration")

    def _get_or_create(self, name: str, factory, help_text: str):
        full = f"{self.prefix}_{name}"
        with self._guard:
            metric = self._metrics.get(full)
            if metric is None:
                metric = self._metrics[full] = factory(full, help_text)
        if not isinstance(metric, factory):
            raise TypeError(f"{full} is already registered as a {metric.kind}")
        return metric

    def counter(self, name: str, help_text: str = "") -> Counter:
        return self._get_or_create(name, Counter, help_text)

    def histogram(self, name: str, help_text: str = "") -> Histogram:
        return self._get_or_create(name, Histogram, help_text)

    def increment(self, name: str, value: float = 1, labels: Labels = None) -> None:
        self.counter(name).inc(value, labels)

    def timing(self, name: str, seconds: float, labels: Labels = None) -> None:
        self.histogram(name).observe(seconds, labels)

    def export_prometheus(self) -> str:
        """Prometheus text exposition, counters first."""
        with self._guard:
            registered = list(self._metrics.values())
        ordered = sorted(registered, key=lambda m: (m.kind != "counter", m.name))
        lines = [line for metric in ordered for line in metric.exposition()]
        return "\n".join(lines) + "\n"


metrics = MetricsRegistry()
