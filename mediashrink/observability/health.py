"""
Health Check — Can this host compress media right now?

Components:
- work_dir: the artifact directory exists and is writable
- ffmpeg: the transcoder binary is locatable (video/GIF only, so its
  absence degrades the service instead of taking it down)

## Usage

    checker = HealthChecker(work_dir, platform)
    report = checker.check()
    if not report.healthy:
        ...
"""

from __future__ import annotations

import logging
import tempfile
import time
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from ..compression.platform import Platform

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    """Ordered from best to worst."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


SEVERITY = [HealthStatus.HEALTHY, HealthStatus.DEGRADED, HealthStatus.UNHEALTHY]


class ComponentHealth(BaseModel):
    """One checked dependency."""

    name: str
    status: HealthStatus
    message: str = ""
    details: Dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    """Worst component status plus every component."""

    status: HealthStatus
    checked_at: datetime
    uptime_seconds: float
    components: List[ComponentHealth]

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json")
        data["healthy"] = self.healthy
        return data


class HealthChecker:
    """Checks the work directory and the transcoder."""

    def __init__(self, work_dir: Path, platform: Platform):
        self.work_dir = Path(work_dir)
        self.platform = platform
        self._started = time.monotonic()

    def check(self) -> HealthReport:
        components = [self._work_dir(), self._ffmpeg()]
        worst = max((c.status for c in components), key=SEVERITY.index)
        if worst != HealthStatus.HEALTHY:
            logger.debug(f"Health {worst.value}: " + "; ".join(
                f"{c.name}={c.status.value}" for c in components
            ))
        return HealthReport(
            status=worst,
            checked_at=datetime.now(timezone.utc),
            uptime_seconds=round(time.monotonic() - self._started, 3),
            components=components,
        )

    def _work_dir(self) -> ComponentHealth:
        details = {"path": str(self.work_dir)}
        try:
            self.work_dir.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(dir=self.work_dir, prefix=".health_"):
                pass
        except OSError as e:
            return ComponentHealth(
                name="work_dir",
                status=HealthStatus.UNHEALTHY,
                message=f"Work directory not writable: {e}",
                details=details,
            )
        return ComponentHealth(
            name="work_dir", status=HealthStatus.HEALTHY,
            message="Work directory writable", details=details,
        )

    def _ffmpeg(self) -> ComponentHealth:
        details = {"path": self.platform.ffmpeg_path, "platform": self.platform.name}
        if not self.platform.ffmpeg_available():
            return ComponentHealth(
                name="ffmpeg",
                status=HealthStatus.DEGRADED,
                message="ffmpeg not found, video and GIF uploads will fail",
                details=details,
            )
        return ComponentHealth(
            name="ffmpeg", status=HealthStatus.HEALTHY,
            message="ffmpeg found", details=details,
        )
