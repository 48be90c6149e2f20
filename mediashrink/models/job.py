"""
Job Models — Pydantic schemas for one compression request.

An `EncodingJob` is created when the upload is accepted and names every
path the job may touch. A `CompressionResult` summarises a finished job
for logs, metrics and the CLI.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class MediaKind(str, Enum):
    """Encoding strategy families."""

    IMAGE = "image"
    ANIMATED = "animated"
    VIDEO = "video"


class EncodingJob(BaseModel):
    """Paths and strategy for a single upload."""

    job_id: str
    original_name: str
    safe_name: str
    kind: MediaKind
    work_dir: Path
    input_path: Path
    output_path: Path

    @property
    def extension(self) -> str:
        return self.input_path.suffix.lower()

    @property
    def download_name(self) -> str:
        return f"compressed_{self.safe_name}"

    def artifact_path(self, label: str, suffix: str = "") -> Path:
        """Path for a job-scoped intermediate, e.g. ``<job_id>_palette.png``."""
        return self.work_dir / f"{self.job_id}_{label}{suffix}"


class CompressionResult(BaseModel):
    """Outcome of a successful job."""

    job_id: str
    kind: MediaKind
    output_path: Path
    download_name: str
    input_bytes: int
    output_bytes: int
    elapsed_seconds: float
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def ratio(self) -> float:
        """Output size as a fraction of input size."""
        if not self.input_bytes:
            return 0.0
        return self.output_bytes / self.input_bytes
