"""
Compression pipeline — one job per upload, from saved file to output.

    pipeline = CompressionPipeline.from_settings(settings)
    job, artifacts = pipeline.start("clip.mov")
    try:
        pipeline.store_upload(job, request_file.stream)
        result = pipeline.execute(job, artifacts)
        ...stream result.output_path...
    finally:
        artifacts.release()

Every artifact name is prefixed with the job id so concurrent uploads of
identically named files never share a path.
"""

from __future__ import annotations

import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from werkzeug.utils import secure_filename

from ..models.job import CompressionResult, EncodingJob, MediaKind
from ..observability.metrics import metrics
from .animated import compress_animated
from .artifacts import ArtifactRegistry
from .errors import CompressionError, InputRetrievalError, ResponseWriteError, StorageError, TranscodeError
from .image import compress_image
from .platform import Platform, detect_platform
from .profiles import CompressionProfile, STANDARD
from .selector import extension_of, select_kind
from .transcoder import FFmpegTranscoder, Transcoder
from .video import compress_video

logger = logging.getLogger(__name__)

COPY_CHUNK = 1024 * 1024

# Kind label for requests rejected before a strategy was chosen
UNKNOWN_KIND = "unknown"


def _count_failure(kind: str, error: CompressionError) -> None:
    metrics.increment("jobs_total", labels={"kind": kind, "outcome": type(error).__name__})


def safe_filename(filename: str) -> str:
    """ASCII-only file name that keeps the original extension."""
    ext = extension_of(filename)
    stem = secure_filename(Path(filename).stem) or "upload"
    return f"{stem}{ext}"


class CompressionPipeline:
    """Creates jobs and runs the matching strategy."""

    def __init__(
        self,
        work_dir: Path,
        *,
        profile: CompressionProfile = STANDARD,
        platform: Optional[Platform] = None,
        transcoder: Optional[Transcoder] = None,
        keep_failed: bool = False,
    ):
        self.work_dir = Path(work_dir)
        self.profile = profile
        self.platform = platform or detect_platform()
        self.transcoder = transcoder or FFmpegTranscoder(self.platform.ffmpeg_path)
        self.keep_failed = keep_failed
        self.work_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings, transcoder: Optional[Transcoder] = None) -> "CompressionPipeline":
        platform = detect_platform(settings.ffmpeg_path)
        return cls(
            settings.work_dir,
            profile=settings.profile,
            platform=platform,
            transcoder=transcoder or FFmpegTranscoder(platform.ffmpeg_path, settings.ffmpeg_timeout),
            keep_failed=settings.keep_failed,
        )

    # ── Job setup ────────────────────────────────────────────

    def start(self, filename: str) -> Tuple[EncodingJob, ArtifactRegistry]:
        """
        Classify an upload and allocate its job paths.

        The upload and output paths are registered immediately; nothing
        is written yet.

        Raises:
            InputRetrievalError: Empty filename.
            UnsupportedFormatError: Extension belongs to no strategy.
        """
        try:
            if not filename or not filename.strip():
                raise InputRetrievalError(detail="empty filename")
            kind = select_kind(filename)
        except CompressionError as e:
            _count_failure(UNKNOWN_KIND, e)
            raise

        job_id = uuid.uuid4().hex
        safe_name = safe_filename(filename)
        ext = extension_of(safe_name)

        job = EncodingJob(
            job_id=job_id,
            original_name=filename,
            safe_name=safe_name,
            kind=kind,
            work_dir=self.work_dir,
            input_path=self.work_dir / f"{job_id}_upload{ext}",
            output_path=self.work_dir / f"{job_id}_compressed{ext}",
        )
        artifacts = ArtifactRegistry(job_id)
        artifacts.register(job.input_path)
        artifacts.register(job.output_path)

        logger.info(
            f"[{job_id}] New {kind.value} job for '{filename}'",
            extra={"job_id": job_id, "kind": kind.value},
        )
        return job, artifacts

    def store_upload(self, job: EncodingJob, stream: BinaryIO) -> int:
        """Copy the uploaded bytes to the job's input path.

        Returns:
            Number of bytes written.

        Raises:
            StorageError: The file could not be written.
        """
        try:
            with open(job.input_path, "wb") as out:
                shutil.copyfileobj(stream, out, COPY_CHUNK)
        except OSError as e:
            error = StorageError("Error saving upload", detail=str(e))
            _count_failure(job.kind.value, error)
            raise error from e
        size = job.input_path.stat().st_size
        logger.debug(f"[{job.job_id}] Saved upload: {size:,} bytes → {job.input_path}")
        return size

    # ── Execution ────────────────────────────────────────────

    def execute(self, job: EncodingJob, artifacts: ArtifactRegistry) -> CompressionResult:
        """
        Run the job's strategy and verify its output.

        On a transcoder failure with `keep_failed` set, the registry is
        switched to preserve mode so the caller's release keeps every file.

        Raises:
            CompressionError: Any pipeline failure.
        """
        labels = {"kind": job.kind.value}
        start = time.monotonic()
        input_bytes = job.input_path.stat().st_size if job.input_path.exists() else 0
        width = height = None

        try:
            if job.kind == MediaKind.IMAGE:
                width, height = compress_image(job.input_path, job.output_path, self.profile)
            elif job.kind == MediaKind.ANIMATED:
                compress_animated(job, artifacts, self.transcoder, self.profile)
            else:
                compress_video(job, artifacts, self.transcoder, self.platform, self.profile)

            if not job.output_path.is_file():
                raise ResponseWriteError(detail=f"no output at {job.output_path}")
        except CompressionError as e:
            if isinstance(e, TranscodeError) and self.keep_failed:
                artifacts.preserve(f"{e.stage} failed")
            _count_failure(job.kind.value, e)
            raise

        elapsed = time.monotonic() - start
        output_bytes = job.output_path.stat().st_size
        metrics.increment("jobs_total", labels={**labels, "outcome": "ok"})
        metrics.increment("input_bytes_total", input_bytes, labels=labels)
        metrics.increment("output_bytes_total", output_bytes, labels=labels)
        metrics.timing("job_duration_seconds", elapsed, labels=labels)

        result = CompressionResult(
            job_id=job.job_id,
            kind=job.kind,
            output_path=job.output_path,
            download_name=job.download_name,
            input_bytes=input_bytes,
            output_bytes=output_bytes,
            elapsed_seconds=elapsed,
            width=width,
            height=height,
        )
        pct = result.ratio * 100
        logger.info(
            f"[{job.job_id}] Compressed {job.kind.value}: "
            f"{input_bytes:,} → {output_bytes:,} bytes ({pct:.0f}%) in {elapsed:.1f}s",
            extra={"job_id": job.job_id, "kind": job.kind.value},
        )
        return result

    def compress_file(self, source: Path, destination: Path) -> CompressionResult:
        """
        Run the pipeline on a local file and move the output to `destination`.

        All job artifacts are removed afterwards, whatever the outcome.
        """
        source = Path(source)
        job, artifacts = self.start(source.name)
        with artifacts:
            try:
                with open(source, "rb") as fh:
                    self.store_upload(job, fh)
            except FileNotFoundError as e:
                error = InputRetrievalError(f"File not found: {source}")
                _count_failure(job.kind.value, error)
                raise error from e
            result = self.execute(job, artifacts)
            destination = Path(destination)
            destination.parent.mkdir(parents=True, exist_ok=True)
            try:
                shutil.move(str(job.output_path), str(destination))
            except OSError as e:
                raise StorageError("Error writing output", detail=str(e)) from e
        return result.model_copy(update={"output_path": destination})
