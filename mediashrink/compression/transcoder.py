"""
Transcoder — runs one ffmpeg stage as a child process.

Strategies build argument lists; a `Transcoder` executes them. The
production implementation shells out to ffmpeg, tests swap in a fake
that records calls and writes the files ffmpeg would have written.
"""

from __future__ import annotations

import logging
import subprocess
import time
from typing import Protocol, Sequence

from ..observability.metrics import metrics
from .errors import EncoderUnavailableError, TranscodeError, TranscodeTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600  # seconds per stage


class Transcoder(Protocol):
    """Executes a single transcoding stage."""

    def run(self, args: Sequence[str], *, stage: str) -> str:
        """Run one stage and return its combined stdout/stderr.

        Args:
            args: Command-line arguments, without the binary.
            stage: Short label used in logs and errors (e.g. "video pass 1").

        Raises:
            TranscodeError: Non-zero exit, timeout or missing binary.
        """
        ...


class FFmpegTranscoder:
    """Spawns the ffmpeg binary, one process per call, no retries."""

    def __init__(self, binary: str = "ffmpeg", timeout: float = DEFAULT_TIMEOUT):
        self.binary = binary
        self.timeout = timeout

    def run(self, args: Sequence[str], *, stage: str) -> str:
        cmd = [self.binary, *args]
        logger.debug(f"[{stage}] {' '.join(cmd)}")
        start = time.monotonic()

        try:
            proc = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            logger.warning(f"[{stage}] ffmpeg timed out after {self.timeout:.0f}s")
            raise TranscodeTimeoutError(stage, None, output) from e
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"[{stage}] cannot start {self.binary}: {e}")
            raise EncoderUnavailableError(stage, None, str(e)) from e

        elapsed = time.monotonic() - start
        metrics.timing("transcode_duration_seconds", elapsed, labels={"stage": stage})
        if proc.returncode != 0:
            logger.warning(
                f"[{stage}] ffmpeg failed (rc={proc.returncode}, {elapsed:.1f}s): "
                f"{proc.stdout[-500:]}"
            )
            raise TranscodeError(stage, proc.returncode, proc.stdout)

        logger.info(f"[{stage}] ffmpeg finished in {elapsed:.1f}s", extra={"stage": stage})
        return proc.stdout
