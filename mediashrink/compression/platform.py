"""
Platform capabilities — host-specific details resolved once at startup.

The pipeline never branches on the operating system itself; it asks a
`Platform` value for the transcoder binary, the null sink that swallows
the first video pass, and the file names ffmpeg derives from a pass-log
prefix.
"""

from __future__ import annotations

import logging
import os
import shutil
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger(__name__)

# Conventional install location used on Windows hosts without ffmpeg on PATH
WINDOWS_FFMPEG_PATH = r"C:\ffmpeg\ffmpeg.exe"


@dataclass(frozen=True)
class Platform:
    """Resolved host capabilities."""

    name: str
    ffmpeg_path: str
    null_device: str

    @property
    def is_windows(self) -> bool:
        return self.name == "windows"

    def ffmpeg_available(self) -> bool:
        """Whether the transcoder binary can be located right now."""
        if os.path.isabs(self.ffmpeg_path):
            return os.path.isfile(self.ffmpeg_path)
        return shutil.which(self.ffmpeg_path) is not None

    def passlog_files(self, prefix: Path) -> List[Path]:
        """Files the encoder writes for a two-pass log prefix.

        libx264 writes ``<prefix>-0.log`` plus a ``.mbtree`` companion,
        each through a ``.temp`` file renamed at the end of pass 1.
        libvpx only writes the log.
        """
        log = prefix.with_name(f"{prefix.name}-0.log")
        mbtree = log.with_name(log.name + ".mbtree")
        return [
            log,
            mbtree,
            log.with_name(log.name + ".temp"),
            mbtree.with_name(mbtree.name + ".temp"),
        ]


def detect_platform(ffmpeg_override: Optional[str] = None) -> Platform:
    """Resolve the capabilities of the current host.

    Args:
        ffmpeg_override: Explicit ffmpeg binary path (from configuration).
    """
    name = "windows" if sys.platform.startswith("win") or os.name == "nt" else "posix"
    null_device = "NUL" if name == "windows" else "/dev/null"

    if ffmpeg_override:
        ffmpeg_path = ffmpeg_override
    elif name == "windows" and os.path.isfile(WINDOWS_FFMPEG_PATH):
        ffmpeg_path = WINDOWS_FFMPEG_PATH
    else:
        ffmpeg_path = shutil.which("ffmpeg") or "ffmpeg"

    platform = Platform(name=name, ffmpeg_path=ffmpeg_path, null_device=null_device)
    logger.debug(f"Platform resolved: {platform}")
    return platform
