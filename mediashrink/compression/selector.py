"""
Strategy selection by file extension.
"""

from __future__ import annotations

from pathlib import Path

from ..models.job import MediaKind
from .errors import UnsupportedFormatError

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
ANIMATED_EXTENSIONS = {".gif"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm", ".mkv"}

SUPPORTED_EXTENSIONS = IMAGE_EXTENSIONS | ANIMATED_EXTENSIONS | VIDEO_EXTENSIONS


def extension_of(filename: str) -> str:
    """Lower-cased extension including the dot, or "" when there is none."""
    return Path(filename).suffix.lower()


def select_kind(filename: str) -> MediaKind:
    """Classify an upload into one encoding strategy.

    Only the extension is inspected. A still image whose content does not
    match its extension is caught later by the decoder.

    Raises:
        UnsupportedFormatError: The extension belongs to no strategy.
    """
    ext = extension_of(filename)
    if ext in ANIMATED_EXTENSIONS:
        return MediaKind.ANIMATED
    if ext in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    raise UnsupportedFormatError(
        f"Unsupported format '{ext or filename}'",
        detail=f"supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
    )
