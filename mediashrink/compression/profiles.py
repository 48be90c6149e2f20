"""
Compression profiles — the resize fractions and quality constants.

`standard` is the canonical set and the default. `compact` trades more
quality for smaller still images and a faster video preset.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict

# ── Defaults ─────────────────────────────────────────────────

IMAGE_SCALE = 0.75          # output width = floor(width * IMAGE_SCALE)
JPEG_QUALITY = 85           # JPEG / WebP quality (1-100)

GIF_FPS = 15                # frame rate for palette sampling and output
GIF_SCALE = 0.6             # linear scale for animated images
GIF_MAX_COLORS = 128        # palette size

VIDEO_SCALE = 0.85          # linear scale for video
VIDEO_BITRATE = "2000k"     # two-pass average target
VIDEO_MAXRATE = "3000k"     # peak cap
VIDEO_BUFSIZE = "4000k"     # rate-control buffer
VIDEO_PRESET = "veryslow"   # libx264 preset
AUDIO_BITRATE = "192k"
AUDIO_CHANNELS = 2
AUDIO_SAMPLE_RATE = 48000


@dataclass(frozen=True)
class CompressionProfile:
    """One consistent set of encoding constants."""

    name: str
    image_scale: float = IMAGE_SCALE
    jpeg_quality: int = JPEG_QUALITY
    gif_fps: int = GIF_FPS
    gif_scale: float = GIF_SCALE
    gif_max_colors: int = GIF_MAX_COLORS
    video_scale: float = VIDEO_SCALE
    video_bitrate: str = VIDEO_BITRATE
    video_maxrate: str = VIDEO_MAXRATE
    video_bufsize: str = VIDEO_BUFSIZE
    video_preset: str = VIDEO_PRESET
    audio_bitrate: str = AUDIO_BITRATE
    audio_channels: int = AUDIO_CHANNELS
    audio_sample_rate: int = AUDIO_SAMPLE_RATE

    def __post_init__(self) -> None:
        for field_name in ("image_scale", "gif_scale", "video_scale"):
            value = getattr(self, field_name)
            if not 0 < value <= 1:
                raise ValueError(f"{field_name} must be in (0, 1], got {value}")
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be 1-100, got {self.jpeg_quality}")
        if not 2 <= self.gif_max_colors <= 256:
            raise ValueError(f"gif_max_colors must be 2-256, got {self.gif_max_colors}")


STANDARD = CompressionProfile(name="standard")
COMPACT = replace(
    STANDARD,
    name="compact",
    image_scale=0.5,
    jpeg_quality=75,
    video_preset="medium",
)

PROFILES: Dict[str, CompressionProfile] = {p.name: p for p in (STANDARD, COMPACT)}


def get_profile(name: str) -> CompressionProfile:
    """Look up a profile by name (case-insensitive)."""
    try:
        return PROFILES[name.strip().lower()]
    except KeyError:
        known = ", ".join(sorted(PROFILES))
        raise KeyError(f"Unknown compression profile '{name}' (known: {known})") from None
