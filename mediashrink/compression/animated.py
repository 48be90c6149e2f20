"""
Animated-image strategy — palette-based GIF re-encode with ffmpeg.

Two chained stages with one intermediate:
1. palettegen: sample frames at a reduced rate and size, build one palette
   from the combined stream so colors stay coherent across frames
2. paletteuse: re-encode at the same rate and size, mapping every pixel to
   the nearest palette entry without dithering
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

from ..models.job import EncodingJob
from .artifacts import ArtifactRegistry
from .profiles import CompressionProfile, STANDARD
from .transcoder import Transcoder

logger = logging.getLogger(__name__)


def _frame_filter(profile: CompressionProfile) -> str:
    return (
        f"fps={profile.gif_fps},"
        f"scale=iw*{profile.gif_scale}:ih*{profile.gif_scale}:flags=bilinear"
    )


def palette_args(input_path: Path, palette_path: Path, profile: CompressionProfile) -> List[str]:
    """ffmpeg arguments for the palette generation stage."""
    return [
        "-y",
        "-i", str(input_path),
        "-vf", (
            f"{_frame_filter(profile)},"
            f"palettegen=max_colors={profile.gif_max_colors}:stats_mode=full"
        ),
        "-update", "1",
        str(palette_path),
    ]


def paletteuse_args(
    input_path: Path,
    palette_path: Path,
    output_path: Path,
    profile: CompressionProfile,
) -> List[str]:
    """ffmpeg arguments for the palette application stage."""
    return [
        "-y",
        "-i", str(input_path),
        "-i", str(palette_path),
        "-lavfi", f"{_frame_filter(profile)}[x];[x][1:v]paletteuse=dither=none",
        str(output_path),
    ]


def compress_animated(
    job: EncodingJob,
    artifacts: ArtifactRegistry,
    transcoder: Transcoder,
    profile: CompressionProfile = STANDARD,
) -> Path:
    """
    Re-encode an animated image through a reduced palette.

    The palette is registered before the first stage runs, so a failure in
    either stage still leaves it scheduled for removal.

    Returns:
        The output path.

    Raises:
        TranscodeError: Either ffmpeg stage failed.
    """
    palette = artifacts.register(job.artifact_path("palette", ".png"))

    logger.info(
        f"[{job.job_id}] GIF palette: fps={profile.gif_fps} "
        f"scale={profile.gif_scale} colors≤{profile.gif_max_colors}"
    )
    transcoder.run(palette_args(job.input_path, palette, profile), stage="gif palette")
    transcoder.run(
        paletteuse_args(job.input_path, palette, job.output_path, profile),
        stage="gif encode",
    )
    return job.output_path
