"""
Video strategy — two-pass rate-controlled re-encode with ffmpeg.

Pass 1 decodes and analyses the whole input, sends the encoded stream to
the platform's null sink and keeps only the rate-control statistics in
the pass log. Pass 2 re-runs with the same scale and bitrate targets,
reads the statistics and writes the real file with re-encoded audio.

Both passes are built from one `VideoEncodeParams` value: statistics from
pass 1 are only valid for a pass 2 with identical video parameters.

Codecs follow the container: WebM gets VP9 + Opus, everything else
H.264 + AAC.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..models.job import EncodingJob
from .artifacts import ArtifactRegistry
from .platform import Platform
from .profiles import CompressionProfile, STANDARD
from .transcoder import Transcoder

logger = logging.getLogger(__name__)

FASTSTART_CONTAINERS = {".mp4", ".mov"}


@dataclass(frozen=True)
class VideoEncodeParams:
    """Video parameters shared by both passes."""

    scale: float
    bitrate: str
    maxrate: str
    bufsize: str
    preset: str
    video_codec: str = "libx264"
    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    audio_channels: int = 2
    audio_sample_rate: int = 48000

    @classmethod
    def for_container(cls, extension: str, profile: CompressionProfile) -> "VideoEncodeParams":
        webm = extension.lower() == ".webm"
        return cls(
            scale=profile.video_scale,
            bitrate=profile.video_bitrate,
            maxrate=profile.video_maxrate,
            bufsize=profile.video_bufsize,
            preset=profile.video_preset,
            video_codec="libvpx-vp9" if webm else "libx264",
            audio_codec="libopus" if webm else "aac",
            audio_bitrate=profile.audio_bitrate,
            audio_channels=profile.audio_channels,
            audio_sample_rate=profile.audio_sample_rate,
        )

    def scale_filter(self) -> str:
        # Even dimensions: 4:2:0 encoders reject odd widths/heights
        s = self.scale
        return f"scale=trunc(iw*{s}/2)*2:trunc(ih*{s}/2)*2:flags=lanczos"

    def video_args(self) -> List[str]:
        if self.video_codec == "libvpx-vp9":
            speed = ["-deadline", "good", "-cpu-used", "2"]
        else:
            speed = ["-preset", self.preset, "-pix_fmt", "yuv420p"]
        return [
            "-vf", self.scale_filter(),
            "-c:v", self.video_codec,
            *speed,
            "-b:v", self.bitrate,
            "-maxrate", self.maxrate,
            "-bufsize", self.bufsize,
        ]

    def audio_args(self) -> List[str]:
        return [
            "-c:a", self.audio_codec,
            "-b:a", self.audio_bitrate,
            "-ac", str(self.audio_channels),
            "-ar", str(self.audio_sample_rate),
        ]


def pass1_args(
    input_path: Path,
    passlog_prefix: Path,
    params: VideoEncodeParams,
    null_device: str,
) -> List[str]:
    """Analysis pass: statistics only, encoded stream discarded."""
    return [
        "-y",
        "-i", str(input_path),
        *params.video_args(),
        "-pass", "1",
        "-passlogfile", str(passlog_prefix),
        "-an",
        "-f", "null",
        null_device,
    ]


def pass2_args(
    input_path: Path,
    passlog_prefix: Path,
    output_path: Path,
    params: VideoEncodeParams,
) -> List[str]:
    """Encoding pass: consumes the pass log and writes the output."""
    args = [
        "-y",
        "-i", str(input_path),
        *params.video_args(),
        "-pass", "2",
        "-passlogfile", str(passlog_prefix),
        *params.audio_args(),
    ]
    if output_path.suffix.lower() in FASTSTART_CONTAINERS:
        args.extend(["-movflags", "+faststart"])
    args.append(str(output_path))
    return args


def compress_video(
    job: EncodingJob,
    artifacts: ArtifactRegistry,
    transcoder: Transcoder,
    platform: Platform,
    profile: CompressionProfile = STANDARD,
) -> Path:
    """
    Two-pass re-encode of a video upload.

    Pass-log files are registered before pass 1 starts. A pass 1 failure
    propagates before pass 2 is attempted.

    Returns:
        The output path.

    Raises:
        TranscodeError: Either pass failed.
    """
    params = VideoEncodeParams.for_container(job.extension, profile)
    prefix = job.artifact_path("2pass")
    artifacts.register_all(platform.passlog_files(prefix))

    logger.info(
        f"[{job.job_id}] Video two-pass: {params.video_codec} scale={params.scale} "
        f"b:v={params.bitrate} maxrate={params.maxrate} bufsize={params.bufsize}"
    )
    transcoder.run(
        pass1_args(job.input_path, prefix, params, platform.null_device),
        stage="video pass 1",
    )
    transcoder.run(
        pass2_args(job.input_path, prefix, job.output_path, params),
        stage="video pass 2",
    )
    return job.output_path
