"""
Config Loader — Server and pipeline settings from environment variables.

## Environment Variables

- PORT: Listening port (default: 8080)
- HOST: Bind address (default: 0.0.0.0)
- MEDIASHRINK_PROFILE: Compression profile, "standard" or "compact"
- MEDIASHRINK_MAX_UPLOAD_MB: Request body cap in MB (default: 100)
- MEDIASHRINK_TMP_DIR: Work directory for job artifacts
- MEDIASHRINK_FFMPEG_PATH: Explicit ffmpeg binary
- MEDIASHRINK_FFMPEG_TIMEOUT: Seconds allowed per ffmpeg stage (default: 600)
- MEDIASHRINK_KEEP_FAILED: Keep artifacts of failed ffmpeg jobs (default: false)

## Usage

    from mediashrink.config.loader import load_settings

    settings = load_settings()
    print(settings.port)
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from ..compression.profiles import CompressionProfile, STANDARD, get_profile

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
DEFAULT_HOST = "0.0.0.0"
DEFAULT_MAX_UPLOAD_MB = 100
DEFAULT_FFMPEG_TIMEOUT = 600

TRUTHY = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """An environment variable holds a value the server cannot use."""


def _default_work_dir() -> Path:
    return Path(tempfile.gettempdir()) / "mediashrink"


@dataclass
class Settings:
    """Everything the server and pipeline read from the environment."""

    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    profile: CompressionProfile = STANDARD
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    work_dir: Path = field(default_factory=_default_work_dir)
    ffmpeg_path: Optional[str] = None
    ffmpeg_timeout: float = DEFAULT_FFMPEG_TIMEOUT
    keep_failed: bool = False

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    def to_dict(self) -> dict:
        return {
            "port": self.port,
            "host": self.host,
            "profile": self.profile.name,
            "max_upload_mb": self.max_upload_mb,
            "work_dir": str(self.work_dir),
            "ffmpeg_path": self.ffmpeg_path,
            "ffmpeg_timeout": self.ffmpeg_timeout,
            "keep_failed": self.keep_failed,
        }


def _int(env: Mapping[str, str], key: str, default: int, minimum: int = 1) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got '{raw}'") from None
    if value < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {value}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables.

    Args:
        env: Mapping to read instead of os.environ (tests).

    Raises:
        ConfigError: A value is malformed or names an unknown profile.
    """
    env = os.environ if env is None else env

    profile_name = env.get("MEDIASHRINK_PROFILE", "").strip() or STANDARD.name
    try:
        profile = get_profile(profile_name)
    except KeyError as e:
        raise ConfigError(str(e.args[0])) from None

    work_dir_raw = env.get("MEDIASHRINK_TMP_DIR", "").strip()

    settings = Settings(
        port=_int(env, "PORT", DEFAULT_PORT),
        host=env.get("HOST", "").strip() or DEFAULT_HOST,
        profile=profile,
        max_upload_mb=_int(env, "MEDIASHRINK_MAX_UPLOAD_MB", DEFAULT_MAX_UPLOAD_MB),
        work_dir=Path(work_dir_raw) if work_dir_raw else _default_work_dir(),
        ffmpeg_path=env.get("MEDIASHRINK_FFMPEG_PATH", "").strip() or None,
        ffmpeg_timeout=_int(env, "MEDIASHRINK_FFMPEG_TIMEOUT", DEFAULT_FFMPEG_TIMEOUT),
        keep_failed=env.get("MEDIASHRINK_KEEP_FAILED", "").strip().lower() in TRUTHY,
    )
    logger.debug(f"Settings loaded: {settings.to_dict()}")
    return settings
