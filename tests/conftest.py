"""
Shared fixtures for pipeline and server tests.

Provides a fake transcoder that records every ffmpeg invocation and
writes the files ffmpeg would have written, so the video and GIF
strategies run without the real binary. Tests that need real ffmpeg
skip themselves when it is not installed.
"""

from __future__ import annotations

import io
import random
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

from mediashrink.compression.errors import TranscodeError
from mediashrink.compression.pipeline import CompressionPipeline
from mediashrink.compression.platform import Platform
from mediashrink.config.loader import Settings


# ── Fake transcoder ──────────────────────────────────────────────


class FakeTranscoder:
    """Stands in for ffmpeg.

    - palette stage: writes a small PNG at the last argument
    - any "-pass 1" call: writes the pass log next to -passlogfile
    - any "-pass 2" call: requires the pass log, writes the output
    - gif encode: requires the palette, writes the output

    Set `fail_on` to a stage label to make that stage exit non-zero.
    """

    def __init__(self):
        self.calls: List[tuple] = []
        self.fail_on: Optional[str] = None

    def run(self, args: Sequence[str], *, stage: str) -> str:
        args = list(args)
        self.calls.append((stage, args))

        if stage == self.fail_on:
            raise TranscodeError(stage, 1, f"{stage}: simulated encoder failure")

        if "-pass" in args:
            prefix = Path(args[args.index("-passlogfile") + 1])
            log = prefix.with_name(f"{prefix.name}-0.log")
            if args[args.index("-pass") + 1] == "1":
                log.write_text("#options: fake rate-control stats\n")
                log.with_name(log.name + ".mbtree").write_bytes(b"\x00" * 16)
            else:
                assert log.exists(), "pass 2 ran without pass 1 statistics"
                Path(args[-1]).write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
        elif "palettegen" in " ".join(args):
            from PIL import Image
            Image.new("RGB", (16, 16), (10, 20, 30)).save(args[-1], format="PNG")
        else:
            palette = Path(args[args.index("-i", args.index("-i") + 1) + 1])
            assert palette.exists(), "gif encode ran without a palette"
            Path(args[-1]).write_bytes(b"GIF89a" + b"\x00" * 32)

        return f"{stage}: ok"

    @property
    def stages(self) -> List[str]:
        return [stage for stage, _ in self.calls]


# ── Image builders ───────────────────────────────────────────────


def _image_bytes(width: int, height: int, fmt: str, mode: str = "RGB", noise: bool = False) -> bytes:
    from PIL import Image

    if noise:
        rng = random.Random(width * 31 + height)
        img = Image.frombytes(mode, (width, height), bytes(rng.getrandbits(8) for _ in range(width * height * len(mode))))
    else:
        img = Image.new(mode, (width, height), (200, 80, 40) if mode == "RGB" else 0)
    buf = io.BytesIO()
    save_kwargs = {"quality": 95} if fmt == "JPEG" else {}
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


@pytest.fixture
def make_image():
    """Factory: make_image(width, height, fmt="PNG", noise=False) -> bytes."""
    def _make(width: int, height: int, fmt: str = "PNG", noise: bool = False, mode: str = "RGB") -> bytes:
        return _image_bytes(width, height, fmt, mode=mode, noise=noise)
    return _make


# ── Pipeline fixtures ────────────────────────────────────────────


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def posix_platform() -> Platform:
    return Platform(name="posix", ffmpeg_path="ffmpeg", null_device="/dev/null")


@pytest.fixture
def pipeline(work_dir, fake_transcoder, posix_platform) -> CompressionPipeline:
    return CompressionPipeline(
        work_dir,
        platform=posix_platform,
        transcoder=fake_transcoder,
    )


@pytest.fixture
def settings(work_dir) -> Settings:
    return Settings(work_dir=work_dir, max_upload_mb=5)


# ── Flask fixtures ───────────────────────────────────────────────


@pytest.fixture
def app(settings, pipeline):
    """Flask test app wired to the fake transcoder."""
    from mediashrink.server.server import create_app

    app = create_app(settings, pipeline)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


def leftovers(work_dir: Path) -> List[str]:
    """Names of files remaining in the work dir."""
    return sorted(p.name for p in work_dir.iterdir())


@pytest.fixture
def remaining_files():
    """leftovers(work_dir) as a fixture for test modules."""
    return leftovers
