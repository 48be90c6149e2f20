"""
Tests for the ffmpeg subprocess wrapper.

subprocess.run is mocked; no ffmpeg binary is needed.
"""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from mediashrink.compression.errors import (
    EncoderUnavailableError,
    TranscodeError,
    TranscodeTimeoutError,
)
from mediashrink.compression.transcoder import FFmpegTranscoder


class TestFFmpegTranscoder:

    def test_success_returns_combined_output(self):
        result = MagicMock(returncode=0, stdout="frame=10 fps=5")
        with patch("subprocess.run", return_value=result) as mock_run:
            out = FFmpegTranscoder("/usr/bin/ffmpeg", timeout=30).run(
                ["-i", "in.mp4", "out.mp4"], stage="video pass 2"
            )

        assert out == "frame=10 fps=5"
        args, kwargs = mock_run.call_args
        assert args[0] == ["/usr/bin/ffmpeg", "-i", "in.mp4", "out.mp4"]
        assert kwargs["stdout"] == subprocess.PIPE
        assert kwargs["stderr"] == subprocess.STDOUT
        assert kwargs["timeout"] == 30

    def test_nonzero_exit_carries_output(self):
        result = MagicMock(returncode=1, stdout="Unknown encoder 'libx264'")
        with patch("subprocess.run", return_value=result):
            with pytest.raises(TranscodeError) as exc:
                FFmpegTranscoder().run(["-i", "x"], stage="video pass 1")

        err = exc.value
        assert err.stage == "video pass 1"
        assert err.returncode == 1
        assert "Unknown encoder" in err.output
        assert err.status_code == 500

    def test_timeout(self):
        expired = subprocess.TimeoutExpired(["ffmpeg"], 5, output=b"partial")
        with patch("subprocess.run", side_effect=expired):
            with pytest.raises(TranscodeTimeoutError) as exc:
                FFmpegTranscoder(timeout=5).run(["-i", "x"], stage="gif palette")

        assert isinstance(exc.value, TranscodeError)
        assert exc.value.output == "partial"

    def test_missing_binary(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
            with pytest.raises(EncoderUnavailableError) as exc:
                FFmpegTranscoder("ffmpeg").run(["-version"], stage="version")

        assert isinstance(exc.value, TranscodeError)

    def test_one_process_per_call(self):
        result = MagicMock(returncode=0, stdout="")
        with patch("subprocess.run", return_value=result) as mock_run:
            transcoder = FFmpegTranscoder()
            transcoder.run(["a"], stage="one")
            transcoder.run(["b"], stage="two")

        assert mock_run.call_count == 2

    def test_output_tail(self):
        err = TranscodeError("stage", 1, "x" * 1000 + "END")
        assert err.output_tail(3) == "END"
