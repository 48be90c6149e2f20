"""
Compression errors — one exception per failure class of the pipeline.

Every error carries the HTTP status the server answers with and a short
message that is safe to show to the uploader. Diagnostics (ffmpeg output,
Pillow tracebacks) stay on the exception for the server log.
"""

from __future__ import annotations

from typing import Optional


class CompressionError(Exception):
    """Base class for every failure that terminates a compression job."""

    status_code = 500
    message = "Compression failed"

    def __init__(self, message: Optional[str] = None, *, detail: str = ""):
        self.message = message or self.message
        self.detail = detail
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class InputRetrievalError(CompressionError):
    """The request did not carry a usable file."""

    status_code = 400
    message = "Error retrieving the file"


class UnsupportedFormatError(CompressionError):
    """Extension or decoded codec is outside the supported set."""

    status_code = 400
    message = "Unsupported format"


class StorageError(CompressionError):
    """Writing the upload or an output file failed."""

    message = "Error saving file"


class DecodeError(CompressionError):
    """The still image could not be decoded."""

    message = "Error decoding image"


class ResponseWriteError(CompressionError):
    """The compressed output vanished or became unreadable before streaming."""

    message = "Error reading output"


class TranscodeError(CompressionError):
    """The external transcoder exited with a non-zero status."""

    message = "Error compressing media"

    def __init__(
        self,
        stage: str,
        returncode: Optional[int] = None,
        output: str = "",
        message: Optional[str] = None,
    ):
        self.stage = stage
        self.returncode = returncode
        self.output = output
        super().__init__(message, detail=f"{stage} (rc={returncode})")

    def output_tail(self, limit: int = 500) -> str:
        """Last `limit` characters of the captured output."""
        return self.output[-limit:]


class TranscodeTimeoutError(TranscodeError):
    """The transcoder ran past its time budget and was killed."""

    message = "Media compression timed out"


class EncoderUnavailableError(TranscodeError):
    """The transcoder binary could not be started."""

    message = "Media encoder is not available on this server"
