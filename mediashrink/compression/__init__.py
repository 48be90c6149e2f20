"""
Compression Module — strategy selection, encoders and artifact lifecycle.
"""

from .artifacts import ArtifactRegistry
from .errors import (
    CompressionError,
    DecodeError,
    EncoderUnavailableError,
    InputRetrievalError,
    ResponseWriteError,
    StorageError,
    TranscodeError,
    TranscodeTimeoutError,
    UnsupportedFormatError,
)
from .selector import select_kind

__all__ = [
    "ArtifactRegistry",
    "CompressionError",
    "DecodeError",
    "EncoderUnavailableError",
    "InputRetrievalError",
    "ResponseWriteError",
    "StorageError",
    "TranscodeError",
    "TranscodeTimeoutError",
    "UnsupportedFormatError",
    "select_kind",
]
