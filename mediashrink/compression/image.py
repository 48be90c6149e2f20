"""
Still-image strategy — resize and recompress in one pass with Pillow.

1. Decode, letting Pillow report the codec
2. Shrink the width by the profile's scale, height follows the aspect ratio
3. Re-encode in the same format family (lossy quality for JPEG/WebP,
   lossless for PNG). Content that decodes as another family than its
   extension names is rejected rather than saved under a misleading name

No intermediates: the only file written is the output.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from PIL import Image

from .errors import DecodeError, StorageError, UnsupportedFormatError
from .profiles import CompressionProfile, STANDARD

logger = logging.getLogger(__name__)

# Decoded format → encoder name. MPO is what Pillow reports for many
# camera JPEGs carrying a secondary preview image.
ENCODE_FORMATS = {
    "JPEG": "JPEG",
    "MPO": "JPEG",
    "PNG": "PNG",
    "WEBP": "WEBP",
}

# Output extension → the only encoder its file name may carry
EXTENSION_FORMATS = {
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".png": "PNG",
    ".webp": "WEBP",
}


def target_size(width: int, height: int, scale: float) -> Tuple[int, int]:
    """Shrunken dimensions: width floored, height rounded to keep aspect."""
    new_w = max(1, int(width * scale))
    new_h = max(1, round(height * new_w / width))
    return new_w, new_h


def _decode(input_path: Path) -> Image.Image:
    try:
        img = Image.open(input_path)
        img.load()
    except Image.DecompressionBombError as e:
        raise DecodeError("Image is too large to process", detail=str(e)) from e
    except (OSError, SyntaxError, ValueError) as e:
        raise DecodeError(detail=str(e)) from e
    return img


def compress_image(
    input_path: Path,
    output_path: Path,
    profile: CompressionProfile = STANDARD,
) -> Tuple[int, int]:
    """
    Shrink and recompress a still image.

    Args:
        input_path: Saved upload.
        output_path: Where to write the result (format follows the input).
        profile: Scale and quality constants.

    Returns:
        (width, height) of the written image.

    Raises:
        DecodeError: The file is not a readable image.
        UnsupportedFormatError: The decoded codec has no encoder here, or
            does not match the extension of the output.
        StorageError: The output could not be written.
    """
    img = _decode(input_path)
    source_format = (img.format or "").upper()
    fmt = ENCODE_FORMATS.get(source_format)
    if fmt is None:
        raise UnsupportedFormatError(
            f"Unsupported format '{source_format.lower() or 'unknown'}'"
        )
    expected = EXTENSION_FORMATS.get(output_path.suffix.lower())
    if expected is not None and fmt != expected:
        raise UnsupportedFormatError(
            f"Unsupported format '{source_format.lower()}' for '{output_path.suffix.lower()}'",
            detail=f"content decodes as {source_format}, extension expects {expected}",
        )

    w, h = img.size
    new_w, new_h = target_size(w, h, profile.image_scale)

    # Palette images would otherwise be resized with nearest-neighbour
    if img.mode == "P":
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    elif fmt == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
        img = img.convert("RGB")

    resized = img.resize((new_w, new_h), Image.LANCZOS)

    save_kwargs = {"optimize": True}
    if fmt in ("JPEG", "WEBP"):
        save_kwargs["quality"] = profile.jpeg_quality
    if fmt == "WEBP":
        save_kwargs["method"] = 4  # compression effort (0-6)

    try:
        resized.save(output_path, format=fmt, **save_kwargs)
    except OSError as e:
        raise StorageError("Error creating output file", detail=str(e)) from e

    logger.info(
        f"Image {w}x{h} ({source_format}) → {new_w}x{new_h} ({fmt}): "
        f"{input_path.stat().st_size:,} → {output_path.stat().st_size:,} bytes"
    )
    return new_w, new_h
