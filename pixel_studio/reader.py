"""Format sniffing and file-level load/save helpers."""
from __future__ import annotations

import logging
import os
from typing import BinaryIO, Optional

from .bitmap import PortableBitmap
from .converters import RGB, ColorConverter
from .errors import FormatError, UnsupportedValueError
from .png import PNG_SIGNATURE, decode_png, encode_png, is_png_signature
from .pnm import PNM_MAGIC, binary_pnm_type, decode_pnm, encode_pnm, plain_pnm_type

logger = logging.getLogger("pixel_studio")

FORMATS = ("png", "pnm", "pnm-plain")

_EXTENSIONS = {
    ".png": "png",
    ".pnm": "pnm",
    ".pbm": "pnm",
    ".pgm": "pnm",
    ".ppm": "pnm",
}


def detect_format(data: bytes) -> str:
    """Return "pnm" or "png" for the leading bytes of a file.

    Raises:
        FormatError: If neither signature matches.
    """
    if data[:1] == PNM_MAGIC:
        return "pnm"
    if is_png_signature(data[:len(PNG_SIGNATURE)]):
        return "png"
    raise FormatError("Unknown format specification")


def read_image(stream: BinaryIO, converter: ColorConverter = RGB) -> PortableBitmap:
    """Read a PNM or PNG image from a binary stream.

    Args:
        stream: Binary stream positioned at the start of the file.
        converter: Working colour space of the returned bitmap.

    Returns:
        Decoded PortableBitmap.

    Raises:
        FormatError: If the format is not recognized or the file is malformed.
    """
    data = stream.read()
    fmt = detect_format(data)
    logger.debug(f"Detected {fmt} image ({len(data)} bytes)")
    if fmt == "pnm":
        return decode_pnm(data, converter)
    return decode_png(data, converter)


def load_image(path: str, converter: ColorConverter = RGB) -> PortableBitmap:
    """Read an image file from disk."""
    with open(path, "rb") as f:
        return read_image(f, converter)


def format_for_path(path: str) -> str:
    """Infer the output format from a file extension.

    Raises:
        UnsupportedValueError: If the extension is not recognized.
    """
    ext = os.path.splitext(path)[1].lower()
    try:
        return _EXTENSIONS[ext]
    except KeyError:
        raise UnsupportedValueError(
            f"Cannot infer image format from extension {ext!r}; "
            f"use one of: {', '.join(FORMATS)}"
        ) from None


def save_image(
    bitmap: PortableBitmap,
    path: str,
    fmt: Optional[str] = None,
    adaptive: bool = False,
) -> None:
    """Write a bitmap to disk.

    Args:
        bitmap: Bitmap to write.
        path: Destination file path.
        fmt: "png", "pnm" (raw) or "pnm-plain". Inferred from the extension
            when omitted.
        adaptive: Use per-row adaptive scanline filters for PNG output.

    Raises:
        UnsupportedValueError: If the format is unknown.
        RangeError: If the bitmap cannot be encoded; the file is left untouched.
    """
    fmt = fmt or format_for_path(path)
    if fmt not in FORMATS:
        raise UnsupportedValueError(
            f"Unknown output format: {fmt}. Available formats: {', '.join(FORMATS)}"
        )
    # Encode fully before touching the destination file
    if fmt == "png":
        data = encode_png(bitmap, adaptive=adaptive)
    elif fmt == "pnm":
        data = encode_pnm(bitmap, binary_pnm_type(bitmap))
    else:
        data = encode_pnm(bitmap, plain_pnm_type(bitmap))
    with open(path, "wb") as f:
        f.write(data)
    logger.debug(f"Saved {bitmap!r} to {path} as {fmt}")
