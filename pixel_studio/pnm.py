"""Portable anymap (PBM/PGM/PPM) reader and writer.

Supports the six Netpbm variants:

    P1 / P4  bi-level, plain / raw (1 is black, raw rows packed MSB first)
    P2 / P5  greyscale, plain / raw
    P3 / P6  RGB, plain / raw

Sample values up to 255 are supported; they are divided by the header's
maximum value to obtain coefficients.
"""
from __future__ import annotations

import logging
from typing import BinaryIO, List, Tuple

import numpy as np

from .bitmap import PortableBitmap
from .config import validate_image_dimensions
from .converters import RGB, ColorConverter
from .errors import (
    CorruptDataError,
    FormatError,
    UnknownPnmTypeError,
    UnsupportedFeatureError,
)

logger = logging.getLogger("pixel_studio")

PNM_MAGIC = b"P"
MAX_VALUE = 255
_WHITESPACE = b" \t\n\r"
_COMMENT = ord("#")

BILEVEL_TYPES = (1, 4)
GREYSCALE_TYPES = (2, 5)
RGB_TYPES = (3, 6)
PLAIN_TYPES = (1, 2, 3)


class _HeaderScanner:
    """Sequential reader over the ASCII header of a PNM file."""

    def __init__(self, data: bytes, position: int = 0) -> None:
        self.data = data
        self.position = position

    def _next_byte(self) -> int:
        if self.position >= len(self.data):
            raise FormatError("Unexpected end of data in PNM header")
        value = self.data[self.position]
        self.position += 1
        return value

    def next_int(self) -> int:
        """Read one decimal header token and the whitespace byte ending it.

        Raises:
            FormatError: On a non-digit character or end of data.
        """
        digits = bytearray()
        while True:
            value = self._next_byte()
            if value in _WHITESPACE:
                if digits:
                    return int(digits)
                continue
            if value == _COMMENT and not digits:
                while self._next_byte() != ord("\n"):
                    pass
                continue
            if not 48 <= value <= 57:
                raise FormatError(
                    f"Invalid character {chr(value)!r} in PNM header at byte {self.position - 1}"
                )
            digits.append(value)


def parse_header(data: bytes) -> Tuple[int, int, int, int, int]:
    """Parse a PNM header.

    Args:
        data: Complete file contents.

    Returns:
        Tuple of (type, width, height, max_value, data_offset).

    Raises:
        FormatError: If the magic number or a header token is malformed.
        UnknownPnmTypeError: If the type digit is outside '1'..'6'.
        UnsupportedFeatureError: If the maximum value exceeds 255.
    """
    if data[:1] != PNM_MAGIC:
        raise FormatError("Unknown format specification")
    if len(data) < 2:
        raise FormatError("Unexpected end of data in PNM header")
    type_digit = chr(data[1])
    if type_digit not in "123456":
        raise UnknownPnmTypeError(f"Unknown PNM type: P{type_digit}")
    pnm_type = int(type_digit)

    scanner = _HeaderScanner(data, 2)
    width = scanner.next_int()
    height = scanner.next_int()
    max_value = 1
    if pnm_type not in BILEVEL_TYPES:
        max_value = scanner.next_int()
        if max_value == 0:
            raise FormatError("PNM maximum value must be positive")
        if max_value > MAX_VALUE:
            raise UnsupportedFeatureError(
                f"PNM maximum value {max_value} exceeds {MAX_VALUE} (16-bit samples)"
            )
    return pnm_type, width, height, max_value, scanner.position


def _plain_samples(data: bytes, offset: int, count: int) -> np.ndarray:
    tokens = data[offset:].split()
    if len(tokens) < count:
        raise CorruptDataError(
            f"Expected {count} samples, found {len(tokens)}"
        )
    for token in tokens[:count]:
        if not token.isdigit():
            raise FormatError(f"Invalid sample token {token!r}")
    return np.array([int(token) for token in tokens[:count]], dtype=np.int64)


def _plain_bits(data: bytes, offset: int, count: int) -> np.ndarray:
    # P1 digits may be written without separators
    digits = data[offset:].translate(None, _WHITESPACE)
    if len(digits) < count:
        raise CorruptDataError(f"Expected {count} bits, found {len(digits)}")
    bits = np.frombuffer(digits, dtype=np.uint8, count=count) - ord("0")
    if bits.max(initial=0) > 1:
        raise FormatError("Plain PBM data may only contain '0' and '1'")
    return bits.astype(np.int64)


def _raw_bytes(data: bytes, offset: int, count: int) -> np.ndarray:
    available = len(data) - offset
    if available < count:
        raise CorruptDataError(
            f"Expected {count} bytes of pixel data, found {available}"
        )
    return np.frombuffer(data, dtype=np.uint8, count=count, offset=offset).astype(np.int64)


def _raw_bits(data: bytes, offset: int, width: int, height: int) -> np.ndarray:
    row_bytes = (width + 7) // 8
    packed = _raw_bytes(data, offset, row_bytes * height).astype(np.uint8)
    bits = np.unpackbits(packed.reshape(height, row_bytes), axis=1)[:, :width]
    return bits.astype(np.int64).reshape(-1)


def decode_pnm(data: bytes, converter: ColorConverter = RGB) -> PortableBitmap:
    """Decode a PNM image.

    Samples are interpreted directly as components of ``converter``'s
    working space. Greyscale and bi-level samples are duplicated into all
    three components.

    Args:
        data: Complete file contents.
        converter: Working colour space of the returned bitmap.

    Returns:
        Decoded PortableBitmap.

    Raises:
        FormatError: If the header or a sample token is malformed.
        CorruptDataError: If pixel data is missing.
        UnsupportedFeatureError: If the image uses 16-bit samples or is too large.
    """
    pnm_type, width, height, max_value, offset = parse_header(data)
    validate_image_dimensions(width, height)
    logger.debug(
        f"PNM header: P{pnm_type}, {width}x{height}, max value {max_value}"
    )

    channels = 3 if pnm_type in RGB_TYPES else 1
    count = width * height * channels

    if pnm_type == 1:
        samples = 1 - _plain_bits(data, offset, count)
    elif pnm_type == 4:
        samples = 1 - _raw_bits(data, offset, width, height)
    elif pnm_type in PLAIN_TYPES:
        samples = _plain_samples(data, offset, count)
    else:
        samples = _raw_bytes(data, offset, count)

    if samples.max(initial=0) > max_value:
        raise FormatError(
            f"Sample value {int(samples.max())} exceeds maximum value {max_value}"
        )

    values = samples.astype(np.float32) / np.float32(max_value)
    values = values.reshape(height, width, channels)
    if channels == 1:
        values = np.repeat(values, 3, axis=2)
    return PortableBitmap(values, converter)


def read_pnm(stream: BinaryIO, converter: ColorConverter = RGB) -> PortableBitmap:
    """Read a PNM image from a binary stream."""
    return decode_pnm(stream.read(), converter)


def _header(pnm_type: int, width: int, height: int) -> bytes:
    header = f"P{pnm_type}\n{width} {height}\n"
    if pnm_type not in BILEVEL_TYPES:
        header += f"{MAX_VALUE}\n"
    return header.encode("ascii")


def _bilevel_bits(bitmap: PortableBitmap) -> np.ndarray:
    """Return a (height, width) array where 1 marks a black pixel."""
    if bitmap.one_channel_visible:
        level = bitmap.as_array()[..., bitmap.single_channel_index()]
    else:
        level = bitmap.converter.grey_value(bitmap.as_array())
    return (level < 0.5).astype(np.uint8)


def _plain_rows(rows: np.ndarray) -> bytes:
    """Join per-pixel sample groups with spaces and rows with newlines."""
    lines: List[str] = []
    for row in rows:
        lines.append(" ".join(" ".join(str(v) for v in pixel) for pixel in row))
    return ("\n".join(lines) + "\n").encode("ascii")


def encode_pnm(bitmap: PortableBitmap, pnm_type: int) -> bytes:
    """Encode a bitmap as the given PNM type.

    Args:
        bitmap: Source bitmap; stored components are written as-is.
        pnm_type: 1..6.

    Returns:
        Encoded file contents.

    Raises:
        UnknownPnmTypeError: If pnm_type is outside 1..6.
    """
    if pnm_type not in (1, 2, 3, 4, 5, 6):
        raise UnknownPnmTypeError(f"Unknown PNM type: P{pnm_type}")

    header = _header(pnm_type, bitmap.width, bitmap.height)

    if pnm_type in BILEVEL_TYPES:
        bits = _bilevel_bits(bitmap)
        if pnm_type == 4:
            return header + np.packbits(bits, axis=1).tobytes()
        return header + _plain_rows(bits[..., None])

    samples = bitmap.to_samples(collapse=False)
    if pnm_type in GREYSCALE_TYPES or bitmap.converter.single_channel:
        index = bitmap.single_channel_index()
        samples = samples[..., index:index + 1]
    if pnm_type in RGB_TYPES and samples.shape[2] == 1:
        samples = np.repeat(samples, 3, axis=2)

    if pnm_type in PLAIN_TYPES:
        return header + _plain_rows(samples)
    return header + samples.tobytes()


def write_pnm(bitmap: PortableBitmap, stream: BinaryIO, pnm_type: int) -> None:
    """Write a bitmap to a binary stream as the given PNM type."""
    stream.write(encode_pnm(bitmap, pnm_type))


def binary_pnm_type(bitmap: PortableBitmap) -> int:
    """Raw PGM (5) when one channel is written, otherwise raw PPM (6)."""
    return 5 if bitmap.one_channel_visible else 6


def plain_pnm_type(bitmap: PortableBitmap) -> int:
    """Plain PGM (2) when one channel is written, otherwise plain PPM (3)."""
    return 2 if bitmap.one_channel_visible else 3


def save_pnm_binary(bitmap: PortableBitmap, stream: BinaryIO) -> None:
    """Write a raw PGM (P5) for single-channel bitmaps, otherwise a raw PPM (P6).

    With every channel hidden the converter defaults are written as P6.
    """
    write_pnm(bitmap, stream, binary_pnm_type(bitmap))


def save_pnm_plain(bitmap: PortableBitmap, stream: BinaryIO) -> None:
    """Write a plain PGM (P2) for single-channel bitmaps, otherwise a plain PPM (P3)."""
    write_pnm(bitmap, stream, plain_pnm_type(bitmap))
