"""PNG reader and writer.

Reads non-interlaced 8-bit PNG files of colour types 0 (greyscale),
2 (truecolour), 3 (indexed), 4 (greyscale + alpha) and 6 (truecolour +
alpha); alpha is discarded. Writes greyscale or truecolour files with a
single IDAT chunk.

File layout: an 8-byte signature followed by chunks of
``[length:4][type:4][data:length][crc32:4]`` with big-endian integers and
the CRC computed over ``type + data``.
"""
from __future__ import annotations

import logging
import math
import struct
import zlib
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Tuple

import numpy as np

from .bitmap import INVERSE_SRGB_GAMMA, UNKNOWN_GAMMA, PortableBitmap
from .config import validate_image_dimensions
from .converters import RGB, ColorConverter
from .errors import (
    CorruptDataError,
    FormatError,
    RangeError,
    UnsupportedFeatureError,
)

logger = logging.getLogger("pixel_studio")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IEND_CHUNK = b"\x00\x00\x00\x00IEND\xaeB`\x82"

FILTER_NONE = 0
FILTER_SUB = 1
FILTER_UP = 2
FILTER_AVERAGE = 3
FILTER_PAETH = 4
FILTER_TYPES = (FILTER_NONE, FILTER_SUB, FILTER_UP, FILTER_AVERAGE, FILTER_PAETH)

COLOR_GREYSCALE = 0
COLOR_TRUECOLOR = 2
COLOR_INDEXED = 3
COLOR_GREYSCALE_ALPHA = 4
COLOR_TRUECOLOR_ALPHA = 6

SAMPLES_PER_PIXEL = {
    COLOR_GREYSCALE: 1,
    COLOR_TRUECOLOR: 3,
    COLOR_INDEXED: 1,
    COLOR_GREYSCALE_ALPHA: 2,
    COLOR_TRUECOLOR_ALPHA: 4,
}

GAMMA_SCALE = 100000
SRGB_GAMMA_VALUES = (45454, 45455, 45456)
_INVERSE_SRGB_GAMMA_CHUNK = 45455
_SRGB_GAMMA_CHUNK = 220000


def crc32(data: bytes, value: int = 0) -> int:
    """CRC-32 (reflected polynomial 0xEDB88320) as used by PNG and zlib."""
    return zlib.crc32(data, value) & 0xFFFFFFFF


def is_png_signature(data: bytes) -> bool:
    return data[:8] == PNG_SIGNATURE


@dataclass
class PngHeader:
    """Decoded IHDR fields."""

    width: int
    height: int
    bit_depth: int
    color_type: int
    compression: int
    filter_method: int
    interlace: int

    @property
    def bytes_per_pixel(self) -> int:
        return SAMPLES_PER_PIXEL[self.color_type] * self.bit_depth // 8


def iter_chunks(data: bytes, offset: int = len(PNG_SIGNATURE)) -> Iterator[Tuple[bytes, bytes]]:
    """Yield (type, data) for each chunk, verifying lengths and CRCs.

    Raises:
        CorruptDataError: If a chunk is truncated or its CRC does not match.
    """
    while offset < len(data):
        if offset + 8 > len(data):
            raise CorruptDataError("Truncated chunk header")
        length, chunk_type = struct.unpack_from(">I4s", data, offset)
        start = offset + 8
        end = start + length
        if end + 4 > len(data):
            raise CorruptDataError(
                f"Truncated {chunk_type.decode('latin-1')} chunk"
            )
        chunk_data = data[start:end]
        (expected_crc,) = struct.unpack_from(">I", data, end)
        actual_crc = crc32(chunk_data, crc32(chunk_type))
        if actual_crc != expected_crc:
            raise CorruptDataError(
                f"Invalid crc in {chunk_type.decode('latin-1')} chunk: "
                f"expected {expected_crc:08x}, computed {actual_crc:08x}"
            )
        yield chunk_type, chunk_data
        offset = end + 4


def _parse_ihdr(chunk_data: bytes) -> PngHeader:
    if len(chunk_data) != 13:
        raise FormatError(f"IHDR chunk must be 13 bytes, got {len(chunk_data)}")
    header = PngHeader(*struct.unpack(">IIBBBBB", chunk_data))
    logger.debug(
        f"PNG IHDR: {header.width}x{header.height}, bit depth {header.bit_depth}, "
        f"color type {header.color_type}, interlace {header.interlace}"
    )
    if header.color_type not in SAMPLES_PER_PIXEL:
        raise FormatError(f"Invalid color type {header.color_type} in PNG file")
    if header.bit_depth != 8:
        raise UnsupportedFeatureError(
            f"Unsupported bit depth {header.bit_depth} in PNG file"
        )
    if header.interlace == 1:
        raise UnsupportedFeatureError("Interlacing method Adam7 is not supported")
    if header.interlace != 0:
        raise FormatError(f"Invalid interlace method {header.interlace}")
    if header.compression != 0 or header.filter_method != 0:
        raise UnsupportedFeatureError(
            "Unsupported compression or filter method in PNG file"
        )
    return header


def _parse_gama(chunk_data: bytes) -> float:
    if len(chunk_data) != 4:
        raise FormatError(f"gAMA chunk must be 4 bytes, got {len(chunk_data)}")
    (value,) = struct.unpack(">I", chunk_data)
    if value == 0:
        raise FormatError("gAMA value must be positive")
    if value in SRGB_GAMMA_VALUES:
        return INVERSE_SRGB_GAMMA
    return value / GAMMA_SCALE


def _parse_plte(chunk_data: bytes) -> np.ndarray:
    if not chunk_data or len(chunk_data) % 3 or len(chunk_data) > 256 * 3:
        raise FormatError(f"Invalid PLTE chunk length {len(chunk_data)}")
    return np.frombuffer(chunk_data, dtype=np.uint8).reshape(-1, 3)


def paeth_predictor(left: int, up: int, upper_left: int) -> int:
    """Return whichever neighbour is closest to ``left + up - upper_left``.

    Ties prefer left, then up.
    """
    estimate = left + up - upper_left
    dist_left = abs(estimate - left)
    dist_up = abs(estimate - up)
    dist_upper_left = abs(estimate - upper_left)
    if dist_left <= dist_up and dist_left <= dist_upper_left:
        return left
    if dist_up <= dist_upper_left:
        return up
    return upper_left


def unfilter_scanline(
    filter_type: int, scanline: bytes, prior: bytes, bpp: int
) -> bytearray:
    """Reconstruct one scanline.

    Args:
        filter_type: Filter tag byte of the row (0..4).
        scanline: Filtered bytes of the row, without the tag byte.
        prior: Reconstructed bytes of the previous row (zeros for row 0).
        bpp: Bytes per complete pixel.

    Returns:
        Reconstructed row bytes.

    Raises:
        CorruptDataError: If filter_type is not 0..4.
    """
    if filter_type == FILTER_NONE:
        return bytearray(scanline)

    if filter_type == FILTER_SUB:
        raw = np.frombuffer(scanline, dtype=np.uint8).astype(np.int64)
        # Each byte adds the reconstructed byte bpp to the left: a running sum per channel
        pixels = raw.reshape(-1, bpp)
        return bytearray((np.cumsum(pixels, axis=0) & 0xFF).astype(np.uint8).tobytes())

    if filter_type == FILTER_UP:
        raw = np.frombuffer(scanline, dtype=np.uint8)
        above = np.frombuffer(prior, dtype=np.uint8)
        return bytearray((raw + above).tobytes())

    row = bytearray(scanline)
    if filter_type == FILTER_AVERAGE:
        for i in range(len(row)):
            left = row[i - bpp] if i >= bpp else 0
            row[i] = (row[i] + ((left + prior[i]) >> 1)) & 0xFF
        return row

    if filter_type == FILTER_PAETH:
        for i in range(len(row)):
            if i >= bpp:
                predictor = paeth_predictor(row[i - bpp], prior[i], prior[i - bpp])
            else:
                predictor = prior[i]
            row[i] = (row[i] + predictor) & 0xFF
        return row

    raise CorruptDataError(f"Invalid scanline filter type {filter_type}")


def filter_scanline(filter_type: int, row: bytes, prior: bytes, bpp: int) -> bytes:
    """Apply a scanline filter; the inverse of ``unfilter_scanline``.

    Args:
        filter_type: 0..4.
        row: Raw row bytes.
        prior: Raw bytes of the previous row (zeros for row 0).
        bpp: Bytes per complete pixel.

    Returns:
        Filtered row bytes, without the tag byte.

    Raises:
        RangeError: If filter_type is not 0..4.
    """
    if filter_type not in FILTER_TYPES:
        raise RangeError(f"Invalid scanline filter type {filter_type}")
    raw = np.frombuffer(row, dtype=np.uint8).astype(np.int64)
    if filter_type == FILTER_NONE:
        return bytes(row)

    up = np.frombuffer(prior, dtype=np.uint8).astype(np.int64)
    left = np.zeros_like(raw)
    left[bpp:] = raw[:-bpp]
    upper_left = np.zeros_like(up)
    upper_left[bpp:] = up[:-bpp]

    if filter_type == FILTER_SUB:
        predicted = left
    elif filter_type == FILTER_UP:
        predicted = up
    elif filter_type == FILTER_AVERAGE:
        predicted = (left + up) >> 1
    else:
        estimate = left + up - upper_left
        dist_left = np.abs(estimate - left)
        dist_up = np.abs(estimate - up)
        dist_upper_left = np.abs(estimate - upper_left)
        predicted = np.where(
            (dist_left <= dist_up) & (dist_left <= dist_upper_left),
            left,
            np.where(dist_up <= dist_upper_left, up, upper_left),
        )
    return ((raw - predicted) & 0xFF).astype(np.uint8).tobytes()


def _select_filter(row: bytes, prior: bytes, bpp: int) -> Tuple[int, bytes]:
    """Pick the filter with the smallest sum of absolute signed residuals."""
    best_type = FILTER_TYPES[0]
    best = filter_scanline(best_type, row, prior, bpp)
    best_score = _residual_score(best)
    for filter_type in FILTER_TYPES[1:]:
        filtered = filter_scanline(filter_type, row, prior, bpp)
        score = _residual_score(filtered)
        if score < best_score:
            best_type, best, best_score = filter_type, filtered, score
    return best_type, best


def _residual_score(filtered: bytes) -> int:
    return int(np.abs(np.frombuffer(filtered, dtype=np.int8).astype(np.int64)).sum())


def _defilter(raw: bytes, header: PngHeader) -> np.ndarray:
    bpp = header.bytes_per_pixel
    stride = header.width * bpp
    expected = header.height * (stride + 1)
    if len(raw) < expected:
        raise CorruptDataError(
            f"Decompressed image data too short: expected {expected} bytes, got {len(raw)}"
        )

    out = bytearray()
    prior = bytes(stride)
    offset = 0
    for _ in range(header.height):
        filter_type = raw[offset]
        scanline = raw[offset + 1:offset + 1 + stride]
        reconstructed = unfilter_scanline(filter_type, scanline, prior, bpp)
        out += reconstructed
        prior = bytes(reconstructed)
        offset += stride + 1

    samples = np.frombuffer(bytes(out), dtype=np.uint8)
    return samples.reshape(header.height, header.width, SAMPLES_PER_PIXEL[header.color_type])


def decode_png(data: bytes, converter: ColorConverter = RGB) -> PortableBitmap:
    """Decode a PNG image.

    Samples are interpreted directly as components of ``converter``'s
    working space. The gAMA chunk, if present, becomes the bitmap's gamma
    tag; pixel values are not gamma corrected.

    Args:
        data: Complete file contents.
        converter: Working colour space of the returned bitmap.

    Returns:
        Decoded PortableBitmap.

    Raises:
        FormatError: On a bad signature or missing/invalid critical chunk.
        CorruptDataError: On CRC mismatch, truncation or damaged pixel data.
        UnsupportedFeatureError: On interlacing or a bit depth other than 8.
    """
    if not is_png_signature(data):
        raise FormatError("Invalid PNG signature")

    header: Optional[PngHeader] = None
    palette: Optional[np.ndarray] = None
    gamma = UNKNOWN_GAMMA
    idat: List[bytes] = []
    ended = False

    for chunk_type, chunk_data in iter_chunks(data):
        if chunk_type == b"IHDR":
            header = _parse_ihdr(chunk_data)
        elif chunk_type == b"gAMA":
            gamma = _parse_gama(chunk_data)
            logger.debug(f"PNG gAMA: {gamma}")
        elif chunk_type == b"PLTE":
            palette = _parse_plte(chunk_data)
        elif chunk_type == b"IDAT":
            idat.append(chunk_data)
        elif chunk_type == b"IEND":
            ended = True
            break
        else:
            logger.warning(
                f"Unsupported chunk format: {chunk_type.decode('latin-1')}; chunk ignored"
            )

    if not ended:
        raise CorruptDataError("Missing IEND chunk")
    if header is None:
        raise FormatError("Missing required IHDR chunk in PNG file")
    if not idat:
        raise FormatError("Missing required IDAT chunk in PNG file")
    if header.color_type == COLOR_INDEXED and palette is None:
        raise FormatError("Missing PLTE chunk for indexed PNG file")
    validate_image_dimensions(header.width, header.height)

    try:
        raw = zlib.decompress(b"".join(idat))
    except zlib.error as exc:
        raise CorruptDataError(f"Invalid compressed image data: {exc}") from exc

    samples = _defilter(raw, header)

    if header.color_type == COLOR_INDEXED and palette is not None:
        indices = samples[..., 0]
        if int(indices.max()) >= len(palette):
            raise CorruptDataError(
                f"Palette index {int(indices.max())} out of range ({len(palette)} entries)"
            )
        rgb = palette[indices]
    elif header.color_type in (COLOR_GREYSCALE, COLOR_GREYSCALE_ALPHA):
        rgb = np.repeat(samples[..., :1], 3, axis=2)
    else:
        rgb = samples[..., :3]

    values = rgb.astype(np.float32) / np.float32(255.0)
    return PortableBitmap(values, converter, gamma)


def read_png(stream: BinaryIO, converter: ColorConverter = RGB) -> PortableBitmap:
    """Read a PNG image from a binary stream."""
    return decode_png(stream.read(), converter)


def _chunk(chunk_type: bytes, chunk_data: bytes) -> bytes:
    return (
        struct.pack(">I", len(chunk_data))
        + chunk_type
        + chunk_data
        + struct.pack(">I", crc32(chunk_data, crc32(chunk_type)))
    )


def gamma_chunk_value(gamma: float) -> Optional[int]:
    """Return the gAMA chunk value for a gamma tag, or None to omit the chunk.

    The inverse sRGB tag (0) writes 45455, which reads back as 0. The sRGB
    tag (+inf) writes 220000, its nominal exponent, so it reads back as 2.2
    rather than +inf.

    Raises:
        RangeError: If the tag cannot be represented.
    """
    if gamma == UNKNOWN_GAMMA:
        return None
    if gamma == INVERSE_SRGB_GAMMA:
        return _INVERSE_SRGB_GAMMA_CHUNK
    if math.isinf(gamma) and gamma > 0:
        return _SRGB_GAMMA_CHUNK
    value = int(round(gamma * GAMMA_SCALE))
    if gamma < 0 or math.isnan(gamma) or not 0 < value <= 0xFFFFFFFF:
        raise RangeError(f"Gamma {gamma} cannot be stored in a gAMA chunk")
    return value


def encode_png(
    bitmap: PortableBitmap,
    gamma: Optional[float] = None,
    adaptive: bool = False,
    compression_level: int = 9,
) -> bytes:
    """Encode a bitmap as PNG.

    Args:
        bitmap: Source bitmap; stored components are written as-is.
        gamma: Gamma tag for the gAMA chunk. Defaults to the bitmap's tag;
            -1 omits the chunk.
        adaptive: Choose a scanline filter per row instead of always None.
        compression_level: zlib level 0..9.

    Returns:
        Encoded file contents.
    """
    samples = bitmap.to_samples()
    height, width, channels = samples.shape
    color_type = COLOR_GREYSCALE if channels == 1 else COLOR_TRUECOLOR

    rows = samples.reshape(height, width * channels)
    if adaptive:
        scanlines = bytearray()
        prior = bytes(width * channels)
        for row in rows:
            row_bytes = row.tobytes()
            filter_type, filtered = _select_filter(row_bytes, prior, channels)
            scanlines.append(filter_type)
            scanlines += filtered
            prior = row_bytes
        raw = bytes(scanlines)
    else:
        tags = np.full((height, 1), FILTER_NONE, dtype=np.uint8)
        raw = np.concatenate([tags, rows], axis=1).tobytes()

    ihdr = struct.pack(">IIBBBBB", width, height, 8, color_type, 0, 0, 0)
    parts = [PNG_SIGNATURE, _chunk(b"IHDR", ihdr)]

    gamma_value = gamma_chunk_value(bitmap.gamma if gamma is None else gamma)
    if gamma_value is not None:
        parts.append(_chunk(b"gAMA", struct.pack(">I", gamma_value)))

    parts.append(_chunk(b"IDAT", zlib.compress(raw, compression_level)))
    parts.append(IEND_CHUNK)
    logger.debug(
        f"Encoded PNG {width}x{height}, color type {color_type}, "
        f"{'adaptive' if adaptive else 'no'} filtering"
    )
    return b"".join(parts)


def write_png(
    bitmap: PortableBitmap,
    stream: BinaryIO,
    gamma: Optional[float] = None,
    adaptive: bool = False,
) -> None:
    """Write a bitmap to a binary stream as PNG."""
    stream.write(encode_png(bitmap, gamma, adaptive))


def save_png(bitmap: PortableBitmap, stream: BinaryIO, gamma: Optional[float] = None) -> None:
    """Write a bitmap as PNG with unfiltered scanlines and the given gamma tag."""
    write_png(bitmap, stream, gamma)
