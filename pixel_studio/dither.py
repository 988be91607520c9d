"""Dithering: ordered (8x8 bias matrix), random threshold and error diffusion."""
from __future__ import annotations

import logging
import random
from typing import Optional, Sequence, Tuple

import numpy as np

from .bitmap import PortableBitmap
from .errors import RangeError

logger = logging.getLogger("pixel_studio")

# Signed bias in [-0.5, 0.5), indexed [x % 8, y % 8]
ORDERED_MATRIX = np.array([
    [-0.5, 0.25, -0.3125, 0.4375, -0.453125, 0.296875, -0.265625, 0.484375],
    [0.0, -0.25, 0.1875, -0.0625, 0.046875, -0.203125, 0.234375, -0.015625],
    [-0.375, 0.375, -0.4375, 0.3125, -0.328125, 0.421875, -0.390625, 0.359375],
    [0.125, -0.125, 0.0625, -0.1875, 0.171875, -0.078125, 0.109375, -0.140625],
    [-0.46875, 0.28125, -0.28125, 0.46875, -0.484375, 0.265625, -0.296875, 0.453125],
    [0.03125, -0.21875, 0.21875, -0.03125, 0.015625, -0.234375, 0.203125, -0.046875],
    [-0.34375, 0.40625, -0.40625, 0.34375, -0.359375, 0.390625, -0.421875, 0.328125],
    [0.15625, -0.09375, 0.09375, -0.15625, 0.140625, -0.109375, 0.078125, -0.171875],
])

# (dx, dy, weight) offsets receiving a share of the quantization error
FLOYD_STEINBERG_KERNEL: Sequence[Tuple[int, int, float]] = (
    (1, 0, 7 / 16),
    (-1, 1, 3 / 16),
    (0, 1, 5 / 16),
    (1, 1, 1 / 16),
)

ATKINSON_KERNEL: Sequence[Tuple[int, int, float]] = (
    (1, 0, 1 / 8),
    (2, 0, 1 / 8),
    (-1, 1, 1 / 8),
    (0, 1, 1 / 8),
    (1, 1, 1 / 8),
    (0, 2, 1 / 8),
)

DITHER_METHODS = ("ordered", "random", "floyd-steinberg", "atkinson")


def _check_bit_depth(bit_depth: int) -> int:
    if not 1 <= bit_depth <= 8:
        raise RangeError(f"Bit depth must be between 1 and 8, got {bit_depth}")
    return (1 << bit_depth) - 1


def quantize(values: np.ndarray, levels: int) -> np.ndarray:
    """Round components to the nearest of ``levels + 1`` evenly spaced values in [0, 1]."""
    return np.clip(np.rint(values * levels) / levels, 0.0, 1.0)


def dither_ordered(bitmap: PortableBitmap, bit_depth: int) -> PortableBitmap:
    """Ordered dithering with an 8x8 bias matrix scaled by 1 / bit_depth.

    Raises:
        RangeError: If bit_depth is outside 1..8.
    """
    levels = _check_bit_depth(bit_depth)
    arr = bitmap.as_array().astype(np.float64)
    xs = np.arange(bitmap.width) % 8
    ys = np.arange(bitmap.height) % 8
    bias = ORDERED_MATRIX[xs][:, ys].T / bit_depth
    return bitmap.derive(quantize(arr + bias[..., None], levels))


def dither_random(bitmap: PortableBitmap, seed: Optional[int] = None) -> PortableBitmap:
    """Binarize against a uniform random threshold per pixel.

    Pixels whose grey value is below the threshold become the converter's
    black, the rest its white.
    """
    rng = random.Random(seed)
    grey = bitmap.converter.grey_value(bitmap.as_array())
    thresholds = np.array(
        [rng.random() for _ in range(grey.size)], dtype=np.float64
    ).reshape(grey.shape)
    black = np.array(bitmap.converter.black.as_tuple())
    white = np.array(bitmap.converter.white.as_tuple())
    return bitmap.derive(np.where((grey < thresholds)[..., None], black, white))


def _diffuse(
    bitmap: PortableBitmap,
    bit_depth: int,
    kernel: Sequence[Tuple[int, int, float]],
) -> PortableBitmap:
    levels = _check_bit_depth(bit_depth)
    buffer = bitmap.as_array().astype(np.float64)
    out = np.empty_like(buffer)
    height, width = buffer.shape[:2]

    # Scan order matters: later rows consume error from earlier rows
    for y in range(height):
        for x in range(width):
            old = buffer[y, x]
            new = quantize(old, levels)
            out[y, x] = new
            error = old - new
            for dx, dy, weight in kernel:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and 0 <= ny < height:
                    buffer[ny, nx] += error * weight

    logger.debug(f"Error diffusion over {width}x{height} at {bit_depth} bit(s)")
    return bitmap.derive(out)


def dither_floyd_steinberg(bitmap: PortableBitmap, bit_depth: int) -> PortableBitmap:
    """Floyd-Steinberg error diffusion.

    Raises:
        RangeError: If bit_depth is outside 1..8.
    """
    return _diffuse(bitmap, bit_depth, FLOYD_STEINBERG_KERNEL)


def dither_atkinson(bitmap: PortableBitmap, bit_depth: int) -> PortableBitmap:
    """Atkinson error diffusion (6/8 of the error is propagated).

    Raises:
        RangeError: If bit_depth is outside 1..8.
    """
    return _diffuse(bitmap, bit_depth, ATKINSON_KERNEL)


def dither(
    bitmap: PortableBitmap,
    method: str,
    bit_depth: int = 1,
    seed: Optional[int] = None,
) -> PortableBitmap:
    """Dispatch to a dithering method by name.

    Raises:
        RangeError: If the method is unknown or bit_depth is out of range.
    """
    if method == "ordered":
        return dither_ordered(bitmap, bit_depth)
    if method == "random":
        return dither_random(bitmap, seed)
    if method == "floyd-steinberg":
        return dither_floyd_steinberg(bitmap, bit_depth)
    if method == "atkinson":
        return dither_atkinson(bitmap, bit_depth)
    raise RangeError(
        f"Unknown dithering method: {method}. Available methods: {', '.join(DITHER_METHODS)}"
    )
