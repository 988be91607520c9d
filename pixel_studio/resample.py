"""Image resampling around a focal point."""
from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Tuple

import numpy as np

from .bitmap import PortableBitmap
from .config import validate_image_dimensions
from .errors import RangeError

logger = logging.getLogger("pixel_studio")


def _lanczos3(x: np.ndarray) -> np.ndarray:
    x = np.abs(x)
    safe = np.where(x == 0, 1.0, x)
    value = 3.0 * np.sin(np.pi * safe) * np.sin(np.pi * safe / 3.0) / (np.pi * np.pi * safe * safe)
    return np.where(x == 0, 1.0, np.where(x < 3.0, value, 0.0))


def _bspline(x: np.ndarray) -> np.ndarray:
    x = np.abs(x)
    inner = 2.0 / 3.0 - x * x + 0.5 * x ** 3
    outer = (2.0 - x) ** 3 / 6.0
    return np.where(x < 1.0, inner, np.where(x < 2.0, outer, 0.0))


# Kernel function and (first tap offset, tap count) relative to floor(u)
_KERNELS: Dict[str, Tuple[Callable[[np.ndarray], np.ndarray], int, int]] = {
    "lanczos3": (_lanczos3, -2, 6),
    "bspline": (_bspline, -1, 4),
}

METHODS = ("nearest", "bilinear", "lanczos3", "bspline")


def source_coordinates(size: int, new_size: int, scale: float, focal: float) -> np.ndarray:
    """Map destination pixel centres to fractional source pixel indices.

    The point at normalized position ``focal`` stays fixed: it lies at the
    same fraction of both the source and the destination canvas.
    """
    dest = np.arange(new_size, dtype=np.float64)
    return (dest + 0.5 - focal * new_size) / scale + focal * size - 0.5


def _weights(size: int, coords: np.ndarray, method: str) -> np.ndarray:
    """Build a (len(coords), size) matrix of interpolation weights.

    Taps that fall outside the source are clamped to the nearest edge pixel.
    """
    matrix = np.zeros((len(coords), size), dtype=np.float64)
    rows = np.arange(len(coords))

    if method == "nearest":
        index = np.clip(np.floor(coords + 0.5).astype(np.int64), 0, size - 1)
        matrix[rows, index] = 1.0
        return matrix

    base = np.floor(coords).astype(np.int64)
    if method == "bilinear":
        frac = coords - base
        np.add.at(matrix, (rows, np.clip(base, 0, size - 1)), 1.0 - frac)
        np.add.at(matrix, (rows, np.clip(base + 1, 0, size - 1)), frac)
        return matrix

    kernel, first, taps = _KERNELS[method]
    for k in range(first, first + taps):
        index = base + k
        np.add.at(matrix, (rows, np.clip(index, 0, size - 1)), kernel(coords - index))
    totals = matrix.sum(axis=1, keepdims=True)
    return matrix / np.where(totals == 0, 1.0, totals)


def scale(
    bitmap: PortableBitmap,
    scale_x: float,
    scale_y: float,
    method: str = "bilinear",
    focal_x: float = 0.0,
    focal_y: float = 0.0,
) -> PortableBitmap:
    """Resample a bitmap by the given factors.

    Args:
        bitmap: Source bitmap.
        scale_x: Horizontal factor (> 0); new width is round(width * scale_x).
        scale_y: Vertical factor (> 0).
        method: "nearest", "bilinear", "lanczos3" or "bspline".
        focal_x: Normalized horizontal anchor in [0, 1].
        focal_y: Normalized vertical anchor in [0, 1].

    Returns:
        Resampled PortableBitmap, components clamped to [0, 1].

    Raises:
        RangeError: On a non-positive scale, a focal point outside [0, 1]
            or an unknown method.
    """
    if method not in METHODS:
        raise RangeError(
            f"Unknown interpolation method: {method}. Available methods: {', '.join(METHODS)}"
        )
    if not (scale_x > 0 and scale_y > 0) or math.isinf(scale_x) or math.isinf(scale_y):
        raise RangeError(f"Scale factors must be positive, got {scale_x}x{scale_y}")
    if not (0.0 <= focal_x <= 1.0 and 0.0 <= focal_y <= 1.0):
        raise RangeError(f"Focal point must be within [0, 1], got ({focal_x}, {focal_y})")

    new_width = max(1, int(round(bitmap.width * scale_x)))
    new_height = max(1, int(round(bitmap.height * scale_y)))
    validate_image_dimensions(new_width, new_height)
    logger.debug(
        f"Scaling {bitmap.width}x{bitmap.height} -> {new_width}x{new_height} ({method})"
    )

    wx = _weights(bitmap.width, source_coordinates(bitmap.width, new_width, scale_x, focal_x), method)
    wy = _weights(bitmap.height, source_coordinates(bitmap.height, new_height, scale_y, focal_y), method)

    arr = bitmap.as_array().astype(np.float64)
    rows = np.tensordot(wy, arr, axes=(1, 0))
    out = np.einsum("xj,yjc->yxc", wx, rows)
    return bitmap.derive(out)
