"""Spatial filters.

Every filter reads the visible pixels of a bitmap and returns a new
bitmap. Neighbourhoods that extend past the image are filled with the
nearest edge pixel.
"""
from __future__ import annotations

import logging
import math

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .bitmap import PortableBitmap
from .converters import BLACK_AND_WHITE, GREYSCALE
from .errors import RangeError
from .histogram import grey_histogram

logger = logging.getLogger("pixel_studio")

FILTERS = ("threshold", "otsu", "median", "gaussian", "box", "sobel", "sharpen")

SOBEL_X = np.array([[-1, 0, 1], [-2, 0, 2], [-1, 0, 1]], dtype=np.float64)
SOBEL_Y = SOBEL_X.T


def _pad(arr: np.ndarray, radius: int) -> np.ndarray:
    pad = [(radius, radius), (radius, radius)] + [(0, 0)] * (arr.ndim - 2)
    return np.pad(arr, pad, mode="edge")


def _convolve_axis(arr: np.ndarray, kernel: np.ndarray, axis: int) -> np.ndarray:
    """Correlate a 1-D odd-length kernel along axis 0 or 1 with clamped edges."""
    radius = len(kernel) // 2
    pad = [(0, 0)] * arr.ndim
    pad[axis] = (radius, radius)
    padded = np.pad(arr, pad, mode="edge")
    size = arr.shape[axis]
    out = np.zeros_like(arr, dtype=np.float64)
    for offset, weight in enumerate(kernel):
        out += weight * np.take(padded, np.arange(offset, offset + size), axis=axis)
    return out


def _binarize(bitmap: PortableBitmap, white_mask: np.ndarray) -> PortableBitmap:
    black = np.array(bitmap.converter.black.as_tuple())
    white = np.array(bitmap.converter.white.as_tuple())
    return bitmap.derive(np.where(white_mask[..., None], white, black))


def _grey_bitmap(bitmap: PortableBitmap, grey: np.ndarray) -> PortableBitmap:
    """Express a grey intensity map in the bitmap's working space."""
    converter = GREYSCALE if bitmap.converter is BLACK_AND_WHITE else bitmap.converter
    rgb = np.repeat(np.clip(grey, 0.0, 1.0)[..., None], 3, axis=-1)
    return bitmap.derive(converter.from_rgb(rgb), converter)


def threshold(bitmap: PortableBitmap, level: int) -> PortableBitmap:
    """Binarize: pixels whose 8-bit grey value is >= level become white.

    Raises:
        RangeError: If level is outside 0..255.
    """
    if not 0 <= level <= 255:
        raise RangeError(f"Threshold must be between 0 and 255, got {level}")
    grey = bitmap.converter.grey_value(bitmap.as_array())
    return _binarize(bitmap, np.rint(grey * 255.0) >= level)


def otsu_level(histogram) -> int:
    """Return the grey level maximizing between-class variance.

    The returned level is the brightest bin of the background class.

    Args:
        histogram: 256 bin counts.
    """
    hist = np.asarray(histogram, dtype=np.float64)
    total = hist.sum()
    weighted_total = float(np.dot(np.arange(len(hist)), hist))

    sum_background = 0.0
    weight_background = 0.0
    best_variance = 0.0
    level = 0
    for i, count in enumerate(hist):
        weight_background += count
        if weight_background == 0:
            continue
        weight_foreground = total - weight_background
        if weight_foreground == 0:
            break
        sum_background += i * count
        mean_background = sum_background / weight_background
        mean_foreground = (weighted_total - sum_background) / weight_foreground
        variance = (
            weight_background * weight_foreground
            * (mean_background - mean_foreground) ** 2
        )
        if variance > best_variance:
            best_variance = variance
            level = i
    return level


def otsu_threshold(bitmap: PortableBitmap) -> PortableBitmap:
    """Binarize at the Otsu level; the background class becomes black."""
    level = otsu_level(grey_histogram(bitmap))
    logger.debug(f"Otsu threshold level: {level}")
    return threshold(bitmap, min(level + 1, 255))


def median_filter(bitmap: PortableBitmap, radius: int) -> PortableBitmap:
    """Replace each pixel by the window pixel of median grey value.

    Whole colour triples are selected, so no new colours are introduced.

    Raises:
        RangeError: If radius is negative.
    """
    if radius < 0:
        raise RangeError(f"Kernel radius must be non-negative, got {radius}")
    arr = bitmap.as_array()
    size = 2 * radius + 1
    windows = sliding_window_view(_pad(arr, radius), (size, size), axis=(0, 1))
    # (h, w, 3, size, size) -> (h, w, size * size, 3)
    windows = np.moveaxis(windows, 2, -1).reshape(arr.shape[0], arr.shape[1], size * size, 3)
    grey = bitmap.converter.grey_value(windows)
    order = np.argsort(grey, axis=-1, kind="stable")
    middle = order[..., size * size // 2]
    median = np.take_along_axis(windows, middle[..., None, None], axis=2)[:, :, 0]
    return bitmap.derive(median)


def gaussian_kernel(sigma: float) -> np.ndarray:
    """Normalized 1-D Gaussian of radius ceil(3 * sigma)."""
    radius = int(math.ceil(3 * sigma))
    offsets = np.arange(-radius, radius + 1, dtype=np.float64)
    kernel = np.exp(-0.5 * offsets ** 2 / sigma ** 2)
    return kernel / kernel.sum()


def gaussian_blur(bitmap: PortableBitmap, sigma: float) -> PortableBitmap:
    """Gaussian blur; the normalized 2-D kernel is applied as two 1-D passes.

    Raises:
        RangeError: If sigma is not positive.
    """
    if not sigma > 0:
        raise RangeError(f"Sigma must be positive, got {sigma}")
    kernel = gaussian_kernel(sigma)
    arr = bitmap.as_array().astype(np.float64)
    blurred = _convolve_axis(_convolve_axis(arr, kernel, 0), kernel, 1)
    return bitmap.derive(blurred)


def box_blur(bitmap: PortableBitmap, radius: int) -> PortableBitmap:
    """Mean over a (2 * radius + 1) square window.

    Raises:
        RangeError: If radius is negative.
    """
    if radius < 0:
        raise RangeError(f"Kernel radius must be non-negative, got {radius}")
    size = 2 * radius + 1
    kernel = np.full(size, 1.0 / size)
    arr = bitmap.as_array().astype(np.float64)
    return bitmap.derive(_convolve_axis(_convolve_axis(arr, kernel, 0), kernel, 1))


def sobel(bitmap: PortableBitmap) -> PortableBitmap:
    """Gradient magnitude of the grey value, clamped to [0, 1]."""
    grey = bitmap.converter.grey_value(bitmap.as_array())
    padded = _pad(grey, 1)
    height, width = grey.shape
    gx = np.zeros_like(grey)
    gy = np.zeros_like(grey)
    for dy in range(3):
        for dx in range(3):
            window = padded[dy:dy + height, dx:dx + width]
            gx += SOBEL_X[dy, dx] * window
            gy += SOBEL_Y[dy, dx] * window
    magnitude = np.minimum(np.hypot(gx, gy), 1.0)
    return _grey_bitmap(bitmap, magnitude)


def contrast_adaptive_sharpening(bitmap: PortableBitmap, sharpness: float) -> PortableBitmap:
    """Sharpen with a per-pixel weight derived from local contrast.

    Uses the cross-shaped neighbourhood (up, left, centre, right, down).
    Flat or already saturated areas receive less sharpening.

    Args:
        bitmap: Source bitmap.
        sharpness: 0 (mild) to 1 (strong).

    Raises:
        RangeError: If sharpness is outside [0, 1].
    """
    if not 0.0 <= sharpness <= 1.0:
        raise RangeError(f"Sharpness must be between 0 and 1, got {sharpness}")
    arr = bitmap.as_array().astype(np.float64)
    padded = _pad(arr, 1)
    height, width = arr.shape[:2]
    center = padded[1:1 + height, 1:1 + width]
    up = padded[0:height, 1:1 + width]
    down = padded[2:2 + height, 1:1 + width]
    left = padded[1:1 + height, 0:width]
    right = padded[1:1 + height, 2:2 + width]

    cross = np.stack([up, left, center, right, down])
    low = cross.min(axis=0)
    high = cross.max(axis=0)

    knob = -0.125 * (1.0 - sharpness) - 0.2 * sharpness
    safe_high = np.where(high > 0, high, 1.0)
    weight = np.where(
        high > 0, np.sqrt(np.minimum(low, 1.0 - high) / safe_high) * knob, 0.0
    )
    sharpened = (weight * (up + left + right + down) + center) / (4.0 * weight + 1.0)
    return bitmap.derive(sharpened)


def apply_filter(bitmap: PortableBitmap, name: str, param=None) -> PortableBitmap:
    """Dispatch to a filter by name.

    ``param`` is the level for threshold, the radius for median and box,
    sigma for gaussian and sharpness for sharpen.

    Raises:
        RangeError: If the filter is unknown or its parameter is invalid.
    """
    if name == "threshold":
        return threshold(bitmap, int(param if param is not None else 128))
    if name == "otsu":
        return otsu_threshold(bitmap)
    if name == "median":
        return median_filter(bitmap, int(param if param is not None else 1))
    if name == "gaussian":
        return gaussian_blur(bitmap, float(param if param is not None else 1.0))
    if name == "box":
        return box_blur(bitmap, int(param if param is not None else 1))
    if name == "sobel":
        return sobel(bitmap)
    if name == "sharpen":
        return contrast_adaptive_sharpening(bitmap, float(param if param is not None else 0.5))
    raise RangeError(f"Unknown filter: {name}. Available filters: {', '.join(FILTERS)}")
