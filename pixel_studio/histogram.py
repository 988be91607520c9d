"""Histograms and histogram-based intensity correction."""
from __future__ import annotations

import logging

import numpy as np

from .bitmap import PortableBitmap
from .errors import RangeError

logger = logging.getLogger("pixel_studio")

BINS = 256


def _to_bins(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values * 255.0), 0, 255).astype(np.int64)


def channel_histograms(bitmap: PortableBitmap) -> np.ndarray:
    """Count 8-bit component values per channel.

    Returns:
        int64 array of shape (3, 256).
    """
    bins = _to_bins(bitmap.as_array()).reshape(-1, 3)
    return np.stack([np.bincount(bins[:, c], minlength=BINS) for c in range(3)])


def grey_histogram(bitmap: PortableBitmap) -> np.ndarray:
    """Count 8-bit grey values as defined by the bitmap's converter.

    Returns:
        int64 array of shape (256,).
    """
    grey = bitmap.converter.grey_value(bitmap.as_array())
    return np.bincount(_to_bins(grey).reshape(-1), minlength=BINS)


def _stretch_bounds(histogram: np.ndarray, ignored: float):
    """Return (low, high) bins after discarding ``ignored`` samples at each end."""
    from_bottom = np.cumsum(histogram)
    from_top = np.cumsum(histogram[::-1])
    low = int(np.argmax(from_bottom > ignored))
    high = int(BINS - 1 - np.argmax(from_top > ignored))
    return low, high


def correct_intensity(bitmap: PortableBitmap, ignore_proportion: float) -> PortableBitmap:
    """Stretch each channel so its populated range spans [0, 1].

    The given proportion of the darkest and of the brightest samples in
    each channel is ignored when locating the range, then clipped. A
    channel whose remaining range is empty is left unchanged.

    Args:
        bitmap: Source bitmap.
        ignore_proportion: Fraction in [0, 0.5) ignored at each end.

    Returns:
        New PortableBitmap.

    Raises:
        RangeError: If ignore_proportion is outside [0, 0.5).
    """
    if not 0.0 <= ignore_proportion < 0.5:
        raise RangeError(
            f"Ignore proportion must be in [0, 0.5), got {ignore_proportion}"
        )
    arr = bitmap.as_array().astype(np.float64)
    ignored = ignore_proportion * bitmap.width * bitmap.height
    histograms = channel_histograms(bitmap)

    out = arr.copy()
    for channel in range(3):
        low, high = _stretch_bounds(histograms[channel], ignored)
        logger.debug(f"Channel {channel}: stretching [{low}, {high}] to [0, 255]")
        if high <= low:
            continue
        lo, hi = low / 255.0, high / 255.0
        out[..., channel] = (arr[..., channel] - lo) / (hi - lo)
    return bitmap.derive(out)
