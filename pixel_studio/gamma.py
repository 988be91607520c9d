"""Gamma correction and gamma tag handling."""
from __future__ import annotations

import math

import numpy as np

from .bitmap import INVERSE_SRGB_GAMMA, UNKNOWN_GAMMA, PortableBitmap
from .errors import RangeError

SRGB_ENCODE_BREAKPOINT = 0.0031308
SRGB_DECODE_BREAKPOINT = 0.04045


def srgb_encode(values) -> np.ndarray:
    """Linear light to sRGB-encoded values."""
    arr = np.asarray(values, dtype=np.float64)
    encoded = np.where(
        arr > SRGB_ENCODE_BREAKPOINT,
        1.055 * np.power(np.maximum(arr, SRGB_ENCODE_BREAKPOINT), 1.0 / 2.4) - 0.055,
        arr * 12.92,
    )
    return np.clip(encoded, 0.0, 1.0)


def srgb_decode(values) -> np.ndarray:
    """sRGB-encoded values to linear light."""
    arr = np.asarray(values, dtype=np.float64)
    decoded = np.where(
        arr > SRGB_DECODE_BREAKPOINT,
        np.power((np.maximum(arr, SRGB_DECODE_BREAKPOINT) + 0.055) / 1.055, 2.4),
        arr / 12.92,
    )
    return np.clip(decoded, 0.0, 1.0)


def _check_gamma(value: float, allow_unknown: bool) -> float:
    value = float(value)
    if allow_unknown and value == UNKNOWN_GAMMA:
        return value
    if math.isnan(value) or value < 0:
        raise RangeError(f"Gamma must be 0, positive or +inf, got {value}")
    return value


def apply_gamma(bitmap: PortableBitmap, value: float) -> PortableBitmap:
    """Raise every visible component to ``value``.

    +inf applies the sRGB encoding curve and 0 its inverse. The gamma tag
    of the result is the source's tag.

    Raises:
        RangeError: If value is negative or NaN.
    """
    value = _check_gamma(value, allow_unknown=False)
    arr = bitmap.as_array().astype(np.float64)
    if math.isinf(value):
        out = srgb_encode(arr)
    elif value == INVERSE_SRGB_GAMMA:
        out = srgb_decode(arr)
    else:
        out = np.power(arr, value)
    return bitmap.derive(out)


def assign_gamma(bitmap: PortableBitmap, value: float) -> PortableBitmap:
    """Return a copy with a new gamma tag; pixel values are unchanged.

    Raises:
        RangeError: If value is not -1, 0, positive or +inf.
    """
    result = bitmap.copy()
    result.gamma = _check_gamma(value, allow_unknown=True)
    return result
