"""Normalized colour component scalar."""
from __future__ import annotations

import math

from .errors import RangeError

BYTE_MAX = 255


class Coefficient(float):
    """A float constrained to the closed range [0, 1].

    Coefficients describe one colour component independently of the bit
    depth it is eventually stored with. Being a ``float`` subclass they
    take part in ordinary arithmetic; results of arithmetic are plain
    floats and must be wrapped again to be validated.

    Raises:
        RangeError: On construction from a value outside [0, 1] or NaN.
    """

    __slots__ = ()

    def __new__(cls, value: float = 0.0) -> "Coefficient":
        number = float(value)
        if math.isnan(number) or number < 0.0 or number > 1.0:
            raise RangeError(f"Coefficient must be between 0 and 1, got {value!r}")
        return super().__new__(cls, number)

    def __repr__(self) -> str:
        return f"Coefficient({float(self)!r})"

    @classmethod
    def normalize(cls, value: int) -> "Coefficient":
        """Build a coefficient from a byte value."""
        return normalize(value)

    def denormalize(self) -> int:
        """Return the byte value closest to this coefficient."""
        return denormalize(self)


def normalize(value: int) -> Coefficient:
    """Convert a byte value (0..255) to a coefficient.

    Args:
        value: Integer sample in 0..255.

    Returns:
        ``value / 255`` as a Coefficient.

    Raises:
        RangeError: If value is outside 0..255.
    """
    if value < 0 or value > BYTE_MAX:
        raise RangeError(f"Byte value must be between 0 and {BYTE_MAX}, got {value}")
    return Coefficient(value / BYTE_MAX)


def denormalize(value: float) -> int:
    """Convert a coefficient to the nearest byte value (0..255).

    Rounding rather than truncation keeps ``denormalize(normalize(b)) == b``
    for every byte even when the coefficient went through float32 storage.
    """
    if math.isnan(value) or value < 0.0 or value > 1.0:
        raise RangeError(f"Coefficient must be between 0 and 1, got {value!r}")
    return int(round(value * BYTE_MAX))
