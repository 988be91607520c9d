"""Exception hierarchy for pixel studio."""
from __future__ import annotations


class PixelStudioError(Exception):
    """Base exception for pixel studio errors."""

    pass


class FormatError(PixelStudioError):
    """Malformed header, magic number or token."""

    pass


class CorruptDataError(PixelStudioError):
    """CRC mismatch, truncated chunk or otherwise damaged payload."""

    pass


class UnsupportedFeatureError(PixelStudioError):
    """Valid input that uses a feature this library does not implement."""

    pass


class UnknownPnmTypeError(FormatError, UnsupportedFeatureError):
    """PNM type digit outside '1'..'6'."""

    pass


class RangeError(PixelStudioError, ValueError):
    """Component, parameter or coordinate out of bounds."""

    pass


class PixelIndexError(RangeError, IndexError):
    """Pixel coordinate outside the bitmap."""

    pass


class UnsupportedValueError(PixelStudioError, ValueError):
    """Device colour outside a converter's representable domain."""

    pass
