"""Colour space converters between device RGB and working colour spaces.

Every converter is a stateless singleton. Arrays passed to ``to_rgb`` and
``from_rgb`` have shape ``(..., 3)`` with components in [0, 1]; results are
float64 arrays of the same shape, clipped back into [0, 1].
"""
from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from .color import ColorTriple
from .errors import UnsupportedValueError

# Component permutations of (chroma, intermediate, zero) for hue sectors 0..5
_SECTOR_ORDER = np.array([
    [0, 1, 2],
    [1, 0, 2],
    [2, 0, 1],
    [2, 1, 0],
    [1, 2, 0],
    [0, 2, 1],
])

_EPSILON = 1e-6


def _components(values) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float64)
    if arr.shape[-1:] != (3,):
        raise UnsupportedValueError(
            f"Expected colour array with a trailing axis of 3, got shape {arr.shape}"
        )
    return arr


def _clip(arr: np.ndarray) -> np.ndarray:
    return np.clip(arr, 0.0, 1.0)


def _hue_to_rgb(hue: np.ndarray, chroma: np.ndarray, offset: np.ndarray) -> np.ndarray:
    """Assemble RGB from a hexagonal hue, chroma and lightness/value offset.

    Args:
        hue: Hue in [0, 1].
        chroma: Chroma per pixel.
        offset: Amount added to every channel after the sector permutation.

    Returns:
        Array of shape hue.shape + (3,), clipped to [0, 1].
    """
    hue = np.asarray(hue, dtype=np.float64)
    chroma = np.asarray(chroma, dtype=np.float64)
    offset = np.asarray(offset, dtype=np.float64)
    h6 = hue * 6.0
    intermediate = chroma * (1.0 - np.abs(np.mod(h6, 2.0) - 1.0))
    sector = np.clip(np.floor(h6).astype(np.int64), 0, 5)
    choices = [chroma, intermediate, np.zeros_like(chroma)]
    order = _SECTOR_ORDER[sector]
    rgb = np.stack(
        [np.choose(order[..., k], choices) for k in range(3)], axis=-1
    )
    return _clip(rgb + offset[..., None])


def _rgb_to_hue(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Return (hue in [0, 1], max, min) for RGB values."""
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    max_c = rgb.max(axis=-1)
    min_c = rgb.min(axis=-1)
    chroma = max_c - min_c
    safe = np.where(chroma > 0, chroma, 1.0)

    hue_r = np.mod((g - b) / safe, 6.0)
    hue_g = (b - r) / safe + 2.0
    hue_b = (r - g) / safe + 4.0
    hue = np.where(max_c == r, hue_r, np.where(max_c == g, hue_g, hue_b))
    hue = np.where(chroma > 0, hue, 0.0)
    return np.clip(hue / 6.0, 0.0, 1.0), max_c, min_c


class ColorConverter:
    """Base converter. Subclasses implement ``to_rgb`` and ``from_rgb``."""

    name = "base"
    channel_names: Tuple[str, str, str] = ("First", "Second", "Third")
    single_channel = False
    black = ColorTriple(0.0, 0.0, 0.0)
    white = ColorTriple(1.0, 1.0, 1.0)
    default = ColorTriple(0.0, 0.0, 0.0)

    def to_rgb(self, values) -> np.ndarray:
        raise NotImplementedError

    def from_rgb(self, values) -> np.ndarray:
        raise NotImplementedError

    def grey_value(self, values) -> np.ndarray:
        """Return the grey intensity in [0, 1] of working-space values."""
        return _components(values)[..., 0]

    def to_rgb_triple(self, color: ColorTriple) -> ColorTriple:
        return ColorTriple(*self.to_rgb(color.as_tuple()).tolist())

    def from_rgb_triple(self, color: ColorTriple) -> ColorTriple:
        return ColorTriple(*self.from_rgb(color.as_tuple()).tolist())

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class RgbConverter(ColorConverter):
    """Identity converter for device RGB."""

    name = "rgb"
    channel_names = ("Red", "Green", "Blue")

    def to_rgb(self, values) -> np.ndarray:
        return _clip(_components(values))

    def from_rgb(self, values) -> np.ndarray:
        return _clip(_components(values))

    def grey_value(self, values) -> np.ndarray:
        return _components(values).mean(axis=-1)


class GreyscaleConverter(ColorConverter):
    """Single intensity duplicated into all three channels."""

    name = "greyscale"
    channel_names = ("Grey", "Grey", "Grey")
    single_channel = True

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        return _clip(np.repeat(arr[..., :1], 3, axis=-1))

    def from_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        luma = arr @ np.array([0.299, 0.587, 0.114])
        return _clip(np.repeat(luma[..., None], 3, axis=-1))


class BlackAndWhiteConverter(ColorConverter):
    """Bi-level colour space: only pure black and pure white exist."""

    name = "black-and-white"
    channel_names = ("Bit", "Bit", "Bit")
    single_channel = True

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        return _clip(np.repeat(arr[..., :1], 3, axis=-1))

    def from_rgb(self, values) -> np.ndarray:
        """Accept only black and white.

        Raises:
            UnsupportedValueError: If any colour is neither pure black nor
                pure white.
        """
        arr = _components(values)
        is_black = np.all(np.abs(arr) < _EPSILON, axis=-1)
        is_white = np.all(np.abs(arr - 1.0) < _EPSILON, axis=-1)
        bad = ~(is_black | is_white)
        if np.any(bad):
            sample = arr[bad][0] if arr.ndim > 1 else arr
            raise UnsupportedValueError(
                f"Unsupported value: color should be either black or white, got {sample.tolist()}"
            )
        return np.repeat(is_white[..., None], 3, axis=-1).astype(np.float64)


class CmyConverter(ColorConverter):
    """Subtractive complement of RGB."""

    name = "cmy"
    channel_names = ("Cyan", "Magenta", "Yellow")
    black = ColorTriple(1.0, 1.0, 1.0)
    white = ColorTriple(0.0, 0.0, 0.0)
    default = ColorTriple(0.0, 0.0, 0.0)

    def to_rgb(self, values) -> np.ndarray:
        return _clip(1.0 - _components(values))

    def from_rgb(self, values) -> np.ndarray:
        return _clip(1.0 - _components(values))

    def grey_value(self, values) -> np.ndarray:
        return 1.0 - _components(values).mean(axis=-1)


class HslConverter(ColorConverter):
    """Hue, saturation, lightness.

    Hue is undefined at zero saturation and reads back as 0.
    """

    name = "hsl"
    channel_names = ("Hue", "Saturation", "Lightness")
    white = ColorTriple(0.0, 0.0, 1.0)
    default = ColorTriple(0.0, 1.0, 0.5)

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        hue, sat, light = arr[..., 0], arr[..., 1], arr[..., 2]
        chroma = (1.0 - np.abs(2.0 * light - 1.0)) * sat
        return _hue_to_rgb(hue, chroma, light - chroma / 2.0)

    def from_rgb(self, values) -> np.ndarray:
        arr = _clip(_components(values))
        hue, max_c, min_c = _rgb_to_hue(arr)
        chroma = max_c - min_c
        light = (max_c + min_c) / 2.0
        denom = 1.0 - np.abs(max_c + min_c - 1.0)
        sat = np.where(
            (chroma > 0) & (denom > 0), chroma / np.where(denom > 0, denom, 1.0), 0.0
        )
        return _clip(np.stack([hue, sat, light], axis=-1))

    def grey_value(self, values) -> np.ndarray:
        return _components(values)[..., 2]


class HsvConverter(ColorConverter):
    """Hue, saturation, value.

    Hue is undefined at zero saturation and reads back as 0.
    """

    name = "hsv"
    channel_names = ("Hue", "Saturation", "Value")
    white = ColorTriple(0.0, 0.0, 1.0)
    default = ColorTriple(0.0, 1.0, 1.0)

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        hue, sat, value = arr[..., 0], arr[..., 1], arr[..., 2]
        chroma = value * sat
        return _hue_to_rgb(hue, chroma, value - chroma)

    def from_rgb(self, values) -> np.ndarray:
        arr = _clip(_components(values))
        hue, max_c, min_c = _rgb_to_hue(arr)
        sat = np.where(max_c > 0, (max_c - min_c) / np.where(max_c > 0, max_c, 1.0), 0.0)
        return _clip(np.stack([hue, sat, max_c], axis=-1))

    def grey_value(self, values) -> np.ndarray:
        return _components(values)[..., 2]


class YCbCrConverter(ColorConverter):
    """Luma/chroma space parameterized by the Kr and Kb weights of a standard."""

    channel_names = ("Luma", "Blue", "Red")
    black = ColorTriple(0.0, 0.5, 0.5)
    white = ColorTriple(1.0, 0.5, 0.5)
    default = ColorTriple(0.5, 0.5, 0.5)

    def __init__(self, name: str, kr: float, kb: float) -> None:
        self.name = name
        self.kr = kr
        self.kb = kb
        self.kg = 1.0 - kr - kb

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        y, cb, cr = arr[..., 0], arr[..., 1], arr[..., 2]
        r = y + 2.0 * (1.0 - self.kr) * (cr - 0.5)
        b = y + 2.0 * (1.0 - self.kb) * (cb - 0.5)
        g = (y - self.kr * r - self.kb * b) / self.kg
        return _clip(np.stack([r, g, b], axis=-1))

    def from_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
        y = self.kr * r + self.kg * g + self.kb * b
        cb = 0.5 + (b - y) / (2.0 * (1.0 - self.kb))
        cr = 0.5 + (r - y) / (2.0 * (1.0 - self.kr))
        return _clip(np.stack([y, cb, cr], axis=-1))


class YCoCgConverter(ColorConverter):
    """Reversible luma / orange chroma / green chroma transform."""

    name = "ycocg"
    channel_names = ("Luma", "Orange", "Green")
    black = ColorTriple(0.0, 0.5, 0.5)
    white = ColorTriple(1.0, 0.5, 0.5)
    default = ColorTriple(0.5, 0.5, 0.5)

    def to_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        y, co, cg = arr[..., 0], arr[..., 1], arr[..., 2]
        r = y + co - cg
        g = y + cg - 0.5
        b = y - co - cg + 1.0
        return _clip(np.stack([r, g, b], axis=-1))

    def from_rgb(self, values) -> np.ndarray:
        arr = _components(values)
        r, g, b = arr[..., 0], arr[..., 1], arr[..., 2]
        y = 0.25 * r + 0.5 * g + 0.25 * b
        co = 0.5 + 0.5 * r - 0.5 * b
        cg = 0.5 - 0.25 * r + 0.5 * g - 0.25 * b
        return _clip(np.stack([y, co, cg], axis=-1))


RGB = RgbConverter()
GREYSCALE = GreyscaleConverter()
BLACK_AND_WHITE = BlackAndWhiteConverter()
CMY = CmyConverter()
HSL = HslConverter()
HSV = HsvConverter()
YCBCR_601 = YCbCrConverter("ycbcr601", kr=0.299, kb=0.114)
YCBCR_709 = YCbCrConverter("ycbcr709", kr=0.2126, kb=0.0722)
YCOCG = YCoCgConverter()

CONVERTERS: Dict[str, ColorConverter] = {
    converter.name: converter
    for converter in (
        RGB, GREYSCALE, BLACK_AND_WHITE, CMY, HSL, HSV, YCBCR_601, YCBCR_709, YCOCG
    )
}

_ALIASES = {
    "grey": "greyscale",
    "gray": "greyscale",
    "grayscale": "greyscale",
    "bw": "black-and-white",
    "blackandwhite": "black-and-white",
    "ycbcr": "ycbcr601",
    "ycbcr-601": "ycbcr601",
    "ycbcr-709": "ycbcr709",
}


def get_converter(name: str) -> ColorConverter:
    """Look up a converter by case-insensitive name.

    Args:
        name: Converter name, e.g. "rgb", "hsl", "ycbcr709", "grey".

    Returns:
        The shared converter instance.

    Raises:
        UnsupportedValueError: If no converter has that name.
    """
    key = name.strip().lower().replace("_", "-")
    key = _ALIASES.get(key, key)
    try:
        return CONVERTERS[key]
    except KeyError:
        available = ", ".join(sorted(CONVERTERS))
        raise UnsupportedValueError(
            f"Unknown color space: {name}. Available color spaces: {available}"
        ) from None
