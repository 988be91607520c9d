"""Colour-space-agnostic pixel store."""
from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np
from PIL import Image

from .color import ColorTriple
from .converters import RGB, ColorConverter
from .errors import PixelIndexError, RangeError

logger = logging.getLogger("pixel_studio")

# Gamma tags
UNKNOWN_GAMMA = -1.0
INVERSE_SRGB_GAMMA = 0.0
SRGB_GAMMA = math.inf


class PortableBitmap:
    """A width x height grid of colour triples bound to a converter.

    Pixels are stored as a float32 array of shape (height, width, 3) whose
    components are interpreted by ``converter``. Three bitmap-level
    visibility flags hide whole channels for preview and serialization;
    ``get_pixel`` substitutes the converter's default component for a
    hidden channel without discarding the stored data.

    The gamma tag is -1 for unknown, 0 for the inverse sRGB transfer,
    +inf for the sRGB transfer and any other value for a literal exponent.
    """

    def __init__(
        self,
        pixels,
        converter: ColorConverter = RGB,
        gamma: float = UNKNOWN_GAMMA,
        first_visible: bool = True,
        second_visible: bool = True,
        third_visible: bool = True,
    ) -> None:
        arr = np.array(pixels, dtype=np.float32)
        if arr.ndim != 3 or arr.shape[2] != 3:
            raise RangeError(
                f"Pixel array must have shape (height, width, 3), got {arr.shape}"
            )
        height, width = arr.shape[:2]
        if width <= 0 or height <= 0:
            raise RangeError("Bitmap cannot be empty")
        if np.isnan(arr).any() or arr.min() < 0.0 or arr.max() > 1.0:
            raise RangeError("Pixel components must be between 0 and 1")

        self._pixels = arr
        self._converter = converter
        self.gamma = float(gamma)
        self.first_visible = bool(first_visible)
        self.second_visible = bool(second_visible)
        self.third_visible = bool(third_visible)

    @classmethod
    def filled(
        cls,
        width: int,
        height: int,
        color: Optional[ColorTriple] = None,
        converter: ColorConverter = RGB,
        gamma: float = UNKNOWN_GAMMA,
    ) -> "PortableBitmap":
        """Create a bitmap with every pixel set to ``color`` (converter black by default)."""
        if width <= 0 or height <= 0:
            raise RangeError(f"Bitmap dimensions must be positive, got {width}x{height}")
        fill = color if color is not None else converter.black
        pixels = np.empty((height, width, 3), dtype=np.float32)
        pixels[:] = fill.as_tuple()
        return cls(pixels, converter, gamma)

    @classmethod
    def from_array(
        cls,
        pixels,
        converter: ColorConverter = RGB,
        gamma: float = UNKNOWN_GAMMA,
    ) -> "PortableBitmap":
        """Create a bitmap from a (height, width, 3) array, accepting uint8 samples.

        Integer arrays are divided by 255; float arrays must already be in [0, 1].
        """
        arr = np.asarray(pixels)
        if np.issubdtype(arr.dtype, np.integer):
            if arr.size and (arr.min() < 0 or arr.max() > 255):
                raise RangeError("Integer samples must be between 0 and 255")
            arr = arr.astype(np.float32) / np.float32(255.0)
        return cls(arr, converter, gamma)

    @classmethod
    def from_image(
        cls, img: Image.Image, converter: ColorConverter = RGB
    ) -> "PortableBitmap":
        """Build a bitmap from a Pillow image interpreted as device RGB.

        Args:
            img: Any Pillow image; alpha is discarded.
            converter: Working colour space of the returned bitmap.

        Returns:
            Bitmap whose pixels are ``converter.from_rgb`` of the image.
        """
        arr = np.asarray(img.convert("RGB"), dtype=np.float32) / 255.0
        return cls(converter.from_rgb(arr), converter)

    @property
    def width(self) -> int:
        return self._pixels.shape[1]

    @property
    def height(self) -> int:
        return self._pixels.shape[0]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def converter(self) -> ColorConverter:
        return self._converter

    @property
    def visible_channels(self) -> Tuple[bool, bool, bool]:
        return self.first_visible, self.second_visible, self.third_visible

    @property
    def all_channels_visible(self) -> bool:
        return all(self.visible_channels)

    @property
    def is_single_channel(self) -> bool:
        """True if serialization should emit one sample per pixel."""
        return self._converter.single_channel or sum(self.visible_channels) <= 1

    @property
    def one_channel_visible(self) -> bool:
        """True if the converter is single-channel or exactly one channel is visible."""
        return self._converter.single_channel or sum(self.visible_channels) == 1

    def _check_bounds(self, x: int, y: int) -> None:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise PixelIndexError(
                f"Pixel ({x}, {y}) is outside bitmap of size {self.width}x{self.height}"
            )

    def get_pixel(self, x: int, y: int) -> ColorTriple:
        """Return the pixel at (x, y) with hidden channels replaced by defaults.

        Raises:
            PixelIndexError: If (x, y) is outside the bitmap.
        """
        self._check_bounds(x, y)
        stored = self._pixels[y, x].tolist()
        if self.all_channels_visible:
            return ColorTriple(*stored)
        default = self._converter.default.as_tuple()
        return ColorTriple(*(
            value if visible else fallback
            for value, fallback, visible in zip(stored, default, self.visible_channels)
        ))

    def set_pixel(self, x: int, y: int, color: ColorTriple) -> None:
        """Overwrite the pixel at (x, y).

        Raises:
            PixelIndexError: If (x, y) is outside the bitmap.
        """
        self._check_bounds(x, y)
        self._pixels[y, x] = color.as_tuple()

    def convert_to(self, converter: ColorConverter) -> None:
        """Re-express every pixel in another working colour space.

        Pixels go through device RGB. If the target converter rejects any
        pixel the bitmap keeps its previous pixels and converter.

        Raises:
            UnsupportedValueError: If a pixel is outside the target domain.
        """
        if converter is self._converter:
            return
        rgb = self._converter.to_rgb(self._pixels)
        converted = converter.from_rgb(rgb)
        logger.debug(
            f"Converted {self.width}x{self.height} bitmap "
            f"from {self._converter.name} to {converter.name}"
        )
        self._pixels = converted.astype(np.float32)
        self._converter = converter

    def toggle_first_channel(self) -> None:
        self.first_visible = not self.first_visible

    def toggle_second_channel(self) -> None:
        self.second_visible = not self.second_visible

    def toggle_third_channel(self) -> None:
        self.third_visible = not self.third_visible

    def as_array(self) -> np.ndarray:
        """Return a float32 copy of the pixels with hidden channels set to defaults."""
        arr = self._pixels.copy()
        default = self._converter.default.as_tuple()
        for channel, visible in enumerate(self.visible_channels):
            if not visible:
                arr[..., channel] = default[channel]
        return arr

    def stored_array(self) -> np.ndarray:
        """Return a float32 copy of the stored pixels, ignoring visibility."""
        return self._pixels.copy()

    def single_channel_index(self) -> int:
        """Index of the channel serialized when only one sample per pixel is written."""
        if self._converter.single_channel:
            return 0
        for channel, visible in enumerate(self.visible_channels):
            if visible:
                return channel
        return 0

    def to_samples(self, collapse: bool = True) -> np.ndarray:
        """Return 8-bit samples for serialization.

        Args:
            collapse: Reduce to one sample per pixel when ``is_single_channel``.

        Returns:
            uint8 array of shape (height, width, 1) when collapsing a
            single-channel bitmap, else (height, width, 3). Hidden channels
            carry converter defaults.
        """
        samples = np.rint(self.as_array() * 255.0).clip(0, 255).astype(np.uint8)
        if collapse and self.is_single_channel:
            index = self.single_channel_index()
            return samples[..., index:index + 1]
        return samples

    def to_rgb_array(self) -> np.ndarray:
        """Return visible pixels converted to device RGB, shape (height, width, 3)."""
        return self._converter.to_rgb(self.as_array())

    def to_image(self) -> Image.Image:
        """Render visible pixels to an RGB Pillow image for previewing."""
        rgb = np.rint(self.to_rgb_array() * 255.0).clip(0, 255).astype(np.uint8)
        return Image.fromarray(rgb, "RGB")

    def derive(
        self, pixels, converter: Optional[ColorConverter] = None
    ) -> "PortableBitmap":
        """Create a new bitmap sharing this bitmap's gamma and visibility flags.

        Args:
            pixels: Array of shape (height, width, 3); values are clipped to [0, 1].
            converter: Converter for the new bitmap. Defaults to this bitmap's.

        Returns:
            New PortableBitmap.
        """
        arr = np.clip(np.asarray(pixels, dtype=np.float32), 0.0, 1.0)
        return PortableBitmap(
            arr,
            converter or self._converter,
            self.gamma,
            self.first_visible,
            self.second_visible,
            self.third_visible,
        )

    def copy(self) -> "PortableBitmap":
        return self.derive(self._pixels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PortableBitmap):
            return NotImplemented
        return (
            self._converter is other._converter
            and self._pixels.shape == other._pixels.shape
            and bool(np.array_equal(self._pixels, other._pixels))
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"PortableBitmap({self.width}x{self.height}, "
            f"converter={self._converter.name}, gamma={self.gamma})"
        )
