"""Pytest fixtures for pixel_studio tests."""
from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from pixel_studio import Config, PortableBitmap
from pixel_studio.converters import GREYSCALE, RGB


@pytest.fixture
def default_config() -> Config:
    """Return a default Config instance."""
    return Config()


@pytest.fixture
def checkerboard() -> PortableBitmap:
    """Create a 2x2 black/white checkerboard (black at the top left)."""
    pixels = np.array(
        [
            [[0, 0, 0], [1, 1, 1]],
            [[1, 1, 1], [0, 0, 0]],
        ],
        dtype=np.float32,
    )
    return PortableBitmap(pixels, RGB)


@pytest.fixture
def grey_ramp() -> PortableBitmap:
    """Create a 16x4 greyscale bitmap with one 8-bit step per column."""
    levels = np.arange(16, dtype=np.float32) * 17 / 255.0
    pixels = np.broadcast_to(levels[None, :, None], (4, 16, 3)).copy()
    return PortableBitmap(pixels, GREYSCALE)


@pytest.fixture
def color_bitmap() -> PortableBitmap:
    """Create a 5x3 RGB bitmap with distinct 8-bit colours per pixel."""
    rng = np.random.default_rng(1234)
    samples = rng.integers(0, 256, size=(3, 5, 3), dtype=np.uint8)
    return PortableBitmap.from_array(samples, RGB)


@pytest.fixture
def sample_image() -> Image.Image:
    """Create a 16x16 RGB image with four coloured quadrants."""
    arr = np.zeros((16, 16, 3), dtype=np.uint8)
    arr[:8, :8] = (255, 0, 0)
    arr[:8, 8:] = (0, 255, 0)
    arr[8:, :8] = (0, 0, 255)
    arr[8:, 8:] = (255, 255, 0)
    return Image.fromarray(arr, "RGB")


@pytest.fixture
def sample_png_bytes(sample_image: Image.Image) -> bytes:
    """Return sample image as PNG bytes written by Pillow."""
    buf = io.BytesIO()
    sample_image.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def solid_bitmap() -> PortableBitmap:
    """Create an 8x6 solid RGB bitmap of colour (200, 100, 50)."""
    samples = np.empty((6, 8, 3), dtype=np.uint8)
    samples[:] = (200, 100, 50)
    return PortableBitmap.from_array(samples, RGB)
