"""Configuration and validation for pixel studio."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .errors import RangeError, UnsupportedFeatureError

MAX_DIMENSION = 16384


@dataclass
class Config:
    """Configuration for the command-line processing pipeline."""

    input_path: str = ""
    output_path: str = ""
    output_format: Optional[str] = None  # png, pnm or pnm-plain; None infers from extension
    color_space: str = "rgb"
    target_space: Optional[str] = None
    preview: bool = False
    timing: bool = False

    # Pixel operations, applied in the order listed here
    gamma: Optional[float] = None
    auto_contrast: Optional[float] = None
    filter: Optional[str] = None
    filter_param: Optional[float] = None
    scale: Optional[float] = None
    interpolation: str = "bilinear"
    focal_x: float = 0.0
    focal_y: float = 0.0
    dither: Optional[str] = None
    bit_depth: int = 1
    seed: Optional[int] = None

    # Encoder options
    adaptive_filtering: bool = False


def validate_image_dimensions(width: int, height: int) -> None:
    """Validate image dimensions are within acceptable bounds.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        RangeError: If a dimension is zero or negative.
        UnsupportedFeatureError: If a dimension exceeds MAX_DIMENSION.
    """
    if width <= 0 or height <= 0:
        raise RangeError(
            f"Image dimensions must be positive, got {width}x{height}"
        )
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise UnsupportedFeatureError(
            f"Image dimensions too large (max {MAX_DIMENSION}x{MAX_DIMENSION})"
        )
