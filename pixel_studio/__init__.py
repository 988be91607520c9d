"""Pixel Studio - image codecs and pixel processing.

This package reads and writes PNM (P1..P6) and PNG images into a
colour-space-agnostic pixel store and provides dithering, filtering,
resampling, gamma and histogram operations on it.

Example:
    from pixel_studio import HSL, load_image, save_image, gaussian_blur

    bitmap = load_image("input.png")
    bitmap.convert_to(HSL)
    blurred = gaussian_blur(bitmap, sigma=1.5)
    save_image(blurred, "output.ppm")

For debug logging, enable with:

    import logging
    logging.getLogger("pixel_studio").setLevel(logging.DEBUG)
    logging.basicConfig(level=logging.DEBUG)
"""
import logging

# Package logger - silent by default, enable with logging.getLogger("pixel_studio").setLevel(logging.DEBUG)
logger = logging.getLogger("pixel_studio")
logger.addHandler(logging.NullHandler())
from .bitmap import (
    INVERSE_SRGB_GAMMA,
    SRGB_GAMMA,
    UNKNOWN_GAMMA,
    PortableBitmap,
)
from .cli import main, process_bitmap, process_image
from .coefficient import Coefficient, denormalize, normalize
from .color import ColorChannel, ColorTriple
from .config import Config, validate_image_dimensions
from .converters import (
    BLACK_AND_WHITE,
    CMY,
    GREYSCALE,
    HSL,
    HSV,
    RGB,
    YCBCR_601,
    YCBCR_709,
    YCOCG,
    ColorConverter,
    get_converter,
)
from .dither import (
    dither_atkinson,
    dither_floyd_steinberg,
    dither_ordered,
    dither_random,
)
from .draw import draw_line
from .errors import (
    CorruptDataError,
    FormatError,
    PixelIndexError,
    PixelStudioError,
    RangeError,
    UnknownPnmTypeError,
    UnsupportedFeatureError,
    UnsupportedValueError,
)
from .filters import (
    box_blur,
    contrast_adaptive_sharpening,
    gaussian_blur,
    median_filter,
    otsu_level,
    otsu_threshold,
    sobel,
    threshold,
)
from .gamma import apply_gamma, assign_gamma, srgb_decode, srgb_encode
from .histogram import channel_histograms, correct_intensity, grey_histogram
from .png import read_png, save_png, write_png
from .pnm import read_pnm, save_pnm_binary, save_pnm_plain, write_pnm
from .reader import load_image, read_image, save_image
from .resample import scale

__all__ = [
    # Pixel store and colour model
    "PortableBitmap",
    "Coefficient",
    "ColorTriple",
    "ColorChannel",
    "ColorConverter",
    "normalize",
    "denormalize",
    "get_converter",
    "RGB",
    "GREYSCALE",
    "BLACK_AND_WHITE",
    "CMY",
    "HSL",
    "HSV",
    "YCBCR_601",
    "YCBCR_709",
    "YCOCG",
    "UNKNOWN_GAMMA",
    "INVERSE_SRGB_GAMMA",
    "SRGB_GAMMA",
    # Codecs
    "read_image",
    "load_image",
    "save_image",
    "read_pnm",
    "write_pnm",
    "save_pnm_binary",
    "save_pnm_plain",
    "read_png",
    "write_png",
    "save_png",
    # Algorithms
    "dither_ordered",
    "dither_random",
    "dither_floyd_steinberg",
    "dither_atkinson",
    "threshold",
    "otsu_level",
    "otsu_threshold",
    "median_filter",
    "gaussian_blur",
    "box_blur",
    "sobel",
    "contrast_adaptive_sharpening",
    "scale",
    "apply_gamma",
    "assign_gamma",
    "srgb_encode",
    "srgb_decode",
    "channel_histograms",
    "grey_histogram",
    "correct_intensity",
    "draw_line",
    # Errors and configuration
    "PixelStudioError",
    "FormatError",
    "CorruptDataError",
    "UnsupportedFeatureError",
    "UnknownPnmTypeError",
    "RangeError",
    "PixelIndexError",
    "UnsupportedValueError",
    "Config",
    "validate_image_dimensions",
    "main",
    "process_bitmap",
    "process_image",
]

__version__ = "1.0.0"
