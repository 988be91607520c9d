"""Command-line interface for pixel studio."""
from __future__ import annotations

import logging
import math
import sys
import time
from typing import Callable, List, Optional, Sequence, TypeVar

from .bitmap import PortableBitmap
from .config import Config
from .converters import get_converter
from .dither import DITHER_METHODS, dither
from .errors import PixelStudioError
from .filters import FILTERS, apply_filter
from .gamma import apply_gamma
from .histogram import correct_intensity
from .reader import FORMATS, load_image, save_image
from .resample import METHODS, scale

logger = logging.getLogger("pixel_studio")

T = TypeVar("T")

_GAMMA_NAMES = {
    "srgb": math.inf,
    "inverse-srgb": 0.0,
}


def _parse_value(option: str, text: str, convert: Callable[[str], T]) -> T:
    try:
        return convert(text)
    except ValueError:
        raise PixelStudioError(f"Invalid {option} value: '{text}'") from None


def _parse_gamma(text: str) -> float:
    named = _GAMMA_NAMES.get(text.lower())
    if named is not None:
        return named
    return _parse_value("gamma", text, float)


def _choice(option: str, text: str, choices: Sequence[str]) -> str:
    value = text.lower()
    if value not in choices:
        raise PixelStudioError(f"{option} must be one of: {', '.join(choices)}")
    return value


def parse_args(argv: Sequence[str]) -> Config:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (including program name).

    Returns:
        Configured Config instance.

    Raises:
        PixelStudioError: If arguments are invalid.
    """
    args = list(argv[1:])
    config = Config()
    debug = False
    positional: List[str] = []

    flags = {"--preview": "preview", "--timing": "timing", "--adaptive": "adaptive_filtering"}

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in flags:
            setattr(config, flags[arg], True)
            i += 1
            continue
        if arg == "--debug":
            debug = True
            i += 1
            continue
        if not arg.startswith("--") or arg == "--":
            positional.append(arg)
            i += 1
            continue

        if i + 1 >= len(args):
            raise PixelStudioError(_usage_message())
        value = args[i + 1]
        if arg == "--format":
            config.output_format = _choice("format", value, FORMATS)
        elif arg == "--space":
            config.color_space = value.lower()
        elif arg == "--convert":
            config.target_space = value.lower()
        elif arg == "--gamma":
            config.gamma = _parse_gamma(value)
        elif arg == "--auto-contrast":
            config.auto_contrast = _parse_value("auto-contrast", value, float)
        elif arg == "--filter":
            config.filter = _choice("filter", value, FILTERS)
        elif arg == "--filter-param":
            config.filter_param = _parse_value("filter-param", value, float)
        elif arg == "--scale":
            config.scale = _parse_value("scale", value, float)
            if not config.scale > 0:
                raise PixelStudioError("scale must be a positive number")
        elif arg == "--interpolation":
            config.interpolation = _choice("interpolation", value, METHODS)
        elif arg == "--focal-x":
            config.focal_x = _parse_value("focal-x", value, float)
        elif arg == "--focal-y":
            config.focal_y = _parse_value("focal-y", value, float)
        elif arg == "--dither":
            config.dither = _choice("dither", value, DITHER_METHODS)
        elif arg == "--bit-depth":
            config.bit_depth = _parse_value("bit-depth", value, int)
            if not 1 <= config.bit_depth <= 8:
                raise PixelStudioError("bit-depth must be between 1 and 8")
        elif arg == "--seed":
            config.seed = _parse_value("seed", value, int)
        else:
            raise PixelStudioError(f"Unknown option: {arg}\n{_usage_message()}")
        i += 2

    if len(positional) != 2:
        raise PixelStudioError(_usage_message())
    config.input_path, config.output_path = positional

    # Validate colour space names early
    get_converter(config.color_space)
    if config.target_space is not None:
        get_converter(config.target_space)

    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(name)s: %(message)s"
        )
        logging.getLogger("pixel_studio").setLevel(logging.DEBUG)

    return config


def _usage_message() -> str:
    """Return usage message string."""
    return (
        "Usage: python -m pixel_studio input output "
        "[--format png|pnm|pnm-plain] [--space NAME] [--convert NAME] "
        "[--gamma VALUE|srgb|inverse-srgb] [--auto-contrast PROPORTION] "
        "[--filter NAME] [--filter-param VALUE] "
        "[--scale FACTOR] [--interpolation nearest|bilinear|lanczos3|bspline] "
        "[--focal-x X] [--focal-y Y] "
        "[--dither ordered|random|floyd-steinberg|atkinson] [--bit-depth N] [--seed N] "
        "[--adaptive] [--preview] [--timing] [--debug]"
    )


def process_bitmap(bitmap: PortableBitmap, config: Config) -> PortableBitmap:
    """Run the configured pixel operations on a bitmap.

    Operations run in this order: colour space conversion, gamma,
    intensity correction, filter, scaling, dithering.

    Args:
        bitmap: Source bitmap; not modified.
        config: Configuration options.

    Returns:
        Processed bitmap.
    """
    result = bitmap.copy()
    if config.target_space is not None:
        result.convert_to(get_converter(config.target_space))
    if config.gamma is not None:
        result = apply_gamma(result, config.gamma)
    if config.auto_contrast is not None:
        result = correct_intensity(result, config.auto_contrast)
    if config.filter is not None:
        result = apply_filter(result, config.filter, config.filter_param)
    if config.scale is not None:
        result = scale(
            result,
            config.scale,
            config.scale,
            config.interpolation,
            config.focal_x,
            config.focal_y,
        )
    if config.dither is not None:
        result = dither(result, config.dither, config.bit_depth, config.seed)
    return result


def process_image(config: Config) -> PortableBitmap:
    """Load, process and save an image file.

    Args:
        config: Configuration with input/output paths.

    Returns:
        The bitmap that was written.
    """
    print(f"Processing: {config.input_path}")
    t0 = time.perf_counter()
    bitmap = load_image(config.input_path, get_converter(config.color_space))
    t1 = time.perf_counter()
    logger.debug(
        f"Loaded {bitmap.width}x{bitmap.height} image as "
        f"{'/'.join(bitmap.converter.channel_names)}"
    )
    result = process_bitmap(bitmap, config)
    t2 = time.perf_counter()
    save_image(result, config.output_path, config.output_format, config.adaptive_filtering)
    t3 = time.perf_counter()

    if config.timing:
        print(
            "Timing (s): "
            f"load={t1 - t0:.4f}, "
            f"process={t2 - t1:.4f}, "
            f"save={t3 - t2:.4f}, "
            f"total={t3 - t0:.4f}"
        )

    print(f"Saved to: {config.output_path}")
    if config.preview:
        result.to_image().show(title="Pixel Studio Preview")
    return result


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments. Defaults to sys.argv.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    try:
        config = parse_args(sys.argv if argv is None else argv)
        process_image(config)
        return 0
    except PixelStudioError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Processing error: {exc}", file=sys.stderr)
        return 1
