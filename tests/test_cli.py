"""Tests for cli module."""
from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from pixel_studio.bitmap import PortableBitmap
from pixel_studio.cli import main, parse_args, process_bitmap, process_image
from pixel_studio.config import Config
from pixel_studio.converters import GREYSCALE, RGB
from pixel_studio.errors import PixelStudioError, UnsupportedValueError


class TestParseArgs:
    """Tests for parse_args function."""

    def test_minimal_args(self) -> None:
        """Should parse minimal required arguments."""
        config = parse_args(["prog", "input.png", "output.png"])
        assert config.input_path == "input.png"
        assert config.output_path == "output.png"
        assert config.color_space == "rgb"

    def test_preview_flag(self) -> None:
        """Should parse --preview flag."""
        config = parse_args(["prog", "in.png", "out.png", "--preview"])
        assert config.preview is True

    def test_timing_flag(self) -> None:
        """Should parse --timing flag."""
        config = parse_args(["prog", "in.png", "out.png", "--timing"])
        assert config.timing is True

    def test_adaptive_flag(self) -> None:
        """Should parse --adaptive flag."""
        config = parse_args(["prog", "in.png", "out.png", "--adaptive"])
        assert config.adaptive_filtering is True

    def test_format_option(self) -> None:
        """Should parse --format."""
        config = parse_args(["prog", "in.png", "out.txt", "--format", "PNM-Plain"])
        assert config.output_format == "pnm-plain"

    def test_invalid_format(self) -> None:
        """Should reject unknown output formats."""
        with pytest.raises(PixelStudioError, match="format must be one of"):
            parse_args(["prog", "in.png", "out.gif", "--format", "gif"])

    def test_color_spaces(self) -> None:
        """Should parse --space and --convert."""
        config = parse_args(["prog", "in.png", "out.png", "--space", "HSL", "--convert", "grey"])
        assert config.color_space == "hsl"
        assert config.target_space == "grey"

    def test_unknown_color_space(self) -> None:
        """Should reject unknown colour spaces."""
        with pytest.raises(UnsupportedValueError, match="Unknown color space"):
            parse_args(["prog", "in.png", "out.png", "--convert", "lab"])

    @pytest.mark.parametrize(
        "text,expected",
        [("2.2", 2.2), ("srgb", math.inf), ("inverse-srgb", 0.0), ("SRGB", math.inf)],
    )
    def test_gamma(self, text: str, expected: float) -> None:
        """Should parse numeric and named gamma values."""
        config = parse_args(["prog", "in.png", "out.png", "--gamma", text])
        assert config.gamma == expected

    def test_invalid_gamma(self) -> None:
        """Should reject a non-numeric gamma."""
        with pytest.raises(PixelStudioError, match="Invalid gamma value"):
            parse_args(["prog", "in.png", "out.png", "--gamma", "bright"])

    def test_filter_options(self) -> None:
        """Should parse --filter and --filter-param."""
        config = parse_args([
            "prog", "in.png", "out.png",
            "--filter", "gaussian",
            "--filter-param", "1.5",
        ])
        assert config.filter == "gaussian"
        assert config.filter_param == 1.5

    def test_unknown_filter(self) -> None:
        """Should reject unknown filters."""
        with pytest.raises(PixelStudioError, match="filter must be one of"):
            parse_args(["prog", "in.png", "out.png", "--filter", "emboss"])

    def test_scale_options(self) -> None:
        """Should parse scaling options."""
        config = parse_args([
            "prog", "in.png", "out.png",
            "--scale", "2",
            "--interpolation", "lanczos3",
            "--focal-x", "0.5",
            "--focal-y", "1",
        ])
        assert config.scale == 2.0
        assert config.interpolation == "lanczos3"
        assert config.focal_x == 0.5
        assert config.focal_y == 1.0

    @pytest.mark.parametrize("value", ["0", "-1", "big"])
    def test_invalid_scale(self, value: str) -> None:
        """Should reject non-positive or non-numeric scale factors."""
        with pytest.raises(PixelStudioError):
            parse_args(["prog", "in.png", "out.png", "--scale", value])

    def test_dither_options(self) -> None:
        """Should parse dithering options."""
        config = parse_args([
            "prog", "in.png", "out.png",
            "--dither", "floyd-steinberg",
            "--bit-depth", "2",
            "--seed", "7",
        ])
        assert config.dither == "floyd-steinberg"
        assert config.bit_depth == 2
        assert config.seed == 7

    @pytest.mark.parametrize("value", ["0", "9", "1.5"])
    def test_invalid_bit_depth(self, value: str) -> None:
        """Should reject bit depths outside 1..8."""
        with pytest.raises(PixelStudioError):
            parse_args(["prog", "in.png", "out.png", "--bit-depth", value])

    def test_unknown_option(self) -> None:
        """Should reject unknown options."""
        with pytest.raises(PixelStudioError, match="Unknown option"):
            parse_args(["prog", "in.png", "out.png", "--palette", "perler"])

    def test_missing_input(self) -> None:
        """Should require input path."""
        with pytest.raises(PixelStudioError, match="Usage"):
            parse_args(["prog"])

    def test_missing_output(self) -> None:
        """Should require output path."""
        with pytest.raises(PixelStudioError, match="Usage"):
            parse_args(["prog", "input.png"])

    def test_too_many_positional(self) -> None:
        """Should reject extra positional arguments."""
        with pytest.raises(PixelStudioError, match="Usage"):
            parse_args(["prog", "in.png", "out.png", "extra"])

    def test_missing_option_value(self) -> None:
        """Should require a value after an option."""
        with pytest.raises(PixelStudioError, match="Usage"):
            parse_args(["prog", "in.png", "out.png", "--dither"])

    def test_options_before_positionals(self) -> None:
        """Options may precede the paths."""
        config = parse_args(["prog", "--timing", "--gamma", "2", "in.png", "out.png"])
        assert config.input_path == "in.png"
        assert config.gamma == 2.0


class TestProcessBitmap:
    """Tests for process_bitmap function."""

    def test_no_operations(self, color_bitmap: PortableBitmap) -> None:
        """Default config should return an equal copy."""
        result = process_bitmap(color_bitmap, Config())
        assert result == color_bitmap
        assert result is not color_bitmap

    def test_convert(self, color_bitmap: PortableBitmap) -> None:
        """Should convert to the target space without touching the source."""
        result = process_bitmap(color_bitmap, Config(target_space="greyscale"))
        assert result.converter is GREYSCALE
        assert color_bitmap.converter is RGB

    def test_scale_then_dither(self, grey_ramp: PortableBitmap) -> None:
        """Should scale before dithering."""
        config = Config(scale=2.0, interpolation="bilinear", dither="ordered", bit_depth=1)
        result = process_bitmap(grey_ramp, config)
        assert result.size == (32, 8)
        assert set(np.unique(result.stored_array()).tolist()) <= {0.0, 1.0}

    def test_gamma_and_filter(self, grey_ramp: PortableBitmap) -> None:
        """Should apply gamma before thresholding."""
        # 0.6 ** 2 = 0.36 falls below the 128 threshold
        config = Config(gamma=2.0, filter="threshold", filter_param=128)
        result = process_bitmap(grey_ramp, config).stored_array()[0, :, 0]
        levels = (np.arange(16) * 17 / 255.0) ** 2
        np.testing.assert_array_equal(result, np.rint(levels * 255) >= 128)


class TestProcessImage:
    """Tests for process_image function."""

    def test_writes_output(self, tmp_path: Path, sample_image: Image.Image, capsys) -> None:
        """Should load, process and save an image."""
        src = tmp_path / "in.png"
        dst = tmp_path / "out.ppm"
        sample_image.save(src)
        config = Config(input_path=str(src), output_path=str(dst), scale=0.5, timing=True)
        result = process_image(config)

        assert result.size == (8, 8)
        assert dst.read_bytes().startswith(b"P6\n8 8\n255\n")
        out = capsys.readouterr().out
        assert "Processing:" in out
        assert "Timing" in out
        assert f"Saved to: {dst}" in out

    def test_color_space(self, tmp_path: Path, sample_image: Image.Image) -> None:
        """Should interpret input samples in the requested space."""
        src = tmp_path / "in.png"
        sample_image.save(src)
        config = Config(input_path=str(src), output_path=str(tmp_path / "out.png"), color_space="hsv")
        assert process_image(config).converter.name == "hsv"

    def test_debug_logs_channel_names(
        self, tmp_path: Path, sample_image: Image.Image, caplog
    ) -> None:
        """Should log the working space's channel names at DEBUG."""
        src = tmp_path / "in.png"
        sample_image.save(src)
        config = Config(input_path=str(src), output_path=str(tmp_path / "out.png"), color_space="hsl")
        with caplog.at_level(logging.DEBUG, logger="pixel_studio"):
            process_image(config)
        assert "Loaded 16x16 image as Hue/Saturation/Lightness" in caplog.text


class TestMain:
    """Tests for main function."""

    def test_success(self, tmp_path: Path, sample_image: Image.Image) -> None:
        """Should return 0 and write the output."""
        src = tmp_path / "in.png"
        dst = tmp_path / "out.pgm"
        sample_image.save(src)
        code = main(["prog", str(src), str(dst), "--convert", "grey", "--filter", "otsu"])
        assert code == 0
        assert dst.read_bytes().startswith(b"P5")

    def test_bad_arguments(self, capsys) -> None:
        """Should return 1 and print usage on bad arguments."""
        assert main(["prog"]) == 1
        assert "Usage" in capsys.readouterr().err

    def test_missing_file(self, tmp_path: Path, capsys) -> None:
        """Should return 1 when the input cannot be read."""
        code = main(["prog", str(tmp_path / "missing.png"), str(tmp_path / "out.png")])
        assert code == 1
        assert "Processing error" in capsys.readouterr().err

    def test_processing_error(self, tmp_path: Path, sample_image: Image.Image, capsys) -> None:
        """Should return 1 when an operation rejects its parameters."""
        src = tmp_path / "in.png"
        sample_image.save(src)
        code = main(["prog", str(src), str(tmp_path / "out.png"), "--scale", "2", "--focal-x", "3"])
        assert code == 1
        assert "Focal point" in capsys.readouterr().err
