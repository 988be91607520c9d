"""Tests for histogram module."""
from __future__ import annotations

import numpy as np
import pytest

from pixel_studio.bitmap import PortableBitmap
from pixel_studio.errors import RangeError
from pixel_studio.histogram import channel_histograms, correct_intensity, grey_histogram


class TestHistograms:
    """Tests for channel and grey histograms."""

    def test_channel_histograms(self, checkerboard: PortableBitmap) -> None:
        """Each channel should count two black and two white samples."""
        hist = channel_histograms(checkerboard)
        assert hist.shape == (3, 256)
        assert hist[:, 0].tolist() == [2, 2, 2]
        assert hist[:, 255].tolist() == [2, 2, 2]
        assert hist.sum() == 12

    def test_grey_histogram(self, grey_ramp: PortableBitmap) -> None:
        """Each ramp step should be counted once per row."""
        hist = grey_histogram(grey_ramp)
        assert hist.shape == (256,)
        assert hist[::17].tolist() == [4] * 16
        assert hist.sum() == 64

    def test_hidden_channel(self, solid_bitmap: PortableBitmap) -> None:
        """A hidden channel should be counted at its default value."""
        solid_bitmap.toggle_first_channel()
        hist = channel_histograms(solid_bitmap)
        assert hist[0, 0] == 48
        assert hist[1, 100] == 48


class TestCorrectIntensity:
    """Tests for correct_intensity."""

    def test_stretches_range(self) -> None:
        """A compressed range should be stretched to span [0, 1]."""
        levels = np.linspace(64, 192, 8, dtype=np.float32) / 255.0
        pixels = np.repeat(levels[None, :, None], 3, axis=-1)
        result = correct_intensity(PortableBitmap(pixels), 0.0).stored_array()
        assert result.min() == pytest.approx(0.0, abs=1e-6)
        assert result.max() == pytest.approx(1.0, abs=1e-6)

    def test_full_range_unchanged(self, grey_ramp: PortableBitmap) -> None:
        """A range that already spans [0, 1] should not change."""
        result = correct_intensity(grey_ramp, 0.0)
        np.testing.assert_allclose(result.stored_array(), grey_ramp.stored_array(), atol=1e-6)

    def test_ignores_tails(self, grey_ramp: PortableBitmap) -> None:
        """Ignored extremes should be clipped to black and white."""
        # 8 of 64 samples ignored at each end: the range becomes [34, 221]
        result = correct_intensity(grey_ramp, 0.125).stored_array()[0, :, 0]
        np.testing.assert_allclose(result[:3], 0.0, atol=1e-6)
        np.testing.assert_allclose(result[13:], 1.0, atol=1e-6)
        assert 0.0 < result[3] < result[12] < 1.0

    def test_flat_channel_unchanged(self, solid_bitmap: PortableBitmap) -> None:
        """A channel with a single value should be left as is."""
        result = correct_intensity(solid_bitmap, 0.1)
        assert result == solid_bitmap

    @pytest.mark.parametrize("proportion", [-0.1, 0.5, 0.9])
    def test_invalid_proportion(self, solid_bitmap: PortableBitmap, proportion: float) -> None:
        """Proportions outside [0, 0.5) should be rejected."""
        with pytest.raises(RangeError):
            correct_intensity(solid_bitmap, proportion)
