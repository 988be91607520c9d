"""Tests for converters module."""
from __future__ import annotations

import numpy as np
import pytest

from pixel_studio.color import ColorTriple
from pixel_studio.converters import (
    BLACK_AND_WHITE,
    CMY,
    CONVERTERS,
    GREYSCALE,
    HSL,
    HSV,
    RGB,
    YCBCR_601,
    YCBCR_709,
    YCOCG,
    get_converter,
)
from pixel_studio.errors import UnsupportedValueError

THREE_CHANNEL = [RGB, CMY, HSL, HSV, YCBCR_601, YCBCR_709, YCOCG]


@pytest.fixture
def random_rgb() -> np.ndarray:
    """Return 500 random RGB colours."""
    return np.random.default_rng(7).random((500, 3))


class TestRoundTrip:
    """Tests for the conversion round-trip law."""

    @pytest.mark.parametrize("converter", THREE_CHANNEL, ids=lambda c: c.name)
    def test_rgb_round_trip(self, converter, random_rgb: np.ndarray) -> None:
        """to_rgb(from_rgb(rgb)) should reproduce the RGB colour."""
        back = converter.to_rgb(converter.from_rgb(random_rgb))
        np.testing.assert_allclose(back, random_rgb, atol=1e-9)

    @pytest.mark.parametrize("converter", THREE_CHANNEL, ids=lambda c: c.name)
    def test_working_space_round_trip(self, converter, random_rgb: np.ndarray) -> None:
        """from_rgb(to_rgb(x)) should reproduce in-gamut working values."""
        working = converter.from_rgb(random_rgb)
        again = converter.from_rgb(converter.to_rgb(working))
        np.testing.assert_allclose(again, working, atol=1e-9)

    @pytest.mark.parametrize("converter", list(CONVERTERS.values()), ids=lambda c: c.name)
    def test_results_clipped(self, converter) -> None:
        """Results should always lie within [0, 1]."""
        values = np.array([[0.0, 1.0, 1.0], [1.0, 0.0, 1.0], [1.0, 1.0, 1.0]])
        out = converter.to_rgb(values)
        assert out.min() >= 0.0
        assert out.max() <= 1.0

    @pytest.mark.parametrize("converter", list(CONVERTERS.values()), ids=lambda c: c.name)
    def test_black_and_white_map_to_device(self, converter) -> None:
        """Each converter's black and white should be device black and white."""
        assert converter.to_rgb_triple(converter.black).as_tuple() == pytest.approx((0, 0, 0))
        assert converter.to_rgb_triple(converter.white).as_tuple() == pytest.approx((1, 1, 1))


class TestKnownValues:
    """Tests for specific conversion results."""

    def test_hsl_primaries(self) -> None:
        """Pure red, green and blue should have the expected HSL values."""
        hsl = HSL.from_rgb([[1, 0, 0], [0, 1, 0], [0, 0, 1]])
        np.testing.assert_allclose(
            hsl, [[0, 1, 0.5], [1 / 3, 1, 0.5], [2 / 3, 1, 0.5]], atol=1e-12
        )

    def test_hsv_grey_has_zero_saturation(self) -> None:
        """Greys should have zero saturation and hue."""
        hsv = HSV.from_rgb([0.4, 0.4, 0.4])
        np.testing.assert_allclose(hsv, [0, 0, 0.4])

    def test_hsl_extremes_have_zero_saturation(self) -> None:
        """Black and white should have zero saturation in HSL."""
        np.testing.assert_allclose(HSL.from_rgb([[0, 0, 0], [1, 1, 1]]), [[0, 0, 0], [0, 0, 1]])

    def test_ycbcr_weights(self) -> None:
        """Luma should use the standard's weights and chroma centre on 0.5."""
        assert YCBCR_601.from_rgb([1, 0, 0])[0] == pytest.approx(0.299)
        assert YCBCR_709.from_rgb([1, 0, 0])[0] == pytest.approx(0.2126)
        np.testing.assert_allclose(YCBCR_601.from_rgb([1, 1, 1]), [1, 0.5, 0.5])

    def test_ycocg_forward(self) -> None:
        """YCoCg of pure red should match the published transform."""
        np.testing.assert_allclose(YCOCG.from_rgb([1, 0, 0]), [0.25, 1.0, 0.25])

    def test_cmy_complement(self) -> None:
        """CMY should be the complement of RGB."""
        np.testing.assert_allclose(CMY.from_rgb([0.2, 0.6, 1.0]), [0.8, 0.4, 0.0])

    def test_greyscale_luma(self) -> None:
        """Greyscale should store BT.601 luma in every channel."""
        np.testing.assert_allclose(GREYSCALE.from_rgb([1, 0, 0]), [0.299] * 3)
        np.testing.assert_allclose(GREYSCALE.to_rgb([0.3, 0.9, 0.9]), [0.3] * 3)

    def test_black_and_white_accepts_extremes(self) -> None:
        """Black and white should pass through unchanged."""
        np.testing.assert_array_equal(
            BLACK_AND_WHITE.from_rgb([[0, 0, 0], [1, 1, 1]]), [[0, 0, 0], [1, 1, 1]]
        )

    def test_black_and_white_triple(self) -> None:
        """Single colours should convert to full triples."""
        assert BLACK_AND_WHITE.from_rgb_triple(ColorTriple(1, 1, 1)) == ColorTriple(1, 1, 1)
        assert BLACK_AND_WHITE.from_rgb([0, 0, 0]).shape == (3,)

    def test_black_and_white_rejects_grey(self) -> None:
        """Any other colour should raise UnsupportedValueError."""
        with pytest.raises(UnsupportedValueError):
            BLACK_AND_WHITE.from_rgb([[0, 0, 0], [0.5, 0.5, 0.5]])

    def test_triple_helpers(self) -> None:
        """Triple conversion should match array conversion."""
        color = ColorTriple(1.0, 0.0, 0.0)
        assert HSV.from_rgb_triple(color).as_tuple() == pytest.approx((0.0, 1.0, 1.0))


class TestGreyValue:
    """Tests for converter grey values."""

    def test_rgb_mean(self) -> None:
        """RGB grey should be the channel mean."""
        assert RGB.grey_value([0.3, 0.6, 0.9]) == pytest.approx(0.6)

    def test_cmy_inverted(self) -> None:
        """CMY grey should be 1 - mean."""
        assert CMY.grey_value([0.0, 0.0, 0.0]) == pytest.approx(1.0)

    def test_hsl_lightness(self) -> None:
        """HSL grey should be lightness, not hue."""
        assert HSL.grey_value([0.9, 1.0, 0.25]) == pytest.approx(0.25)

    def test_luma_spaces(self) -> None:
        """Luma spaces should use the first channel."""
        assert YCOCG.grey_value([0.7, 0.5, 0.5]) == pytest.approx(0.7)


class TestGetConverter:
    """Tests for get_converter."""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("rgb", RGB),
            ("RGB", RGB),
            ("gray", GREYSCALE),
            ("bw", BLACK_AND_WHITE),
            ("ycbcr709", YCBCR_709),
            ("ycbcr_601", YCBCR_601),
            ("HSV", HSV),
        ],
    )
    def test_lookup(self, name: str, expected) -> None:
        """Should find converters case-insensitively and through aliases."""
        assert get_converter(name) is expected

    def test_unknown(self) -> None:
        """Should raise UnsupportedValueError for unknown names."""
        with pytest.raises(UnsupportedValueError, match="Unknown color space"):
            get_converter("lab")
