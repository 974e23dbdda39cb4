"""Unit tests for color value types and conversion."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lakeside.colors import HslColors, RgbColors, clamp, hsl_to_rgb, rgb_to_hsl


@pytest.mark.parametrize(
    ("value", "lower", "upper", "expected"),
    [(5, 0, 10, 5), (-1, 0, 10, 0), (11, 0, 10, 10), (1.5, 0.0, 1.0, 1.0)],
)
def test_clamp(value, lower, upper, expected):
    assert clamp(value, lower, upper) == expected


def test_rgb_clamped():
    assert RgbColors.clamped(256, -3, 17) == RgbColors(red=255, green=0, blue=17)


def test_hsl_clamped():
    assert HslColors.clamped(400, -0.5, 2) == HslColors(hue=360.0, saturation=0.0, lightness=1.0)


def test_colors_are_frozen():
    rgb = RgbColors(red=1, green=2, blue=3)

    with pytest.raises(ValidationError):
        rgb.red = 9  # type: ignore[misc]


@pytest.mark.parametrize(
    ("rgb", "hsl"),
    [
        ((255, 0, 0), (0.0, 1.0, 0.5)),
        ((0, 255, 0), (120.0, 1.0, 0.5)),
        ((0, 0, 255), (240.0, 1.0, 0.5)),
        ((255, 255, 255), (0.0, 0.0, 1.0)),
        ((0, 0, 0), (0.0, 0.0, 0.0)),
    ],
)
def test_rgb_to_hsl(rgb: tuple[int, int, int], hsl: tuple[float, float, float]):
    result = rgb_to_hsl(RgbColors(red=rgb[0], green=rgb[1], blue=rgb[2]))

    assert (result.hue, result.saturation, result.lightness) == pytest.approx(hsl)


def test_hsl_to_rgb_primary():
    assert hsl_to_rgb(HslColors(hue=240, saturation=1, lightness=0.5)) == RgbColors(red=0, green=0, blue=255)


def test_hsl_to_rgb_wraps_full_circle():
    assert hsl_to_rgb(HslColors(hue=360, saturation=1, lightness=0.5)) == RgbColors(red=255, green=0, blue=0)


def test_conversion_is_stable_for_rgb():
    rgb = RgbColors(red=12, green=200, blue=99)

    assert hsl_to_rgb(rgb_to_hsl(rgb)) == rgb
