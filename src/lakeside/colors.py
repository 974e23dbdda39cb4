"""Color value types and RGB <-> HSL conversion."""

from __future__ import annotations

import colorsys
from typing import TypeVar

from pydantic import BaseModel, ConfigDict

__all__ = [
    "HslColors",
    "RgbColors",
    "clamp",
    "hsl_to_rgb",
    "rgb_to_hsl",
]


N = TypeVar("N", int, float)


def clamp(value: N, lower: N, upper: N) -> N:
    return max(lower, min(upper, value))


class RgbColors(BaseModel):
    """8-bit RGB triple."""

    model_config = ConfigDict(frozen=True)

    red: int
    green: int
    blue: int

    @classmethod
    def clamped(cls, red: int, green: int, blue: int) -> RgbColors:
        return cls(red=clamp(int(red), 0, 255), green=clamp(int(green), 0, 255), blue=clamp(int(blue), 0, 255))


class HslColors(BaseModel):
    """Hue in degrees [0, 360], saturation and lightness as fractions [0, 1]."""

    model_config = ConfigDict(frozen=True)

    hue: float
    saturation: float
    lightness: float

    @classmethod
    def clamped(cls, hue: float, saturation: float, lightness: float) -> HslColors:
        return cls(
            hue=clamp(float(hue), 0.0, 360.0),
            saturation=clamp(float(saturation), 0.0, 1.0),
            lightness=clamp(float(lightness), 0.0, 1.0),
        )


def rgb_to_hsl(rgb: RgbColors) -> HslColors:
    # colorsys works in HLS order on [0, 1] floats
    hue, lightness, saturation = colorsys.rgb_to_hls(rgb.red / 255, rgb.green / 255, rgb.blue / 255)
    return HslColors(hue=round(hue * 360, 3), saturation=round(saturation, 5), lightness=round(lightness, 5))


def hsl_to_rgb(hsl: HslColors) -> RgbColors:
    red, green, blue = colorsys.hls_to_rgb((hsl.hue % 360) / 360, hsl.lightness, hsl.saturation)
    return RgbColors.clamped(round(red * 255), round(green * 255), round(blue * 255))
