"""Last-known device state held by the facade."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from lakeside.colors import HslColors, RgbColors
from lakeside.devices.exceptions import StateNotLoadedError

T = TypeVar("T")


@dataclass
class CachedDeviceState:
    """Cached state; ``None`` means unknown (never loaded or not reported).

    Values survive disconnects but are only authoritative after the first
    successful ``load_current_state()``.
    """

    power: bool | None = None
    brightness: int | None = None
    temperature: int | None = None
    color_mode: bool | None = None
    rgb: RgbColors | None = None
    hsl: HslColors | None = None
    loaded: bool = False

    def require(self, field: str, value: T | None) -> T:
        if value is None:
            raise StateNotLoadedError(field)
        return value
