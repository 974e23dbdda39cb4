"""Async LAN driver for Lakeside protocol smart plugs, switches and light bulbs."""

from __future__ import annotations

__version__ = "0.3.0"

from lakeside.colors import HslColors, RgbColors
from lakeside.devices.device import DeviceEvent, LakesideDevice
from lakeside.devices.models import CapabilitySet, DeviceCategory, DeviceModel

__all__ = [
    "CapabilitySet",
    "DeviceCategory",
    "DeviceEvent",
    "DeviceModel",
    "HslColors",
    "LakesideDevice",
    "RgbColors",
    "__version__",
]
