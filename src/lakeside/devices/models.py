"""Capability registry: device model -> category, capabilities and response schema.

All lookups are pure table reads. Capability gating in the facade uses
``CapabilitySet``; the ``is_*`` predicates and ``PacketFamily`` only choose
which message schema a response is decoded with.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from lakeside.devices.exceptions import UnknownModelError

__all__ = [
    "CAPABILITIES_BY_FAMILY",
    "CATEGORY_BY_MODEL",
    "PACKET_FAMILY_BY_MODEL",
    "CapabilitySet",
    "DeviceCategory",
    "DeviceModel",
    "PacketFamily",
    "capabilities_of",
    "category_of",
    "is_color_bulb",
    "is_plug_or_switch",
    "is_white_bulb",
    "packet_family_of",
    "parse_model",
]


class DeviceModel(str, Enum):
    """Vendor SKU codes."""

    # plugs
    T1201 = "T1201"
    T1202 = "T1202"
    T1203 = "T1203"
    # light switch
    T1211 = "T1211"
    # white bulbs
    T1011 = "T1011"
    T1012 = "T1012"
    # color bulb
    T1013 = "T1013"


class DeviceCategory(str, Enum):
    POWER_PLUG = "POWER_PLUG"
    SWITCH = "SWITCH"
    LIGHT_BULB = "LIGHT_BULB"


class PacketFamily(str, Enum):
    """Wire schema variant used to decode a device's responses."""

    PLUG_SWITCH = "T1201Packet"
    WHITE_BULB = "T1012Packet"
    COLOR_BULB = "T1013Packet"


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    """State dimensions a model exposes beyond power."""

    supports_brightness: bool = False
    supports_temperature: bool = False
    supports_colors: bool = False


CATEGORY_BY_MODEL: dict[DeviceModel, DeviceCategory] = {
    DeviceModel.T1201: DeviceCategory.POWER_PLUG,
    DeviceModel.T1202: DeviceCategory.POWER_PLUG,
    DeviceModel.T1203: DeviceCategory.POWER_PLUG,
    DeviceModel.T1211: DeviceCategory.SWITCH,
    DeviceModel.T1011: DeviceCategory.LIGHT_BULB,
    DeviceModel.T1012: DeviceCategory.LIGHT_BULB,
    DeviceModel.T1013: DeviceCategory.LIGHT_BULB,
}

PACKET_FAMILY_BY_MODEL: dict[DeviceModel, PacketFamily] = {
    DeviceModel.T1201: PacketFamily.PLUG_SWITCH,
    DeviceModel.T1202: PacketFamily.PLUG_SWITCH,
    DeviceModel.T1203: PacketFamily.PLUG_SWITCH,
    DeviceModel.T1211: PacketFamily.PLUG_SWITCH,
    DeviceModel.T1011: PacketFamily.WHITE_BULB,
    DeviceModel.T1012: PacketFamily.WHITE_BULB,
    DeviceModel.T1013: PacketFamily.COLOR_BULB,
}

_NO_CAPABILITIES = CapabilitySet()
_WHITE_BULB_CAPABILITIES = CapabilitySet(supports_brightness=True, supports_temperature=True)
_COLOR_BULB_CAPABILITIES = CapabilitySet(
    supports_brightness=True,
    supports_temperature=True,
    supports_colors=True,
)

CAPABILITIES_BY_FAMILY: dict[PacketFamily, CapabilitySet] = {
    PacketFamily.PLUG_SWITCH: _NO_CAPABILITIES,
    PacketFamily.WHITE_BULB: _WHITE_BULB_CAPABILITIES,
    PacketFamily.COLOR_BULB: _COLOR_BULB_CAPABILITIES,
}


def parse_model(model: DeviceModel | str) -> DeviceModel:
    """Normalise a model code, raising UnknownModelError for unknown SKUs."""
    if isinstance(model, DeviceModel):
        return model
    try:
        return DeviceModel(model)
    except ValueError:
        raise UnknownModelError(model) from None


def category_of(model: DeviceModel | str) -> DeviceCategory:
    return CATEGORY_BY_MODEL[parse_model(model)]


def packet_family_of(model: DeviceModel | str) -> PacketFamily:
    return PACKET_FAMILY_BY_MODEL[parse_model(model)]


def capabilities_of(model: DeviceModel | str) -> CapabilitySet:
    return CAPABILITIES_BY_FAMILY[packet_family_of(model)]


def is_white_bulb(model: DeviceModel | str) -> bool:
    return model in (DeviceModel.T1011, DeviceModel.T1012)


def is_color_bulb(model: DeviceModel | str) -> bool:
    return model == DeviceModel.T1013


def is_plug_or_switch(model: DeviceModel | str) -> bool:
    return model in (DeviceModel.T1201, DeviceModel.T1202, DeviceModel.T1203, DeviceModel.T1211)
