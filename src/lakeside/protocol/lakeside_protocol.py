"""Lakeside request builders and response decoding.

``LakesideProtocol`` is bound to one device (model + code). It knows which
packet family the model speaks, builds query/control packets for it, decodes
framed payloads with the family's schema and normalises any state reply into
a ``DeviceStatus``.

Packet shapes (field names from ``lakeside.protocol.messages``):

- state query:   ``<info>.type = 1``
- control:       ``<info>.type = 0``, ``<info>.packet.unknown1 = 100``,
                 ``<set>.command = 7`` and the requested ``<set>.state`` fields
- ping:          ``T1012Packet{sequence, code, ping.type = 0}``
"""

from __future__ import annotations

import logging

from google.protobuf.message import DecodeError
from pydantic import BaseModel

from lakeside.colors import RgbColors
from lakeside.devices.models import DeviceModel, PacketFamily, packet_family_of
from lakeside.protocol.exceptions import PacketDecodeError, UnsupportedModelError
from lakeside.protocol.messages import PACKET_CLASSES, Message, T1012Packet

logger = logging.getLogger(__name__)

INFO_TYPE_CONTROL = 0
INFO_TYPE_QUERY = 1
CONTROL_MARKER = 100
CONTROL_COMMAND = 7
PING_TYPE = 0

MODE_WHITE = 0
MODE_COLOR = 1

RESPONSE_SCHEMAS: dict[PacketFamily, type[Message]] = {
    PacketFamily.PLUG_SWITCH: PACKET_CLASSES["T1201Packet"],
    PacketFamily.WHITE_BULB: PACKET_CLASSES["T1012Packet"],
    PacketFamily.COLOR_BULB: PACKET_CLASSES["T1013Packet"],
}

# Ping replies are always decoded with the white bulb envelope, whatever the model
PING_SCHEMA: type[Message] = T1012Packet


class DeviceStatus(BaseModel):
    """Normalised device state decoded from a state reply.

    Fields the reply did not carry stay ``None``.
    """

    power: bool | None = None
    brightness: int | None = None
    temperature: int | None = None
    color_mode: bool | None = None
    red: int | None = None
    green: int | None = None
    blue: int | None = None

    @property
    def rgb(self) -> RgbColors | None:
        if self.red is None or self.green is None or self.blue is None:
            return None
        return RgbColors(red=self.red, green=self.green, blue=self.blue)


def deserialize(schema: type[Message], payload: bytes) -> Message:
    """Parse a codec payload with the given message schema."""
    message = schema()
    try:
        _ = message.ParseFromString(payload)
    except DecodeError as e:
        raise PacketDecodeError(f"codec_error: {e}", payload) from e
    return message


def _field_or_none(message: Message, field: str) -> int | None:
    return getattr(message, field) if message.HasField(field) else None


class LakesideProtocol:
    """Packet encoder/decoder for a single device."""

    def __init__(self, model: DeviceModel, code: str) -> None:
        self.model: DeviceModel = model
        self.code: str = code
        self.family: PacketFamily = packet_family_of(model)

    def response_schema(self) -> type[Message]:
        """Schema for this device's state replies.

        Raises:
            UnsupportedModelError: no schema registered for the model's family

        """
        schema = RESPONSE_SCHEMAS.get(self.family)
        if schema is None:
            raise UnsupportedModelError(self.model.value)
        return schema

    def _new_packet(self) -> Message:
        packet = self.response_schema()()
        packet.code = self.code
        return packet

    def _info(self, packet: Message) -> Message:
        if self.family is PacketFamily.PLUG_SWITCH:
            return packet.switchinfo
        return packet.bulbinfo

    def _control(self) -> tuple[Message, Message]:
        """Return (packet, set-state submessage) for a control request."""
        packet = self._new_packet()
        info = self._info(packet)
        info.type = INFO_TYPE_CONTROL
        info.packet.unknown1 = CONTROL_MARKER
        if self.family is PacketFamily.PLUG_SWITCH:
            control = info.packet.switchset
        elif self.family is PacketFamily.WHITE_BULB:
            control = info.packet.bulbset
        else:
            control = info.packet.control
        control.command = CONTROL_COMMAND
        return packet, control.state

    def encode_ping(self, sequence: int) -> Message:
        packet = PING_SCHEMA()
        packet.sequence = sequence
        packet.code = self.code
        packet.ping.type = PING_TYPE
        return packet

    def encode_state_query(self) -> Message:
        packet = self._new_packet()
        self._info(packet).type = INFO_TYPE_QUERY
        return packet

    def encode_power(self, on: bool) -> Message:
        packet, state = self._control()
        state.power = int(on)
        return packet

    def encode_white(self, brightness: int | None = None, temperature: int | None = None) -> Message:
        """Turn a bulb on in white mode with the given brightness and/or temperature."""
        if self.family is PacketFamily.PLUG_SWITCH:
            raise UnsupportedModelError(self.model.value)

        packet, state = self._control()
        state.power = 1
        if self.family is PacketFamily.COLOR_BULB:
            state.mode = MODE_WHITE
            values = state.white
        else:
            values = state
        if brightness is not None:
            values.brightness = brightness
        if temperature is not None:
            values.temperature = temperature
        return packet

    def encode_color(self, rgb: RgbColors, brightness: int | None = None) -> Message:
        if self.family is not PacketFamily.COLOR_BULB:
            raise UnsupportedModelError(self.model.value)

        packet, state = self._control()
        state.power = 1
        state.mode = MODE_COLOR
        state.color.red = rgb.red
        state.color.green = rgb.green
        state.color.blue = rgb.blue
        if brightness is not None:
            state.color.brightness = brightness
        return packet

    @staticmethod
    def serialize(packet: Message) -> bytes:
        return packet.SerializeToString()

    def parse_status(self, response: Message) -> DeviceStatus:
        """Normalise a state reply into a DeviceStatus.

        Raises:
            PacketDecodeError: reply carries no state section

        """
        info = self._info(response)
        if not info.HasField("packet"):
            raise PacketDecodeError("missing_state", response.SerializeToString())

        if self.family is PacketFamily.PLUG_SWITCH:
            return self._parse_switch(info.packet)
        if self.family is PacketFamily.WHITE_BULB:
            return self._parse_white_bulb(info.packet)
        return self._parse_color_bulb(info.packet)

    @staticmethod
    def _parse_switch(packet: Message) -> DeviceStatus:
        status = packet.switchstatus
        power = _field_or_none(status, "power")
        return DeviceStatus(power=None if power is None else bool(power))

    @staticmethod
    def _parse_white_bulb(packet: Message) -> DeviceStatus:
        state = packet.bulbstate
        power = _field_or_none(state, "power")
        return DeviceStatus(
            power=None if power is None else bool(power),
            brightness=_field_or_none(state, "brightness"),
            temperature=_field_or_none(state, "temperature"),
        )

    @staticmethod
    def _parse_color_bulb(packet: Message) -> DeviceStatus:
        state = packet.state
        power = _field_or_none(state, "power")
        color_mode = state.mode == MODE_COLOR
        status = DeviceStatus(
            power=None if power is None else bool(power),
            color_mode=color_mode,
            temperature=_field_or_none(state.white, "temperature"),
        )
        if state.HasField("color"):
            status.red = state.color.red
            status.green = state.color.green
            status.blue = state.color.blue
        brightness_source = state.color if color_mode else state.white
        status.brightness = _field_or_none(brightness_source, "brightness")
        logger.debug(
            "Decoded color bulb state",
            extra={"color_mode": color_mode, "power": status.power, "brightness": status.brightness},
        )
        return status
