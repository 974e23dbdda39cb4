"""Capability-gated device facade, one instance per physical device."""

from __future__ import annotations

from enum import Enum

from lakeside.colors import HslColors, RgbColors, clamp, hsl_to_rgb, rgb_to_hsl
from lakeside.const import DEVICE_PORT, LAKESIDE_KEEPALIVE_INTERVAL
from lakeside.correlation import correlation_context
from lakeside.devices.exceptions import UnsupportedCapabilityError
from lakeside.devices.models import (
    CapabilitySet,
    DeviceCategory,
    DeviceModel,
    capabilities_of,
    category_of,
    is_color_bulb,
    parse_model,
)
from lakeside.devices.state import CachedDeviceState
from lakeside.logging_abstraction import get_logger
from lakeside.protocol.cipher import PayloadCipher
from lakeside.protocol.lakeside_protocol import LakesideProtocol
from lakeside.transport.connection_manager import ConnectionManager
from lakeside.transport.exchange import ProtocolExchange
from lakeside.transport.socket_abstraction import TCPConnection
from lakeside.transport.types import ConnectionHandler, Transport

logger = get_logger(__name__)

BRIGHTNESS_RANGE = (0, 100)
TEMPERATURE_RANGE = (0, 100)

_DEFAULT_NAMES: dict[DeviceCategory, str] = {
    DeviceCategory.LIGHT_BULB: "Unnamed Light Bulb",
    DeviceCategory.SWITCH: "Unnamed Switch",
    DeviceCategory.POWER_PLUG: "Unnamed Power Plug",
}


class DeviceEvent(str, Enum):
    CONNECTION_STATE_CHANGED = "CONNECTION_STATE_CHANGED"


class LakesideDevice:
    """Public object for one plug, switch or bulb.

    Composes a ``ConnectionManager`` (transport lifecycle, keep-alive) with a
    ``ProtocolExchange`` (encrypted request/response) and keeps the last known
    state. Capability checks run before any network activity, and cached
    state only changes after the device accepted the request.

    Concurrency: operations on one device are not mutually exclusive. Callers
    must serialise their own calls (await one before starting the next); only
    the background keep-alive is synchronised against foreground traffic.

    Usage:
        >>> plug = LakesideDevice("T1201", code="0123456789abcdef", ip_address="192.168.1.50")
        >>> await plug.connect()
        >>> plug.is_power_on()
        False
        >>> await plug.set_power_on(True)
        True

    """

    def __init__(
        self,
        model: DeviceModel | str,
        code: str,
        ip_address: str,
        name: str | None = None,
        *,
        port: int = DEVICE_PORT,
        keepalive_interval: float = LAKESIDE_KEEPALIVE_INTERVAL,
        transport: Transport | None = None,
        cipher: PayloadCipher | None = None,
    ) -> None:
        # Validate before any transport exists
        self.model: DeviceModel = parse_model(model)
        self.device_type: DeviceCategory = category_of(self.model)
        self.capabilities: CapabilitySet = capabilities_of(self.model)
        self.code: str = code
        self.ip_address: str = ip_address
        self.name: str = name or _DEFAULT_NAMES[self.device_type]

        logger.debug(
            "Create device",
            extra={"model": self.model.value, "ip_address": ip_address, "name": self.name},
        )

        self.state: CachedDeviceState = CachedDeviceState()
        self.transport: Transport = transport if transport is not None else TCPConnection(ip_address, port)
        self.connection: ConnectionManager = ConnectionManager(
            self.transport,
            device_id=ip_address,
            keepalive_interval=keepalive_interval,
        )
        self.protocol: LakesideProtocol = LakesideProtocol(self.model, code)
        self.exchange: ProtocolExchange = ProtocolExchange(self.connection, self.protocol, cipher)
        self.connection.set_keepalive(self.exchange.get_sequence)

    def __str__(self) -> str:
        return f"{self.name} (Model: {self.model.value}, Code: {self.code}, IP Address: {self.ip_address})"

    def __repr__(self) -> str:
        return f"LakesideDevice({self.model.value}, {self.ip_address}, {self.connection.state.value})"

    # -- connectivity ------------------------------------------------------

    def on(self, event: DeviceEvent | str, handler: ConnectionHandler) -> None:
        """Attach an event handler; only CONNECTION_STATE_CHANGED exists."""
        if event == DeviceEvent.CONNECTION_STATE_CHANGED:
            self.connection.subscribe(handler)
        else:
            logger.error("Unknown event %s", event, extra={"device": str(self.ip_address)})

    def subscribe(self, handler: ConnectionHandler) -> None:
        self.connection.subscribe(handler)

    def is_connected(self) -> bool:
        return self.connection.is_connected()

    async def connect(self) -> None:
        """Open the connection, start keep-alive and load the current state."""
        with correlation_context():
            logger.info("Connecting", extra={"device": str(self)})
            await self.connection.connect()
            logger.debug("Loading current device state", extra={"ip_address": self.ip_address})
            await self.load_current_state()

    async def disconnect(self) -> None:
        """Close the connection; cached state stays readable but stale."""
        with correlation_context():
            logger.info("Disconnecting", extra={"ip_address": self.ip_address})
            await self.connection.disconnect()
            self.exchange.reset_sequence()

    # -- state ---------------------------------------------------------------

    async def load_current_state(self) -> None:
        """Query the device and refresh the fields this model exposes."""
        with correlation_context():
            response = await self.exchange.send_and_await_response(self.protocol.encode_state_query())
            status = self.protocol.parse_status(response)

            self.state.power = status.power
            if self.capabilities.supports_brightness:
                self.state.brightness = status.brightness
            if self.capabilities.supports_temperature:
                self.state.temperature = status.temperature
            if self.capabilities.supports_colors:
                self.state.color_mode = status.color_mode
                self.state.rgb = status.rgb
                self.state.hsl = rgb_to_hsl(status.rgb) if status.rgb is not None else None
            self.state.loaded = True

            logger.info(
                "Device state loaded",
                extra={
                    "ip_address": self.ip_address,
                    "power": self.state.power,
                    "brightness": self.state.brightness,
                    "temperature": self.state.temperature,
                },
            )

    def _require(self, supported: bool, capability: str) -> None:
        if not supported:
            raise UnsupportedCapabilityError(capability, self.model.value)

    def supports_brightness(self) -> bool:
        return self.capabilities.supports_brightness

    def supports_temperature(self) -> bool:
        return self.capabilities.supports_temperature

    def supports_colors(self) -> bool:
        return self.capabilities.supports_colors

    def is_power_on(self) -> bool:
        return self.state.require("power", self.state.power)

    def get_brightness(self) -> int:
        self._require(self.capabilities.supports_brightness, "brightness")
        return self.state.require("brightness", self.state.brightness)

    def get_temperature(self) -> int:
        self._require(self.capabilities.supports_temperature, "temperature")
        return self.state.require("temperature", self.state.temperature)

    def get_rgb_colors(self) -> RgbColors:
        self._require(self.capabilities.supports_colors, "colors")
        return self.state.require("rgb", self.state.rgb)

    def get_hsl_colors(self) -> HslColors:
        self._require(self.capabilities.supports_colors, "colors")
        return self.state.require("hsl", self.state.hsl)

    # -- mutators ------------------------------------------------------------

    async def set_power_on(self, on: bool) -> bool:
        with correlation_context():
            await self.exchange.send(self.protocol.encode_power(on))
            self.state.power = on
            logger.info("Power set", extra={"ip_address": self.ip_address, "power": on})
            return on

    async def set_brightness(self, brightness: int) -> int:
        """Set brightness (0-100, clamped); colour-mode bulbs keep their colour."""
        self._require(self.capabilities.supports_brightness, "brightness")
        value = clamp(int(brightness), *BRIGHTNESS_RANGE)
        with correlation_context():
            if is_color_bulb(self.model) and self.state.color_mode and self.state.rgb is not None:
                message = self.protocol.encode_color(self.state.rgb, brightness=value)
            else:
                message = self.protocol.encode_white(brightness=value)
            await self.exchange.send(message)
            self.state.brightness = value
            self.state.power = True
            logger.info("Brightness set", extra={"ip_address": self.ip_address, "brightness": value})
            return value

    async def set_temperature(self, temperature: int) -> int:
        """Set white colour temperature (0-100, clamped); colour bulbs switch to white mode."""
        self._require(self.capabilities.supports_temperature, "temperature")
        value = clamp(int(temperature), *TEMPERATURE_RANGE)
        with correlation_context():
            await self.exchange.send(self.protocol.encode_white(brightness=self.state.brightness, temperature=value))
            self.state.temperature = value
            self.state.power = True
            if self.capabilities.supports_colors:
                self.state.color_mode = False
            logger.info("Temperature set", extra={"ip_address": self.ip_address, "temperature": value})
            return value

    async def _send_color(self, rgb: RgbColors, hsl: HslColors) -> None:
        await self.exchange.send(self.protocol.encode_color(rgb, brightness=self.state.brightness))
        self.state.rgb = rgb
        self.state.hsl = hsl
        self.state.color_mode = True
        self.state.power = True
        logger.info(
            "Color set",
            extra={"ip_address": self.ip_address, "red": rgb.red, "green": rgb.green, "blue": rgb.blue},
        )

    async def set_rgb_colors(self, red: int, green: int, blue: int) -> RgbColors:
        self._require(self.capabilities.supports_colors, "colors")
        rgb = RgbColors.clamped(red, green, blue)
        with correlation_context():
            await self._send_color(rgb, rgb_to_hsl(rgb))
        return rgb

    async def set_hsl_colors(self, hue: float, saturation: float, lightness: float) -> HslColors:
        self._require(self.capabilities.supports_colors, "colors")
        hsl = HslColors.clamped(hue, saturation, lightness)
        with correlation_context():
            await self._send_color(hsl_to_rgb(hsl), hsl)
        return hsl
