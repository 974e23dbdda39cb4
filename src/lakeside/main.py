"""Command-line entry point for controlling Lakeside devices."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from pathlib import Path

import uvloop
import yaml
from pydantic import BaseModel, ValidationError

from lakeside.const import LAKESIDE_CONFIG_FILE, LAKESIDE_METRICS_PORT, LAKESIDE_VERSION
from lakeside.correlation import ensure_correlation_id
from lakeside.devices.device import DeviceEvent, LakesideDevice
from lakeside.devices.models import DeviceModel
from lakeside.logging_abstraction import get_logger
from lakeside.metrics import start_metrics_server
from lakeside.protocol.exceptions import LakesideError

logger = get_logger(__name__)


class DeviceConfig(BaseModel):
    """One inventory entry from the YAML config file."""

    model: DeviceModel
    code: str
    ip: str
    name: str | None = None


class InventoryConfig(BaseModel):
    devices: dict[str, DeviceConfig] = {}


def load_inventory(path: Path) -> InventoryConfig:
    """Parse ``devices: {<name>: {model, code, ip}}`` from a YAML file."""
    with path.open() as f:
        raw = yaml.safe_load(f) or {}
    return InventoryConfig.model_validate(raw)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="lakeside", description="Control Lakeside plugs, switches and bulbs on the LAN")
    parser.add_argument("--version", action="version", version=f"%(prog)s {LAKESIDE_VERSION}")
    parser.add_argument("--config", type=Path, default=Path(LAKESIDE_CONFIG_FILE), help="YAML device inventory")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--model", help="Device model (instead of an inventory entry)")
    parser.add_argument("--code", help="Device code (instead of an inventory entry)")
    parser.add_argument("--ip", help="Device IP address (instead of an inventory entry)")
    parser.add_argument("device", nargs="?", help="Inventory device name")

    commands = parser.add_subparsers(dest="command", required=True)
    _ = commands.add_parser("state", help="Print the current state")
    _ = commands.add_parser("on", help="Turn the device on")
    _ = commands.add_parser("off", help="Turn the device off")
    brightness = commands.add_parser("brightness", help="Set brightness (0-100)")
    brightness.add_argument("value", type=int)
    temperature = commands.add_parser("temperature", help="Set colour temperature (0-100)")
    temperature.add_argument("value", type=int)
    rgb = commands.add_parser("rgb", help="Set RGB colour (0-255 each)")
    rgb.add_argument("red", type=int)
    rgb.add_argument("green", type=int)
    rgb.add_argument("blue", type=int)
    hsl = commands.add_parser("hsl", help="Set HSL colour (hue 0-360, saturation/lightness 0-1)")
    hsl.add_argument("hue", type=float)
    hsl.add_argument("saturation", type=float)
    hsl.add_argument("lightness", type=float)
    _ = commands.add_parser("watch", help="Stay connected and log connectivity until interrupted")
    return parser


def resolve_device(args: argparse.Namespace) -> LakesideDevice:
    """Build a device from --model/--code/--ip or from the named inventory entry."""
    if args.model and args.code and args.ip:
        return LakesideDevice(args.model, args.code, args.ip, args.device)

    if not args.device:
        msg = "either a device name or --model, --code and --ip are required"
        raise ValueError(msg)

    config_path = args.config.expanduser()
    inventory = load_inventory(config_path)
    entry = inventory.devices.get(args.device)
    if entry is None:
        msg = f"device {args.device!r} not found in {config_path}"
        raise ValueError(msg)
    return LakesideDevice(entry.model, entry.code, entry.ip, entry.name or args.device)


def describe_state(device: LakesideDevice) -> dict[str, object]:
    state: dict[str, object] = {"name": device.name, "model": device.model.value, "power": device.is_power_on()}
    if device.supports_brightness():
        state["brightness"] = device.state.brightness
    if device.supports_temperature():
        state["temperature"] = device.state.temperature
    if device.supports_colors():
        state["rgb"] = device.state.rgb.model_dump() if device.state.rgb else None
        state["hsl"] = device.state.hsl.model_dump() if device.state.hsl else None
    return state


async def watch(device: LakesideDevice) -> None:
    """Hold the connection open until SIGINT/SIGTERM."""
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    device.on(
        DeviceEvent.CONNECTION_STATE_CHANGED,
        lambda connected: logger.info("Connectivity changed", extra={"connected": connected}),
    )
    logger.info("Watching device, press Ctrl+C to stop", extra={"device": str(device)})
    _ = await stop.wait()


async def run(args: argparse.Namespace) -> int:
    _ = ensure_correlation_id()
    device = resolve_device(args)
    try:
        await device.connect()
        match args.command:
            case "state":
                pass
            case "on" | "off":
                _ = await device.set_power_on(args.command == "on")
            case "brightness":
                _ = await device.set_brightness(args.value)
            case "temperature":
                _ = await device.set_temperature(args.value)
            case "rgb":
                _ = await device.set_rgb_colors(args.red, args.green, args.blue)
            case "hsl":
                _ = await device.set_hsl_colors(args.hue, args.saturation, args.lightness)
            case "watch":
                await watch(device)
        print(yaml.safe_dump(describe_state(device), sort_keys=False), end="")
    finally:
        await device.disconnect()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    # Library modules log through plain stdlib loggers under the package name
    package_logger = get_logger("lakeside")
    if args.debug:
        logger.set_level(logging.DEBUG)
        package_logger.set_level(logging.DEBUG)
    if LAKESIDE_METRICS_PORT > 0:
        start_metrics_server(LAKESIDE_METRICS_PORT)

    try:
        return uvloop.run(run(args))
    except (LakesideError, ValidationError, ValueError, OSError) as e:
        logger.error("%s", e, extra={"error_type": type(e).__name__})
        return 1


if __name__ == "__main__":
    sys.exit(main())
