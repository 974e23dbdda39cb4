import os

from lakeside import __version__

__all__ = [
    "AES_IV",
    "AES_KEY",
    "DEVICE_PORT",
    "LAKESIDE_CONFIG_FILE",
    "LAKESIDE_CONNECT_TIMEOUT",
    "LAKESIDE_DEBUG",
    "LAKESIDE_IO_TIMEOUT",
    "LAKESIDE_KEEPALIVE_INTERVAL",
    "LAKESIDE_LOG_FORMAT",
    "LAKESIDE_LOG_HUMAN_OUTPUT",
    "LAKESIDE_LOG_JSON_FILE",
    "LAKESIDE_METRICS_PORT",
    "LAKESIDE_VERSION",
    "SEQUENCE_MAX",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
LAKESIDE_VERSION: str = __version__


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


DEVICE_PORT: int = _env_int("LAKESIDE_DEVICE_PORT", 55556)
LAKESIDE_KEEPALIVE_INTERVAL: float = _env_float("LAKESIDE_KEEPALIVE_INTERVAL", 10.0)
LAKESIDE_CONNECT_TIMEOUT: float = _env_float("LAKESIDE_CONNECT_TIMEOUT", 5.0)
LAKESIDE_IO_TIMEOUT: float = _env_float("LAKESIDE_IO_TIMEOUT", 5.0)
LAKESIDE_METRICS_PORT: int = _env_int("LAKESIDE_METRICS_PORT", 0)

LAKESIDE_DEBUG: bool = os.environ.get("LAKESIDE_DEBUG", "0").casefold() in YES_ANSWER
LAKESIDE_LOG_FORMAT: str = os.environ.get("LAKESIDE_LOG_FORMAT", "human").casefold()
_json_file = os.environ.get("LAKESIDE_LOG_JSON_FILE")
LAKESIDE_LOG_JSON_FILE: str | None = _json_file if _json_file else None
LAKESIDE_LOG_HUMAN_OUTPUT: str = os.environ.get("LAKESIDE_LOG_HUMAN_OUTPUT", "stderr")
LAKESIDE_CONFIG_FILE: str = os.environ.get("LAKESIDE_CONFIG_FILE", "~/.config/lakeside/devices.yaml")

# Keep-alive ping sequence numbers are drawn from [0, SEQUENCE_MAX)
SEQUENCE_MAX: int = 3_000_000

# AES-128-CBC parameters shared by every Lakeside device
AES_KEY: bytes = bytes(
    [0x24, 0x4E, 0x6D, 0x8A, 0x56, 0xAC, 0x87, 0x91, 0x24, 0x43, 0x2D, 0x8B, 0x6C, 0xBC, 0xA2, 0xC4],
)
AES_IV: bytes = bytes(
    [0x77, 0x24, 0x56, 0xF2, 0xA7, 0x66, 0x4C, 0xF3, 0x39, 0x2C, 0x35, 0x97, 0xE9, 0x3E, 0x57, 0x47],
)
