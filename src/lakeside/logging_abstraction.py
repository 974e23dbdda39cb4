"""Logging abstraction layer for the Lakeside driver.

Records are rendered as JSON lines and/or human-readable text, tagged with
the active correlation ID and the device they concern. Context comes from
two places: ``LakesideLogger`` (facade and CLI) wraps ``extra`` into
``extra_data``, while library modules log through plain stdlib loggers whose
``extra=`` keys land directly on the record. Both are rendered the same way.

The device a record concerns is lifted out of the context using the first
key present in ``DEVICE_KEYS``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import cast, override

from lakeside.const import (
    LAKESIDE_DEBUG,
    LAKESIDE_LOG_FORMAT,
    LAKESIDE_LOG_HUMAN_OUTPUT,
    LAKESIDE_LOG_JSON_FILE,
)
from lakeside.correlation import get_correlation_id

__all__ = [
    "DEVICE_KEYS",
    "HumanReadableFormatter",
    "JSONFormatter",
    "LakesideLogger",
    "get_logger",
    "record_context",
]

DEVICE_KEYS = ("device_id", "ip_address", "host", "device")

# Attributes every LogRecord carries; anything else arrived through extra=
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "correlation_id", "device_tag"}


def record_context(record: logging.LogRecord) -> tuple[str | None, dict[str, object]]:
    """Return (device, remaining context) for a record."""
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping):
        context = dict(cast("Mapping[str, object]", extra_data))
    else:
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
    context.pop("extra_data", None)

    device = next((str(context.pop(key)) for key in DEVICE_KEYS if key in context), None)
    return device, context


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``device`` and ``context`` only when present."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        device, context = record_context(record)
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if device is not None:
            log_data["device"] = device
        if context:
            log_data["context"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``time level [corr] <device> name:line > message | k=v``."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(correlation_id)s%(device_tag)s "
            "%(name)s:%(lineno)d > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        device, context = record_context(record)
        correlation_id = get_correlation_id()
        record.correlation_id = f"[{correlation_id[:8]}]" if correlation_id else "[--------]"
        record.device_tag = f" <{device}>" if device else ""

        formatted = super().format(record)
        if context:
            formatted += " | " + " | ".join(f"{key}={value}" for key, value in context.items())
        return formatted


def _open_file_handler(path: str | Path) -> logging.Handler | None:
    try:
        target = Path(path).expanduser()
        target.parent.mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(target, mode="a")
    except OSError as e:
        print(f"Warning: cannot open log file {path}: {e}", file=sys.stderr)
        return None


class LakesideLogger:
    """Stdlib logger wrapper used by the device facade and the CLI.

    ``extra`` mappings passed to the log methods become structured context.
    Handlers are attached once per logger name, and the logger stops
    propagating so a record is never printed twice.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stderr",
        debug: bool = False,
    ) -> None:
        self.name: str = name
        self.logger: logging.Logger = logging.getLogger(name)
        self.log_format: str = log_format
        self.logger.setLevel(logging.DEBUG if debug else logging.INFO)

        if not self.logger.handlers:
            for handler in self._build_handlers(json_file, human_output):
                handler.setLevel(self.logger.level)
                self.logger.addHandler(handler)
            self.logger.propagate = False

    def _build_handlers(self, json_file: str | Path | None, human_output: str | None) -> list[logging.Handler]:
        handlers: list[logging.Handler] = []

        if self.log_format in ("json", "both") and json_file:
            json_handler = _open_file_handler(json_file)
            if json_handler is not None:
                json_handler.setFormatter(JSONFormatter())
                handlers.append(json_handler)

        if self.log_format in ("human", "both"):
            match human_output or "stderr":
                case "stdout":
                    human_handler: logging.Handler | None = logging.StreamHandler(sys.stdout)
                case "stderr":
                    human_handler = logging.StreamHandler(sys.stderr)
                case path:
                    human_handler = _open_file_handler(path) or logging.StreamHandler(sys.stderr)
            human_handler.setFormatter(HumanReadableFormatter())
            handlers.append(human_handler)

        return handlers

    def _log(self, level: int, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self.logger.log(level, msg, *args, extra={"extra_data": dict(extra)} if extra else None)

    def debug(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.DEBUG, msg, *args, extra=extra)

    def info(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.INFO, msg, *args, extra=extra)

    def error(self, msg: str, *args: object, extra: Mapping[str, object] | None = None) -> None:
        self._log(logging.ERROR, msg, *args, extra=extra)

    def set_level(self, level: int) -> None:
        """Change the logger and all of its handlers at once (``--debug``)."""
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> LakesideLogger:
    """Get a LakesideLogger configured from ``lakeside.const`` unless overridden.

    Args:
        name: Logger name
        log_format: "json", "human" or "both"
        json_file: JSON output file
        human_output: "stdout", "stderr" or a file path

    """
    return LakesideLogger(
        name=name,
        log_format=log_format or LAKESIDE_LOG_FORMAT,
        json_file=json_file or LAKESIDE_LOG_JSON_FILE,
        human_output=human_output or LAKESIDE_LOG_HUMAN_OUTPUT,
        debug=LAKESIDE_DEBUG,
    )
