"""
Correlation ID tracking for log tracing across async device operations.

Every public device operation runs inside a correlation context so the log
records it emits (connect, exchange, reconnect, state decode) can be grouped.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "lakeside_correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    """Return a new UUID4 hex correlation ID (32 chars, no dashes)."""
    return uuid.uuid4().hex


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(correlation_id: str | None = None) -> Generator[str]:
    """
    Scope a correlation ID to a block.

    An enclosing ID is reused so nested operations (connect -> load state)
    stay on one trace; otherwise a new ID is generated. The previous value is
    restored on exit.

    Example:
        with correlation_context() as corr_id:
            await device.set_power_on(True)
    """
    previous_id = get_correlation_id()
    if correlation_id is None:
        correlation_id = previous_id or generate_correlation_id()

    set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """Return the current correlation ID, generating one for task entry points."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id()
        set_correlation_id(current_id)
    return current_id
