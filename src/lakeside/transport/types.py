"""Structural types shared by the transport layer."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

ConnectionHandler = Callable[[bool], None]
KeepAliveCallback = Callable[[], Awaitable[object]]


@runtime_checkable
class Transport(Protocol):
    """Byte-level link to one device.

    Implementations raise ``TransportError`` from ``open``, ``write`` and
    ``write_and_await_reply`` and report every connectivity transition
    (including an unexpected peer close) through ``on_connection_change``.
    """

    host: str
    port: int
    on_connection_change: ConnectionHandler | None

    @property
    def is_connected(self) -> bool: ...

    async def open(self) -> None: ...

    async def close(self) -> None: ...

    async def write(self, data: bytes) -> None: ...

    async def write_and_await_reply(self, data: bytes) -> bytes: ...
