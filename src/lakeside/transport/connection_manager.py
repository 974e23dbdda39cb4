"""Connection lifecycle, connectivity notifications and the keep-alive timer.

``ConnectionManager`` owns the single Transport of one device. It opens and
closes it, mirrors the connectivity the Transport reports, fans those
transitions out to subscribers and runs the periodic keep-alive task.

State machine::

    DISCONNECTED --connect()--> (connecting) --> CONNECTED
    CONNECTED --disconnect() | transport failure--> DISCONNECTED

The connecting phase is transient and never reported by ``state``.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from enum import Enum

from lakeside.const import LAKESIDE_KEEPALIVE_INTERVAL
from lakeside.metrics import registry
from lakeside.protocol.exceptions import LakesideError
from lakeside.transport.types import ConnectionHandler, KeepAliveCallback, Transport

logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Externally observable connection state."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ConnectionManager:
    """Owns one Transport per device and the keep-alive task running over it.

    **Keep-alive**: after every successful ``connect()`` a periodic task calls
    the registered keep-alive callback every ``keepalive_interval`` seconds.
    Its result is only logged; failures are logged and never trigger a
    reconnect from the timer itself. A reconnect made while the task is
    already running (for example by the exchange engine's retry, possibly
    from inside the keep-alive callback) keeps the existing task.

    **Generations**: ``generation`` increments on every ``disconnect()``. The
    exchange engine compares it before and after a failed attempt so that an
    exchange interrupted by an explicit disconnect is not resurrected by a
    reconnect.
    """

    def __init__(
        self,
        transport: Transport,
        device_id: str,
        keepalive_interval: float = LAKESIDE_KEEPALIVE_INTERVAL,
    ) -> None:
        self.transport: Transport = transport
        self.device_id: str = device_id
        self.keepalive_interval: float = keepalive_interval
        self.keepalive: KeepAliveCallback | None = None
        self.keepalive_task: asyncio.Task[None] | None = None
        self.generation: int = 0
        self._subscribers: list[ConnectionHandler] = []
        self._connected: bool = transport.is_connected
        self.transport.on_connection_change = self._handle_connection_change

    @property
    def state(self) -> ConnectionState:
        return ConnectionState.CONNECTED if self._connected else ConnectionState.DISCONNECTED

    def is_connected(self) -> bool:
        """Last connectivity reported by the Transport."""
        return self._connected

    def subscribe(self, handler: ConnectionHandler) -> None:
        """Register a connectivity-change handler (cleared by ``disconnect()``)."""
        logger.debug(
            "Attaching connectivity handler",
            extra={"device_id": self.device_id, "subscribers": len(self._subscribers) + 1},
        )
        self._subscribers.append(handler)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def set_keepalive(self, callback: KeepAliveCallback) -> None:
        self.keepalive = callback

    def _handle_connection_change(self, connected: bool) -> None:
        self._connected = connected
        registry.record_connection_state(self.device_id, connected)
        logger.info(
            "Device %s",
            "connected" if connected else "disconnected",
            extra={"device_id": self.device_id, "connected": connected},
        )
        # Copy so a handler that subscribes another handler does not extend this loop
        for handler in list(self._subscribers):
            try:
                handler(connected)
            except Exception:
                logger.exception(
                    "Connectivity handler raised",
                    extra={"device_id": self.device_id, "handler": repr(handler)},
                )

    async def connect(self) -> None:
        """Open the Transport and make sure the keep-alive task is running.

        Raises:
            TransportError: the Transport could not be opened

        """
        logger.debug("→ Connecting", extra={"device_id": self.device_id})
        await self.transport.open()
        self._connected = self.transport.is_connected
        self._start_keepalive()
        logger.debug("✓ Connected", extra={"device_id": self.device_id})

    async def disconnect(self) -> None:
        """Close the Transport, cancel keep-alive and drop all subscribers."""
        logger.debug("→ Disconnecting", extra={"device_id": self.device_id})
        self.generation += 1
        await self._stop_keepalive()
        await self.transport.close()
        self._connected = False
        self._subscribers.clear()
        logger.debug("✓ Disconnected", extra={"device_id": self.device_id})

    def _start_keepalive(self) -> None:
        if self.keepalive_task is not None and not self.keepalive_task.done():
            return
        self.keepalive_task = asyncio.create_task(
            self._keepalive_loop(),
            name=f"lakeside-keepalive-{self.device_id}",
        )

    async def _stop_keepalive(self) -> None:
        task = self.keepalive_task
        self.keepalive_task = None
        if task is None or task.done() or task is asyncio.current_task():
            return
        _ = task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _keepalive_loop(self) -> None:
        """Run the keep-alive callback every interval until cancelled."""
        try:
            while True:
                await asyncio.sleep(self.keepalive_interval)
                await self._run_keepalive()
        except asyncio.CancelledError:
            logger.debug("Keep-alive task cancelled", extra={"device_id": self.device_id})
            raise

    async def _run_keepalive(self) -> None:
        if self.keepalive is None:
            return
        try:
            result = await self.keepalive()
        except LakesideError as e:
            registry.record_keepalive(self.device_id, "failure")
            logger.warning(
                "Keep-alive failed: %s",
                e,
                extra={"device_id": self.device_id, "error": str(e), "error_type": type(e).__name__},
            )
        else:
            registry.record_keepalive(self.device_id, "success")
            logger.debug("Keep-alive ok", extra={"device_id": self.device_id, "result": result})

    def __repr__(self) -> str:
        return f"ConnectionManager({self.device_id}, {self.state.value}, subscribers={len(self._subscribers)})"
