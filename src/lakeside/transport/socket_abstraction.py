"""Asyncio TCP transport with deadlines, connectivity events and instrumentation."""

import asyncio
import logging
import time
from collections.abc import Callable

from lakeside.const import DEVICE_PORT, LAKESIDE_CONNECT_TIMEOUT, LAKESIDE_IO_TIMEOUT
from lakeside.transport.exceptions import TransportError
from lakeside.transport.types import ConnectionHandler

logger = logging.getLogger(__name__)


class _PeerCloseProtocol(asyncio.StreamReaderProtocol):
    """Stream protocol that reports the peer closing or the socket dropping."""

    def __init__(self, reader: asyncio.StreamReader, on_peer_closed: Callable[[], None]):
        super().__init__(reader)
        self._on_peer_closed = on_peer_closed

    def eof_received(self) -> bool:
        _ = super().eof_received()
        self._on_peer_closed()
        # no half-open sockets; the transport closes itself
        return False

    def connection_lost(self, exc: Exception | None) -> None:
        super().connection_lost(exc)
        self._on_peer_closed()


async def open_watched_connection(
    host: str,
    port: int,
    on_peer_closed: Callable[[], None],
    limit: int = 2**16,
) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """``asyncio.open_connection`` that calls ``on_peer_closed`` when the stream ends."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit, loop=loop)
    protocol = _PeerCloseProtocol(reader, on_peer_closed)
    transport, _ = await loop.create_connection(lambda: protocol, host, port)
    return reader, asyncio.StreamWriter(transport, protocol, reader, loop)


class TCPConnection:
    """Async TCP connection to a single device.

    One instance is created per device and reused across open/close cycles.
    Every failure raises ``TransportError``; an I/O failure also tears the
    stream down, since a late reply would desynchronise the next exchange.
    """

    def __init__(
        self,
        host: str,
        port: int = DEVICE_PORT,
        connect_timeout: float = LAKESIDE_CONNECT_TIMEOUT,
        io_timeout: float = LAKESIDE_IO_TIMEOUT,
        max_read_size: int = 4096,
        on_connection_change: ConnectionHandler | None = None,
    ):
        """
        Initialize TCP connection parameters.

        Args:
            host: Device host
            port: Device port
            connect_timeout: Connection timeout in seconds
            io_timeout: Read/write timeout in seconds
            max_read_size: Maximum bytes to read for one reply
            on_connection_change: Called with the new state on every transition

        """
        self.host = host
        self.port = port
        self.connect_timeout = connect_timeout
        self.io_timeout = io_timeout
        self.max_read_size = max_read_size
        self.on_connection_change = on_connection_change
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._connected = False
        # bumped on every open/close so callbacks from a previous stream are ignored
        self._stream_id = 0

    def _set_connected(self, connected: bool) -> None:
        if connected == self._connected:
            return
        self._connected = connected
        logger.debug(
            "Connectivity changed to %s for %s:%d",
            connected,
            self.host,
            self.port,
            extra={"host": self.host, "port": self.port, "connected": connected},
        )
        if self.on_connection_change is not None:
            self.on_connection_change(connected)

    def _error(self, reason: str) -> TransportError:
        return TransportError(reason, self.host, self.port)

    def _handle_peer_closed(self, stream_id: int) -> None:
        """Drop the stream when the device closes it or the socket fails."""
        if stream_id != self._stream_id:
            return
        logger.warning(
            "Connection closed by %s:%d",
            self.host,
            self.port,
            extra={"host": self.host, "port": self.port},
        )
        self._stream_id += 1
        self.writer = None
        self.reader = None
        self._set_connected(False)

    async def open(self) -> None:
        """
        Establish the TCP connection, replacing any existing stream.

        Raises:
            TransportError: connection refused, unreachable or timed out

        """
        if self.writer is not None:
            await self.close()

        start_time = time.perf_counter()
        logger.info(
            "Connecting to %s:%d (timeout: %.1fs)",
            self.host,
            self.port,
            self.connect_timeout,
            extra={"host": self.host, "port": self.port, "timeout": self.connect_timeout},
        )
        self._stream_id += 1
        stream_id = self._stream_id
        try:
            self.reader, self.writer = await asyncio.wait_for(
                open_watched_connection(self.host, self.port, lambda: self._handle_peer_closed(stream_id)),
                timeout=self.connect_timeout,
            )
        except TimeoutError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Connection to %s:%d timed out after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": "timeout"},
            )
            raise self._error("connect_timeout") from e
        except OSError as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "Connection to %s:%d failed after %.1fms: %s",
                self.host,
                self.port,
                elapsed_ms,
                e,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms, "error": str(e)},
            )
            raise self._error(f"connect_failed: {e}") from e

        if stream_id != self._stream_id:
            # device hung up before the stream was handed back
            raise await self._abort("connection_closed")

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "Connected to %s:%d in %.1fms",
            self.host,
            self.port,
            elapsed_ms,
            extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
        )
        self._set_connected(True)

    async def _abort(self, reason: str) -> TransportError:
        """Tear the stream down after an I/O failure and return the error to raise."""
        await self.close()
        return self._error(reason)

    async def write(self, data: bytes) -> None:
        """
        Send data with timeout.

        Raises:
            TransportError: not connected, timed out or socket error

        """
        if not self._connected or self.writer is None:
            raise self._error("not_connected")

        start_time = time.perf_counter()
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.io_timeout)
        except TimeoutError as e:
            raise await self._abort("write_timeout") from e
        except OSError as e:
            raise await self._abort(f"write_failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            "Sent %d bytes to %s:%d in %.1fms",
            len(data),
            self.host,
            self.port,
            elapsed_ms,
            extra={"bytes": len(data), "host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
        )

    async def write_and_await_reply(self, data: bytes) -> bytes:
        """
        Send data and read the device's reply.

        Raises:
            TransportError: write failure, read timeout or peer closed the connection

        """
        await self.write(data)
        if self.reader is None:
            raise self._error("not_connected")

        start_time = time.perf_counter()
        try:
            reply = await asyncio.wait_for(self.reader.read(self.max_read_size), timeout=self.io_timeout)
        except TimeoutError as e:
            raise await self._abort("read_timeout") from e
        except OSError as e:
            raise await self._abort(f"read_failed: {e}") from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if not reply:
            logger.warning(
                "Connection closed by %s:%d after %.1fms",
                self.host,
                self.port,
                elapsed_ms,
                extra={"host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
            )
            raise await self._abort("connection_closed")

        logger.debug(
            "Received %d bytes from %s:%d in %.1fms",
            len(reply),
            self.host,
            self.port,
            elapsed_ms,
            extra={"bytes": len(reply), "host": self.host, "port": self.port, "elapsed_ms": elapsed_ms},
        )
        return reply

    async def close(self) -> None:
        """Close the connection; errors while closing are logged, not raised."""
        self._stream_id += 1
        if self.writer is not None:
            logger.info(
                "Closing connection to %s:%d",
                self.host,
                self.port,
                extra={"host": self.host, "port": self.port},
            )
            try:
                self.writer.close()
                await self.writer.wait_closed()
            except (OSError, ConnectionError) as e:
                logger.warning(
                    "Error closing connection: %s",
                    e,
                    extra={"host": self.host, "port": self.port, "error": str(e), "error_type": type(e).__name__},
                )
            finally:
                self.writer = None
                self.reader = None
        self._set_connected(False)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def __repr__(self) -> str:
        status = "connected" if self._connected else "disconnected"
        return f"TCPConnection({self.host}:{self.port}, {status})"
