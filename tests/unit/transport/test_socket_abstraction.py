"""Unit tests for TCPConnection socket abstraction.

Tests cover:
- Connection lifecycle (open, write, write_and_await_reply, close)
- Error handling (timeouts, connection failures, peer close, cleanup errors)
- Connectivity change notifications
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from lakeside.transport.exceptions import TransportError
from lakeside.transport.socket_abstraction import TCPConnection


class TCPConnectionTestHarness(TCPConnection):
    """Expose protected connection state controls for testing."""

    _connected: bool = False
    reader: AsyncMock | None = None
    writer: AsyncMock | MagicMock | None = None

    def set_connected_state(
        self,
        connected: bool,
        *,
        reader: AsyncMock | None = None,
        writer: AsyncMock | MagicMock | None = None,
    ) -> None:
        self._connected = connected
        if reader is not None:
            self.reader = reader
        if writer is not None:
            self.writer = writer


def make_writer() -> AsyncMock:
    mock_writer = AsyncMock(spec=asyncio.StreamWriter)
    mock_writer.write = MagicMock()
    mock_writer.drain = AsyncMock()
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()
    return mock_writer


@pytest.fixture
def tcp_connection():
    """Create TCPConnection instance for testing."""
    return TCPConnectionTestHarness(
        host="127.0.0.1",
        port=55556,
        connect_timeout=0.1,
        io_timeout=0.1,
    )


@pytest.mark.asyncio
async def test_open_success(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test successful connection."""
    changes: list[bool] = []
    tcp_connection.on_connection_change = changes.append
    with patch("lakeside.transport.socket_abstraction.open_watched_connection") as mock_open:
        mock_reader = AsyncMock(spec=asyncio.StreamReader)
        mock_writer = make_writer()
        mock_open.return_value = (mock_reader, mock_writer)

        await tcp_connection.open()

        assert tcp_connection.is_connected is True
        assert tcp_connection.reader is mock_reader
        assert tcp_connection.writer is mock_writer
        assert mock_open.call_args.args[:2] == ("127.0.0.1", 55556)
    assert changes == [True]


@pytest.mark.asyncio
async def test_open_replaces_existing_stream(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test that reopening closes the previous stream first."""
    old_writer = make_writer()
    tcp_connection.set_connected_state(True, writer=old_writer)
    with patch("lakeside.transport.socket_abstraction.open_watched_connection") as mock_open:
        new_writer = make_writer()
        mock_open.return_value = (AsyncMock(spec=asyncio.StreamReader), new_writer)

        await tcp_connection.open()

    old_writer.close.assert_called_once()
    assert tcp_connection.writer is new_writer
    assert tcp_connection.is_connected is True


@pytest.mark.asyncio
async def test_open_timeout(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test connection timeout."""
    with patch("lakeside.transport.socket_abstraction.open_watched_connection") as mock_open:

        async def slow_connect(*_args: object, **_kwargs: object) -> tuple[AsyncMock, AsyncMock]:
            await asyncio.sleep(1.0)  # Longer than timeout
            return (AsyncMock(spec=asyncio.StreamReader), make_writer())

        mock_open.side_effect = slow_connect

        with pytest.raises(TransportError) as exc_info:
            await tcp_connection.open()

    assert exc_info.value.reason == "connect_timeout"
    assert exc_info.value.host == "127.0.0.1"
    assert tcp_connection.is_connected is False
    assert tcp_connection.reader is None
    assert tcp_connection.writer is None


@pytest.mark.asyncio
async def test_open_oserror(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test connection failure with OSError."""
    with patch("lakeside.transport.socket_abstraction.open_watched_connection") as mock_open:
        mock_open.side_effect = OSError("Connection refused")

        with pytest.raises(TransportError) as exc_info:
            await tcp_connection.open()

    assert exc_info.value.reason.startswith("connect_failed")
    assert tcp_connection.is_connected is False


@pytest.mark.asyncio
async def test_write_success(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test successful write."""
    mock_writer = make_writer()
    tcp_connection.set_connected_state(True, writer=mock_writer)

    await tcp_connection.write(b"test data")

    mock_writer.write.assert_called_once_with(b"test data")
    mock_writer.drain.assert_awaited_once()


@pytest.mark.asyncio
async def test_write_not_connected(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test write when not connected."""
    tcp_connection.set_connected_state(False)

    with pytest.raises(TransportError) as exc_info:
        await tcp_connection.write(b"test")

    assert exc_info.value.reason == "not_connected"


@pytest.mark.asyncio
async def test_write_timeout_tears_down(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test write timeout closes the stream."""
    changes: list[bool] = []
    mock_writer = make_writer()

    async def slow_drain() -> None:
        await asyncio.sleep(1.0)  # Longer than timeout

    mock_writer.drain = slow_drain
    tcp_connection.set_connected_state(True, writer=mock_writer)
    tcp_connection.on_connection_change = changes.append

    with pytest.raises(TransportError) as exc_info:
        await tcp_connection.write(b"test")

    assert exc_info.value.reason == "write_timeout"
    assert tcp_connection.is_connected is False
    assert tcp_connection.writer is None
    assert changes == [False]


@pytest.mark.asyncio
async def test_write_oserror(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test write with OSError."""
    mock_writer = make_writer()
    mock_writer.write = MagicMock(side_effect=OSError("Broken pipe"))
    tcp_connection.set_connected_state(True, writer=mock_writer)

    with pytest.raises(TransportError) as exc_info:
        await tcp_connection.write(b"test")

    assert exc_info.value.reason.startswith("write_failed")
    assert tcp_connection.is_connected is False


@pytest.mark.asyncio
async def test_write_and_await_reply_success(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test a full request/reply round trip."""
    mock_reader = AsyncMock(spec=asyncio.StreamReader)
    mock_reader.read = AsyncMock(return_value=b"received data")
    mock_writer = make_writer()
    tcp_connection.set_connected_state(True, reader=mock_reader, writer=mock_writer)

    result = await tcp_connection.write_and_await_reply(b"request")

    assert result == b"received data"
    mock_writer.write.assert_called_once_with(b"request")
    mock_reader.read.assert_called_once_with(4096)


@pytest.mark.asyncio
async def test_write_and_await_reply_timeout(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test reply timeout."""
    mock_reader = AsyncMock(spec=asyncio.StreamReader)

    async def slow_read(*_args: object, **_kwargs: object) -> bytes:
        await asyncio.sleep(1.0)  # Longer than timeout
        return b"data"

    mock_reader.read = slow_read
    tcp_connection.set_connected_state(True, reader=mock_reader, writer=make_writer())

    with pytest.raises(TransportError) as exc_info:
        _ = await tcp_connection.write_and_await_reply(b"request")

    assert exc_info.value.reason == "read_timeout"
    assert tcp_connection.is_connected is False


@pytest.mark.asyncio
async def test_write_and_await_reply_peer_closed(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test an empty read is reported as a closed connection."""
    mock_reader = AsyncMock(spec=asyncio.StreamReader)
    mock_reader.read = AsyncMock(return_value=b"")
    tcp_connection.set_connected_state(True, reader=mock_reader, writer=make_writer())

    with pytest.raises(TransportError) as exc_info:
        _ = await tcp_connection.write_and_await_reply(b"request")

    assert exc_info.value.reason == "connection_closed"
    assert tcp_connection.is_connected is False


@pytest.mark.asyncio
async def test_write_and_await_reply_oserror(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test reply read with OSError."""
    mock_reader = AsyncMock(spec=asyncio.StreamReader)
    mock_reader.read = AsyncMock(side_effect=OSError("Connection reset"))
    tcp_connection.set_connected_state(True, reader=mock_reader, writer=make_writer())

    with pytest.raises(TransportError) as exc_info:
        _ = await tcp_connection.write_and_await_reply(b"request")

    assert exc_info.value.reason.startswith("read_failed")


@pytest.mark.asyncio
async def test_close_success(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test successful close."""
    mock_writer = make_writer()
    tcp_connection.set_connected_state(True, writer=mock_writer)

    await tcp_connection.close()

    assert tcp_connection.is_connected is False
    mock_writer.close.assert_called_once()
    mock_writer.wait_closed.assert_awaited_once()


@pytest.mark.asyncio
async def test_close_not_connected(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test close when not connected does not notify."""
    changes: list[bool] = []
    tcp_connection.on_connection_change = changes.append
    tcp_connection.set_connected_state(False)

    await tcp_connection.close()

    assert tcp_connection.is_connected is False
    assert changes == []


@pytest.mark.asyncio
async def test_close_oserror_continues(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test that OSError during close doesn't fail cleanup."""
    mock_writer = make_writer()
    mock_writer.close = MagicMock(side_effect=OSError("Already closed"))
    tcp_connection.set_connected_state(True, writer=mock_writer)

    await tcp_connection.close()

    assert tcp_connection.is_connected is False
    assert tcp_connection.writer is None


@pytest.mark.asyncio
async def test_close_wait_closed_error_continues(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test that wait_closed errors don't fail cleanup."""
    mock_writer = make_writer()
    mock_writer.wait_closed = AsyncMock(side_effect=ConnectionResetError("Connection error"))
    tcp_connection.set_connected_state(True, writer=mock_writer)

    await tcp_connection.close()

    assert tcp_connection.is_connected is False


def test_repr(tcp_connection: TCPConnectionTestHarness) -> None:
    assert repr(tcp_connection) == "TCPConnection(127.0.0.1:55556, disconnected)"


async def wait_until(condition, timeout: float = 0.5) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition() and asyncio.get_running_loop().time() < deadline:
        await asyncio.sleep(0.01)


async def start_device(handler) -> tuple[asyncio.Server, int]:
    server = await asyncio.start_server(handler, "127.0.0.1", 0)
    return server, server.sockets[0].getsockname()[1]


@pytest.mark.asyncio
async def test_peer_close_is_reported() -> None:
    """Test the device closing an idle connection flips connectivity to False."""

    async def hang_up(_reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        writer.close()

    server, port = await start_device(hang_up)
    changes: list[bool] = []
    connection = TCPConnection("127.0.0.1", port, io_timeout=1.0, on_connection_change=changes.append)
    try:
        await connection.open()
        await wait_until(lambda: not connection.is_connected)

        assert changes == [True, False]
        assert connection.is_connected is False
        assert connection.writer is None
        assert repr(connection) == f"TCPConnection(127.0.0.1:{port}, disconnected)"
    finally:
        await connection.close()
        server.close()
        await server.wait_closed()

    assert changes == [True, False]


@pytest.mark.asyncio
async def test_peer_close_during_exchange() -> None:
    """Test the device hanging up instead of replying fails the exchange."""

    async def read_then_hang_up(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        _ = await reader.read(16)
        writer.close()

    server, port = await start_device(read_then_hang_up)
    changes: list[bool] = []
    connection = TCPConnection("127.0.0.1", port, io_timeout=1.0, on_connection_change=changes.append)
    try:
        await connection.open()

        with pytest.raises(TransportError) as exc_info:
            _ = await connection.write_and_await_reply(b"request")

        assert exc_info.value.reason == "connection_closed"
        assert changes == [True, False]
    finally:
        await connection.close()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_own_close_and_reopen_notify_once() -> None:
    """Test a local close is reported once and a stale stream cannot flip the new one."""

    async def echo(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        while data := await reader.read(16):
            writer.write(data)
            await writer.drain()
        writer.close()

    server, port = await start_device(echo)
    changes: list[bool] = []
    connection = TCPConnection("127.0.0.1", port, io_timeout=1.0, on_connection_change=changes.append)
    try:
        await connection.open()
        await connection.open()
        await asyncio.sleep(0.05)

        assert changes == [True, False, True]
        assert await connection.write_and_await_reply(b"ping") == b"ping"

        await connection.close()
        await asyncio.sleep(0.05)

        assert changes == [True, False, True, False]
    finally:
        await connection.close()
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_hang_up_during_connect(tcp_connection: TCPConnectionTestHarness) -> None:
    """Test a stream closed before open() returns is not reported as connected."""
    changes: list[bool] = []
    tcp_connection.on_connection_change = changes.append
    mock_writer = make_writer()

    async def connect_then_hang_up(_host: str, _port: int, on_peer_closed) -> tuple[AsyncMock, AsyncMock]:
        on_peer_closed()
        return AsyncMock(spec=asyncio.StreamReader), mock_writer

    with patch(
        "lakeside.transport.socket_abstraction.open_watched_connection",
        side_effect=connect_then_hang_up,
    ), pytest.raises(TransportError) as exc_info:
        await tcp_connection.open()

    assert exc_info.value.reason == "connection_closed"
    assert tcp_connection.is_connected is False
    assert tcp_connection.writer is None
    mock_writer.close.assert_called_once()
    assert changes == []
