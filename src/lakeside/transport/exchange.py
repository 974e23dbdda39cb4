"""Encrypted request/response exchange with one-shot reconnect-and-retry.

Outgoing: codec serialize -> cipher encrypt -> Transport write.
Incoming: cipher decrypt -> 2-byte little-endian length frame -> codec
deserialize with the schema of the device's packet family.

Retry policy: a ``TransportError`` on the first attempt triggers exactly one
``ConnectionManager.connect()`` followed by exactly one more attempt. The
second failure surfaces as ``SendError`` / ``ExchangeError``. Framing and
decode errors are not transport failures and are never retried.

All writes on a connection go through ``_exchange_lock`` so a keep-alive
ping fired by the background timer can never interleave with a foreground
request on the same stream. The lock only orders the keep-alive against
foreground traffic; callers must still serialise their own concurrent
operations on one device.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from lakeside.const import SEQUENCE_MAX
from lakeside.metrics import registry
from lakeside.protocol.cipher import LakesideCipher, PayloadCipher
from lakeside.protocol.framing import unpack_frame
from lakeside.protocol.lakeside_protocol import PING_SCHEMA, LakesideProtocol, deserialize
from lakeside.protocol.messages import Message
from lakeside.transport.connection_manager import ConnectionManager
from lakeside.transport.exceptions import ExchangeError, SendError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProtocolExchange:
    """Builds envelopes and runs exchanges for one device connection.

    Attributes:
        connection: Connection manager owning the Transport
        protocol: Packet encoder/decoder bound to the device
        cipher: Payload cipher (AES-128-CBC unless injected)
        sequence: Next sequence value from the last keep-alive, None until one succeeds

    """

    def __init__(
        self,
        connection: ConnectionManager,
        protocol: LakesideProtocol,
        cipher: PayloadCipher | None = None,
    ) -> None:
        self.connection: ConnectionManager = connection
        self.protocol: LakesideProtocol = protocol
        self.cipher: PayloadCipher = cipher or LakesideCipher()
        self.sequence: int | None = None
        self._exchange_lock: asyncio.Lock = asyncio.Lock()

    @property
    def device_id(self) -> str:
        return self.connection.device_id

    def _encrypt(self, message: Message) -> bytes:
        serialized = self.protocol.serialize(message)
        logger.debug(
            "Encoding %s (%d bytes)",
            type(message).__name__,
            len(serialized),
            extra={"device_id": self.device_id, "preview": serialized[:16].hex(" ")},
        )
        return self.cipher.encrypt(serialized)

    async def _with_reconnect_retry(
        self,
        operation: str,
        action: Callable[[], Awaitable[T]],
        error_cls: type[SendError | ExchangeError],
    ) -> T:
        """Run action; on TransportError reconnect once and run it once more."""
        generation = self.connection.generation
        attempts = 1
        try:
            return await action()
        except TransportError as first_error:
            if self.connection.generation != generation:
                # disconnect() ran while this attempt was in flight
                raise error_cls(f"disconnected during {operation}", attempts) from first_error

            logger.warning(
                "Error during %s, reconnecting and retrying once: %s",
                operation,
                first_error,
                extra={"device_id": self.device_id, "operation": operation, "reason": first_error.reason},
            )
            registry.record_reconnect(self.device_id, first_error.reason)
            try:
                await self.connection.connect()
                logger.debug(
                    "Re-connected - retrying %s",
                    operation,
                    extra={"device_id": self.device_id, "operation": operation},
                )
                attempts += 1
                return await action()
            except TransportError as second_error:
                logger.error(
                    "%s failed after reconnect: %s",
                    operation.capitalize(),
                    second_error,
                    extra={"device_id": self.device_id, "operation": operation, "attempts": attempts},
                )
                raise error_cls(second_error.reason, attempts) from second_error

    async def send(self, message: Message) -> None:
        """Fire-and-forget: write one packet, no reply expected.

        Raises:
            SendError: the write failed again after reconnecting

        """
        payload = self._encrypt(message)
        transport = self.connection.transport
        async with self._exchange_lock:
            try:
                await self._with_reconnect_retry("send", lambda: transport.write(payload), SendError)
            except SendError:
                registry.record_packet_sent(self.device_id, "failure")
                raise
        registry.record_packet_sent(self.device_id, "success")

    async def send_and_await_response(self, message: Message, schema: type[Message] | None = None) -> Message:
        """Write one packet and decode the correlated reply.

        Args:
            message: Request packet
            schema: Reply schema; defaults to the device's packet family schema

        Raises:
            ExchangeError: the exchange failed again after reconnecting
            PacketDecodeError: reply could not be decrypted or deserialized
            PacketFramingError: decrypted reply is shorter than its length prefix
            UnsupportedModelError: no schema for the device model

        """
        payload = self._encrypt(message)
        transport = self.connection.transport
        start_time = time.perf_counter()
        async with self._exchange_lock:
            try:
                raw = await self._with_reconnect_retry(
                    "exchange",
                    lambda: transport.write_and_await_reply(payload),
                    ExchangeError,
                )
            except ExchangeError:
                registry.record_exchange(self.device_id, "failure")
                raise
        elapsed = time.perf_counter() - start_time
        registry.record_exchange(self.device_id, "success")
        registry.record_exchange_latency(self.device_id, elapsed)

        decrypted = self.cipher.decrypt(raw)
        inner = unpack_frame(decrypted)
        response_schema = schema or self.protocol.response_schema()
        logger.debug(
            "Deserializing %d byte response as %s",
            len(inner),
            response_schema.DESCRIPTOR.name,
            extra={"device_id": self.device_id, "elapsed_ms": round(elapsed * 1000, 1)},
        )
        return deserialize(response_schema, inner)

    async def get_sequence(self) -> int:
        """Keep-alive round trip: ping with a random sequence, return reply sequence + 1."""
        ping = self.protocol.encode_ping(random.randrange(SEQUENCE_MAX))
        response = await self.send_and_await_response(ping, schema=PING_SCHEMA)
        self.sequence = response.sequence + 1
        logger.debug(
            "Current sequence number: %d",
            response.sequence,
            extra={"device_id": self.device_id, "sequence": response.sequence},
        )
        return self.sequence

    def reset_sequence(self) -> None:
        self.sequence = None
