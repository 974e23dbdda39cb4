"""Length-prefixed framing of decrypted device responses.

A decrypted response buffer is laid out as::

    +--------+--------+---------------------+-------------------+
    | len lo | len hi | codec payload (len) | padding / ignored |
    +--------+--------+---------------------+-------------------+

The length is an unsigned 16-bit little-endian integer. Anything after the
payload (cipher zero padding, stray bytes) is ignored.
"""

from __future__ import annotations

import logging
import struct

from lakeside.protocol.exceptions import PacketFramingError

logger = logging.getLogger(__name__)

FRAME_HEADER = struct.Struct("<H")
FRAME_HEADER_LENGTH = FRAME_HEADER.size
MAX_PAYLOAD_LENGTH = 0xFFFF


def pack_frame(payload: bytes) -> bytes:
    """Prefix payload with its 2-byte little-endian length."""
    if len(payload) > MAX_PAYLOAD_LENGTH:
        raise PacketFramingError("payload_too_large", len(payload))
    return FRAME_HEADER.pack(len(payload)) + payload


def unpack_frame(data: bytes) -> bytes:
    """Return the codec payload from a decrypted buffer.

    Raises:
        PacketFramingError: buffer shorter than the header or the declared length

    """
    if len(data) < FRAME_HEADER_LENGTH:
        raise PacketFramingError("too_short", len(data))

    (payload_length,) = FRAME_HEADER.unpack_from(data)
    end = FRAME_HEADER_LENGTH + payload_length
    if len(data) < end:
        raise PacketFramingError(f"truncated: declared {payload_length} payload bytes", len(data))

    if len(data) > end:
        logger.debug(
            "Ignoring %d trailing bytes after frame",
            len(data) - end,
            extra={"payload_length": payload_length, "buffer_size": len(data)},
        )
    return bytes(data[FRAME_HEADER_LENGTH:end])
