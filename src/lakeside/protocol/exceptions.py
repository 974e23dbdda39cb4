"""Exception hierarchy for Lakeside protocol errors.

Errors raise instead of returning None. ``LakesideError`` is the common base
for every error the driver raises, including the transport and device
families defined in their own packages.
"""

from __future__ import annotations


class LakesideError(Exception):
    """Base exception for all Lakeside driver errors.

    Attributes:
        reason: Short machine-readable failure reason

    """

    def __init__(self, message: str, reason: str = "") -> None:
        self.reason: str = reason or message
        super().__init__(message)


class PacketDecodeError(LakesideError):
    """Payload cannot be decrypted or deserialized.

    Attributes:
        reason: Specific failure reason (e.g. "invalid_cipher_length", "codec_error")
        data_preview: First 16 bytes of the offending data (avoids leaking device codes)

    """

    def __init__(self, reason: str, data: bytes = b"") -> None:
        self.data_preview: bytes = data[:16] if data else b""
        super().__init__(f"Packet decode failed: {reason}", reason)


class PacketFramingError(LakesideError):
    """Decrypted response does not contain a complete length-prefixed frame.

    Attributes:
        reason: Specific failure reason (e.g. "too_short", "truncated")
        buffer_size: Size of the decrypted buffer

    """

    def __init__(self, reason: str, buffer_size: int = 0) -> None:
        self.buffer_size: int = buffer_size
        super().__init__(f"Packet framing failed: {reason} ({buffer_size} bytes)", reason)


class UnsupportedModelError(LakesideError):
    """No response schema is registered for the device model."""

    def __init__(self, model: str) -> None:
        self.model: str = model
        super().__init__(f'Unable to deserialize response for model "{model}"', "unsupported_model")
