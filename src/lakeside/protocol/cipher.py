"""AES-128-CBC envelope used on every Lakeside connection."""

from __future__ import annotations

from typing import Protocol

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from lakeside.const import AES_IV, AES_KEY
from lakeside.protocol.exceptions import PacketDecodeError

BLOCK_SIZE = 16


class PayloadCipher(Protocol):
    """Anything that can wrap and unwrap a payload for the wire."""

    def encrypt(self, data: bytes) -> bytes: ...

    def decrypt(self, data: bytes) -> bytes: ...


def zero_pad(data: bytes) -> bytes:
    """Pad with NUL bytes to the next block boundary (a whole block when aligned)."""
    return data + b"\x00" * (BLOCK_SIZE - len(data) % BLOCK_SIZE)


class LakesideCipher:
    """AES-128-CBC with the fixed vendor key and IV.

    Each call builds its own encryptor/decryptor, so one instance can be
    shared freely and holds no chaining state between packets.
    """

    def __init__(self, key: bytes = AES_KEY, iv: bytes = AES_IV) -> None:
        if len(key) != BLOCK_SIZE or len(iv) != BLOCK_SIZE:
            msg = "AES-128 key and IV must be 16 bytes"
            raise ValueError(msg)
        self._key = key
        self._iv = iv

    def _cipher(self) -> Cipher[modes.CBC]:
        return Cipher(algorithms.AES(self._key), modes.CBC(self._iv))

    def encrypt(self, data: bytes) -> bytes:
        encryptor = self._cipher().encryptor()
        return encryptor.update(zero_pad(data)) + encryptor.finalize()

    def decrypt(self, data: bytes) -> bytes:
        if not data or len(data) % BLOCK_SIZE:
            raise PacketDecodeError("invalid_cipher_length", data)
        decryptor = self._cipher().decryptor()
        return decryptor.update(data) + decryptor.finalize()

    def __repr__(self) -> str:
        return "LakesideCipher(AES-128-CBC)"
