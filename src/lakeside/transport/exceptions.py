"""Exception types for transport and exchange failures."""

from __future__ import annotations

from lakeside.protocol.exceptions import LakesideError


class TransportError(LakesideError):
    """TCP open/read/write failure (refused, timed out, peer closed).

    Recoverable: the exchange engine reconnects and retries once.

    Attributes:
        reason: Specific failure reason
        host: Device host
        port: Device port

    """

    def __init__(self, reason: str, host: str = "", port: int = 0) -> None:
        self.host: str = host
        self.port: int = port
        endpoint = f" ({host}:{port})" if host else ""
        super().__init__(f"Transport error: {reason}{endpoint}", reason)


class SendError(LakesideError):
    """Fire-and-forget send failed after the reconnect-and-retry attempt.

    Attributes:
        reason: Failure reason of the last attempt
        attempts: Number of write attempts made

    """

    def __init__(self, reason: str, attempts: int) -> None:
        self.attempts: int = attempts
        super().__init__(f"Send failed: {reason} after {attempts} attempts", reason)


class ExchangeError(LakesideError):
    """Request/response exchange failed after the reconnect-and-retry attempt.

    Attributes:
        reason: Failure reason of the last attempt
        attempts: Number of exchange attempts made

    """

    def __init__(self, reason: str, attempts: int) -> None:
        self.attempts: int = attempts
        super().__init__(f"Exchange failed: {reason} after {attempts} attempts", reason)
