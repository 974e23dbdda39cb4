"""Exception types raised by the device facade and the capability registry."""

from __future__ import annotations

from lakeside.protocol.exceptions import LakesideError


class UnknownModelError(LakesideError, ValueError):
    """Model identifier is not in the capability registry (construction time)."""

    def __init__(self, model: object) -> None:
        self.model: object = model
        super().__init__(f"Unknown device model: {model!r}", "unknown_model")


class UnsupportedCapabilityError(LakesideError):
    """Operation requires a capability the device model does not have.

    Attributes:
        capability: Capability name ("brightness", "temperature", "colors")
        model: Device model code

    """

    def __init__(self, capability: str, model: str) -> None:
        self.capability: str = capability
        self.model: str = model
        super().__init__(f"Model {model} does not support {capability}", "unsupported_capability")


class StateNotLoadedError(LakesideError):
    """Cached state was read before a successful load_current_state()."""

    def __init__(self, field: str) -> None:
        self.field: str = field
        super().__init__(f"Unknown device state ({field}) - call load_current_state()", "state_not_loaded")
