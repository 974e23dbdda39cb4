"""
Shared fixtures for unit tests.

Devices are built on an in-memory FakeTransport and a pass-through cipher,
so every byte the facade writes can be decoded back with the protobuf
schemas.
"""

from __future__ import annotations

import pytest

from lakeside.devices.device import LakesideDevice
from tests.helpers.fake_transport import FakeTransport, PassthroughCipher
from tests.helpers.replies import DEVICE_CODE, DEVICE_IP


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport(host=DEVICE_IP)


@pytest.fixture
def make_device(fake_transport: FakeTransport):
    """Factory building a LakesideDevice over the shared FakeTransport."""

    def _make(model: str, name: str | None = None, keepalive_interval: float = 3600.0) -> LakesideDevice:
        return LakesideDevice(
            model,
            DEVICE_CODE,
            DEVICE_IP,
            name,
            keepalive_interval=keepalive_interval,
            transport=fake_transport,
            cipher=PassthroughCipher(),
        )

    return _make
