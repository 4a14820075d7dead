"""Fixtures for integration tests."""

import asyncio
import uuid
from collections.abc import AsyncGenerator

import pytest

from tests.helpers.mock_bulb import MockBulb
from yeelight_lan.devices.device import Device, DeviceStatus
from yeelight_lan.transport.session import Session
from yeelight_lan.transport.timeouts import TimeoutConfig


@pytest.fixture
async def mock_bulb() -> AsyncGenerator[MockBulb]:
    bulb = MockBulb()
    await bulb.start()
    yield bulb
    await bulb.stop()


@pytest.fixture
def unique_device_id() -> str:
    """Fresh device id per test so metric labels do not collide."""
    return f"0x{uuid.uuid4().hex[:16]}"


@pytest.fixture
def bulb_device(mock_bulb: MockBulb, unique_device_id: str) -> Device:
    return Device(
        id=unique_device_id,
        address=mock_bulb.address,
        model="color",
        support={"get_prop", "set_power", "toggle", "set_bright", "set_ct_abx", "set_name"},
        status=DeviceStatus.DISCOVERED,
    )


@pytest.fixture
def integration_timeouts() -> TimeoutConfig:
    return TimeoutConfig(
        connect_timeout_seconds=1.0,
        result_timeout_seconds=0.5,
        refresh_interval_seconds=30.0,
        write_timeout_seconds=1.0,
        pending_call_ttl_seconds=5.0,
        max_read_errors=3,
    )


@pytest.fixture
async def live_session(bulb_device: Device, integration_timeouts: TimeoutConfig) -> AsyncGenerator[Session]:
    """Session over real TCP to the mock bulb, started; shut down after the test."""
    session = Session(bulb_device, events=asyncio.Queue(), timeouts=integration_timeouts)
    assert await session.start()
    yield session
    await session.shutdown()
