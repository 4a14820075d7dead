"""
Shared fixtures for unit tests.

This module provides reusable fixtures for testing yeelight-lan components.
"""

import asyncio
from collections.abc import AsyncGenerator

import pytest

from tests.helpers.fake_connection import FakeConnectionFactory
from yeelight_lan.devices.device import Device, DeviceStatus, Power
from yeelight_lan.transport.session import Session
from yeelight_lan.transport.timeouts import TimeoutConfig

FULL_SUPPORT = {
    "get_prop",
    "set_power",
    "toggle",
    "set_bright",
    "set_ct_abx",
    "set_rgb",
    "set_hsv",
    "set_name",
}


@pytest.fixture
def advertisement_headers():
    """
    Discovery response headers for a colour bulb, as sent by real firmware.
    """
    return {
        "Cache-Control": "max-age=3600",
        "Location": "yeelight://192.168.1.239:55443",
        "Id": "0x000000000015243f",
        "Model": "color",
        "Fw_ver": "18",
        "Support": "get_prop set_default set_power toggle set_bright start_cf stop_cf set_scene "
        "cron_add cron_get cron_del set_ct_abx set_rgb set_hsv setname",
        "Power": "on",
        "Bright": "100",
        "Color_mode": "2",
        "Ct": "4000",
        "Rgb": "16711680",
        "Hue": "100",
        "Sat": "35",
        "Name": "my_bulb",
    }


@pytest.fixture
def device():
    """Device that supports every command the session issues."""
    return Device(
        id="0x000000000015243f",
        address="127.0.0.1:55443",
        name="bulb",
        model="color",
        power=Power.OFF,
        bright=10,
        support=set(FULL_SUPPORT),
        status=DeviceStatus.DISCOVERED,
    )


@pytest.fixture
def timeouts():
    """Short timeouts so tests finish quickly; refresh far enough out not to fire."""
    return TimeoutConfig(
        connect_timeout_seconds=0.2,
        result_timeout_seconds=0.2,
        refresh_interval_seconds=30.0,
        write_timeout_seconds=0.2,
        pending_call_ttl_seconds=5.0,
        max_read_errors=3,
    )


@pytest.fixture
def factory():
    return FakeConnectionFactory()


@pytest.fixture
def events():
    return asyncio.Queue()


@pytest.fixture
async def session(device, events, timeouts, factory) -> AsyncGenerator[Session]:
    """Session wired to a FakeConnection; not yet connected. Shut down after the test."""
    s = Session(device, events=events, timeouts=timeouts, connection_factory=factory)
    yield s
    await s.shutdown()
