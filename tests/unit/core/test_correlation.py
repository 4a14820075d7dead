"""Unit tests for correlation and device context tracking."""

from __future__ import annotations

import asyncio
import uuid

import pytest

from yeelight_lan.correlation import (
    correlation_context,
    device_context,
    ensure_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    get_device_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def _reset_correlation():
    set_correlation_id(None)
    yield
    set_correlation_id(None)


def test_generated_ids_are_uuid7():
    first = generate_correlation_id()
    second = generate_correlation_id()

    assert uuid.UUID(hex=first).version == 7
    assert first != second


def test_context_restores_previous_id():
    set_correlation_id("outer")

    with correlation_context("inner") as cid:
        assert cid == "inner"
        assert get_correlation_id() == "inner"

    assert get_correlation_id() == "outer"


def test_context_generates_when_missing():
    with correlation_context() as cid:
        assert cid is not None
        assert get_correlation_id() == cid


def test_context_without_auto_generate():
    with correlation_context(auto_generate=False) as cid:
        assert cid is None


def test_ensure_correlation_id_is_stable():
    first = ensure_correlation_id()

    assert ensure_correlation_id() == first


def test_device_context_nests():
    with device_context("0x1"):
        with device_context("0x2"):
            assert get_device_id() == "0x2"
        assert get_device_id() == "0x1"
    assert get_device_id() is None


@pytest.mark.asyncio
async def test_tasks_inherit_device_context():
    async def read_id() -> str | None:
        return get_device_id()

    with device_context("0x3"):
        task = asyncio.create_task(read_id())

    assert await task == "0x3"
