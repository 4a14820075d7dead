"""
Correlation and device context for session tasks.

A command records the correlation ID that was current when it was sent; the
processing loop re-enters that ID when the matching Result arrives, so both ends of
one request log under the same ID even though different tasks handle them. The
device context tags everything a session's tasks log with the device id.
"""

from __future__ import annotations

import contextvars
from collections.abc import Generator, Iterator
from contextlib import contextmanager

from uuid_extensions import uuid7

__all__ = [
    "correlation_context",
    "device_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "get_device_id",
    "set_correlation_id",
]

_current_correlation: contextvars.ContextVar[str | None] = contextvars.ContextVar("yeelight_correlation_id", default=None)
_current_device: contextvars.ContextVar[str | None] = contextvars.ContextVar("yeelight_device_id", default=None)


@contextmanager
def _bound(var: contextvars.ContextVar[str | None], value: str | None) -> Iterator[None]:
    token = var.set(value)
    try:
        yield
    finally:
        var.reset(token)


def generate_correlation_id() -> str:
    """
    New correlation ID.

    Returns:
        UUID v7 as 32 hex chars; v7 ids sort by creation time
    """
    return uuid7().hex


def get_correlation_id() -> str | None:
    return _current_correlation.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Replace the correlation ID of the current context (no automatic restore)."""
    _current_correlation.set(correlation_id)


def get_device_id() -> str | None:
    return _current_device.get()


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    auto_generate: bool = True,
) -> Generator[str | None]:
    """
    Run a block under ``correlation_id``, restoring the outer ID afterwards.

    With no ID given, a fresh one is generated unless ``auto_generate`` is False.

    Example:
        with correlation_context(call.correlation_id):
            logger.info("Result matched")
    """
    if correlation_id is None and auto_generate:
        correlation_id = generate_correlation_id()
    with _bound(_current_correlation, correlation_id):
        yield correlation_id


@contextmanager
def device_context(device_id: str | None) -> Generator[str | None]:
    """Bind a device id to log lines emitted inside the block."""
    with _bound(_current_device, device_id):
        yield device_id


def ensure_correlation_id() -> str:
    """Return the current correlation ID, creating and binding one if there is none."""
    existing = _current_correlation.get()
    if existing is not None:
        return existing
    created = generate_correlation_id()
    _current_correlation.set(created)
    return created
