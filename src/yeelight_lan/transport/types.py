"""Core dataclasses for the session engine.

This module defines the records the session uses to track outstanding requests and
hand lines from the reader task to the processing loop.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from yeelight_lan.protocol.messages import Result


class SessionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    ONLINE = "online"
    REFRESHING = "refreshing"


@dataclass
class PendingCall:
    """Tracks a command awaiting its Result.

    Attributes:
        id: Request id written on the wire
        method: Command name
        params: Parameters sent with the command
        sent_at: Timestamp when the command was recorded (time.monotonic())
        correlation_id: UUID v7 for observability
        result_slot: Single-slot future resolved with the matching Result
    """

    id: int
    method: str
    params: list[Any]
    sent_at: float
    correlation_id: str
    result_slot: asyncio.Future[Result] = field(repr=False)

    def age(self, now: float | None = None) -> float:
        return (time.monotonic() if now is None else now) - self.sent_at


@dataclass
class InboundLine:
    """One unit handed from the reader task to the processing loop.

    Exactly one of ``text`` / ``error`` is meaningful; ``eof`` marks end of stream.

    Attributes:
        text: Decoded line without terminator
        error: Read error, if the read failed
        eof: Stream closed (clean closure, reset, or too many read errors)
        generation: Stream generation the line was read from
    """

    text: str = ""
    error: Exception | None = None
    eof: bool = False
    generation: int = 0
