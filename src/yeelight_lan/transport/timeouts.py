"""Timeout configuration for a session.

Defaults come from the YEELIGHT_* environment settings in ``yeelight_lan.const``;
tests pass sub-second values directly.
"""

from __future__ import annotations

from yeelight_lan.const import (
    YEELIGHT_CONNECT_TIMEOUT,
    YEELIGHT_MAX_READ_ERRORS,
    YEELIGHT_PENDING_CALL_TTL,
    YEELIGHT_REFRESH_INTERVAL,
    YEELIGHT_RESULT_TIMEOUT,
    YEELIGHT_WRITE_TIMEOUT,
)


class TimeoutConfig:
    """Timing values used by one Session.

    The heartbeat deadline equals the result timeout: a refresh whose Result has not
    arrived within ``result_timeout_seconds`` counts as a liveness failure.
    """

    def __init__(
        self,
        connect_timeout_seconds: float = YEELIGHT_CONNECT_TIMEOUT,
        result_timeout_seconds: float = YEELIGHT_RESULT_TIMEOUT,
        refresh_interval_seconds: float = YEELIGHT_REFRESH_INTERVAL,
        write_timeout_seconds: float = YEELIGHT_WRITE_TIMEOUT,
        pending_call_ttl_seconds: float = YEELIGHT_PENDING_CALL_TTL,
        max_read_errors: int = YEELIGHT_MAX_READ_ERRORS,
    ):
        """Initialize timeout configuration.

        Args:
            connect_timeout_seconds: Bound on opening the stream (default: 3s)
            result_timeout_seconds: Heartbeat deadline and default wait_result timeout (default: 2s)
            refresh_interval_seconds: Idle time before a refresh heartbeat (default: 30s)
            write_timeout_seconds: Bound on draining one frame (default: 2s)
            pending_call_ttl_seconds: Age after which unanswered calls are pruned (default: 30s)
            max_read_errors: Consecutive read errors treated as stream closure (default: 5)
        """
        if min(
            connect_timeout_seconds,
            result_timeout_seconds,
            refresh_interval_seconds,
            write_timeout_seconds,
            pending_call_ttl_seconds,
        ) <= 0:
            msg = "timeouts must be positive"
            raise ValueError(msg)
        if max_read_errors < 1:
            msg = "max_read_errors must be at least 1"
            raise ValueError(msg)

        self.connect_timeout_seconds = connect_timeout_seconds
        self.result_timeout_seconds = result_timeout_seconds
        self.heartbeat_timeout_seconds = result_timeout_seconds
        self.refresh_interval_seconds = refresh_interval_seconds
        self.write_timeout_seconds = write_timeout_seconds
        self.pending_call_ttl_seconds = pending_call_ttl_seconds
        self.max_read_errors = max_read_errors

    def __repr__(self) -> str:
        """String representation showing all timeouts."""
        return (
            f"TimeoutConfig(connect={self.connect_timeout_seconds:.1f}s, "
            f"result={self.result_timeout_seconds:.1f}s, "
            f"refresh={self.refresh_interval_seconds:.1f}s, "
            f"write={self.write_timeout_seconds:.1f}s, "
            f"pending_ttl={self.pending_call_ttl_seconds:.1f}s, "
            f"max_read_errors={self.max_read_errors})"
        )
