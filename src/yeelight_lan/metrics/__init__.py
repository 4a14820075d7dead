"""Metrics module."""

from .registry import (
    record_advertisement,
    record_command,
    record_connect,
    record_decode_error,
    record_event_dropped,
    record_heartbeat,
    record_known_devices,
    record_notification,
    record_read_error,
    record_reconnection,
    record_result,
    record_result_latency,
    record_session_state,
    start_metrics_server,
)

__all__ = [
    "record_advertisement",
    "record_command",
    "record_connect",
    "record_decode_error",
    "record_event_dropped",
    "record_heartbeat",
    "record_known_devices",
    "record_notification",
    "record_read_error",
    "record_reconnection",
    "record_result",
    "record_result_latency",
    "record_session_state",
    "start_metrics_server",
]
