"""Prometheus metrics registry for Yeelight sessions."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

# Command / result metrics
yeelight_commands_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_commands_total",
    "Total commands by outcome (sent, unsupported, not_connected, write_error)",
    ["device_id", "method", "outcome"],
)

yeelight_results_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_results_total",
    "Total results by outcome (ok, error, unmatched, expired)",
    ["device_id", "outcome"],
)

yeelight_result_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "yeelight_result_latency_seconds",
    "Command to result latency in seconds",
    ["device_id"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

yeelight_notifications_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_notifications_total",
    "Total notifications received",
    ["device_id", "method"],
)

yeelight_events_dropped_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_events_dropped_total",
    "Total events dropped because the event queue was full",
    ["device_id"],
)

# Stream metrics
yeelight_read_errors_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_read_errors_total",
    "Total read errors",
    ["device_id", "reason"],
)

yeelight_decode_errors_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_decode_errors_total",
    "Total lines that could not be decoded",
    ["device_id", "reason"],
)

# Connection metrics
yeelight_session_state: Final = Gauge(  # type: ignore[assignment]
    "yeelight_session_state",
    "Current session state",
    ["device_id", "state"],
)

yeelight_connect_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_connect_total",
    "Total connect attempts",
    ["device_id", "outcome"],
)

yeelight_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_reconnection_total",
    "Total managed reconnect attempts",
    ["device_id", "reason", "outcome"],
)

yeelight_heartbeat_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_heartbeat_total",
    "Total refresh heartbeats",
    ["device_id", "outcome"],
)

# Registry metrics
yeelight_advertisements_total: Final = Counter(  # type: ignore[assignment]
    "yeelight_advertisements_total",
    "Total discovery advertisements observed",
    ["outcome"],
)

yeelight_known_devices: Final = Gauge(  # type: ignore[assignment]
    "yeelight_known_devices",
    "Devices currently held by the registry",
)

SESSION_STATES: Final = ("disconnected", "connecting", "online", "refreshing")

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_command(device_id: str, method: str, outcome: str) -> None:
    """Record a command attempt."""
    yeelight_commands_total.labels(device_id=device_id, method=method, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_result(device_id: str, outcome: str) -> None:
    """Record a result (or an expired / unmatched one)."""
    yeelight_results_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_result_latency(device_id: str, latency_seconds: float) -> None:
    yeelight_result_latency_seconds.labels(device_id=device_id).observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_notification(device_id: str, method: str) -> None:
    yeelight_notifications_total.labels(device_id=device_id, method=method).inc()  # type: ignore[no-untyped-call]


def record_event_dropped(device_id: str) -> None:
    yeelight_events_dropped_total.labels(device_id=device_id).inc()  # type: ignore[no-untyped-call]


def record_read_error(device_id: str, reason: str) -> None:
    """Record a read error."""
    yeelight_read_errors_total.labels(device_id=device_id, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_decode_error(device_id: str, reason: str) -> None:
    """Record a decode error."""
    yeelight_decode_errors_total.labels(device_id=device_id, reason=reason).inc()  # type: ignore[no-untyped-call]


def record_session_state(device_id: str, state: str) -> None:
    """Record session state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in SESSION_STATES:
        value = 1 if s == state else 0
        yeelight_session_state.labels(device_id=device_id, state=s).set(value)  # type: ignore[no-untyped-call]


def record_connect(device_id: str, outcome: str) -> None:
    yeelight_connect_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_reconnection(device_id: str, reason: str, outcome: str) -> None:
    """Record a managed reconnect attempt."""
    yeelight_reconnection_total.labels(device_id=device_id, reason=reason, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_heartbeat(device_id: str, outcome: str) -> None:
    """Record a refresh heartbeat outcome."""
    yeelight_heartbeat_total.labels(device_id=device_id, outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_advertisement(outcome: str) -> None:
    yeelight_advertisements_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_known_devices(count: int) -> None:
    yeelight_known_devices.set(count)  # type: ignore[no-untyped-call]
