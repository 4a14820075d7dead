"""Unit tests for metrics registry."""

from __future__ import annotations

from unittest.mock import patch

from yeelight_lan.metrics import registry


def _labels(metric) -> list[dict[str, str]]:
    return [s.labels for s in metric.collect()[0].samples]


class TestCommandMetrics:
    """Tests for command / result metrics."""

    def test_record_command(self) -> None:
        registry.record_command("m-device1", "toggle", "sent")
        assert {"device_id": "m-device1", "method": "toggle", "outcome": "sent"} in _labels(
            registry.yeelight_commands_total,
        )

    def test_record_result(self) -> None:
        registry.record_result("m-device1", "unmatched")
        assert {"device_id": "m-device1", "outcome": "unmatched"} in _labels(registry.yeelight_results_total)

    def test_record_result_latency(self) -> None:
        registry.record_result_latency("m-device1", 0.04)
        samples = list(registry.yeelight_result_latency_seconds.collect()[0].samples)
        count = next(s for s in samples if s.name.endswith("_count") and s.labels == {"device_id": "m-device1"})
        assert count.value >= 1

    def test_record_notification(self) -> None:
        registry.record_notification("m-device1", "props")
        assert {"device_id": "m-device1", "method": "props"} in _labels(registry.yeelight_notifications_total)


class TestConnectionMetrics:
    """Tests for connection metrics."""

    def test_record_session_state(self) -> None:
        registry.record_session_state("m-device2", "online")
        samples = list(registry.yeelight_session_state.collect()[0].samples)
        values = {s.labels["state"]: s.value for s in samples if s.labels["device_id"] == "m-device2"}
        assert values == {"disconnected": 0, "connecting": 0, "online": 1, "refreshing": 0}

    def test_record_reconnection(self) -> None:
        registry.record_reconnection("m-device2", "eof", "success")
        assert {"device_id": "m-device2", "reason": "eof", "outcome": "success"} in _labels(
            registry.yeelight_reconnection_total,
        )

    def test_record_heartbeat(self) -> None:
        registry.record_heartbeat("m-device2", "timeout")
        assert {"device_id": "m-device2", "outcome": "timeout"} in _labels(registry.yeelight_heartbeat_total)

    def test_record_read_error(self) -> None:
        registry.record_read_error("m-device2", "OSError")
        assert {"device_id": "m-device2", "reason": "OSError"} in _labels(registry.yeelight_read_errors_total)


class TestRegistryMetrics:
    def test_record_known_devices(self) -> None:
        registry.record_known_devices(3)
        assert registry.yeelight_known_devices.collect()[0].samples[0].value == 3

    def test_record_advertisement(self) -> None:
        registry.record_advertisement("malformed")
        assert {"outcome": "malformed"} in _labels(registry.yeelight_advertisements_total)


def test_start_metrics_server_is_idempotent() -> None:
    with (
        patch.object(registry, "start_http_server") as mock_start,
        patch.dict(registry._server_state, {"started": False}),
    ):
        registry.start_metrics_server(9999)
        registry.start_metrics_server(9999)

    mock_start.assert_called_once_with(9999)
