"""Unit tests for TimeoutConfig."""

from __future__ import annotations

import pytest

from tests.helpers.expectations import expect_exception
from yeelight_lan.transport.timeouts import TimeoutConfig


class TestTimeoutConfig:
    def test_defaults(self):
        config = TimeoutConfig()

        assert config.connect_timeout_seconds == 3.0
        assert config.result_timeout_seconds == 2.0
        assert config.heartbeat_timeout_seconds == 2.0
        assert config.refresh_interval_seconds == 30.0
        assert config.pending_call_ttl_seconds == 30.0
        assert config.max_read_errors == 5

    def test_heartbeat_follows_result_timeout(self):
        config = TimeoutConfig(result_timeout_seconds=0.5)

        assert config.heartbeat_timeout_seconds == 0.5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"connect_timeout_seconds": 0},
            {"result_timeout_seconds": -1},
            {"refresh_interval_seconds": 0},
            {"max_read_errors": 0},
        ],
    )
    def test_rejects_non_positive(self, kwargs):
        expect_exception(TimeoutConfig, ValueError, **kwargs)

    def test_repr(self):
        text = repr(TimeoutConfig())

        assert text.startswith("TimeoutConfig(connect=3.0s")
        assert "max_read_errors=5" in text
