"""Unit tests for the logging abstraction."""

from __future__ import annotations

import json
import logging

from yeelight_lan.correlation import correlation_context, device_context
from yeelight_lan.logging_abstraction import HumanReadableFormatter, JSONFormatter, get_logger


def _record(msg: str = "hello %s", args: tuple = ("world",), extra_data: dict | None = None) -> logging.LogRecord:
    record = logging.LogRecord("yeelight_lan.test", logging.INFO, __file__, 10, msg, args, None)
    if extra_data is not None:
        record.extra_data = extra_data
    return record


class TestJSONFormatter:
    def test_includes_context_and_ids(self):
        with correlation_context("0190c4d2-0000-7000-8000-0000000000aa"), device_context("0x1"):
            output = JSONFormatter().format(_record(extra_data={"request_id": 3}))

        data = json.loads(output)
        assert data["message"] == "hello world"
        assert data["level"] == "INFO"
        assert data["correlation_id"] == "0190c4d2-0000-7000-8000-0000000000aa"
        assert data["device_id"] == "0x1"
        assert data["context"] == {"request_id": 3}

    def test_without_context(self):
        data = json.loads(JSONFormatter().format(_record()))

        assert data["correlation_id"] is None
        assert "context" not in data


class TestHumanReadableFormatter:
    def test_shows_device_and_short_correlation_id(self):
        with correlation_context("abcdef0123456789"), device_context("0x1"):
            output = HumanReadableFormatter().format(_record(extra_data={"method": "toggle"}))

        assert "<0x1> [23456789] > hello world | method=toggle" in output

    def test_placeholders_without_context(self):
        output = HumanReadableFormatter().format(_record())

        assert "<-> [--------] > hello world" in output


class TestYeelightLogger:
    def test_extra_is_attached_as_extra_data(self, caplog):
        logger = get_logger("yeelight_lan.test.extra", log_format="human", human_output="stderr")
        logger.logger.propagate = True

        with caplog.at_level(logging.INFO, logger="yeelight_lan.test.extra"):
            logger.info("connected %s", "0x1", extra={"address": "10.0.0.2:55443"})

        record = caplog.records[-1]
        assert record.getMessage() == "connected 0x1"
        assert record.extra_data == {"address": "10.0.0.2:55443"}

    def test_handlers_configured_once(self):
        first = get_logger("yeelight_lan.test.once", log_format="human")
        second = get_logger("yeelight_lan.test.once", log_format="human")

        assert first.logger is second.logger
        assert len(second.handlers) == 1

    def test_json_file_output(self, tmp_path):
        log_file = tmp_path / "logs" / "yeelight.json"
        logger = get_logger("yeelight_lan.test.json", log_format="json", json_file=log_file)

        logger.warning("heartbeat missed", extra={"device_id": "0x1"})
        for handler in logger.handlers:
            handler.flush()

        data = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert data["message"] == "heartbeat missed"
        assert data["context"] == {"device_id": "0x1"}

    def test_set_level(self):
        logger = get_logger("yeelight_lan.test.level", log_format="human")

        logger.set_level(logging.DEBUG)

        assert logger.logger.level == logging.DEBUG
        assert all(h.level == logging.DEBUG for h in logger.handlers)
