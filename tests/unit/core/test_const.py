"""Unit tests for environment-driven configuration."""

import pytest

from yeelight_lan import const


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", 3.0),
        ("1.5", 1.5),
        ("soon", 3.0),
        ("0", 3.0),
        ("-2", 3.0),
    ],
)
def test_env_float(monkeypatch, raw, expected):
    monkeypatch.setenv("YEELIGHT_TEST_TIMEOUT", raw)
    assert const._env_float("YEELIGHT_TEST_TIMEOUT", 3.0) == expected


@pytest.mark.parametrize(("raw", "expected"), [("7", 7), ("7.5", 5), ("", 5)])
def test_env_int(monkeypatch, raw, expected):
    monkeypatch.setenv("YEELIGHT_TEST_ERRORS", raw)
    assert const._env_int("YEELIGHT_TEST_ERRORS", 5) == expected


def test_refresh_properties_cover_core_state():
    assert const.REFRESH_PROPERTIES == ("power", "bright", "ct", "rgb", "hue", "sat", "color_mode", "name")
