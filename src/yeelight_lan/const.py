import os

from yeelight_lan import __version__

__all__ = [
    "DEFAULT_PORT",
    "LEGACY_RENAME_CAPABILITY",
    "LINE_TERMINATOR",
    "NOTIFICATION_METHOD",
    "REFRESH_PROPERTIES",
    "RENAME_CAPABILITY",
    "URI_SCHEME",
    "YEELIGHT_CONNECT_TIMEOUT",
    "YEELIGHT_DEBUG",
    "YEELIGHT_LOG_FORMAT",
    "YEELIGHT_LOG_HUMAN_OUTPUT",
    "YEELIGHT_LOG_JSON_FILE",
    "YEELIGHT_MAX_READ_ERRORS",
    "YEELIGHT_PENDING_CALL_TTL",
    "YEELIGHT_RAW",
    "YEELIGHT_REFRESH_INTERVAL",
    "YEELIGHT_RESULT_TIMEOUT",
    "YEELIGHT_VERSION",
    "YEELIGHT_WRITE_TIMEOUT",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "1", "yes", "y", "t", 1, "on", "o")
YEELIGHT_VERSION: str = __version__

# Wire protocol
URI_SCHEME: str = "yeelight://"
DEFAULT_PORT: int = 55443
LINE_TERMINATOR: bytes = b"\r\n"
NOTIFICATION_METHOD: str = "props"
RENAME_CAPABILITY: str = "set_name"
# some firmware advertises the rename capability under this token
LEGACY_RENAME_CAPABILITY: str = "setname"
REFRESH_PROPERTIES: tuple[str, ...] = (
    "power",
    "bright",
    "ct",
    "rgb",
    "hue",
    "sat",
    "color_mode",
    "name",
)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


# Session timing
YEELIGHT_CONNECT_TIMEOUT: float = _env_float("YEELIGHT_CONNECT_TIMEOUT", 3.0)
YEELIGHT_RESULT_TIMEOUT: float = _env_float("YEELIGHT_RESULT_TIMEOUT", 2.0)
YEELIGHT_REFRESH_INTERVAL: float = _env_float("YEELIGHT_REFRESH_INTERVAL", 30.0)
YEELIGHT_WRITE_TIMEOUT: float = _env_float("YEELIGHT_WRITE_TIMEOUT", 2.0)
YEELIGHT_PENDING_CALL_TTL: float = _env_float("YEELIGHT_PENDING_CALL_TTL", 30.0)
YEELIGHT_MAX_READ_ERRORS: int = _env_int("YEELIGHT_MAX_READ_ERRORS", 5)

YEELIGHT_RAW = os.environ.get("YEELIGHT_RAW_DEBUG", "0").casefold() in YES_ANSWER
YEELIGHT_DEBUG = os.environ.get("YEELIGHT_DEBUG", "0").casefold() in YES_ANSWER

# Logging Configuration
YEELIGHT_LOG_FORMAT: str = os.environ.get("YEELIGHT_LOG_FORMAT", "human")  # "json", "human", or "both"
YEELIGHT_LOG_JSON_FILE: str = os.environ.get("YEELIGHT_LOG_JSON_FILE", "")
YEELIGHT_LOG_HUMAN_OUTPUT: str = os.environ.get("YEELIGHT_LOG_HUMAN_OUTPUT", "stderr")  # "stdout", "stderr", or file path
