"""Logging abstraction layer for yeelight-lan.

Every record is tagged with the correlation ID and device id of the task that emitted
it. Output goes to a JSON file, a human-readable stream, or both, and structured
context passed as ``extra=`` travels beside the message instead of inside it.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import TextIO

from typing_extensions import override

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "YeelightLogger",
    "get_logger",
]

Context = Mapping[str, object]

_HUMAN_FORMAT = (
    "%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(device_tag)s %(correlation_tag)s > %(message)s"
)
_STREAMS: dict[str, TextIO] = {"stdout": sys.stdout, "stderr": sys.stderr}


def _context_of(record: logging.LogRecord) -> dict[str, object] | None:
    extra_data = getattr(record, "extra_data", None)
    if isinstance(extra_data, Mapping) and extra_data:
        return dict(extra_data)
    return None


def _task_ids() -> tuple[str | None, str | None]:
    from yeelight_lan.correlation import get_correlation_id, get_device_id

    return get_correlation_id(), get_device_id()


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id, device_id = _task_ids()
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": correlation_id,
            "device_id": device_id,
        }
        context = _context_of(record)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(payload, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``<device> [last 8 chars of correlation id] > message | key=value ...``"""

    def __init__(self) -> None:
        super().__init__(fmt=_HUMAN_FORMAT, datefmt="%m/%d/%y %H:%M:%S")

    @override
    def format(self, record: logging.LogRecord) -> str:
        correlation_id, device_id = _task_ids()
        record.correlation_tag = f"[{correlation_id[-8:]}]" if correlation_id else "[--------]"
        record.device_tag = f"<{device_id}>" if device_id else "<->"

        line = super().format(record)
        context = _context_of(record)
        if not context:
            return line
        return " | ".join([line, *(f"{key}={value}" for key, value in context.items())])


def _file_handler(path: str | Path) -> logging.Handler:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(target, mode="a")


def _human_handler(output: str) -> logging.Handler:
    stream = _STREAMS.get(output)
    if stream is not None:
        return logging.StreamHandler(stream)
    try:
        return _file_handler(output)
    except OSError as e:
        print(f"Warning: cannot open human log file {output}, using stderr: {e}", file=sys.stderr)
        return logging.StreamHandler(sys.stderr)


def _build_handlers(log_format: str, json_file: str | Path | None, human_output: str) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if log_format in ("json", "both") and json_file:
        try:
            handler = _file_handler(json_file)
        except OSError as e:
            print(f"Warning: cannot open JSON log file {json_file}: {e}", file=sys.stderr)
        else:
            handler.setFormatter(JSONFormatter())
            handlers.append(handler)
    if log_format in ("human", "both"):
        handler = _human_handler(human_output)
        handler.setFormatter(HumanReadableFormatter())
        handlers.append(handler)
    return handlers


class YeelightLogger:
    """Thin wrapper over a stdlib logger with ``extra=`` context support.

    Handlers are attached the first time a name is seen; later calls with the same
    name reuse them.
    """

    def __init__(
        self,
        name: str,
        log_format: str = "human",
        json_file: str | Path | None = None,
        human_output: str | None = "stderr",
    ) -> None:
        """
        Args:
            name: Logger name, usually ``__name__``
            log_format: "json", "human" or "both"
            json_file: JSON log file; JSON output is disabled without one
            human_output: "stdout", "stderr" or a file path
        """
        from yeelight_lan.const import YEELIGHT_DEBUG

        self.name = name
        self.log_format = log_format
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if YEELIGHT_DEBUG else logging.INFO)

        if not self.logger.handlers:
            for handler in _build_handlers(log_format, json_file, human_output or "stderr"):
                handler.setLevel(self.logger.level)
                self.logger.addHandler(handler)

    def log(self, level: int, msg: str, *args: object, extra: Context | None = None, stacklevel: int = 2) -> None:
        payload = {"extra_data": dict(extra)} if extra else None
        self.logger.log(level, msg, *args, extra=payload, stacklevel=stacklevel)

    def debug(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self.log(logging.DEBUG, msg, *args, extra=extra, stacklevel=3)

    def info(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self.log(logging.INFO, msg, *args, extra=extra, stacklevel=3)

    def warning(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self.log(logging.WARNING, msg, *args, extra=extra, stacklevel=3)

    def error(self, msg: str, *args: object, extra: Context | None = None) -> None:
        self.log(logging.ERROR, msg, *args, extra=extra, stacklevel=3)

    def exception(self, msg: str, *args: object, extra: Context | None = None) -> None:
        """Log at ERROR with the active exception's traceback."""
        payload = {"extra_data": dict(extra)} if extra else None
        self.logger.exception(msg, *args, extra=payload, stacklevel=2)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)
        for handler in self.logger.handlers:
            handler.setLevel(level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return self.logger.handlers


def get_logger(
    name: str,
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
) -> YeelightLogger:
    """Get a YeelightLogger; unset arguments come from the YEELIGHT_LOG_* settings."""
    from yeelight_lan.const import (
        YEELIGHT_LOG_FORMAT,
        YEELIGHT_LOG_HUMAN_OUTPUT,
        YEELIGHT_LOG_JSON_FILE,
    )

    return YeelightLogger(
        name,
        log_format=log_format or YEELIGHT_LOG_FORMAT,
        json_file=json_file or YEELIGHT_LOG_JSON_FILE or None,
        human_output=human_output or YEELIGHT_LOG_HUMAN_OUTPUT,
    )
