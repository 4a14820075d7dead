"""Wire message types and the line codec.

Every frame is one UTF-8 JSON object terminated by ``\\r\\n``. Inbound objects are
classified once, at decode time, by which keys they carry:

- ``result`` or ``error`` present: :class:`Result`
- ``method`` and ``id`` present: :class:`Command`
- ``method`` only: :class:`Notification`
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from yeelight_lan.const import LINE_TERMINATOR
from yeelight_lan.protocol.exceptions import MessageDecodeError

__all__ = [
    "Command",
    "Notification",
    "Result",
    "ResultError",
    "WireMessage",
    "decode_message",
    "encode_command",
]


@dataclass
class ResultError:
    """Error body of a failed Result."""

    code: int
    message: str = ""


@dataclass
class Command:
    """Outbound request.

    Attributes:
        id: Request id, unique and increasing within a session
        method: Command name (must be in the device's support set)
        params: Ordered positional parameters
    """

    id: int
    method: str
    params: list[Any] = field(default_factory=list)

    def encode(self) -> bytes:
        return encode_command(self)


@dataclass
class Result:
    """Reply to a previously sent Command, matched by id."""

    id: int
    result: list[Any] | None = None
    error: ResultError | None = None
    device_id: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class Notification:
    """Unsolicited property push from a device."""

    method: str
    params: dict[str, Any] = field(default_factory=dict)
    device_id: str = ""


WireMessage = Command | Result | Notification


def encode_command(command: Command) -> bytes:
    """Serialize a Command to one compact JSON frame including the terminator."""
    payload = {"id": command.id, "method": command.method, "params": list(command.params)}
    return json.dumps(payload, separators=(",", ":")).encode("utf-8") + LINE_TERMINATOR


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _decode_error_body(raw: object, line: str) -> ResultError:
    if not isinstance(raw, dict):
        raise MessageDecodeError("invalid_error_body", line)
    code = raw.get("code")
    if not _is_int(code):
        raise MessageDecodeError("invalid_error_code", line)
    message = raw.get("message", "")
    return ResultError(code=code, message=str(message))


def decode_message(line: str | bytes, device_id: str = "") -> WireMessage:
    """Decode one inbound line into a tagged wire message.

    Args:
        line: Raw line, with or without the trailing terminator
        device_id: Id of the device the line came from; copied onto the message

    Returns:
        Result, Notification or Command

    Raises:
        MessageDecodeError: Line is not JSON or matches no known shape
    """
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError("invalid_utf8") from e

    text = line.strip()
    if not text:
        raise MessageDecodeError("empty_line", text)

    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise MessageDecodeError("invalid_json", text) from e

    if not isinstance(obj, dict):
        raise MessageDecodeError("not_an_object", text)

    if "result" in obj or "error" in obj:
        msg_id = obj.get("id")
        if not _is_int(msg_id):
            raise MessageDecodeError("invalid_id", text)
        result = obj.get("result")
        if result is not None and not isinstance(result, list):
            raise MessageDecodeError("invalid_result", text)
        error = obj.get("error")
        return Result(
            id=msg_id,
            result=result,
            error=_decode_error_body(error, text) if error is not None else None,
            device_id=device_id,
        )

    if "method" in obj:
        method = obj["method"]
        if not isinstance(method, str):
            raise MessageDecodeError("invalid_method", text)

        if "id" in obj:
            msg_id = obj["id"]
            if not _is_int(msg_id):
                raise MessageDecodeError("invalid_id", text)
            params = obj.get("params", [])
            if not isinstance(params, list):
                raise MessageDecodeError("invalid_params", text)
            return Command(id=msg_id, method=method, params=params)

        params = obj.get("params", {})
        if not isinstance(params, dict):
            raise MessageDecodeError("invalid_params", text)
        return Notification(method=method, params=params, device_id=device_id)

    raise MessageDecodeError("unknown_shape", text)
