"""Exception types for session and transport errors.

Extends the protocol exception hierarchy with the errors a caller can get back from
``Session.send_command``.
"""

from __future__ import annotations

from yeelight_lan.protocol.exceptions import YeelightError


class UnsupportedCommand(YeelightError):
    """Command is not in the device's advertised support set.

    Raised before anything is written, so the request sequence is not consumed.

    Attributes:
        method: Rejected command name
        device_id: Device the command was addressed to
    """

    def __init__(self, method: str, device_id: str = ""):
        self.method = method
        self.device_id = device_id
        super().__init__(f"Command {method!r} not supported by device {device_id}")


class NotConnected(YeelightError):
    """Session has no live stream.

    Attributes:
        device_id: Device the session belongs to
        state: Session state when the error occurred
    """

    def __init__(self, device_id: str = "", state: str = "unknown"):
        self.device_id = device_id
        self.state = state
        super().__init__(f"Device {device_id} not connected (state: {state})")


class CommandWriteError(YeelightError):
    """Writing a command frame failed.

    The session has already made its managed reconnect attempt by the time this is
    raised; the command was not delivered and its pending call was dropped.

    Attributes:
        request_id: Id that had been assigned to the command
        reason: Underlying failure description
        reconnected: Whether the managed reconnect succeeded
    """

    def __init__(self, request_id: int, reason: str, reconnected: bool = False):
        self.request_id = request_id
        self.reason = reason
        self.reconnected = reconnected
        super().__init__(f"Write of request {request_id} failed: {reason} (reconnected: {reconnected})")
