"""Session engine: stream abstraction, correlation and the per-device processing loop."""

from yeelight_lan.transport.exceptions import CommandWriteError, NotConnected, UnsupportedCommand
from yeelight_lan.transport.session import Session
from yeelight_lan.transport.socket_abstraction import TCPConnection, parse_address
from yeelight_lan.transport.timeouts import TimeoutConfig
from yeelight_lan.transport.types import InboundLine, PendingCall, SessionState

__all__ = [
    "CommandWriteError",
    "InboundLine",
    "NotConnected",
    "PendingCall",
    "Session",
    "SessionState",
    "TCPConnection",
    "TimeoutConfig",
    "UnsupportedCommand",
    "parse_address",
]
