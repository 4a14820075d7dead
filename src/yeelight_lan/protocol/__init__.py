"""Yeelight protocol package - advertisement parsing and the line-delimited JSON codec.

Public API:
- Wire message types (Command, Result, Notification) and their codec
- Advertisement parser producing Device records
- Protocol exception hierarchy
"""

from yeelight_lan.protocol.exceptions import (
    InvalidField,
    InvalidParameter,
    MalformedAdvertisement,
    MessageDecodeError,
    YeelightError,
)
from yeelight_lan.protocol.messages import (
    Command,
    Notification,
    Result,
    ResultError,
    WireMessage,
    decode_message,
    encode_command,
)
from yeelight_lan.protocol.advertisement import parse_advertisement, parse_support

__all__ = [
    # Codec
    "Command",
    "Notification",
    "Result",
    "ResultError",
    "WireMessage",
    "decode_message",
    "encode_command",
    # Advertisement
    "parse_advertisement",
    "parse_support",
    # Exceptions
    "InvalidField",
    "InvalidParameter",
    "MalformedAdvertisement",
    "MessageDecodeError",
    "YeelightError",
]
