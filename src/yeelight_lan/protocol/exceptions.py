"""Custom exception types for Yeelight protocol errors.

This module defines the root of the exception hierarchy and the errors raised while
turning advertisements and wire lines into typed values. Parsers raise instead of
returning None.
"""

from __future__ import annotations


class YeelightError(Exception):
    """Base exception for all yeelight-lan errors.

    Every exception raised by this package inherits from this class, enabling
    catch-all handling while keeping specific types for detailed handling.
    """


class MalformedAdvertisement(YeelightError):
    """Discovery advertisement cannot be turned into a device.

    Raised when the Location header is missing or lacks the ``yeelight://`` scheme.

    Attributes:
        location: The offending Location value (empty string when absent)
    """

    def __init__(self, location: str = ""):
        self.location = location
        super().__init__(f"Malformed advertisement: location {location!r} lacks yeelight:// scheme")


class InvalidField(YeelightError):
    """Numeric advertisement field is missing or not an integer.

    Attributes:
        field: Header name (e.g. "Bright", "FW_Ver")
        value: Raw header value that failed to parse
    """

    def __init__(self, field: str, value: object = None):
        self.field = field
        self.value = value
        super().__init__(f"Invalid field {field}: {value!r} is not an integer")


class MessageDecodeError(YeelightError):
    """Inbound line is not a recognisable wire message.

    Attributes:
        reason: Specific failure reason (e.g. "invalid_json", "unknown_shape")
        line_preview: First 64 characters of the offending line
    """

    def __init__(self, reason: str, line: str = ""):
        self.reason = reason
        self.line_preview = line[:64]
        super().__init__(f"Message decode failed: {reason}")


class InvalidParameter(YeelightError):
    """Command parameter is outside the range the device accepts.

    Attributes:
        name: Parameter name
        value: Rejected value
        allowed: Human-readable description of the accepted range
    """

    def __init__(self, name: str, value: object, allowed: str):
        self.name = name
        self.value = value
        self.allowed = allowed
        super().__init__(f"Invalid parameter {name}={value!r} (allowed: {allowed})")
