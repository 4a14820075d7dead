"""Apply pushed and polled property values onto a Device."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from yeelight_lan.const import NOTIFICATION_METHOD
from yeelight_lan.devices.device import Device, Power
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.protocol.messages import Notification

__all__ = [
    "NUMERIC_PROPERTIES",
    "apply_notification",
    "apply_properties",
]

logger = get_logger(__name__)

# wire property name -> Device attribute
NUMERIC_PROPERTIES: dict[str, str] = {
    "bright": "bright",
    "ct": "ct",
    "rgb": "rgb",
    "hue": "hue",
    "sat": "sat",
    "color_mode": "color_mode",
}


def _apply_one(device: Device, key: str, value: Any) -> str | None:
    """Set one property; returns the attribute name when the value changed."""
    lp = "sync:_apply_one:"
    if key == "power":
        new_power = Power.from_wire(value)
        if new_power is Power.UNKNOWN:
            logger.warning(
                "%s Unrecognised power value %r from %s",
                lp,
                value,
                device.id,
                extra={"device_id": device.id, "value": value},
            )
        if device.power != new_power:
            device.power = new_power
            return "power"
        return None

    if key == "name":
        new_name = str(value)
        if device.name != new_name:
            device.name = new_name
            return "name"
        return None

    attr = NUMERIC_PROPERTIES.get(key)
    if attr is None:
        return None

    try:
        new_value = int(value)
    except (TypeError, ValueError):
        logger.warning(
            "%s Skipping %s=%r from %s: not an integer",
            lp,
            key,
            value,
            device.id,
            extra={"device_id": device.id, "property": key, "value": value},
        )
        return None

    if getattr(device, attr) != new_value:
        setattr(device, attr, new_value)
        return attr
    return None


def apply_notification(device: Device, notification: Notification) -> list[str]:
    """Apply a ``props`` push onto ``device`` in place.

    Notifications with any other method are ignored, as are unknown property keys.

    Returns:
        Names of the fields whose value changed
    """
    if notification.method != NOTIFICATION_METHOD:
        logger.debug(
            "sync:apply_notification: Ignoring notification method %s",
            notification.method,
            extra={"device_id": device.id, "method": notification.method},
        )
        return []

    changed = [attr for key, value in notification.params.items() if (attr := _apply_one(device, key, value))]
    return changed


def apply_properties(device: Device, names: Sequence[str], values: Sequence[Any] | None) -> list[str]:
    """Apply a ``get_prop`` result, pairing each queried name with its value.

    The device answers with values in the order the names were requested. Empty
    strings stand for properties the firmware does not report and are skipped.
    """
    if not values:
        return []
    if len(values) != len(names):
        logger.warning(
            "sync:apply_properties: %s returned %d values for %d properties",
            device.id,
            len(values),
            len(names),
            extra={"device_id": device.id, "names": list(names)},
        )

    pairs: Mapping[str, Any] = {
        name: value for name, value in zip(names, values, strict=False) if value != ""
    }
    changed = [attr for key, value in pairs.items() if (attr := _apply_one(device, key, value))]
    return changed
