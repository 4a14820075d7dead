from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from yeelight_lan.const import REFRESH_PROPERTIES
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.protocol.exceptions import InvalidParameter

if TYPE_CHECKING:
    from yeelight_lan.devices.device import Device

__all__ = [
    "EFFECTS",
    "MIN_DURATION_MS",
    "LightCommands",
]

logger = get_logger(__name__)

EFFECTS = ("sudden", "smooth")
MIN_DURATION_MS = 30
MAX_RGB = 0xFFFFFF
MIN_CT, MAX_CT = 1700, 6500
MAX_HUE = 359
MAX_SAT = 100


def _check_range(name: str, value: int, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not low <= value <= high:
        raise InvalidParameter(name, value, f"{low}..{high}")
    return value


def _check_transition(effect: str, duration: int) -> None:
    if effect not in EFFECTS:
        raise InvalidParameter("effect", effect, " or ".join(EFFECTS))
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < MIN_DURATION_MS:
        raise InvalidParameter("duration", duration, f">= {MIN_DURATION_MS} ms")


# Mixin class for light command methods
class LightCommands:
    """Validated builders over ``send_command``.

    Each method checks its arguments locally, raising InvalidParameter before anything
    reaches the wire, and returns the request id of the command it sent. Pair it with
    ``wait_result`` to learn whether the lamp accepted it.
    """

    device: Device
    # supplied by the class mixing this in; resolves to the request id
    send_command: Callable[..., Awaitable[int]]

    async def toggle(self) -> int:
        return await self.send_command("toggle")

    async def set_power(self, on: bool, effect: str = "smooth", duration: int = 500) -> int:
        """Switch the lamp on or off with the given transition."""
        _check_transition(effect, duration)
        state = "on" if on else "off"
        logger.debug(
            "LightCommands:set_power: %s -> %s",
            self.device.id,
            state,
            extra={"device_id": self.device.id, "effect": effect, "duration": duration},
        )
        return await self.send_command("set_power", state, effect, duration)

    async def set_bright(self, brightness: int, effect: str = "smooth", duration: int = 500) -> int:
        """Set brightness in percent (1-100)."""
        _check_range("brightness", brightness, 1, 100)
        _check_transition(effect, duration)
        return await self.send_command("set_bright", brightness, effect, duration)

    async def set_ct_abx(self, ct: int, effect: str = "smooth", duration: int = 500) -> int:
        """Set colour temperature in kelvin (1700-6500)."""
        _check_range("ct", ct, MIN_CT, MAX_CT)
        _check_transition(effect, duration)
        return await self.send_command("set_ct_abx", ct, effect, duration)

    async def set_rgb(self, rgb: int, effect: str = "smooth", duration: int = 500) -> int:
        _check_range("rgb", rgb, 0, MAX_RGB)
        _check_transition(effect, duration)
        return await self.send_command("set_rgb", rgb, effect, duration)

    async def set_hsv(self, hue: int, sat: int, effect: str = "smooth", duration: int = 500) -> int:
        _check_range("hue", hue, 0, MAX_HUE)
        _check_range("sat", sat, 0, MAX_SAT)
        _check_transition(effect, duration)
        return await self.send_command("set_hsv", hue, sat, effect, duration)

    async def set_name(self, name: str) -> int:
        """Rename the lamp. The device record is updated once the lamp answers "ok"."""
        if not isinstance(name, str) or not name.strip():
            raise InvalidParameter("name", name, "non-empty string")
        return await self.send_command("set_name", name)

    async def get_prop(self, *names: str) -> int:
        """Query properties; with no names, the core state fields are requested."""
        props = names or REFRESH_PROPERTIES
        for prop in props:
            if not isinstance(prop, str) or not prop:
                raise InvalidParameter("property", prop, "non-empty string")
        return await self.send_command("get_prop", *props)
