from __future__ import annotations

import time
from enum import IntEnum, StrEnum

from pydantic import BaseModel, ConfigDict, Field

__all__ = ["Device", "DeviceStatus", "Power"]


class Power(StrEnum):
    OFF = "off"
    ON = "on"
    UNKNOWN = "unknown"

    @classmethod
    def from_wire(cls, value: object) -> Power:
        """Map the device's "on"/"off" strings; anything else is UNKNOWN."""
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "on":
                return cls.ON
            if lowered == "off":
                return cls.OFF
        return cls.UNKNOWN


class DeviceStatus(IntEnum):
    OFFLINE = 0
    DISCOVERED = 1
    REFRESHING = 2
    ONLINE = 3


class Device(BaseModel):
    """A single Yeelight lamp as seen on the LAN.

    Created from a discovery advertisement and then mutated in place by the owning
    session (notifications, refresh results, successful renames). Serializes with the
    advertisement-style keys (``color-mode``, ``cache-control``, ``reqcount``).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    address: str = ""
    name: str = ""
    model: str = ""
    cache_control: str = Field(default="", alias="cache-control")
    fw_ver: int = Field(default=0, alias="fw")
    power: Power = Power.UNKNOWN
    bright: int = 0
    sat: int = 0
    ct: int = 0
    rgb: int = 0
    hue: int = 0
    color_mode: int = Field(default=0, alias="color-mode")
    support: set[str] = Field(default_factory=set)
    request_count: int = Field(default=0, alias="reqcount")
    last_seen: float = Field(default=0.0, alias="lastseen")
    status: DeviceStatus = DeviceStatus.OFFLINE

    def supports(self, method: str) -> bool:
        return method in self.support

    def next_request_id(self) -> int:
        """Return the current sequence value and advance the counter."""
        request_id = self.request_count
        self.request_count += 1
        return request_id

    def touch(self) -> None:
        self.last_seen = time.time()

    @property
    def is_on(self) -> bool:
        return self.power is Power.ON

    def __str__(self) -> str:
        return f"Device(id={self.id}, name={self.name!r}, address={self.address}, status={self.status.name})"
