"""Turn discovery response headers into a Device snapshot.

A Yeelight advertisement looks like::

    Location: yeelight://192.168.1.239:55443
    Id: 0x000000000015243f
    Model: color
    FW_Ver: 18
    Support: get_prop set_default set_power toggle set_bright ...
    Power: on
    Bright: 100
    Color_mode: 2
    Ct: 4000
    Rgb: 16711680
    Hue: 100
    Sat: 35
    Name: my_bulb
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence

from yeelight_lan.const import LEGACY_RENAME_CAPABILITY, RENAME_CAPABILITY, URI_SCHEME
from yeelight_lan.devices.device import Device, DeviceStatus, Power
from yeelight_lan.protocol.exceptions import InvalidField, MalformedAdvertisement

__all__ = ["INTEGER_FIELDS", "Headers", "parse_advertisement", "parse_support"]

Headers = Mapping[str, str | Sequence[str]]

# header name -> Device attribute
INTEGER_FIELDS: dict[str, str] = {
    "FW_Ver": "fw_ver",
    "Bright": "bright",
    "Sat": "sat",
    "Ct": "ct",
    "Rgb": "rgb",
    "Hue": "hue",
    "Color_mode": "color_mode",
}


def _normalise(headers: Headers) -> dict[str, str]:
    """Lower-case the keys and collapse multi-valued headers to their first value."""
    flat: dict[str, str] = {}
    for key, value in headers.items():
        if isinstance(value, str):
            flat[key.strip().lower()] = value.strip()
        elif value:
            flat[key.strip().lower()] = str(value[0]).strip()
        else:
            flat[key.strip().lower()] = ""
    return flat


def parse_support(raw: str) -> set[str]:
    """Split the Support header into a capability set.

    Some firmware advertises the rename capability as ``setname`` while only accepting
    ``set_name`` on the wire; the legacy token is replaced by the canonical one.
    """
    support = set(raw.split())
    if LEGACY_RENAME_CAPABILITY in support:
        support.discard(LEGACY_RENAME_CAPABILITY)
        support.add(RENAME_CAPABILITY)
    return support


def parse_advertisement(headers: Headers) -> Device:
    """Build a Device from one discovery response.

    Raises:
        MalformedAdvertisement: Location is missing or not a yeelight:// URI
        InvalidField: A numeric field is missing or not an integer
    """
    flat = _normalise(headers)

    location = flat.get("location", "")
    if not location.startswith(URI_SCHEME):
        raise MalformedAdvertisement(location)

    numbers: dict[str, int] = {}
    for header, attr in INTEGER_FIELDS.items():
        raw = flat.get(header.lower())
        try:
            numbers[attr] = int(raw)  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            raise InvalidField(header, raw) from e

    return Device(
        id=flat.get("id", ""),
        address=location[len(URI_SCHEME) :],
        name=flat.get("name", ""),
        model=flat.get("model", ""),
        cache_control=flat.get("cache-control", ""),
        power=Power.from_wire(flat.get("power")),
        support=parse_support(flat.get("support", "")),
        status=DeviceStatus.DISCOVERED,
        last_seen=time.time(),
        **numbers,
    )
