from yeelight_lan.devices.device import Device, DeviceStatus, Power
from yeelight_lan.devices.commands import LightCommands
from yeelight_lan.devices.sync import apply_notification, apply_properties

__all__ = [
    "Device",
    "DeviceStatus",
    "LightCommands",
    "Power",
    "apply_notification",
    "apply_properties",
]
