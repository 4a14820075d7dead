from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable

from yeelight_lan.devices.device import Device, DeviceStatus
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.metrics import registry as metrics
from yeelight_lan.protocol.advertisement import Headers, parse_advertisement
from yeelight_lan.protocol.exceptions import InvalidField, MalformedAdvertisement
from yeelight_lan.transport.session import ConnectionFactory, EventQueue, Session
from yeelight_lan.transport.timeouts import TimeoutConfig

logger = get_logger(__name__)

DeviceCallback = Callable[[Device, bool], Awaitable[None] | None]

# fields an advertisement may refresh while a session owns the live state
_IDENTITY_FIELDS = ("address", "model", "fw_ver", "support", "cache_control")
_STATE_FIELDS = ("name", "power", "bright", "sat", "ct", "rgb", "hue", "color_mode")


class DeviceRegistry:
    """
    Holds the known devices by id and the sessions opened on them.
    Fans discovered and updated devices out to a callback.

    Every session shares the registry's event queue, so a caller reads the Results
    and Notifications of all lamps from one place.
    """

    def __init__(
        self,
        events: EventQueue | None = None,
        callback: DeviceCallback | None = None,
        timeouts: TimeoutConfig | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        self.devices: dict[str, Device] = {}
        self.sessions: dict[str, Session] = {}
        self.events: EventQueue = events if events is not None else asyncio.Queue()
        self.timeouts = timeouts
        self._callback = callback
        self._connection_factory = connection_factory
        self._lock = asyncio.Lock()

    async def observe(self, headers: Headers) -> Device | None:
        """
        Record one discovery advertisement.

        Args:
            headers: Discovery response headers

        Returns:
            Device: The registered (new or refreshed) device, or None if the
            advertisement could not be parsed
        """
        lp = "DeviceRegistry:observe:"
        try:
            parsed = parse_advertisement(headers)
        except MalformedAdvertisement as e:
            metrics.record_advertisement("malformed")
            logger.warning("%s Ignoring advertisement: %s", lp, e, extra={"location": e.location})
            return None
        except InvalidField as e:
            metrics.record_advertisement("invalid_field")
            logger.warning("%s Ignoring advertisement: %s", lp, e, extra={"field": e.field})
            return None

        async with self._lock:
            device = self.devices.get(parsed.id)
            is_new = device is None
            if device is None:
                device = parsed
                self.devices[device.id] = device
                metrics.record_known_devices(len(self.devices))
                logger.info("%s Discovered %s", lp, device, extra={"device_id": device.id})
            else:
                session = self.sessions.get(device.id)
                self._merge(device, parsed, live=session is not None and session.is_connected)
                logger.debug("%s Refreshed %s", lp, device, extra={"device_id": device.id})

        metrics.record_advertisement("new" if is_new else "updated")
        await self._notify(device, is_new)
        return device

    @staticmethod
    def _merge(device: Device, parsed: Device, live: bool) -> None:
        """Copy advertised values onto ``device``; a live session keeps its own state."""
        if parsed.address != device.address and live:
            logger.warning(
                "DeviceRegistry:_merge: %s moved %s -> %s while connected",
                device.id,
                device.address,
                parsed.address,
                extra={"device_id": device.id},
            )
        fields = _IDENTITY_FIELDS if live else _IDENTITY_FIELDS + _STATE_FIELDS
        for name in fields:
            setattr(device, name, getattr(parsed, name))
        device.last_seen = parsed.last_seen
        if not live and device.status is DeviceStatus.OFFLINE:
            device.status = DeviceStatus.DISCOVERED

    async def _notify(self, device: Device, is_new: bool) -> None:
        if self._callback is None:
            return
        try:
            result = self._callback(device, is_new)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            # subscriber errors never reach observe()
            logger.exception(
                "DeviceRegistry:_notify: Callback failed for %s",
                device.id,
                extra={"device_id": device.id, "error": str(e)},
            )

    def get(self, device_id: str) -> Device | None:
        return self.devices.get(device_id)

    def get_session(self, device_id: str) -> Session | None:
        return self.sessions.get(device_id)

    async def open_session(self, device_id: str, start: bool = True) -> Session:
        """
        Create (or return the existing) session for a known device.

        Args:
            device_id: Id of a device previously passed to observe()
            start: Connect and launch the processing loop

        Raises:
            KeyError: Unknown device id
        """
        lp = "DeviceRegistry:open_session:"
        async with self._lock:
            device = self.devices[device_id]
            session = self.sessions.get(device_id)
            if session is None:
                session = Session(
                    device,
                    events=self.events,
                    timeouts=self.timeouts,
                    connection_factory=self._connection_factory,
                )
                self.sessions[device_id] = session
                logger.info("%s Opened session for %s", lp, device_id, extra={"device_id": device_id})

        if start and not await session.start():
            logger.warning("%s Could not start session for %s", lp, device_id, extra={"device_id": device_id})
        return session

    async def close_session(self, device_id: str) -> None:
        lp = "DeviceRegistry:close_session:"
        async with self._lock:
            session = self.sessions.pop(device_id, None)
        if session is None:
            logger.debug("%s No session for %s", lp, device_id)
            return
        await session.shutdown()
        logger.info("%s Closed session for %s", lp, device_id, extra={"device_id": device_id})

    async def discard(self, device_id: str) -> Device | None:
        """Forget a device, shutting its session down first."""
        await self.close_session(device_id)
        async with self._lock:
            device = self.devices.pop(device_id, None)
            metrics.record_known_devices(len(self.devices))
        if device is not None:
            logger.info("DeviceRegistry:discard: Discarded %s", device_id, extra={"device_id": device_id})
        return device

    async def close_all(self) -> None:
        """Shut down every session; devices stay registered."""
        lp = "DeviceRegistry:close_all:"
        async with self._lock:
            sessions = list(self.sessions.items())
            self.sessions.clear()

        logger.info("%s Closing %d sessions", lp, len(sessions))
        for device_id, session in sessions:
            try:
                await session.shutdown()
            except OSError as e:
                logger.error("%s Error closing session for %s: %s", lp, device_id, e, extra={"device_id": device_id})

    def get_stats(self) -> dict[str, object]:
        """
        Get statistics about known devices and sessions.

        Returns:
            dict: Registry statistics
        """
        return {
            "devices": len(self.devices),
            "sessions": len(self.sessions),
            "online": sum(1 for device in self.devices.values() if device.status is DeviceStatus.ONLINE),
            "running": sum(1 for session in self.sessions.values() if session.is_running),
            "pending_calls": sum(session.pending_count for session in self.sessions.values()),
            "device_ids": list(self.devices.keys()),
        }
