"""Per-device session: connection lifecycle, request correlation and state sync.

This module implements the Session class which owns the one stream to one lamp,
reads it from a dedicated reader task, and runs a single-consumer processing loop
that correlates Results, applies Notifications and keeps the lamp alive with a
periodic refresh heartbeat.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Callable
from typing import Any

from yeelight_lan.const import REFRESH_PROPERTIES, RENAME_CAPABILITY, YEELIGHT_RAW
from yeelight_lan.correlation import (
    correlation_context,
    device_context,
    generate_correlation_id,
    get_correlation_id,
)
from yeelight_lan.devices.commands import LightCommands
from yeelight_lan.devices.device import Device, DeviceStatus
from yeelight_lan.devices.sync import apply_notification, apply_properties
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.metrics import registry
from yeelight_lan.protocol.exceptions import MessageDecodeError
from yeelight_lan.protocol.messages import Command, Notification, Result, decode_message
from yeelight_lan.transport.exceptions import CommandWriteError, NotConnected, UnsupportedCommand
from yeelight_lan.transport.socket_abstraction import TCPConnection, parse_address
from yeelight_lan.transport.timeouts import TimeoutConfig
from yeelight_lan.transport.types import InboundLine, PendingCall, SessionState

logger = get_logger(__name__)

ConnectionFactory = Callable[[str, int, TimeoutConfig], TCPConnection]
EventQueue = asyncio.Queue[Result | Notification]

_DEVICE_STATUS: dict[SessionState, DeviceStatus] = {
    SessionState.DISCONNECTED: DeviceStatus.OFFLINE,
    SessionState.CONNECTING: DeviceStatus.DISCOVERED,
    SessionState.ONLINE: DeviceStatus.ONLINE,
    SessionState.REFRESHING: DeviceStatus.REFRESHING,
}


def default_connection_factory(host: str, port: int, timeouts: TimeoutConfig) -> TCPConnection:
    return TCPConnection(
        host,
        port,
        connect_timeout=timeouts.connect_timeout_seconds,
        write_timeout=timeouts.write_timeout_seconds,
    )


class Session(LightCommands):
    """Live connection and protocol state machine for one Device.

    **Tasks**:
    - reader task: reads lines from the current stream into ``_inbox``; one per stream
    - processing loop: waits on shutdown / refresh timer / next line; sole consumer

    **States**: DISCONNECTED -> CONNECTING -> ONLINE -> REFRESHING -> ONLINE | DISCONNECTED

    **Failure handling**:
    - end of stream, a write failure or a missed heartbeat: one managed reconnect;
      if it fails the session terminates and must be re-created by the caller
    - read or decode errors: logged, loop continues

    Every matched Result and every Notification is put on ``events`` exactly once, in
    wire order, after its effect on the Device has been applied.
    """

    def __init__(
        self,
        device: Device,
        events: EventQueue | None = None,
        timeouts: TimeoutConfig | None = None,
        connection_factory: ConnectionFactory | None = None,
    ):
        self.device = device
        self.events = events
        self.timeouts = timeouts or TimeoutConfig()
        self._connection_factory = connection_factory or default_connection_factory
        self.lp = f"Session:{device.id}:"

        self._connection: TCPConnection | None = None
        self._state = SessionState.DISCONNECTED
        self._generation = 0
        self._inbox: asyncio.Queue[InboundLine] = asyncio.Queue()
        self._reader_task: asyncio.Task[None] | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._done = asyncio.Event()
        self._connect_lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()

        # awaiting a Result / resolved but not yet claimed by wait_result
        self._pending: dict[int, PendingCall] = {}
        self._completed: dict[int, PendingCall] = {}

        self._refresh_id: int | None = None
        self._refresh_deadline: float | None = None
        self._next_refresh_at = 0.0
        self.last_alive = 0.0
        self._closing = False

    # -- state -----------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_connected

    @property
    def is_running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.debug(
            "%s %s -> %s",
            self.lp,
            self._state.value,
            state.value,
            extra={"device_id": self.device.id, "from": self._state.value, "to": state.value},
        )
        self._state = state
        self.device.status = _DEVICE_STATUS[state]
        registry.record_session_state(self.device.id, state.value)

    def _reset_refresh_timer(self) -> None:
        self._next_refresh_at = time.monotonic() + self.timeouts.refresh_interval_seconds

    def _clear_refresh(self) -> None:
        if self._refresh_id is not None:
            self._pending.pop(self._refresh_id, None)
        self._refresh_id = None
        self._refresh_deadline = None

    # -- connection lifecycle --------------------------------------------------

    async def connect(self) -> bool:
        """Open a fresh stream to the device, replacing any existing one.

        Only start() runs the processing loop; without it nothing consumes what
        the lamp sends, so wait_result returns None at once.

        Returns:
            True if connected successfully, False otherwise
        """
        async with self._connect_lock:
            return await self._connect_locked()

    async def _connect_locked(self) -> bool:
        lp = f"{self.lp}connect:"
        with device_context(self.device.id):
            if self._connection is not None:
                try:
                    await self._release_stream()
                except OSError as e:
                    logger.warning(
                        "%s Error closing previous stream: %s",
                        lp,
                        e,
                        extra={"device_id": self.device.id, "error": str(e)},
                    )

            self._clear_refresh()
            self._set_state(SessionState.CONNECTING)
            try:
                host, port = parse_address(self.device.address)
            except ValueError as e:
                logger.error(
                    "%s Invalid device address %r: %s",
                    lp,
                    self.device.address,
                    e,
                    extra={"device_id": self.device.id, "address": self.device.address},
                )
                registry.record_connect(self.device.id, "invalid_address")
                self._set_state(SessionState.DISCONNECTED)
                return False

            conn = self._connection_factory(host, port, self.timeouts)
            if not await conn.connect():
                registry.record_connect(self.device.id, "failure")
                self._set_state(SessionState.DISCONNECTED)
                return False

            self._generation += 1
            self._connection = conn
            self.last_alive = time.monotonic()
            self.device.touch()
            self._reset_refresh_timer()
            self._reader_task = asyncio.create_task(
                self._read_loop(conn, self._generation),
                name=f"yeelight-reader-{self.device.id}",
            )
            self._set_state(SessionState.ONLINE)
            registry.record_connect(self.device.id, "success")
            logger.info(
                "%s Online (generation %d)",
                lp,
                self._generation,
                extra={"device_id": self.device.id, "address": self.device.address},
            )
            return True

    async def _release_stream(self) -> None:
        """Drop the current stream and its reader task. Close errors propagate after cleanup."""
        self._generation += 1
        conn, self._connection = self._connection, None
        reader_task, self._reader_task = self._reader_task, None
        try:
            if conn is not None:
                await conn.close()
        finally:
            if reader_task is not None and not reader_task.done():
                _ = reader_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await reader_task

    async def _close_stream(self) -> None:
        async with self._connect_lock:
            self._clear_refresh()
            self._set_state(SessionState.DISCONNECTED)
            await self._release_stream()

    async def close(self) -> None:
        """Stop the processing loop, release the stream and force DISCONNECTED.

        Safe to call repeatedly. The session stays closed until start() or connect().

        Raises:
            OSError: The underlying close failed (state is already cleared)
        """
        self._done.set()
        loop_task, self._loop_task = self._loop_task, None
        self._closing = True
        try:
            if loop_task is not None and loop_task is not asyncio.current_task():
                await loop_task
            await self._close_stream()
        finally:
            self._closing = False

    async def start(self) -> bool:
        """Connect if needed and launch the processing loop.

        Returns:
            True if the loop is running, False if the device could not be reached
        """
        if self.is_running:
            return True
        if not self.is_connected and not await self.connect():
            return False
        self._done.clear()
        self._loop_task = asyncio.create_task(self._process_loop(), name=f"yeelight-session-{self.device.id}")
        return True

    async def shutdown(self) -> None:
        """Stop the processing loop; its cleanup closes the stream and ends the reader."""
        self._done.set()
        loop_task, self._loop_task = self._loop_task, None
        if loop_task is not None:
            await loop_task
        else:
            await self.close()

    async def _managed_reconnect(self, reason: str, generation: int) -> bool:
        """Make exactly one reconnect attempt for a failure seen on ``generation``.

        When the stream has already been replaced since the failure, nothing is done.
        A failed attempt terminates the session.
        """
        lp = f"{self.lp}reconnect:"
        if self._done.is_set():
            return False

        async with self._connect_lock:
            if generation != self._generation:
                logger.debug(
                    "%s Stream already replaced, skipping reconnect (%s)",
                    lp,
                    reason,
                    extra={"device_id": self.device.id, "reason": reason},
                )
                return self.is_connected

            logger.info(
                "%s → Managed reconnect",
                lp,
                extra={"device_id": self.device.id, "reason": reason},
            )
            reconnected = await self._connect_locked()

        registry.record_reconnection(self.device.id, reason, "success" if reconnected else "failure")
        if reconnected:
            logger.info(
                "%s ✓ Reconnected",
                lp,
                extra={"device_id": self.device.id, "reason": reason},
            )
            return True

        await self._terminate(reason)
        return False

    async def _terminate(self, reason: str) -> None:
        logger.error(
            "%s ✗ Reconnect failed, session terminated",
            self.lp,
            extra={"device_id": self.device.id, "reason": reason},
        )
        self._done.set()
        try:
            await self._close_stream()
        except OSError as e:
            logger.warning(
                "%s Error closing stream on termination: %s",
                self.lp,
                e,
                extra={"device_id": self.device.id, "error": str(e)},
            )

    # -- reader task -----------------------------------------------------------

    async def _read_loop(self, conn: TCPConnection, generation: int) -> None:
        """Feed lines from ``conn`` into the inbox until the stream ends."""
        lp = f"{self.lp}_read_loop:"
        consecutive_errors = 0

        def report_error(error: Exception) -> bool:
            nonlocal consecutive_errors
            consecutive_errors += 1
            registry.record_read_error(self.device.id, type(error).__name__)
            if consecutive_errors >= self.timeouts.max_read_errors:
                logger.warning(
                    "%s %d consecutive read errors, treating stream as closed",
                    lp,
                    consecutive_errors,
                    extra={"device_id": self.device.id, "error": str(error)},
                )
                self._inbox.put_nowait(InboundLine(error=error, eof=True, generation=generation))
                return False
            self._inbox.put_nowait(InboundLine(error=error, generation=generation))
            return True

        while True:
            try:
                raw = await conn.read_line()
            except (ConnectionError, asyncio.IncompleteReadError, NotConnected) as e:
                self._inbox.put_nowait(InboundLine(error=e, eof=True, generation=generation))
                return
            except (OSError, ValueError) as e:
                if not report_error(e):
                    return
                continue

            if not raw:
                self._inbox.put_nowait(InboundLine(eof=True, generation=generation))
                return

            try:
                text = raw.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                if not report_error(e):
                    return
                continue

            consecutive_errors = 0
            if YEELIGHT_RAW:
                logger.debug("%s <- %s", lp, text, extra={"device_id": self.device.id})
            if text:
                self._inbox.put_nowait(InboundLine(text=text, generation=generation))
            if not raw.endswith(b"\n"):
                # stream ended mid-line
                self._inbox.put_nowait(InboundLine(eof=True, generation=generation))
                return

    # -- processing loop -------------------------------------------------------

    def _timer_remaining(self) -> float:
        deadline = self._refresh_deadline if self._refresh_deadline is not None else self._next_refresh_at
        return max(0.0, deadline - time.monotonic())

    async def _process_loop(self) -> None:
        lp = f"{self.lp}_process_loop:"
        with device_context(self.device.id):
            done_wait = asyncio.create_task(self._done.wait())
            next_line: asyncio.Task[InboundLine] | None = None
            logger.debug("%s Started", lp, extra={"device_id": self.device.id})
            try:
                while not self._done.is_set():
                    if next_line is None:
                        next_line = asyncio.create_task(self._inbox.get())
                    self._prune_pending()

                    finished, _ = await asyncio.wait(
                        {done_wait, next_line},
                        timeout=self._timer_remaining(),
                        return_when=asyncio.FIRST_COMPLETED,
                    )
                    if done_wait in finished:
                        break

                    try:
                        if next_line in finished:
                            item = next_line.result()
                            next_line = None
                            keep_running = await self._handle_inbound(item)
                        else:
                            keep_running = await self._on_timer()
                    except Exception as e:
                        # nothing escapes the processing loop
                        logger.exception(
                            "%s Unexpected error in processing loop",
                            lp,
                            extra={"device_id": self.device.id, "error": str(e), "error_type": type(e).__name__},
                        )
                        keep_running = True

                    if not keep_running:
                        break
            finally:
                for task in (done_wait, next_line):
                    if task is not None and not task.done():
                        _ = task.cancel()
                        with contextlib.suppress(asyncio.CancelledError):
                            await task
                # close() releases the stream itself so its error reaches the caller
                if not self._closing:
                    try:
                        await self._close_stream()
                    except OSError as e:
                        logger.warning(
                            "%s Error closing stream on exit: %s",
                            lp,
                            e,
                            extra={"device_id": self.device.id, "error": str(e)},
                        )
                logger.debug("%s Stopped", lp, extra={"device_id": self.device.id})

    async def _handle_inbound(self, item: InboundLine) -> bool:
        """Process one unit from the reader. Returns False when the loop must stop."""
        lp = f"{self.lp}_handle_inbound:"
        if item.generation != self._generation:
            logger.debug(
                "%s Ignoring line from stale stream generation %d",
                lp,
                item.generation,
                extra={"device_id": self.device.id, "current": self._generation},
            )
            return True

        if item.eof:
            logger.warning(
                "%s Stream closed%s",
                lp,
                f" ({type(item.error).__name__})" if item.error else "",
                extra={"device_id": self.device.id},
            )
            return await self._managed_reconnect("eof", item.generation)

        if item.error is not None:
            logger.warning(
                "%s Read error: %s",
                lp,
                item.error,
                extra={"device_id": self.device.id, "error_type": type(item.error).__name__},
            )
            return True

        self.last_alive = time.monotonic()
        self.device.touch()
        self._reset_refresh_timer()

        try:
            message = decode_message(item.text, self.device.id)
        except MessageDecodeError as e:
            registry.record_decode_error(self.device.id, e.reason)
            logger.warning(
                "%s Skipping undecodable line: %s",
                lp,
                e.reason,
                extra={"device_id": self.device.id, "line": e.line_preview},
            )
            return True

        if isinstance(message, Result):
            self._apply_result(message)
        elif isinstance(message, Notification):
            self._apply_notification(message)
        else:
            logger.warning(
                "%s Ignoring command %s sent by device",
                lp,
                message.method,
                extra={"device_id": self.device.id, "id": message.id},
            )
        return True

    async def _on_timer(self) -> bool:
        lp = f"{self.lp}_on_timer:"
        now = time.monotonic()

        if self._refresh_deadline is not None:
            if now < self._refresh_deadline:
                return True
            logger.warning(
                "%s Refresh heartbeat %s unanswered after %.1fs",
                lp,
                self._refresh_id,
                self.timeouts.heartbeat_timeout_seconds,
                extra={"device_id": self.device.id, "request_id": self._refresh_id},
            )
            registry.record_heartbeat(self.device.id, "timeout")
            self._clear_refresh()
            return await self._managed_reconnect("heartbeat_timeout", self._generation)

        if now < self._next_refresh_at:
            return True
        return await self._refresh()

    async def _refresh(self) -> bool:
        lp = f"{self.lp}_refresh:"
        if not self.device.supports("get_prop"):
            logger.debug("%s get_prop not supported, skipping heartbeat", lp, extra={"device_id": self.device.id})
            self._reset_refresh_timer()
            return True

        if not self.is_connected:
            # the stream was released outside the loop; nothing to keep alive
            logger.info("%s No live stream, stopping", lp, extra={"device_id": self.device.id})
            registry.record_heartbeat(self.device.id, "not_connected")
            return False

        with correlation_context():
            self._set_state(SessionState.REFRESHING)
            try:
                request_id = await self.send_command("get_prop", *REFRESH_PROPERTIES)
            except CommandWriteError as e:
                registry.record_heartbeat(self.device.id, "write_error")
                return e.reconnected
            except NotConnected:
                registry.record_heartbeat(self.device.id, "not_connected")
                return False

        self._refresh_id = request_id
        self._refresh_deadline = time.monotonic() + self.timeouts.heartbeat_timeout_seconds
        logger.debug(
            "%s Sent refresh heartbeat %d",
            lp,
            request_id,
            extra={"device_id": self.device.id, "request_id": request_id},
        )
        return True

    def _prune_pending(self) -> None:
        now = time.monotonic()
        ttl = self.timeouts.pending_call_ttl_seconds
        for calls in (self._pending, self._completed):
            expired = [call_id for call_id, call in calls.items() if call.age(now) > ttl]
            for call_id in expired:
                call = calls.pop(call_id)
                registry.record_result(self.device.id, "expired")
                logger.debug(
                    "%s Dropping expired call %d (%s)",
                    self.lp,
                    call_id,
                    call.method,
                    extra={"device_id": self.device.id, "age": round(call.age(now), 1)},
                )

    # -- result / notification handling ----------------------------------------

    def _apply_result(self, result: Result) -> None:
        lp = f"{self.lp}_apply_result:"
        call = self._pending.pop(result.id, None)
        if call is None:
            registry.record_result(self.device.id, "unmatched")
            logger.warning(
                "%s Discarding result for unknown request %d",
                lp,
                result.id,
                extra={"device_id": self.device.id, "request_id": result.id},
            )
            return

        with correlation_context(call.correlation_id):
            registry.record_result_latency(self.device.id, call.age())
            if result.error is not None:
                registry.record_result(self.device.id, "error")
                logger.warning(
                    "%s %s (id %d) failed: %d %s",
                    lp,
                    call.method,
                    result.id,
                    result.error.code,
                    result.error.message,
                    extra={"device_id": self.device.id, "request_id": result.id},
                )
            else:
                registry.record_result(self.device.id, "ok")
                self._apply_side_effects(call, result)

            if result.id == self._refresh_id:
                self._refresh_id = None
                self._refresh_deadline = None
                self._reset_refresh_timer()
                registry.record_heartbeat(self.device.id, "success" if result.ok else "error")
                self._set_state(SessionState.ONLINE)
            else:
                self._completed[result.id] = call

            if not call.result_slot.done():
                call.result_slot.set_result(result)
            self._emit(result)

    def _apply_side_effects(self, call: PendingCall, result: Result) -> None:
        if call.method == "get_prop":
            changed = apply_properties(self.device, call.params, result.result)
            if changed:
                logger.debug(
                    "%s Refreshed %s",
                    self.lp,
                    ", ".join(changed),
                    extra={"device_id": self.device.id},
                )
        elif call.method == RENAME_CAPABILITY and result.result == ["ok"] and call.params:
            self.device.name = str(call.params[0])
            logger.info("%s Renamed to %r", self.lp, self.device.name, extra={"device_id": self.device.id})

    def _apply_notification(self, notification: Notification) -> None:
        registry.record_notification(self.device.id, notification.method)
        changed = apply_notification(self.device, notification)
        logger.debug(
            "%s Notification %s changed %s",
            self.lp,
            notification.method,
            changed or "nothing",
            extra={"device_id": self.device.id},
        )
        self._emit(notification)

    def _emit(self, message: Result | Notification) -> None:
        if self.events is None:
            return
        try:
            self.events.put_nowait(message)
        except asyncio.QueueFull:
            registry.record_event_dropped(self.device.id)
            logger.warning(
                "%s Event queue full, %s dropped",
                self.lp,
                type(message).__name__,
                extra={"device_id": self.device.id, "queue_size": self.events.qsize()},
            )

    # -- correlator ------------------------------------------------------------

    async def send_command(self, method: str, *params: Any) -> int:
        """Write a command and return its request id without waiting for the result.

        Raises:
            UnsupportedCommand: ``method`` is not in the device's support set
            NotConnected: No live stream
            CommandWriteError: The write failed (after one managed reconnect attempt)
        """
        lp = f"{self.lp}send_command:"
        if not self.device.supports(method):
            registry.record_command(self.device.id, method, "unsupported")
            raise UnsupportedCommand(method, self.device.id)

        conn = self._connection
        if conn is None or not conn.is_connected:
            registry.record_command(self.device.id, method, "not_connected")
            raise NotConnected(self.device.id, self._state.value)

        # id assignment and bookkeeping happen before the first await
        request_id = self.device.next_request_id()
        call = PendingCall(
            id=request_id,
            method=method,
            params=list(params),
            sent_at=time.monotonic(),
            correlation_id=get_correlation_id() or generate_correlation_id(),
            result_slot=asyncio.get_running_loop().create_future(),
        )
        self._pending[request_id] = call
        frame = Command(id=request_id, method=method, params=call.params).encode()
        generation = self._generation

        try:
            async with self._write_lock:
                await conn.send(frame)
        except NotConnected:
            self._pending.pop(request_id, None)
            registry.record_command(self.device.id, method, "not_connected")
            raise
        except (OSError, TimeoutError) as e:
            self._pending.pop(request_id, None)
            registry.record_command(self.device.id, method, "write_error")
            reason = str(e) or type(e).__name__
            logger.warning(
                "%s Write of %s (id %d) failed: %s",
                lp,
                method,
                request_id,
                reason,
                extra={"device_id": self.device.id, "request_id": request_id},
            )
            reconnected = await self._managed_reconnect("write_error", generation)
            raise CommandWriteError(request_id, reason, reconnected) from e

        registry.record_command(self.device.id, method, "sent")
        if YEELIGHT_RAW:
            logger.debug("%s -> %s", lp, frame.decode("utf-8").rstrip(), extra={"device_id": self.device.id})
        return request_id

    async def wait_result(self, request_id: int, timeout: float | None = None) -> Result | None:
        """Wait up to ``timeout`` seconds for the Result of ``request_id``.

        Each Result is handed to exactly one caller; a second wait for the same id,
        an unknown id, or a timeout all return None. So does waiting on a pending
        call while the processing loop is stopped.
        """
        call = self._pending.get(request_id) or self._completed.get(request_id)
        if call is None:
            return None
        if not call.result_slot.done() and not self.is_running:
            logger.debug(
                "%s Not waiting for %s (id %d): processing loop is not running",
                self.lp,
                call.method,
                request_id,
                extra={"device_id": self.device.id, "request_id": request_id},
            )
            return None
        if timeout is None:
            timeout = self.timeouts.result_timeout_seconds

        try:
            result = await asyncio.wait_for(asyncio.shield(call.result_slot), timeout=timeout)
        except TimeoutError:
            logger.debug(
                "%s No result for %s (id %d) within %.1fs",
                self.lp,
                call.method,
                request_id,
                timeout,
                extra={"device_id": self.device.id, "request_id": request_id},
            )
            return None

        if self._completed.pop(request_id, None) is None:
            return None
        return result

    def __repr__(self) -> str:
        return f"Session({self.device.id}, {self.device.address}, {self._state.value})"
