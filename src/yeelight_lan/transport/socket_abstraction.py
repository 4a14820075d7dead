"""Asyncio TCP stream abstraction with deadlines and instrumentation."""

from __future__ import annotations

import asyncio
import time

from yeelight_lan.const import DEFAULT_PORT
from yeelight_lan.logging_abstraction import get_logger
from yeelight_lan.transport.exceptions import NotConnected

logger = get_logger(__name__)

# asyncio.StreamReader buffer limit; longer lines fail readline with ValueError
MAX_LINE_BYTES = 64 * 1024


def parse_address(address: str, default_port: int = DEFAULT_PORT) -> tuple[str, int]:
    """
    Split a ``host:port`` device address.

    Accepts bracketed IPv6 literals (``[fe80::1]:55443``); a missing port falls
    back to ``default_port``.

    Raises:
        ValueError: Empty host or non-numeric / out-of-range port
    """
    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
        if not sep:
            msg = f"Unterminated IPv6 literal in address {address!r}"
            raise ValueError(msg)
    elif address.count(":") == 1:
        host, _, port_text = address.partition(":")
    else:
        host, port_text = address, ""

    if not host:
        msg = f"Missing host in address {address!r}"
        raise ValueError(msg)
    if not port_text:
        return host, default_port

    port = int(port_text)
    if not 0 < port < 65536:
        msg = f"Port out of range in address {address!r}"
        raise ValueError(msg)
    return host, port


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


class TCPConnection:
    """One line-oriented TCP stream to a lamp, with connect and write deadlines."""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float = 3.0,
        write_timeout: float = 2.0,
        max_line_bytes: int = MAX_LINE_BYTES,
    ):
        """
        Args:
            host: Device host
            port: Device port
            connect_timeout: Seconds allowed for the TCP handshake
            write_timeout: Seconds allowed for a write to drain
            max_line_bytes: Longest line the reader buffers
        """
        self.host = host
        self.port = port
        self.peer = f"{host}:{port}"
        self.connect_timeout = connect_timeout
        self.write_timeout = write_timeout
        self.max_line_bytes = max_line_bytes
        self.reader: asyncio.StreamReader | None = None
        self.writer: asyncio.StreamWriter | None = None
        self._connected = False

    def _require_open(self) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        if not self._connected or self.reader is None or self.writer is None:
            raise NotConnected(self.peer, "disconnected")
        return self.reader, self.writer

    async def connect(self) -> bool:
        """
        Open the stream.

        Returns:
            bool: False when the handshake timed out or was refused
        """
        lp = "TCPConnection:connect:"
        started = time.perf_counter()
        logger.info(
            "%s Opening %s (deadline %.1fs)",
            lp,
            self.peer,
            self.connect_timeout,
            extra={"peer": self.peer, "timeout": self.connect_timeout},
        )
        try:
            self.reader, self.writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port, limit=self.max_line_bytes),
                timeout=self.connect_timeout,
            )
        except TimeoutError:
            logger.warning(
                "%s No answer from %s within %.1fms",
                lp,
                self.peer,
                _elapsed_ms(started),
                extra={"peer": self.peer, "elapsed_ms": _elapsed_ms(started), "error": "timeout"},
            )
            return False
        except OSError as e:
            logger.warning(
                "%s Could not reach %s after %.1fms: %s",
                lp,
                self.peer,
                _elapsed_ms(started),
                e,
                extra={"peer": self.peer, "elapsed_ms": _elapsed_ms(started), "error": str(e)},
            )
            return False

        self._connected = True
        logger.info(
            "%s Stream to %s open after %.1fms",
            lp,
            self.peer,
            _elapsed_ms(started),
            extra={"peer": self.peer, "elapsed_ms": _elapsed_ms(started)},
        )
        return True

    async def send(self, data: bytes) -> None:
        """
        Write one frame and wait for the buffer to drain.

        Raises:
            NotConnected: No open stream
            TimeoutError: Drain did not finish within write_timeout
            OSError: Socket error during write
        """
        _, writer = self._require_open()
        started = time.perf_counter()
        try:
            writer.write(data)
            await asyncio.wait_for(writer.drain(), timeout=self.write_timeout)
        except (TimeoutError, OSError) as e:
            reason = str(e) or type(e).__name__
            logger.warning(
                "TCPConnection:send: Write of %d bytes to %s failed after %.1fms: %s",
                len(data),
                self.peer,
                _elapsed_ms(started),
                reason,
                extra={"peer": self.peer, "elapsed_ms": _elapsed_ms(started), "error": reason},
            )
            raise
        logger.debug(
            "TCPConnection:send: %d bytes -> %s (%.1fms)",
            len(data),
            self.peer,
            _elapsed_ms(started),
            extra={"peer": self.peer, "bytes": len(data)},
        )

    async def read_line(self) -> bytes:
        """
        Read up to and including the next ``\\n``.

        Returns:
            The line, a partial line if the stream ended mid-line, or b"" at end of stream

        Raises:
            NotConnected: No open stream
            ValueError: Line longer than max_line_bytes
            OSError: Socket error during read
        """
        reader, _ = self._require_open()
        data = await reader.readline()
        if not data:
            logger.info("TCPConnection:read_line: %s closed the stream", self.peer, extra={"peer": self.peer})
            self._connected = False
        return data

    async def close(self) -> None:
        """
        Close the stream. Idempotent.

        State is always cleared; an error from the underlying close is re-raised
        afterwards.
        """
        writer = self.writer
        if writer is None:
            return

        lp = "TCPConnection:close:"
        logger.info("%s Closing stream to %s", lp, self.peer, extra={"peer": self.peer})
        try:
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            logger.warning(
                "%s Close of %s reported %s: %s",
                lp,
                self.peer,
                type(e).__name__,
                e,
                extra={"peer": self.peer, "error": str(e)},
            )
            raise
        finally:
            self._connected = False
            self.writer = None
            self.reader = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def __repr__(self) -> str:
        return f"TCPConnection({self.peer}, {'connected' if self._connected else 'disconnected'})"
