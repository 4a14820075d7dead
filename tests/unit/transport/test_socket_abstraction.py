"""TCPConnection: line-oriented stream lifecycle and address parsing."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.helpers.expectations import expect_async_exception, expect_exception
from yeelight_lan.transport.exceptions import NotConnected
from yeelight_lan.transport.socket_abstraction import MAX_LINE_BYTES, TCPConnection, parse_address


@pytest.fixture
def conn():
    return TCPConnection(host="127.0.0.1", port=55443, connect_timeout=0.1, write_timeout=0.1)


@pytest.fixture
def open_connection():
    with patch("yeelight_lan.transport.socket_abstraction.asyncio.open_connection") as mocked:
        yield mocked


def _attach_stream(target: TCPConnection) -> tuple[MagicMock, MagicMock]:
    reader = MagicMock(readline=AsyncMock())
    writer = MagicMock(drain=AsyncMock(), wait_closed=AsyncMock())
    target.reader, target.writer = reader, writer
    target._connected = True
    return reader, writer


async def _never(*_args, **_kwargs):
    await asyncio.sleep(1.0)


class TestConnect:
    @pytest.mark.asyncio
    async def test_opens_stream_with_line_limit(self, conn, open_connection):
        reader, writer = MagicMock(), MagicMock()
        open_connection.return_value = (reader, writer)

        assert await conn.connect() is True

        assert conn.is_connected
        assert (conn.reader, conn.writer) == (reader, writer)
        open_connection.assert_called_once_with("127.0.0.1", 55443, limit=MAX_LINE_BYTES)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [_never, ConnectionRefusedError("refused"), OSError("no route")])
    async def test_failure_returns_false(self, conn, open_connection, failure):
        open_connection.side_effect = failure

        assert await conn.connect() is False

        assert not conn.is_connected
        assert conn.writer is None


class TestSend:
    @pytest.mark.asyncio
    async def test_writes_and_drains(self, conn):
        _, writer = _attach_stream(conn)

        await conn.send(b'{"id":0}\r\n')

        writer.write.assert_called_once_with(b'{"id":0}\r\n')
        writer.drain.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_requires_open_stream(self, conn):
        await expect_async_exception(conn.send, NotConnected, b"x")

    @pytest.mark.asyncio
    async def test_stuck_drain_times_out(self, conn):
        _, writer = _attach_stream(conn)
        writer.drain = _never

        await expect_async_exception(conn.send, TimeoutError, b"x")

    @pytest.mark.asyncio
    async def test_socket_error_reaches_caller(self, conn):
        _, writer = _attach_stream(conn)
        writer.drain.side_effect = BrokenPipeError("broken pipe")

        await expect_async_exception(conn.send, BrokenPipeError, b"x")


class TestReadLine:
    @pytest.mark.asyncio
    async def test_returns_line(self, conn):
        reader, _ = _attach_stream(conn)
        reader.readline.return_value = b'{"id":1,"result":["ok"]}\r\n'

        assert await conn.read_line() == b'{"id":1,"result":["ok"]}\r\n'
        assert conn.is_connected

    @pytest.mark.asyncio
    async def test_end_of_stream_marks_disconnected(self, conn):
        reader, _ = _attach_stream(conn)
        reader.readline.return_value = b""

        assert await conn.read_line() == b""
        assert not conn.is_connected

    @pytest.mark.asyncio
    async def test_requires_open_stream(self, conn):
        await expect_async_exception(conn.read_line, NotConnected)


class TestClose:
    @pytest.mark.asyncio
    async def test_clears_state(self, conn):
        _, writer = _attach_stream(conn)

        await conn.close()

        writer.close.assert_called_once()
        writer.wait_closed.assert_awaited_once()
        assert not conn.is_connected
        assert conn.writer is None
        assert conn.reader is None

    @pytest.mark.asyncio
    async def test_error_raised_after_state_cleared(self, conn):
        _, writer = _attach_stream(conn)
        writer.wait_closed.side_effect = ConnectionResetError("reset")

        await expect_async_exception(conn.close, ConnectionResetError)

        assert not conn.is_connected
        assert conn.writer is None

    @pytest.mark.asyncio
    async def test_idempotent(self, conn):
        await conn.close()
        await conn.close()

        assert not conn.is_connected


def test_repr(conn):
    assert repr(conn) == "TCPConnection(127.0.0.1:55443, disconnected)"


class TestParseAddress:
    """Tests for parse_address()."""

    def test_host_and_port(self):
        assert parse_address("192.168.1.239:55443") == ("192.168.1.239", 55443)

    def test_default_port(self):
        assert parse_address("192.168.1.239") == ("192.168.1.239", 55443)

    def test_ipv6_literal(self):
        assert parse_address("[fe80::1]:1234") == ("fe80::1", 1234)
        assert parse_address("[fe80::1]") == ("fe80::1", 55443)

    @pytest.mark.parametrize("address", ["", ":55443", "host:port", "host:70000", "[fe80::1"])
    def test_invalid(self, address):
        expect_exception(parse_address, ValueError, address)
