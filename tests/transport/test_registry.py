"""Tests for ConnectionRegistry."""

import asyncio

import pytest

from chatwire.models.config import ConnectionConfig
from chatwire.models.enums import ConnectionState, Opcode
from chatwire.testing.fixtures import DEFAULT_TEST_URL, FAST_CONFIG_VALUES
from chatwire.testing.mocks import FakeTransport, wait_until
from chatwire.transport.connection import WebSocketConnection
from chatwire.transport.registry import ConnectionRegistry


def _connection(transport: FakeTransport, connection_id: str) -> WebSocketConnection:
    return WebSocketConnection(
        DEFAULT_TEST_URL,
        config=ConnectionConfig(**FAST_CONFIG_VALUES),
        transport=transport,
        connection_id=connection_id,
    )


class TestConnectionRegistry:
    """Named connection bookkeeping."""

    def test_add_get_remove(self) -> None:
        registry = ConnectionRegistry()
        conn = _connection(FakeTransport(), "chan-1")

        assert registry.add(conn) is conn
        assert "chan-1" in registry
        assert registry.get("chan-1") is conn
        assert len(registry) == 1
        assert list(registry) == [conn]

        assert registry.remove("chan-1") is conn
        assert "chan-1" not in registry
        assert registry.remove("chan-1") is None
        assert registry.get("missing") is None

    def test_adding_same_connection_twice_is_idempotent(self) -> None:
        registry = ConnectionRegistry()
        conn = _connection(FakeTransport(), "chan-1")
        registry.add(conn)
        registry.add(conn)
        assert len(registry) == 1

    def test_duplicate_id_rejected(self) -> None:
        registry = ConnectionRegistry()
        registry.add(_connection(FakeTransport(), "chan-1"))
        with pytest.raises(ValueError, match="already registered"):
            registry.add(_connection(FakeTransport(), "chan-1"))

    def test_registries_are_independent(self) -> None:
        first, second = ConnectionRegistry(), ConnectionRegistry()
        first.add(_connection(FakeTransport(), "chan-1"))
        assert len(second) == 0

    @pytest.mark.asyncio
    async def test_statuses(self) -> None:
        registry = ConnectionRegistry()
        open_conn = registry.add(_connection(FakeTransport(), "open"))
        registry.add(_connection(FakeTransport(), "idle"))
        await open_conn.connect()

        statuses = registry.statuses()

        assert statuses["open"].state == ConnectionState.OPEN
        assert statuses["idle"].state == ConnectionState.CLOSED
        await registry.close_all()

    @pytest.mark.asyncio
    async def test_close_all(self) -> None:
        registry = ConnectionRegistry()
        transports = [FakeTransport(), FakeTransport()]
        conns = [
            registry.add(_connection(transport, f"chan-{i}"))
            for i, transport in enumerate(transports)
        ]
        for conn in conns:
            await conn.connect()

        await registry.close_all()

        assert len(registry) == 0
        assert all(conn.state == ConnectionState.CLOSED for conn in conns)
        assert all(transport.stream.closed for transport in transports)

    @pytest.mark.asyncio
    async def test_close_all_graceful_sends_close_and_waits(self) -> None:
        registry = ConnectionRegistry()
        transport = FakeTransport()
        conn = registry.add(_connection(transport, "chan-1"))
        await conn.connect()
        stream = transport.stream

        async def echo_close() -> None:
            await wait_until(lambda: Opcode.CLOSE in stream.sent_opcodes())
            stream.feed_close()

        await asyncio.gather(registry.close_all(graceful=True), echo_close())

        assert conn.state == ConnectionState.CLOSED
        assert conn.close_info is not None
        assert conn.close_info.reason == "Shutting down"

    @pytest.mark.asyncio
    async def test_close_all_on_empty_registry(self) -> None:
        await ConnectionRegistry().close_all()
