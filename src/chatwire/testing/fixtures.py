"""Pytest fixtures and context managers for chatwire tests.

This module provides shared fixtures and context managers to reduce
boilerplate when testing connections against the in-memory transport.

Fixtures (use with pytest):
    fake_transport: FakeTransport answering handshakes automatically.
    fast_config: ConnectionConfig with millisecond-scale timers.
    recorder: RecordingHandlers capturing connection events.
    connection: WebSocketConnection wired to the three above (async; closed after the test).

Context managers:
    open_connection(): Async context manager yielding a connected WebSocketConnection.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import pytest

from chatwire.models.config import ConnectionConfig
from chatwire.testing.mocks import FakeTransport, RecordingHandlers
from chatwire.transport.connection import WebSocketConnection

DEFAULT_TEST_URL = "ws://chat.test:8080/socket"

# Timers short enough for fast tests, long enough to not race the loop
FAST_CONFIG_VALUES: dict[str, Any] = {
    "timeout": 500,
    "reconnect_interval": 10,
    "max_reconnect_attempts": 3,
    "ping_interval": 0,
    "close_timeout": 200,
}


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Create a FakeTransport that accepts every handshake."""
    return FakeTransport()


@pytest.fixture
def fast_config() -> ConnectionConfig:
    """ConnectionConfig with short timers and the ping timer disabled."""
    return ConnectionConfig(**FAST_CONFIG_VALUES)


@pytest.fixture
def recorder() -> RecordingHandlers:
    """Create a fresh RecordingHandlers for the test."""
    return RecordingHandlers()


@pytest.fixture
async def connection(
    fake_transport: FakeTransport,
    fast_config: ConnectionConfig,
    recorder: RecordingHandlers,
) -> AsyncIterator[WebSocketConnection]:
    """Provide an unconnected WebSocketConnection (async fixture).

    The connection is closed after the test so no timers outlive it.

    Yields:
        WebSocketConnection pointed at DEFAULT_TEST_URL.
    """
    conn = WebSocketConnection(
        DEFAULT_TEST_URL,
        recorder.handlers(),
        fast_config,
        transport=fake_transport,
    )
    try:
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def open_connection(
    url: str = DEFAULT_TEST_URL,
    transport: FakeTransport | None = None,
    config: ConnectionConfig | None = None,
    **kwargs: Any,
) -> AsyncIterator[WebSocketConnection]:
    """Async context manager that provides an open connection for the scope.

    Example:
        >>> async with open_connection() as conn:
        ...     await conn.send("hello")
    """
    conn = WebSocketConnection(
        url,
        config=config or ConnectionConfig(**FAST_CONFIG_VALUES),
        transport=transport or FakeTransport(),
        **kwargs,
    )
    if not await conn.connect():
        raise AssertionError(f"connection to {url} did not open")
    try:
        yield conn
    finally:
        await conn.close()


__all__ = [
    "DEFAULT_TEST_URL",
    "FAST_CONFIG_VALUES",
    "connection",
    "fake_transport",
    "fast_config",
    "open_connection",
    "recorder",
]
