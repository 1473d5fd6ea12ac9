"""Transport Binding: the byte-stream capability the connection runs over.

The connection never touches sockets directly. It is given a
``TransportBinding`` at construction time and asks it to ``open`` a
``TransportStream`` per session. ``AsyncioTransport`` is the production
binding (TCP, TLS for ``wss``); tests inject the fakes from
``chatwire.testing.mocks`` instead.

Every socket-level failure is reported as ``TransportError``.
"""

from __future__ import annotations

import asyncio
import ssl
from contextlib import suppress
from typing import Protocol, runtime_checkable

from chatwire.errors import TransportError
from chatwire.models.constants import DEFAULT_READ_CHUNK_SIZE
from chatwire.observability import get_logger

logger = get_logger(__name__)


@runtime_checkable
class TransportStream(Protocol):
    """An open, bidirectional byte stream."""

    async def read(self) -> bytes:
        """Return the next chunk; ``b""`` means the peer closed the stream."""
        ...

    async def write(self, data: bytes) -> None: ...

    def is_open(self) -> bool: ...

    async def close(self) -> None: ...


@runtime_checkable
class TransportBinding(Protocol):
    """Factory for transport streams."""

    async def open(
        self,
        host: str,
        port: int,
        *,
        ssl_context: ssl.SSLContext | None = None,
    ) -> TransportStream: ...


class StreamTransport:
    """TransportStream over an asyncio reader/writer pair."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        chunk_size: int = DEFAULT_READ_CHUNK_SIZE,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._chunk_size = chunk_size
        self._closed = False

    async def read(self) -> bytes:
        if self._closed:
            return b""
        try:
            return await self._reader.read(self._chunk_size)
        except (OSError, asyncio.IncompleteReadError) as e:
            raise TransportError("read failed", cause=e) from e

    async def write(self, data: bytes) -> None:
        if not self.is_open():
            raise TransportError("write on closed stream")
        try:
            self._writer.write(data)
            await self._writer.drain()
        except OSError as e:
            raise TransportError("write failed", cause=e) from e

    def is_open(self) -> bool:
        return not self._closed and not self._writer.is_closing()

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._writer.close()
        with suppress(OSError, asyncio.CancelledError):
            await self._writer.wait_closed()


class AsyncioTransport:
    """Production binding: ``asyncio.open_connection`` with optional TLS."""

    def __init__(self, chunk_size: int = DEFAULT_READ_CHUNK_SIZE) -> None:
        self._chunk_size = chunk_size

    async def open(
        self,
        host: str,
        port: int,
        *,
        ssl_context: ssl.SSLContext | None = None,
    ) -> TransportStream:
        logger.debug(
            "chatwire.transport.opening", host=host, port=port, tls=ssl_context is not None
        )
        try:
            reader, writer = await asyncio.open_connection(host, port, ssl=ssl_context)
        except (OSError, ssl.SSLError) as e:
            raise TransportError(f"connection to {host}:{port} failed", cause=e) from e
        return StreamTransport(reader, writer, chunk_size=self._chunk_size)


def default_ssl_context() -> ssl.SSLContext:
    """Verified client context used for ``wss`` when the caller supplies none."""
    return ssl.create_default_context()


__all__ = [
    "AsyncioTransport",
    "StreamTransport",
    "TransportBinding",
    "TransportStream",
    "default_ssl_context",
]
