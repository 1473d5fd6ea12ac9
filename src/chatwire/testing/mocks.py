"""In-memory transport and handler recorders for chatwire tests.

This module provides:
    - FakeTransport: a TransportBinding that hands out FakeStreams and can
      be told to refuse opens.
    - FakeStream: a scripted server side. It answers the upgrade request
      automatically (configurable), records every byte the client writes
      and lets tests feed server frames, EOF and socket errors.
    - RecordingHandlers: ConnectionHandlers that record every event for
      later assertions and let tests await them.

Features:
    - Handshake modes: accept, reject (403), bad accept value, silent.
    - Write failure injection for send-path error tests.
    - Write delay for exercising concurrent sends.
    - Sent frames decoded back into Frame objects.
"""

from __future__ import annotations

import asyncio
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

from chatwire.errors import ChatwireError, TransportError
from chatwire.models.constants import CLOSE_NORMAL
from chatwire.models.entities import Frame
from chatwire.models.enums import Opcode
from chatwire.transport.connection import ConnectionHandlers
from chatwire.transport.frames import decode_frame, encode_close_payload, encode_frame
from chatwire.transport.handshake import accept_key

HandshakeMode = Literal["accept", "reject", "bad_accept", "silent"]

_EOF = object()


def build_handshake_reply(request: bytes, mode: HandshakeMode = "accept") -> bytes:
    """Return the server's answer to an upgrade *request* for *mode* (empty for silent)."""
    if mode == "silent":
        return b""
    if mode == "reject":
        return b"HTTP/1.1 403 Forbidden\r\nContent-Length: 0\r\n\r\n"
    key = ""
    for line in request.decode("latin-1").split("\r\n"):
        name, _, value = line.partition(":")
        if name.strip().lower() == "sec-websocket-key":
            key = value.strip()
    accept = accept_key(key) if mode == "accept" else "bm90LXRoZS1yaWdodC12YWx1ZQ=="
    return (
        "HTTP/1.1 101 Switching Protocols\r\n"
        "Upgrade: websocket\r\n"
        "Connection: Upgrade\r\n"
        f"Sec-WebSocket-Accept: {accept}\r\n"
        "\r\n"
    ).encode("ascii")


class FakeStream:
    """Scripted server end of one session.

    Attributes:
        writes: Every chunk the client wrote, in order (the first is the
            upgrade request).
        fail_writes: When True, every write raises TransportError.
        write_delay: Seconds each frame write waits before completing, like a
            socket under backpressure. The upgrade request is never delayed.
    """

    def __init__(self, handshake: HandshakeMode = "accept", trailer: bytes = b"") -> None:
        self.handshake = handshake
        self.trailer = trailer
        self.writes: list[bytes] = []
        self.fail_writes = False
        self.write_delay = 0.0
        self.closed = False
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()
        self._eof = False

    async def read(self) -> bytes:
        if self._eof:
            return b""
        item = await self._inbound.get()
        if item is _EOF:
            self._eof = True
            return b""
        if isinstance(item, BaseException):
            raise item
        return item

    async def write(self, data: bytes) -> None:
        if self.write_delay and self.writes:
            await asyncio.sleep(self.write_delay)
        if self.closed:
            raise TransportError("write on closed stream")
        if self.fail_writes:
            raise TransportError("simulated write failure")
        first = not self.writes
        self.writes.append(bytes(data))
        if first:
            reply = build_handshake_reply(bytes(data), self.handshake)
            if reply:
                self.feed(reply + self.trailer)

    def is_open(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.feed_eof()

    # Server-side scripting

    def feed(self, data: bytes) -> None:
        self._inbound.put_nowait(bytes(data))

    def feed_frame(
        self,
        opcode: Opcode,
        payload: str | bytes = b"",
        *,
        fin: bool = True,
        masked: bool = False,
    ) -> None:
        """Queue one server frame (unmasked unless *masked*)."""
        self.feed(encode_frame(opcode, payload, fin=fin, mask=masked))

    def feed_text(self, text: str) -> None:
        self.feed_frame(Opcode.TEXT, text)

    def feed_close(self, code: int | None = CLOSE_NORMAL, reason: str = "") -> None:
        """Queue a close frame; ``code=None`` sends an empty payload."""
        payload = b"" if code is None else encode_close_payload(code, reason)
        self.feed_frame(Opcode.CLOSE, payload)

    def feed_eof(self) -> None:
        self._inbound.put_nowait(_EOF)

    def feed_error(self, error: BaseException | None = None) -> None:
        self._inbound.put_nowait(error or TransportError("simulated read failure"))

    # Inspection

    @property
    def request(self) -> bytes:
        """The upgrade request the client sent (empty if none yet)."""
        return self.writes[0] if self.writes else b""

    def sent_frames(self) -> list[Frame]:
        """Decode every frame written after the upgrade request."""
        frames: list[Frame] = []
        for chunk in self.writes[1:]:
            buffer = bytearray(chunk)
            while buffer:
                result = decode_frame(buffer)
                if result is None:
                    raise AssertionError(f"client wrote a partial frame: {chunk!r}")
                frame, consumed = result
                frames.append(frame)
                del buffer[:consumed]
        return frames

    def sent_messages(self) -> list[str | bytes]:
        """Payloads of data frames the client sent (text decoded)."""
        messages: list[str | bytes] = []
        for frame in self.sent_frames():
            if frame.opcode == Opcode.TEXT:
                messages.append(frame.payload.decode("utf-8"))
            elif frame.opcode == Opcode.BINARY:
                messages.append(frame.payload)
        return messages

    def sent_opcodes(self) -> list[Opcode]:
        return [frame.opcode for frame in self.sent_frames()]


class FakeTransport:
    """TransportBinding returning FakeStreams.

    Attributes:
        streams: Streams opened so far, oldest first.
        opens: ``(host, port, ssl_context)`` for each open call, including refused ones.
        fail_opens: Number of upcoming opens to refuse with TransportError.
        handshake: Handshake mode for streams opened from now on.
        trailer: Bytes delivered right after the handshake reply.
    """

    def __init__(self, handshake: HandshakeMode = "accept", trailer: bytes = b"") -> None:
        self.streams: list[FakeStream] = []
        self.opens: list[tuple[str, int, ssl.SSLContext | None]] = []
        self.fail_opens = 0
        self.handshake: HandshakeMode = handshake
        self.trailer = trailer

    async def open(
        self,
        host: str,
        port: int,
        *,
        ssl_context: ssl.SSLContext | None = None,
    ) -> FakeStream:
        self.opens.append((host, port, ssl_context))
        if self.fail_opens > 0:
            self.fail_opens -= 1
            raise TransportError(f"connection to {host}:{port} refused")
        stream = FakeStream(self.handshake, self.trailer)
        self.streams.append(stream)
        return stream

    @property
    def stream(self) -> FakeStream:
        """The most recently opened stream."""
        if not self.streams:
            raise AssertionError("no stream has been opened")
        return self.streams[-1]

    async def wait_for_streams(self, count: int, timeout: float = 1.0) -> FakeStream:
        """Wait until *count* streams were opened and return the latest."""
        await wait_until(lambda: len(self.streams) >= count, timeout=timeout)
        return self.streams[-1]


@dataclass
class RecordedEvent:
    name: str
    args: tuple[Any, ...]


class RecordingHandlers:
    """Records every connection event in arrival order.

    Example:
        >>> recorder = RecordingHandlers()
        >>> conn = WebSocketConnection(url, recorder.handlers(), transport=FakeTransport())
        >>> await conn.connect()
        >>> recorder.names()
        ['connect']
    """

    def __init__(self) -> None:
        self.events: list[RecordedEvent] = []
        self._changed = asyncio.Condition()

    def handlers(self) -> ConnectionHandlers:
        return ConnectionHandlers(
            on_connect=lambda: self._record("connect"),
            on_message=lambda message: self._record("message", message),
            on_error=lambda error: self._record("error", error),
            on_disconnect=lambda reason: self._record("disconnect", reason),
            on_close=lambda code, reason: self._record("close", code, reason),
            on_pong=lambda payload: self._record("pong", payload),
        )

    async def _record(self, name: str, *args: Any) -> None:
        async with self._changed:
            self.events.append(RecordedEvent(name, args))
            self._changed.notify_all()

    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def of(self, name: str) -> list[tuple[Any, ...]]:
        return [event.args for event in self.events if event.name == name]

    def count(self, name: str) -> int:
        return len(self.of(name))

    @property
    def messages(self) -> list[str | bytes]:
        return [args[0] for args in self.of("message")]

    @property
    def errors(self) -> list[ChatwireError]:
        return [args[0] for args in self.of("error")]

    async def wait_for(self, name: str, count: int = 1, timeout: float = 1.0) -> None:
        """Wait until *name* has been recorded at least *count* times."""
        async with self._changed:
            await asyncio.wait_for(
                self._changed.wait_for(lambda: self.count(name) >= count), timeout=timeout
            )

    def clear(self) -> None:
        self.events.clear()


async def wait_until(
    predicate: Callable[[], object],
    timeout: float = 1.0,
    interval: float = 0.001,
) -> None:
    """Poll *predicate* until it is truthy.

    Raises:
        asyncio.TimeoutError: If *timeout* seconds pass first.
    """

    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(interval)

    await asyncio.wait_for(_poll(), timeout=timeout)


__all__ = [
    "FakeStream",
    "FakeTransport",
    "HandshakeMode",
    "RecordedEvent",
    "RecordingHandlers",
    "build_handshake_reply",
    "wait_until",
]
