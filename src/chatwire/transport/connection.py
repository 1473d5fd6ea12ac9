"""WebSocket connection manager for chatwire.

This module drives one logical link to a chat service: it opens the
transport, performs the upgrade handshake, runs the read loop, keeps the
link alive with pings, meters outbound sends and recovers from failures.

Lifecycle::

    CLOSED -> CONNECTING -> OPEN -> CLOSING -> CLOSED
                 |            |                  |
                 +------------+--> CLOSED --> RECONNECTING --> CONNECTING

All work for one connection runs as tasks on a single event loop (the
session attempt, the read loop, the ping timer, the reconnect timer) and
mutates the same state without locks. Handlers may be plain functions or
coroutine functions; exceptions they raise are logged and never change
connection state.

Handshake, protocol, transport and liveness failures are delivered to
``on_error`` and then drive the reconnection policy: a constant
``reconnect_interval`` delay, at most ``max_reconnect_attempts`` retries,
then a single ``on_disconnect``.

Example:
    >>> async def main():
    ...     handlers = ConnectionHandlers(on_message=print)
    ...     async with WebSocketConnection("wss://example.com/chat", handlers) as conn:
    ...         await conn.send("PING :tmi.twitch.tv")
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import ssl
import time
from collections.abc import Awaitable, Callable
from contextlib import suppress
from dataclasses import dataclass, fields
from typing import Any

from chatwire.errors import (
    ChatwireError,
    ProtocolError,
    TransportError,
    WebSocketTimeoutError,
)
from chatwire.models.config import ConnectionConfig
from chatwire.models.constants import (
    CLOSE_ABNORMAL,
    CLOSE_INVALID_PAYLOAD,
    CLOSE_MESSAGE_TOO_BIG,
    CLOSE_NORMAL,
    CLOSE_REASON_SHUTDOWN,
    LIVENESS_FACTOR,
)
from chatwire.models.entities import CloseInfo, ConnectionStatus, Frame, ResourceStats, WebSocketURL
from chatwire.models.enums import ConnectionState, Opcode
from chatwire.observability import get_logger
from chatwire.state.machine import validate_transition
from chatwire.transport.binding import (
    AsyncioTransport,
    TransportBinding,
    TransportStream,
    default_ssl_context,
)
from chatwire.transport.frames import (
    decode_frame,
    encode_close_payload,
    encode_frame,
    parse_close_payload,
)
from chatwire.transport.handshake import (
    HeaderInput,
    build_request,
    normalize_headers,
    parse_url,
    split_response,
    validate_response,
)
from chatwire.transport.queue import MessageQueue, QueuedPayload
from chatwire.transport.rate_limit import SlidingWindowRateLimiter, TimeFn

logger = get_logger(__name__)

_connection_ids = itertools.count(1)

# Handler types (sync or async)
ConnectHandler = Callable[[], Any] | Callable[[], Awaitable[Any]]
MessageHandler = Callable[[QueuedPayload], Any] | Callable[[QueuedPayload], Awaitable[Any]]
ErrorHandler = Callable[[ChatwireError], Any] | Callable[[ChatwireError], Awaitable[Any]]
DisconnectHandler = Callable[[str], Any] | Callable[[str], Awaitable[Any]]
CloseHandler = Callable[[int, str], Any] | Callable[[int, str], Awaitable[Any]]
PongHandler = Callable[[bytes], Any] | Callable[[bytes], Awaitable[Any]]


@dataclass
class ConnectionHandlers:
    """Callbacks a connection reports to. Each fires at most once per event.

    Attributes:
        on_connect: Handshake succeeded and the connection is open.
        on_message: A complete text (``str``) or binary (``bytes``) message arrived.
        on_error: A handshake, protocol, transport or timeout failure occurred.
        on_disconnect: Reconnection attempts are exhausted; receives the terminal reason.
        on_close: The session closed with ``(code, reason)``.
        on_pong: A pong arrived with its payload.
    """

    on_connect: ConnectHandler | None = None
    on_message: MessageHandler | None = None
    on_error: ErrorHandler | None = None
    on_disconnect: DisconnectHandler | None = None
    on_close: CloseHandler | None = None
    on_pong: PongHandler | None = None

    def registered(self) -> int:
        return sum(1 for f in fields(self) if getattr(self, f.name) is not None)


class WebSocketConnection:
    """One client-side WebSocket connection with keepalive and recovery.

    Args:
        url: ``ws://`` or ``wss://`` target; default ports are 80 and 443.
        handlers: Callbacks for connection events.
        config: Immutable connection options (defaults if omitted).
        transport: Transport binding used to open streams.
        extra_headers: Headers appended verbatim to the upgrade request.
        ssl_context: TLS context for ``wss`` (a verified default otherwise).
        connection_id: Identifier used in logs and registries.
        now_fn: Monotonic clock in seconds, injectable for tests.

    Raises:
        InvalidURLError: If *url* is not a usable WebSocket URL.
        ValueError: If *extra_headers* would break the request framing.
    """

    def __init__(
        self,
        url: str,
        handlers: ConnectionHandlers | None = None,
        config: ConnectionConfig | None = None,
        *,
        transport: TransportBinding | None = None,
        extra_headers: HeaderInput | None = None,
        ssl_context: ssl.SSLContext | None = None,
        connection_id: str | None = None,
        now_fn: TimeFn | None = None,
    ) -> None:
        self._url: WebSocketURL = parse_url(url)
        self._config = config or ConnectionConfig()
        self._handlers = handlers or ConnectionHandlers()
        self._transport: TransportBinding = transport or AsyncioTransport(
            chunk_size=self._config.read_chunk_size
        )
        self._extra_headers = tuple(normalize_headers(extra_headers))
        self._ssl_context = ssl_context
        self.id = connection_id or f"ws-{next(_connection_ids)}"
        self._now = now_fn or time.monotonic

        self._state = ConnectionState.CLOSED
        self._stream: TransportStream | None = None
        self._rate_limiter = SlidingWindowRateLimiter(
            self._config.rate_limit_messages,
            self._config.rate_limit_window_seconds,
            now_fn=self._now,
        )
        self._queue = MessageQueue()
        # Held across admission, write and record so concurrent sends go out one at a time
        self._send_lock = asyncio.Lock()
        self.reconnect_attempts = 0
        self._last_ping = 0.0
        self._last_pong = 0.0
        self._ping_outstanding_since: float | None = None
        self._latency: float | None = None
        self._close_info: CloseInfo | None = None

        self._buffer = bytearray()
        self._fragment_opcode: Opcode | None = None
        self._fragments: list[bytes] = []
        self._fragment_size = 0

        self._connect_task: asyncio.Task[bool] | None = None
        self._read_task: asyncio.Task[None] | None = None
        self._ping_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._closed_by_user = False
        self._disconnect_reported = False
        self._open_event = asyncio.Event()
        self._closed_event = asyncio.Event()
        self._closed_event.set()

        self._log = logger.bind(connection_id=self.id, url=str(self._url))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def url(self) -> WebSocketURL:
        return self._url

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def close_info(self) -> CloseInfo | None:
        return self._close_info

    @property
    def queue(self) -> MessageQueue:
        return self._queue

    @property
    def rate_limiter(self) -> SlidingWindowRateLimiter:
        return self._rate_limiter

    @property
    def last_ping(self) -> float:
        return self._last_ping

    @property
    def last_pong(self) -> float:
        return self._last_pong

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def connect(self) -> bool:
        """Open the connection.

        Failures are reported to ``on_error`` and handed to the reconnection
        policy instead of being raised.

        Returns:
            True if this attempt reached OPEN.
        """
        if self._state in (ConnectionState.OPEN, ConnectionState.CONNECTING):
            return self._state == ConnectionState.OPEN
        if self._state == ConnectionState.CLOSING:
            return False
        self._closed_by_user = False
        self._closed_event.clear()
        if self._state == ConnectionState.RECONNECTING:
            await self._cancel_reconnect()
        else:
            self.reconnect_attempts = 0
            self._disconnect_reported = False
        task = asyncio.create_task(self._attempt())
        self._connect_task = task
        try:
            return await task
        finally:
            if self._connect_task is task:
                self._connect_task = None

    async def send(self, payload: QueuedPayload) -> bool:
        """Send a text (``str``) or binary (``bytes``) message.

        When the connection is not open, or the rate limiter denies the send,
        the payload is queued and retried on the next drain.

        Returns:
            True if the payload was written to the transport now.
        """
        if self._state != ConnectionState.OPEN or self._stream is None:
            depth = self._queue.enqueue(payload)
            self._log.debug("chatwire.connection.queued", reason="not_open", depth=depth)
            return False
        async with self._send_lock:
            if self._queue:
                # Backlog first so the queue stays in send order
                position = self._queue.enqueue(payload)
                return await self._drain_queue() >= position
            if await self._send_now(payload):
                return True
            depth = self._queue.enqueue(payload)
        self._log.debug("chatwire.connection.queued", reason="not_admitted", depth=depth)
        return False

    async def ping(self, payload: bytes = b"") -> bool:
        """Send a ping frame. Returns False immediately if not connected."""
        if not self.is_connected():
            return False
        now = self._now()
        self._last_ping = now
        if self._ping_outstanding_since is None:
            self._ping_outstanding_since = now
        return await self._write_frame(Opcode.PING, payload)

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        """Close the connection and cancel pending reconnect and ping timers.

        Calling close on a connection that is not connected only cancels
        pending timers; it is never an error.
        """
        self._closed_by_user = True
        await self._cancel_reconnect()
        connect_task = self._connect_task
        if connect_task is not None and connect_task is not asyncio.current_task():
            connect_task.cancel()
            with suppress(asyncio.CancelledError):
                await connect_task

        stream = self._stream
        if stream is None or self._state not in (ConnectionState.OPEN, ConnectionState.CLOSING):
            if self._state in (ConnectionState.RECONNECTING, ConnectionState.CONNECTING):
                self._set_state(ConnectionState.CLOSED)
            self._closed_event.set()
            return

        if self._close_info is None:
            self._close_info = CloseInfo(code=code, reason=reason)
        with suppress(TransportError):
            await stream.write(encode_frame(Opcode.CLOSE, encode_close_payload(code, reason)))
        await self._finish_close()

    async def shutdown(self, timeout: float | None = None) -> None:
        """Close gracefully: send close, wait for the peer's echo, then clean up.

        Args:
            timeout: Seconds to wait for the echo (``close_timeout`` by default).
        """
        stream = self._stream
        if self._state != ConnectionState.OPEN or stream is None:
            await self.close()
            return
        self._log.debug("chatwire.connection.shutdown_started")
        self._closed_by_user = True
        await self._cancel_reconnect()
        if self._close_info is None:
            self._close_info = CloseInfo(code=CLOSE_NORMAL, reason=CLOSE_REASON_SHUTDOWN)
        self._set_state(ConnectionState.CLOSING)
        await self._cancel_task(self._ping_task)
        self._ping_task = None
        try:
            await stream.write(
                encode_frame(Opcode.CLOSE, encode_close_payload(CLOSE_NORMAL, CLOSE_REASON_SHUTDOWN))
            )
        except TransportError:
            await self._finish_close()
            return

        wait = self._config.close_timeout_seconds if timeout is None else timeout
        try:
            await asyncio.wait_for(self._closed_event.wait(), timeout=wait)
        except asyncio.TimeoutError:
            self._log.warning("chatwire.connection.shutdown_timeout", timeout=wait)
            await self._finish_close()

    async def reconnect(self, delay_ms: float | None = None) -> bool:
        """Schedule a reconnection by hand.

        Args:
            delay_ms: Milliseconds to wait first (``reconnect_interval`` by default).

        Returns:
            True if already open or a reconnect is pending; False once
            attempts are exhausted or the connection is closing.
        """
        if self._state in (
            ConnectionState.OPEN,
            ConnectionState.CONNECTING,
            ConnectionState.RECONNECTING,
        ):
            return True
        if self._state == ConnectionState.CLOSING:
            return False
        if self.reconnect_attempts >= self._config.max_reconnect_attempts:
            return False
        self._closed_by_user = False
        self._closed_event.clear()
        seconds = self._config.reconnect_interval_seconds if delay_ms is None else delay_ms / 1000.0
        self._start_reconnect(seconds)
        return True

    async def process_queue(self) -> int:
        """Drain queued payloads now; returns how many were written."""
        return await self._flush_queue()

    def is_connected(self) -> bool:
        return (
            self._state == ConnectionState.OPEN
            and self._stream is not None
            and self._stream.is_open()
        )

    async def wait_open(self, timeout: float | None = None) -> bool:
        """Wait until the connection is open; False on timeout."""
        try:
            await asyncio.wait_for(self._open_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def wait_closed(self, timeout: float | None = None) -> bool:
        """Wait until the connection is closed for good; False on timeout.

        "For good" means closed by the caller, closed normally by the peer,
        or given up after exhausting reconnection attempts.
        """
        try:
            await asyncio.wait_for(self._closed_event.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def get_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._state,
            connected=self._state == ConnectionState.OPEN,
            connecting=self._state == ConnectionState.CONNECTING,
            reconnect_attempts=self.reconnect_attempts,
            max_reconnect_attempts=self._config.max_reconnect_attempts,
            message_queue_size=len(self._queue),
            rate_limiter_count=self._rate_limiter.count(),
            last_ping=self._last_ping,
            last_pong=self._last_pong,
            latency=self._latency,
            close_code=self._close_info.code if self._close_info else None,
            close_reason=self._close_info.reason if self._close_info else None,
        )

    def get_resource_stats(self) -> ResourceStats:
        timers = sum(
            1 for task in (self._ping_task, self._reconnect_task) if task and not task.done()
        )
        return ResourceStats(
            transport_active=self._stream is not None and self._stream.is_open(),
            timers_active=timers,
            message_queue_size=len(self._queue),
            rate_limiter_entries=self._rate_limiter.count(),
            handlers_registered=self._handlers.registered(),
        )

    async def __aenter__(self) -> "WebSocketConnection":
        await self.connect()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Session setup
    # ------------------------------------------------------------------

    async def _attempt(self) -> bool:
        self._set_state(ConnectionState.CONNECTING)
        self._log.info("chatwire.connection.connecting", attempt=self.reconnect_attempts)
        error: ChatwireError
        try:
            stream, leftover = await asyncio.wait_for(
                self._open_and_handshake(), timeout=self._config.timeout_seconds
            )
        except asyncio.CancelledError:
            self._log.debug(
                "chatwire.connection.attempt_cancelled", closed_by_user=self._closed_by_user
            )
            self._set_state(ConnectionState.CLOSED)
            if not self._closed_by_user:
                # connect() was cancelled by its caller
                self._closed_event.set()
                raise
            return False
        except asyncio.TimeoutError:
            error = WebSocketTimeoutError("handshake", self._config.timeout)
        except ChatwireError as e:
            error = e
        else:
            await self._on_open(stream, leftover)
            return True
        await self._fail(error)
        return False

    async def _open_and_handshake(self) -> tuple[TransportStream, bytes]:
        ssl_context = None
        if self._url.secure:
            ssl_context = self._ssl_context or default_ssl_context()
        stream = await self._transport.open(self._url.host, self._url.port, ssl_context=ssl_context)
        try:
            request = build_request(self._url, self._extra_headers)
            self._log.debug("chatwire.connection.handshake_sent", headers=list(request.headers))
            await stream.write(request.raw)
            buffer = bytearray()
            while True:
                chunk = await stream.read()
                if not chunk:
                    raise TransportError("connection closed during handshake")
                buffer += chunk
                parts = split_response(buffer)
                if parts is not None:
                    break
            head, leftover = parts
            validate_response(head, request.key, verify_accept=self._config.verify_accept)
        except BaseException:
            with suppress(TransportError):
                await stream.close()
            raise
        return stream, leftover

    async def _on_open(self, stream: TransportStream, leftover: bytes) -> None:
        self._stream = stream
        self._set_state(ConnectionState.OPEN)
        self.reconnect_attempts = 0
        self._disconnect_reported = False
        self._close_info = None
        self._buffer = bytearray(leftover)
        self._reset_fragments()
        self._ping_outstanding_since = None
        self._open_event.set()
        self._log.info("chatwire.connection.opened")

        self._read_task = asyncio.create_task(self._read_loop(stream))
        if self._config.ping_interval > 0:
            self._ping_task = asyncio.create_task(self._ping_loop())
        await self._emit("connect")
        if self._state == ConnectionState.OPEN:
            await self._flush_queue()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    async def _read_loop(self, stream: TransportStream) -> None:
        try:
            await self._process_buffer(stream)
            while self._stream is stream:
                data = await stream.read()
                if self._stream is not stream:
                    return
                if not data:
                    if self._state == ConnectionState.CLOSING:
                        await self._finish_close()
                        return
                    raise TransportError("connection closed by peer")
                self._buffer += data
                await self._process_buffer(stream)
        except ChatwireError as e:
            if self._stream is stream:
                await self._fail(e)
        except Exception as e:
            self._log.exception("chatwire.connection.read_loop_error", error=str(e))
            if self._stream is stream:
                await self._fail(TransportError("read loop failed", cause=e))

    async def _process_buffer(self, stream: TransportStream) -> None:
        while self._stream is stream:
            result = decode_frame(self._buffer, max_payload=self._config.max_message_size)
            if result is None:
                return
            frame, consumed = result
            del self._buffer[:consumed]
            await self._handle_frame(frame)

    async def _handle_frame(self, frame: Frame) -> None:
        if frame.masked:
            raise ProtocolError("server frames must not be masked")
        opcode = frame.opcode
        if opcode == Opcode.PING:
            if self._state == ConnectionState.OPEN:
                await self._write_frame(Opcode.PONG, frame.payload)
        elif opcode == Opcode.PONG:
            now = self._now()
            self._last_pong = now
            if self._last_ping:
                self._latency = now - self._last_ping
            self._ping_outstanding_since = None
            await self._emit("pong", frame.payload)
        elif opcode == Opcode.CLOSE:
            await self._handle_close_frame(frame)
        elif opcode == Opcode.CONTINUATION:
            if self._fragment_opcode is None:
                raise ProtocolError("continuation frame without a message in progress")
            self._append_fragment(frame.payload)
            if frame.fin:
                message_opcode = self._fragment_opcode
                payload = b"".join(self._fragments)
                self._reset_fragments()
                await self._deliver(message_opcode, payload)
        else:
            if self._fragment_opcode is not None:
                raise ProtocolError("new data frame while a fragmented message is in progress")
            if frame.fin:
                await self._deliver(opcode, frame.payload)
            else:
                self._fragment_opcode = opcode
                self._append_fragment(frame.payload)

    def _append_fragment(self, payload: bytes) -> None:
        self._fragment_size += len(payload)
        if self._fragment_size > self._config.max_message_size:
            raise ProtocolError(
                f"fragmented message exceeds {self._config.max_message_size} bytes",
                close_code=CLOSE_MESSAGE_TOO_BIG,
            )
        self._fragments.append(payload)

    def _reset_fragments(self) -> None:
        self._fragment_opcode = None
        self._fragments = []
        self._fragment_size = 0

    async def _deliver(self, opcode: Opcode, payload: bytes) -> None:
        message: QueuedPayload
        if opcode == Opcode.TEXT:
            try:
                message = payload.decode("utf-8")
            except UnicodeDecodeError:
                raise ProtocolError(
                    "text message is not valid UTF-8", close_code=CLOSE_INVALID_PAYLOAD
                ) from None
        else:
            message = payload
        await self._emit("message", message)

    async def _handle_close_frame(self, frame: Frame) -> None:
        info = parse_close_payload(frame.payload)
        if self._close_info is None:
            self._close_info = info
        if self._state == ConnectionState.CLOSING:
            # Echo of a close we initiated
            await self._finish_close()
            return

        self._set_state(ConnectionState.CLOSING)
        stream = self._stream
        if stream is not None:
            with suppress(TransportError):
                await stream.write(encode_frame(Opcode.CLOSE, frame.payload))
        self._log.info("chatwire.connection.closed_by_peer", code=info.code, reason=info.reason)
        await self._teardown_session()
        await self._emit("close", info.code, info.reason)
        if info.code != CLOSE_NORMAL and not self._closed_by_user:
            await self._schedule_reconnect(f"closed by peer with code {info.code}")
        else:
            self._closed_event.set()

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def _write_frame(self, opcode: Opcode, payload: QueuedPayload) -> bool:
        stream = self._stream
        if stream is None:
            return False
        try:
            await stream.write(encode_frame(opcode, payload))
        except TransportError as e:
            await self._fail(e)
            return False
        return True

    async def _send_now(self, payload: QueuedPayload) -> bool:
        if self._state != ConnectionState.OPEN or self._stream is None:
            return False
        if not self._rate_limiter.allow():
            return False
        opcode = Opcode.TEXT if isinstance(payload, str) else Opcode.BINARY
        if not await self._write_frame(opcode, payload):
            return False
        self._rate_limiter.record()
        return True

    async def _flush_queue(self) -> int:
        if self._state != ConnectionState.OPEN or not self._queue:
            return 0
        async with self._send_lock:
            return await self._drain_queue()

    async def _drain_queue(self) -> int:
        # Caller holds _send_lock
        if self._state != ConnectionState.OPEN or not self._queue:
            return 0
        return await self._queue.drain(self._send_now)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def _ping_loop(self) -> None:
        interval = self._config.ping_interval_seconds
        stale_after = interval * LIVENESS_FACTOR
        while self._state == ConnectionState.OPEN:
            await asyncio.sleep(interval)
            if self._state != ConnectionState.OPEN:
                return
            since = self._ping_outstanding_since
            if since is not None and self._now() - since >= stale_after:
                self._log.warning("chatwire.connection.stale", waited=self._now() - since)
                await self._fail(WebSocketTimeoutError("liveness", stale_after * 1000))
                return
            await self.ping()

    # ------------------------------------------------------------------
    # Failure, teardown and reconnection
    # ------------------------------------------------------------------

    async def _fail(self, error: ChatwireError) -> None:
        if self._stream is None and self._state not in (
            ConnectionState.CONNECTING,
            ConnectionState.OPEN,
            ConnectionState.CLOSING,
        ):
            self._log.debug("chatwire.connection.error_after_close", error=error.message)
            return
        self._log.warning("chatwire.connection.error", code=error.code, error=error.message)
        close_code = error.close_code if isinstance(error, ProtocolError) else CLOSE_ABNORMAL
        if self._close_info is None:
            self._close_info = CloseInfo(code=close_code, reason=error.message)
        stream = self._stream
        if isinstance(error, ProtocolError) and stream is not None:
            with suppress(TransportError):
                await stream.write(
                    encode_frame(Opcode.CLOSE, encode_close_payload(close_code, error.reason))
                )
        await self._teardown_session()
        await self._emit("error", error)
        if self._closed_by_user:
            self._closed_event.set()
        else:
            await self._schedule_reconnect(error.message)

    async def _finish_close(self) -> None:
        if self._state == ConnectionState.CLOSED:
            return
        info = self._close_info or CloseInfo(code=CLOSE_NORMAL)
        await self._teardown_session()
        self._log.info("chatwire.connection.closed", code=info.code, reason=info.reason)
        self._closed_event.set()
        await self._emit("close", info.code, info.reason)

    async def _teardown_session(self) -> None:
        stream = self._stream
        self._stream = None
        self._set_state(ConnectionState.CLOSED)
        self._open_event.clear()
        self._buffer = bytearray()
        self._reset_fragments()
        self._ping_outstanding_since = None
        read_task, ping_task = self._read_task, self._ping_task
        self._read_task = self._ping_task = None
        await self._cancel_task(ping_task)
        await self._cancel_task(read_task)
        if stream is not None:
            with suppress(TransportError):
                await stream.close()

    async def _schedule_reconnect(self, reason: str) -> None:
        limit = self._config.max_reconnect_attempts
        if self.reconnect_attempts >= limit:
            self._closed_event.set()
            if self._disconnect_reported:
                return
            self._disconnect_reported = True
            self._log.warning(
                "chatwire.connection.reconnect_exhausted",
                attempts=self.reconnect_attempts,
                max_attempts=limit,
            )
            await self._emit(
                "disconnect",
                f"Max reconnect attempts reached ({self.reconnect_attempts}/{limit}): {reason}",
            )
            return
        self._start_reconnect(self._config.reconnect_interval_seconds)

    def _start_reconnect(self, delay: float) -> None:
        self.reconnect_attempts += 1
        self._set_state(ConnectionState.RECONNECTING)
        self._log.info(
            "chatwire.connection.reconnect_scheduled",
            attempt=self.reconnect_attempts,
            max_attempts=self._config.max_reconnect_attempts,
            delay=delay,
        )
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._closed_by_user or self._state != ConnectionState.RECONNECTING:
            return
        await self._attempt()

    async def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        await self._cancel_task(task)

    @staticmethod
    async def _cancel_task(task: asyncio.Task[Any] | None) -> None:
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state == self._state:
            return
        validate_transition(self._state, new_state, self.id)
        self._log.debug(
            "chatwire.connection.state", from_state=self._state.value, to_state=new_state.value
        )
        self._state = new_state

    async def _emit(self, event: str, *args: Any) -> None:
        handler = getattr(self._handlers, f"on_{event}", None)
        if handler is None:
            return
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._log.warning(
                "chatwire.connection.callback_error", event=event, error=str(e), exc_info=True
            )


async def connect(
    url: str,
    handlers: ConnectionHandlers | None = None,
    config: ConnectionConfig | None = None,
    **kwargs: Any,
) -> WebSocketConnection:
    """Create a connection and start it.

    The connection is returned whether or not the first attempt succeeded;
    failures are reported through *handlers* and the reconnection policy.
    """
    connection = WebSocketConnection(url, handlers, config, **kwargs)
    await connection.connect()
    return connection


__all__ = [
    "ConnectionHandlers",
    "WebSocketConnection",
    "connect",
]
