"""chatwire WebSocket transport layer.

This package implements the client side of RFC 6455 for chat services:
- Frame codec (encode/decode, masking, close payloads)
- Opening handshake (request building, response validation)
- Sliding-window rate limiter and FIFO outbound queue
- Connection state machine with reconnection and ping/pong liveness
- Transport bindings (asyncio TCP/TLS, injectable fakes)

Public exports:
    WebSocketConnection: Managed client connection
    ConnectionHandlers: Event callbacks for a connection
    connect: Create and start a connection in one call
    ConnectionRegistry: Named connections closed together
    SlidingWindowRateLimiter: Outbound admission control
    MessageQueue: FIFO buffer of pending payloads
    AsyncioTransport: Production transport binding
    TransportBinding: Protocol for transport bindings
    TransportStream: Protocol for open byte streams

Example:
    >>> from chatwire.transport import ConnectionHandlers, connect
    >>> async def main():
    ...     conn = await connect("wss://irc-ws.chat.twitch.tv", ConnectionHandlers(on_message=print))
    ...     await conn.send("PASS oauth:...")
"""

from chatwire.transport.binding import (
    AsyncioTransport,
    StreamTransport,
    TransportBinding,
    TransportStream,
    default_ssl_context,
)
from chatwire.transport.connection import ConnectionHandlers, WebSocketConnection, connect
from chatwire.transport.frames import (
    apply_mask,
    decode_frame,
    encode_close_payload,
    encode_frame,
    parse_close_payload,
)
from chatwire.transport.handshake import (
    HandshakeRequest,
    HandshakeResponse,
    accept_key,
    build_request,
    generate_key,
    parse_url,
    split_response,
    validate_response,
)
from chatwire.transport.queue import MessageQueue
from chatwire.transport.rate_limit import SlidingWindowRateLimiter
from chatwire.transport.registry import ConnectionRegistry

__all__ = [
    "AsyncioTransport",
    "ConnectionHandlers",
    "ConnectionRegistry",
    "HandshakeRequest",
    "HandshakeResponse",
    "MessageQueue",
    "SlidingWindowRateLimiter",
    "StreamTransport",
    "TransportBinding",
    "TransportStream",
    "WebSocketConnection",
    "accept_key",
    "apply_mask",
    "build_request",
    "connect",
    "decode_frame",
    "default_ssl_context",
    "encode_close_payload",
    "encode_frame",
    "generate_key",
    "parse_close_payload",
    "parse_url",
    "split_response",
    "validate_response",
]
