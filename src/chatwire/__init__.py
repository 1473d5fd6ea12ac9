"""chatwire: client-side WebSocket transport for chat services.

Example:
    >>> from chatwire import ConnectionConfig, ConnectionHandlers, WebSocketConnection
    >>> conn = WebSocketConnection(
    ...     "wss://irc-ws.chat.twitch.tv:443",
    ...     ConnectionHandlers(on_message=print),
    ...     ConnectionConfig(ping_interval=60_000),
    ... )
"""

__version__ = "0.1.0"

from chatwire.errors import (
    ChatwireError,
    HandshakeError,
    InvalidTransitionError,
    InvalidURLError,
    ProtocolError,
    TransportError,
    WebSocketTimeoutError,
)
from chatwire.models import (
    CloseInfo,
    ConnectionConfig,
    ConnectionState,
    ConnectionStatus,
    Frame,
    Opcode,
    ResourceStats,
)
from chatwire.transport import (
    ConnectionHandlers,
    ConnectionRegistry,
    WebSocketConnection,
    connect,
)

__all__ = [
    "ChatwireError",
    "CloseInfo",
    "ConnectionConfig",
    "ConnectionHandlers",
    "ConnectionRegistry",
    "ConnectionState",
    "ConnectionStatus",
    "Frame",
    "HandshakeError",
    "InvalidTransitionError",
    "InvalidURLError",
    "Opcode",
    "ProtocolError",
    "ResourceStats",
    "TransportError",
    "WebSocketConnection",
    "WebSocketTimeoutError",
    "__version__",
    "connect",
]
