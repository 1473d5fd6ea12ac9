"""Constants for the chatwire WebSocket client.

This module defines protocol-wide constants used across the codebase.
Durations are milliseconds unless the name says otherwise.
"""

# Default endpoint of the chat service
DEFAULT_URL = "wss://irc-ws.chat.twitch.tv:443"

# Default connection configuration (milliseconds)
DEFAULT_TIMEOUT_MS = 10_000
DEFAULT_RECONNECT_INTERVAL_MS = 5_000
DEFAULT_MAX_RECONNECT_ATTEMPTS = 5
DEFAULT_PING_INTERVAL_MS = 30_000
DEFAULT_RATE_LIMIT_MESSAGES = 20
DEFAULT_RATE_LIMIT_WINDOW_MS = 30_000
DEFAULT_CLOSE_TIMEOUT_MS = 5_000
DEFAULT_READ_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_MESSAGE_SIZE = 16 * 1024 * 1024

LIVENESS_FACTOR = 2
"""A ping left unanswered for ``ping_interval * LIVENESS_FACTOR`` marks the link stale."""

# WebSocket protocol (RFC 6455)
WEBSOCKET_VERSION = "13"
WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"
DEFAULT_PORTS = {"ws": 80, "wss": 443}

MAX_CONTROL_PAYLOAD = 125
MAX_HANDSHAKE_SIZE = 64 * 1024
"""Upper bound for the HTTP upgrade response head; larger responses are rejected."""

# Close codes
CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_PROTOCOL_ERROR = 1002
CLOSE_NO_STATUS = 1005
CLOSE_ABNORMAL = 1006
CLOSE_INVALID_PAYLOAD = 1007
CLOSE_MESSAGE_TOO_BIG = 1009

CLOSE_REASON_SHUTDOWN = "Shutting down"
