"""Value objects shared by the codec, the handshake and the connection.

Frame, CloseInfo and WebSocketURL sit on the hot path and are plain frozen
dataclasses; ConnectionStatus and ResourceStats are pydantic snapshots so
callers can ``model_dump()`` them straight into logs or health endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass

from chatwire.models.base import ChatwireBaseModel
from chatwire.models.constants import DEFAULT_PORTS
from chatwire.models.enums import ConnectionState, Opcode


@dataclass(frozen=True)
class Frame:
    """One decoded WebSocket frame."""

    opcode: Opcode
    payload: bytes = b""
    fin: bool = True
    masked: bool = False


@dataclass(frozen=True)
class CloseInfo:
    """Close code and reason, written once per session."""

    code: int
    reason: str = ""


@dataclass(frozen=True)
class WebSocketURL:
    """A normalised ``ws``/``wss`` target."""

    scheme: str
    host: str
    port: int
    path: str = "/"

    @property
    def secure(self) -> bool:
        return self.scheme == "wss"

    @property
    def host_header(self) -> str:
        """Value for the Host header; the port is omitted when it is the scheme default."""
        host = f"[{self.host}]" if ":" in self.host else self.host
        if DEFAULT_PORTS[self.scheme] == self.port:
            return host
        return f"{host}:{self.port}"

    def __str__(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}{self.path}"


class ConnectionStatus(ChatwireBaseModel):
    """Read-only snapshot returned by ``WebSocketConnection.get_status()``.

    Timestamps are monotonic-clock seconds (0.0 when never observed).
    """

    state: ConnectionState
    connected: bool
    connecting: bool
    reconnect_attempts: int
    max_reconnect_attempts: int
    message_queue_size: int
    rate_limiter_count: int
    last_ping: float
    last_pong: float
    latency: float | None = None
    close_code: int | None = None
    close_reason: str | None = None


class ResourceStats(ChatwireBaseModel):
    """Resource usage of one connection, for leak checks and monitoring."""

    transport_active: bool
    timers_active: int
    message_queue_size: int
    rate_limiter_entries: int
    handlers_registered: int


__all__ = [
    "CloseInfo",
    "ConnectionStatus",
    "Frame",
    "ResourceStats",
    "WebSocketURL",
]
