"""Chatwire Models.

This module provides the configuration model, enums, constants and value
objects shared by the WebSocket transport.
"""

# Base models
from chatwire.models.base import ChatwireBaseModel

# Configuration
from chatwire.models.config import ConnectionConfig

# Constants
from chatwire.models.constants import (
    CLOSE_NORMAL,
    DEFAULT_URL,
    WEBSOCKET_GUID,
    WEBSOCKET_VERSION,
)

# Entities
from chatwire.models.entities import (
    CloseInfo,
    ConnectionStatus,
    Frame,
    ResourceStats,
    WebSocketURL,
)

# Enums
from chatwire.models.enums import ConnectionState, Opcode

__all__ = [
    "CLOSE_NORMAL",
    "ChatwireBaseModel",
    "CloseInfo",
    "ConnectionConfig",
    "ConnectionState",
    "ConnectionStatus",
    "DEFAULT_URL",
    "Frame",
    "Opcode",
    "ResourceStats",
    "WEBSOCKET_GUID",
    "WEBSOCKET_VERSION",
    "WebSocketURL",
]
