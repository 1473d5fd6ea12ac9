"""Enumerations for the chatwire WebSocket client.

This module defines the enum types used by the codec and the connection
state machine to avoid magic numbers and strings.
"""

from enum import Enum, IntEnum


class Opcode(IntEnum):
    """WebSocket frame opcodes (RFC 6455 section 5.2).

    Example:
        >>> Opcode.PING.is_control()
        True
        >>> Opcode.TEXT.is_control()
        False
    """

    CONTINUATION = 0x0
    TEXT = 0x1
    BINARY = 0x2
    CLOSE = 0x8
    PING = 0x9
    PONG = 0xA

    def is_control(self) -> bool:
        """Control frames have the high bit of the opcode nibble set."""
        return bool(self.value & 0x8)

    def is_data(self) -> bool:
        return self in (Opcode.TEXT, Opcode.BINARY)


class ConnectionState(str, Enum):
    """Connection lifecycle states.

    A connection starts CLOSED, moves through CONNECTING to OPEN, and
    leaves OPEN through CLOSING or directly to CLOSED on failure.
    RECONNECTING is the wait between a failure and the next attempt.
    """

    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"
