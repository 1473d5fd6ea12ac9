"""Chatwire Error Taxonomy.

This module defines the error hierarchy for the chatwire WebSocket client,
providing structured error handling with specific error codes and context
information.

Handshake, protocol, transport and timeout errors never escape the
connection state machine: they are routed to the ``error`` handler and
then drive the reconnection policy. Only caller mistakes (bad URLs,
illegal state transitions) are raised to the caller.
"""

from __future__ import annotations

from typing import Any

from chatwire.models.constants import CLOSE_PROTOCOL_ERROR


class ChatwireError(Exception):
    """Base exception for all chatwire errors.

    Attributes:
        code: Error code following the chatwire:<area>/<kind> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class InvalidTransitionError(ChatwireError):
    """Raised when the connection is driven through a disallowed state change.

    Attributes:
        from_state: The current connection state
        to_state: The attempted target state
    """

    def __init__(
        self, from_state: str, to_state: str, details: dict[str, Any] | None = None
    ) -> None:
        message = f"Invalid transition from '{from_state}' to '{to_state}'"
        super().__init__(
            code="chatwire:state/invalid_transition",
            message=message,
            details={"from_state": from_state, "to_state": to_state, **(details or {})},
        )
        self.from_state = from_state
        self.to_state = to_state


class InvalidURLError(ChatwireError):
    """Raised when a WebSocket URL cannot be normalised.

    Only ``ws://`` and ``wss://`` URLs with a host are accepted.

    Attributes:
        url: The rejected URL
        reason: Why it was rejected
    """

    def __init__(self, url: str, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="chatwire:config/invalid_url",
            message=f"Invalid WebSocket URL {url!r}: {reason}",
            details={"url": url, "reason": reason, **(details or {})},
        )
        self.url = url
        self.reason = reason


class HandshakeError(ChatwireError):
    """Raised when the server's upgrade response is not acceptable.

    Covers a bad status line, a missing ``Upgrade: websocket`` header and a
    ``Sec-WebSocket-Accept`` value that does not match the request key.

    Attributes:
        reason: Short description of the mismatch
        status: HTTP status code from the response, if one was parsed
    """

    def __init__(
        self,
        reason: str,
        status: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details_dict: dict[str, Any] = {"reason": reason}
        if status is not None:
            details_dict["status"] = status
        if details:
            details_dict.update(details)
        super().__init__(
            code="chatwire:handshake/failed",
            message=f"Handshake failed: {reason}",
            details=details_dict,
        )
        self.reason = reason
        self.status = status


class ProtocolError(ChatwireError):
    """Raised when inbound bytes violate the WebSocket framing rules.

    Attributes:
        reason: What was wrong with the frame
        close_code: Close code to report to the peer (1002, 1007 or 1009)
    """

    def __init__(
        self,
        reason: str,
        close_code: int = CLOSE_PROTOCOL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="chatwire:protocol/violation",
            message=f"Protocol error: {reason}",
            details={"reason": reason, "close_code": close_code, **(details or {})},
        )
        self.reason = reason
        self.close_code = close_code


class TransportError(ChatwireError):
    """Raised when the socket layer fails to open, read or write.

    Attributes:
        reason: Error description
        cause: Original exception that caused this error
    """

    def __init__(
        self,
        reason: str,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details_dict: dict[str, Any] = {"reason": reason}
        if cause is not None:
            details_dict["cause"] = f"{type(cause).__name__}: {cause}"
        if details:
            details_dict.update(details)
        super().__init__(
            code="chatwire:transport/failed",
            message=f"Transport error: {reason}",
            details=details_dict,
        )
        self.reason = reason
        self.cause = cause


class WebSocketTimeoutError(ChatwireError):
    """Raised when a handshake or liveness deadline is exceeded.

    Attributes:
        operation: What timed out ("handshake" or "liveness")
        timeout_ms: The deadline that was exceeded, in milliseconds
    """

    def __init__(
        self,
        operation: str,
        timeout_ms: float,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="chatwire:transport/timeout",
            message=f"{operation.capitalize()} timed out after {timeout_ms:g}ms",
            details={"operation": operation, "timeout_ms": timeout_ms, **(details or {})},
        )
        self.operation = operation
        self.timeout_ms = timeout_ms


__all__ = [
    "ChatwireError",
    "HandshakeError",
    "InvalidTransitionError",
    "InvalidURLError",
    "ProtocolError",
    "TransportError",
    "WebSocketTimeoutError",
]
