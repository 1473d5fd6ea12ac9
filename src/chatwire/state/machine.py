"""Connection State Machine transitions.

This module defines which lifecycle moves a WebSocket connection may make
and validates them before the connection commits a new state.

Example:
    >>> from chatwire.models.enums import ConnectionState
    >>> can_transition(ConnectionState.CONNECTING, ConnectionState.OPEN)
    True
    >>> can_transition(ConnectionState.CLOSED, ConnectionState.OPEN)
    False
"""

from chatwire.errors import InvalidTransitionError
from chatwire.models.enums import ConnectionState

__all__ = ["ConnectionState", "can_transition", "VALID_TRANSITIONS", "validate_transition"]

VALID_TRANSITIONS: dict[ConnectionState, frozenset[ConnectionState]] = {
    ConnectionState.CLOSED: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.RECONNECTING}
    ),
    ConnectionState.CONNECTING: frozenset(
        {ConnectionState.OPEN, ConnectionState.CLOSED}
    ),
    ConnectionState.OPEN: frozenset(
        {ConnectionState.CLOSING, ConnectionState.CLOSED}
    ),
    ConnectionState.CLOSING: frozenset({ConnectionState.CLOSED}),
    ConnectionState.RECONNECTING: frozenset(
        {ConnectionState.CONNECTING, ConnectionState.CLOSED}
    ),
}


def can_transition(from_state: ConnectionState, to_state: ConnectionState) -> bool:
    """Check if a move from one state to another is allowed."""
    return to_state in VALID_TRANSITIONS.get(from_state, frozenset())


def validate_transition(
    from_state: ConnectionState,
    to_state: ConnectionState,
    connection_id: str | None = None,
) -> ConnectionState:
    """Return *to_state* if the move is allowed.

    Raises:
        InvalidTransitionError: If the transition is not valid
    """
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(
            from_state=from_state.value,
            to_state=to_state.value,
            details={"connection_id": connection_id} if connection_id else None,
        )
    return to_state
