"""Chatwire state management.

Example:
    >>> from chatwire.models.enums import ConnectionState
    >>> can_transition(ConnectionState.OPEN, ConnectionState.CLOSING)
    True
"""

from chatwire.models.enums import ConnectionState

from .machine import VALID_TRANSITIONS, can_transition, validate_transition

__all__ = [
    "ConnectionState",
    "VALID_TRANSITIONS",
    "can_transition",
    "validate_transition",
]
