"""Logging for the chatwire transport.

Every chatwire module logs through ``get_logger(__name__)``; applications
call ``configure_logging()`` once to pick console or JSON output.
"""

from chatwire.observability.logging import (
    LogSettings,
    bind_context,
    clear_context,
    configure_logging,
    connection_context,
    get_logger,
    is_debug_mode,
    redact_sensitive_fields,
    sanitize_for_logging,
)

__all__ = [
    "LogSettings",
    "bind_context",
    "clear_context",
    "configure_logging",
    "connection_context",
    "get_logger",
    "is_debug_mode",
    "redact_sensitive_fields",
    "sanitize_for_logging",
]
