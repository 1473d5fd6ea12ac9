"""Structured logging for chatwire.

chatwire logs through structlog on top of the standard ``logging`` module so
that applications embedding the transport see its events next to their own.
Events are named ``chatwire.<component>.<event>`` and carry keyword context
(``connection_id``, ``url``, ``attempt``, ``code``...).

Upgrade requests routinely carry bearer tokens, so every event passes through
``redact_sensitive_fields`` before it is rendered: values stored under
credential-looking keys, inside ``headers`` mappings or ``(name, value)``
header lists, are replaced with ``REDACTED_PLACEHOLDER``.

Environment Variables:
    CHATWIRE_LOG_FORMAT: "json" for one JSON object per line, "console" for colored output
    CHATWIRE_LOG_LEVEL: Minimum level (DEBUG, INFO, WARNING, ERROR)
    CHATWIRE_SERVICE_NAME: Value of the ``service`` field on every event
    CHATWIRE_DEBUG: "true" or "1" disables redaction (local debugging only)

Example:
    >>> from chatwire.observability.logging import configure_logging, connection_context, get_logger
    >>>
    >>> configure_logging(log_format="json", log_level="INFO")
    >>> logger = get_logger("chatwire.transport.connection")
    >>> with connection_context("chan-1"):
    ...     logger.info("chatwire.connection.opened", url="wss://irc-ws.chat.twitch.tv:443/")
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"
DEFAULT_SERVICE_NAME = "chatwire"

ENV_LOG_FORMAT = "CHATWIRE_LOG_FORMAT"
ENV_LOG_LEVEL = "CHATWIRE_LOG_LEVEL"
ENV_SERVICE_NAME = "CHATWIRE_SERVICE_NAME"
ENV_DEBUG = "CHATWIRE_DEBUG"

REDACTED_PLACEHOLDER = "***REDACTED***"

# Substrings (case-insensitive) of field or header names whose values are secret
_SENSITIVE_KEY_PATTERNS = ("password", "token", "secret", "key", "authorization", "auth", "cookie")

# Event fields holding HTTP headers, redacted per header name
_HEADER_FIELDS = frozenset({"headers", "extra_headers", "request_headers", "response_headers"})

_logging_configured = False


@dataclass(frozen=True)
class LogSettings:
    """Resolved logging options."""

    log_format: str = DEFAULT_LOG_FORMAT
    log_level: str = DEFAULT_LOG_LEVEL
    service_name: str = DEFAULT_SERVICE_NAME

    @classmethod
    def from_env(
        cls,
        log_format: str | None = None,
        log_level: str | None = None,
        service_name: str | None = None,
    ) -> LogSettings:
        """Explicit arguments win over ``CHATWIRE_*`` variables, which win over defaults."""
        return cls(
            log_format=(log_format or os.environ.get(ENV_LOG_FORMAT, DEFAULT_LOG_FORMAT)).lower(),
            log_level=(log_level or os.environ.get(ENV_LOG_LEVEL, DEFAULT_LOG_LEVEL)).upper(),
            service_name=service_name or os.environ.get(ENV_SERVICE_NAME, DEFAULT_SERVICE_NAME),
        )

    @property
    def level_number(self) -> int:
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.INFO


def is_debug_mode() -> bool:
    """Return True if CHATWIRE_DEBUG is set to a truthy value (e.g. true, 1)."""
    return os.environ.get(ENV_DEBUG, "").strip().lower() in ("true", "1", "yes", "on")


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def _redact_headers(headers: Any) -> Any:
    if isinstance(headers, Mapping):
        return {
            name: REDACTED_PLACEHOLDER if _is_sensitive_key(str(name)) else value
            for name, value in headers.items()
        }
    if isinstance(headers, (list, tuple)):
        redacted: list[Any] = []
        for item in headers:
            if isinstance(item, (list, tuple)) and len(item) == 2:
                name, value = item
                redacted.append(
                    (name, REDACTED_PLACEHOLDER if _is_sensitive_key(str(name)) else value)
                )
            else:
                redacted.append(item)
        return redacted
    return headers


def _redact(data: Mapping[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for k, v in data.items():
        if k in _HEADER_FIELDS:
            result[k] = _redact_headers(v)
        elif _is_sensitive_key(k):
            result[k] = REDACTED_PLACEHOLDER
        elif isinstance(v, Mapping):
            result[k] = _redact(v)
        else:
            result[k] = v
    return result


def sanitize_for_logging(data: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of *data* with secret values replaced.

    Keys containing password, token, secret, key, authorization, auth or
    cookie (case-insensitive) are redacted, nested mappings are walked, and
    ``headers``-style fields are redacted per header name. With
    CHATWIRE_DEBUG enabled the data is returned unchanged.

    Example:
        >>> sanitize_for_logging({"Host": "example.com", "Authorization": "Bearer abc"})
        {'Host': 'example.com', 'Authorization': '***REDACTED***'}
    """
    if not data:
        return {}
    if is_debug_mode():
        return dict(data)
    return _redact(data)


def redact_sensitive_fields(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """structlog processor applying ``sanitize_for_logging`` to every event."""
    if is_debug_mode():
        return event_dict
    return _redact(event_dict)


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        redact_sensitive_fields,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    log_format: str | None = None,
    log_level: str | None = None,
    service_name: str | None = None,
    force: bool = False,
) -> None:
    """Configure structlog and the root logger.

    Output goes to stderr so that the CLI can keep stdout for received
    messages.

    Args:
        log_format: "json" or "console". Defaults to env var or "console"
        log_level: Minimum log level. Defaults to env var or "INFO"
        service_name: Service name for log context. Defaults to env var or "chatwire"
        force: If True, reconfigure even if already configured
    """
    global _logging_configured

    if _logging_configured and not force:
        return

    settings = LogSettings.from_env(log_format, log_level, service_name)
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.level_number)

    structlog.contextvars.bind_contextvars(service=settings.service_name)

    _logging_configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given name.

    If logging has not been configured, it will be configured with default settings.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger = logger.bind(connection_id="chan-1")
        >>> logger.info("chatwire.connection.opened")  # connection_id included
    """
    if not _logging_configured:
        configure_logging()

    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context variables that will be included in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound context variables."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def connection_context(connection_id: str, **kwargs: Any) -> Iterator[None]:
    """Tag every event logged inside the block with *connection_id*.

    Previously bound values are restored on exit, so blocks nest.
    """
    with structlog.contextvars.bound_contextvars(connection_id=connection_id, **kwargs):
        yield


__all__ = [
    "LogSettings",
    "REDACTED_PLACEHOLDER",
    "bind_context",
    "clear_context",
    "configure_logging",
    "connection_context",
    "get_logger",
    "is_debug_mode",
    "redact_sensitive_fields",
    "sanitize_for_logging",
]
