"""Connection configuration for chatwire.

ConnectionConfig is immutable once a connection has been created. All
durations are expressed in milliseconds, matching the option names the
chat layer passes in.

Environment Variables (read by ConnectionConfig.from_env):
    CHATWIRE_TIMEOUT, CHATWIRE_RECONNECT_INTERVAL, CHATWIRE_MAX_RECONNECT_ATTEMPTS,
    CHATWIRE_PING_INTERVAL, CHATWIRE_RATE_LIMIT_MESSAGES, CHATWIRE_RATE_LIMIT_WINDOW,
    CHATWIRE_VERIFY_ACCEPT, CHATWIRE_MAX_MESSAGE_SIZE, CHATWIRE_CLOSE_TIMEOUT,
    CHATWIRE_READ_CHUNK_SIZE
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from pydantic import Field

from chatwire.models.base import ChatwireBaseModel
from chatwire.models.constants import (
    DEFAULT_CLOSE_TIMEOUT_MS,
    DEFAULT_MAX_MESSAGE_SIZE,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_PING_INTERVAL_MS,
    DEFAULT_RATE_LIMIT_MESSAGES,
    DEFAULT_RATE_LIMIT_WINDOW_MS,
    DEFAULT_READ_CHUNK_SIZE,
    DEFAULT_RECONNECT_INTERVAL_MS,
    DEFAULT_TIMEOUT_MS,
)

ENV_PREFIX = "CHATWIRE_"


class ConnectionConfig(ChatwireBaseModel):
    """Immutable configuration snapshot for one connection.

    Attributes:
        timeout: Handshake deadline (ms), covering TCP/TLS open and upgrade.
        reconnect_interval: Constant delay before each reconnection attempt (ms).
        max_reconnect_attempts: Retries allowed after a failure; 0 disables retry.
        ping_interval: Period of the liveness ping (ms); 0 disables the ping timer.
        rate_limit_messages: Sends admitted per window; 0 pauses all sends.
        rate_limit_window: Length of the trailing rate-limit window (ms).
        verify_accept: Check Sec-WebSocket-Accept against the request key.
        max_message_size: Largest frame or reassembled message accepted (bytes).
        close_timeout: How long shutdown() waits for the peer's close echo (ms).
        read_chunk_size: Bytes requested from the transport per read.

    Example:
        >>> config = ConnectionConfig(ping_interval=10_000)
        >>> config.with_overrides(max_reconnect_attempts=0).max_reconnect_attempts
        0
    """

    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0)
    reconnect_interval: int = Field(default=DEFAULT_RECONNECT_INTERVAL_MS, ge=0)
    max_reconnect_attempts: int = Field(default=DEFAULT_MAX_RECONNECT_ATTEMPTS, ge=0)
    ping_interval: int = Field(default=DEFAULT_PING_INTERVAL_MS, ge=0)
    rate_limit_messages: int = Field(default=DEFAULT_RATE_LIMIT_MESSAGES, ge=0)
    rate_limit_window: int = Field(default=DEFAULT_RATE_LIMIT_WINDOW_MS, gt=0)
    verify_accept: bool = True
    max_message_size: int = Field(default=DEFAULT_MAX_MESSAGE_SIZE, gt=0)
    close_timeout: int = Field(default=DEFAULT_CLOSE_TIMEOUT_MS, ge=0)
    read_chunk_size: int = Field(default=DEFAULT_READ_CHUNK_SIZE, gt=0)

    def with_overrides(self, **overrides: Any) -> ConnectionConfig:
        """Return a validated copy with the given options replaced."""
        return ConnectionConfig.model_validate({**self.model_dump(), **overrides})

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> ConnectionConfig:
        """Build a configuration from ``<prefix><OPTION>`` environment variables.

        Unset variables keep their defaults; values are validated by pydantic,
        so a non-numeric ``CHATWIRE_TIMEOUT`` raises ``ValidationError``.
        """
        env = os.environ if environ is None else environ
        values: dict[str, str] = {}
        for name in cls.model_fields:
            raw = env.get(f"{prefix}{name.upper()}")
            if raw is not None and raw.strip():
                values[name] = raw.strip()
        return cls.model_validate(values)

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000.0

    @property
    def reconnect_interval_seconds(self) -> float:
        return self.reconnect_interval / 1000.0

    @property
    def ping_interval_seconds(self) -> float:
        return self.ping_interval / 1000.0

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window / 1000.0

    @property
    def close_timeout_seconds(self) -> float:
        return self.close_timeout / 1000.0


__all__ = ["ConnectionConfig", "ENV_PREFIX"]
