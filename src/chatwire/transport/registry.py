"""Registry of named connections.

Applications that hold several chat links (one per channel or account)
keep them in a ``ConnectionRegistry`` and close them together on exit.
Each registry is an ordinary object owned by the application; there is no
module-level instance.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator

from chatwire.models.entities import ConnectionStatus
from chatwire.observability import get_logger
from chatwire.transport.connection import WebSocketConnection

logger = get_logger(__name__)


class ConnectionRegistry:
    """Connections keyed by their ``id``."""

    def __init__(self) -> None:
        self._connections: dict[str, WebSocketConnection] = {}

    def add(self, connection: WebSocketConnection) -> WebSocketConnection:
        """Register *connection*.

        Raises:
            ValueError: If a different connection already uses the same id.
        """
        existing = self._connections.get(connection.id)
        if existing is not None and existing is not connection:
            raise ValueError(f"connection id {connection.id!r} is already registered")
        self._connections[connection.id] = connection
        logger.debug("chatwire.registry.added", connection_id=connection.id, size=len(self))
        return connection

    def get(self, connection_id: str) -> WebSocketConnection | None:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> WebSocketConnection | None:
        """Forget a connection without closing it."""
        connection = self._connections.pop(connection_id, None)
        if connection is not None:
            logger.debug("chatwire.registry.removed", connection_id=connection_id, size=len(self))
        return connection

    def statuses(self) -> dict[str, ConnectionStatus]:
        return {cid: conn.get_status() for cid, conn in self._connections.items()}

    async def close_all(self, graceful: bool = False) -> None:
        """Close every registered connection and empty the registry.

        Args:
            graceful: Use ``shutdown()`` (wait for the close echo) instead of ``close()``.
        """
        connections = list(self._connections.values())
        self._connections.clear()
        if not connections:
            return
        logger.info("chatwire.registry.closing", count=len(connections), graceful=graceful)
        for conn in connections:
            logger.debug(
                "chatwire.registry.closing_connection",
                connection_id=conn.id,
                **conn.get_status().log_fields(),
            )
        if graceful:
            await asyncio.gather(*(conn.shutdown() for conn in connections))
        else:
            await asyncio.gather(*(conn.close() for conn in connections))

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def __len__(self) -> int:
        return len(self._connections)

    def __iter__(self) -> Iterator[WebSocketConnection]:
        return iter(list(self._connections.values()))


__all__ = ["ConnectionRegistry"]
