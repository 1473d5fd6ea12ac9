"""Outbound message queue.

Payloads wait here while the connection is not open or the rate limiter
denies a send. The queue is strictly FIFO and a payload leaves only after
the sink accepted it; nothing is dropped except through ``clear()``.
"""

from __future__ import annotations

import collections
import inspect
from collections.abc import Awaitable, Callable, Iterator

from chatwire.observability import get_logger

logger = get_logger(__name__)

QueuedPayload = str | bytes

# A send attempt: returns True when the payload was handed to the transport
Sink = Callable[[QueuedPayload], bool] | Callable[[QueuedPayload], Awaitable[bool]]


class MessageQueue:
    """FIFO buffer of outbound payloads awaiting admission or an open socket."""

    def __init__(self) -> None:
        self._items: collections.deque[QueuedPayload] = collections.deque()
        self._draining = False

    def enqueue(self, payload: QueuedPayload) -> int:
        """Append *payload* at the tail and return the new depth."""
        self._items.append(payload)
        return len(self._items)

    @property
    def draining(self) -> bool:
        return self._draining

    def peek(self) -> QueuedPayload | None:
        return self._items[0] if self._items else None

    async def drain(self, sink: Sink) -> int:
        """Hand payloads to *sink* head first until it refuses one or the queue is empty.

        The head is removed only after *sink* reports success, so a refused
        payload and everything behind it stay queued in their original order.
        *sink* may be a plain function or a coroutine function.

        Only one drain runs at a time: while an awaiting sink holds the head,
        a second call returns 0 without touching the queue, so no payload is
        handed to the sink twice.

        Returns:
            Number of payloads the sink accepted.
        """
        if self._draining:
            return 0
        self._draining = True
        sent = 0
        try:
            while self._items:
                payload = self._items[0]
                result = sink(payload)
                if inspect.isawaitable(result):
                    result = await result
                if not result:
                    break
                # The sink may have cleared the queue (e.g. on close) while it ran
                if self._items and self._items[0] is payload:
                    self._items.popleft()
                sent += 1
        finally:
            self._draining = False
        if sent:
            logger.debug("chatwire.queue.drained", sent=sent, remaining=len(self._items))
        return sent

    def clear(self) -> int:
        """Drop every pending payload; returns how many were dropped."""
        dropped = len(self._items)
        self._items.clear()
        return dropped

    def snapshot(self) -> list[QueuedPayload]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __iter__(self) -> Iterator[QueuedPayload]:
        return iter(list(self._items))


__all__ = ["MessageQueue", "QueuedPayload", "Sink"]
