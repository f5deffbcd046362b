"""Queue-backed insert subscription shared by the store adapters."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

LOGGER = logging.getLogger(__name__)

_CLOSED = object()


class QueueSubscription:
    """Buffers rows pushed by a change-feed callback until they are consumed."""

    def __init__(
        self,
        *,
        name: str = "prospects",
        on_close: Optional[Callable[["QueueSubscription"], Awaitable[None]]] = None,
    ) -> None:
        self.name = name
        self._queue: "asyncio.Queue[Any]" = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, row: Mapping[str, Any]) -> None:
        if self._closed:
            LOGGER.debug("Dropping row for closed subscription %s", self.name)
            return
        self._queue.put_nowait(dict(row))

    def fail(self, exc: BaseException) -> None:
        """Deliver ``exc`` to the consumer after any rows already buffered."""

        if self._closed:
            return
        self._queue.put_nowait(exc)

    def __aiter__(self) -> "QueueSubscription":
        return self

    async def __anext__(self) -> Dict[str, Any]:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            await self._on_close(self)
        LOGGER.debug("Closed subscription %s", self.name)


__all__ = ["QueueSubscription"]
