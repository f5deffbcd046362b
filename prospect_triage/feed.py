"""Prospect feed: initial bounded load plus live inserts from the change feed."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Iterable, List, Mapping, Optional

from .backoff import Backoff
from .merge import Listener, ProspectList
from .models import Prospect
from .stats import StatusCounts
from .store.base import (
    InsertSubscription,
    MAX_PAGE_SIZE,
    ProspectStore,
    StoreError,
    SubscriptionLost,
    clamp_limit,
)

LOGGER = logging.getLogger(__name__)


def rows_to_prospects(rows: Iterable[Mapping[str, Any]]) -> List[Prospect]:
    prospects: List[Prospect] = []
    for row in rows:
        try:
            prospects.append(Prospect.from_row(row))
        except ValueError:
            LOGGER.warning("Skipping malformed prospect row: %s", row)
    return prospects


class ProspectFeed:
    """Keeps a newest-first :class:`ProspectList` in step with the prospect store.

    ``start`` subscribes to inserts, loads the most recent page and then
    consumes the stream in a background task. Streamed rows are prepended
    unless their id is already listed. When the stream drops, the feed
    reconnects with backoff and merges a fresh page to catch up. ``close``
    (or leaving the ``async with`` block) releases the subscription; it does
    not cancel writes issued by the triage controller.
    """

    def __init__(
        self,
        store: ProspectStore,
        *,
        page_size: int = MAX_PAGE_SIZE,
        backoff: Optional[Backoff] = None,
        prospects: Optional[ProspectList] = None,
    ) -> None:
        self._store = store
        self.page_size = clamp_limit(page_size)
        self.prospects = prospects if prospects is not None else ProspectList()
        self._backoff = backoff or Backoff()
        self._subscription: Optional[InsertSubscription] = None
        self._listener_task: Optional[asyncio.Task] = None
        self._closed = False
        self.loading = False
        self.load_error: Optional[StoreError] = None
        self.reconnects = 0

    # ------------------------------------------------------------------
    async def __aenter__(self) -> "ProspectFeed":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def running(self) -> bool:
        return self._listener_task is not None and not self._listener_task.done()

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None

    def counts(self) -> StatusCounts:
        return self.prospects.counts()

    def add_listener(self, listener: Listener):
        return self.prospects.add_listener(listener)

    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._listener_task is not None:
            return
        self._closed = False
        # Subscribe before the initial read so inserts that race with it are
        # buffered rather than missed; duplicates are dropped by id.
        try:
            self._subscription = await self._store.subscribe_inserts()
        except StoreError as exc:
            LOGGER.warning("Could not subscribe to prospect inserts: %s", exc)
            self._subscription = None
        await self.load_initial()
        self._listener_task = asyncio.create_task(self._listen(), name="prospect-feed")

    async def load_initial(self) -> bool:
        """Replace the list with the most recent page; keep it empty on failure."""

        self.loading = True
        try:
            rows = await self._store.fetch_recent(self.page_size)
        except StoreError as exc:
            LOGGER.error("Error fetching prospects: %s", exc)
            self.load_error = exc
            return False
        finally:
            self.loading = False
        self.load_error = None
        self.prospects.replace(rows_to_prospects(rows[: self.page_size]))
        LOGGER.info("Loaded %s prospects", len(self.prospects))
        return True

    async def resync(self) -> int:
        """Merge the most recent page into the list; return how many were new."""

        try:
            rows = await self._store.fetch_recent(self.page_size)
        except StoreError as exc:
            LOGGER.warning("Resync after reconnect failed: %s", exc)
            return 0
        added = self.prospects.merge_page(rows_to_prospects(rows[: self.page_size]))
        LOGGER.info("Resynchronised prospect feed, %s new prospects", added)
        return added

    def ingest(self, row: Mapping[str, Any]) -> bool:
        """Map a streamed row and put it at the head of the list."""

        try:
            prospect = Prospect.from_row(row)
        except ValueError:
            LOGGER.warning("Ignoring malformed insert event: %s", row)
            return False
        LOGGER.debug("Streamed prospect %s", prospect.id)
        return self.prospects.prepend(prospect)

    async def close(self) -> None:
        self._closed = True
        task, self._listener_task = self._listener_task, None
        await self._release_subscription()
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    async def _listen(self) -> None:
        while not self._closed:
            subscription = self._subscription
            if subscription is None:
                if not await self._reconnect():
                    LOGGER.error("Giving up on the prospect change feed after %s attempts", self._backoff.attempts)
                    return
                continue
            try:
                async for row in subscription:
                    self.ingest(row)
            except SubscriptionLost as exc:
                LOGGER.warning("Prospect change feed lost: %s", exc)
            if self._closed:
                return
            await self._release_subscription()

    async def _reconnect(self) -> bool:
        while not self._closed:
            if not await self._backoff.wait():
                return False
            try:
                self._subscription = await self._store.subscribe_inserts()
            except StoreError as exc:
                LOGGER.warning("Reconnect attempt %s failed: %s", self._backoff.attempts, exc)
                continue
            self.reconnects += 1
            self._backoff.reset()
            await self.resync()
            return True
        return False

    async def _release_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()


__all__ = ["ProspectFeed", "rows_to_prospects"]
