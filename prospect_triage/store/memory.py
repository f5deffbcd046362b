"""In-process prospect store used for demos, seed data, and tests."""
from __future__ import annotations

import asyncio
import itertools
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..ingestion.loaders import load_prospect_rows
from ..models import OutreachTask, ProspectStatus, utc_now_iso
from .base import StoreReadError, StoreWriteError, SubscriptionLost, clamp_limit
from .subscription import QueueSubscription

LOGGER = logging.getLogger(__name__)

_OPERATIONS = {"fetch_recent", "subscribe_inserts", "update_status", "enqueue_outreach"}

_PASS = object()


class InMemoryProspectStore:
    """Keeps prospect and outreach rows in memory and fans inserts out to subscribers.

    Besides the store contract it exposes a few hooks for simulating the
    outside world: :meth:`publish_insert` plays the scraper,
    :meth:`fail_next` injects failures, :meth:`hold_writes` keeps writes in
    flight, and :meth:`drop_subscriptions` simulates a change-feed
    disconnect.
    """

    name = "memory"

    def __init__(
        self,
        rows: Optional[Iterable[Mapping[str, Any]]] = None,
        *,
        seed_path: Optional[Union[str, Path]] = None,
    ) -> None:
        self._rows: Dict[str, Dict[str, Any]] = {}
        self._order: Dict[str, int] = {}
        self._sequence = itertools.count()
        self._subscriptions: List[QueueSubscription] = []
        self._failures: Dict[str, List[BaseException]] = {}
        self._write_gate: Optional[asyncio.Event] = None
        self.outreach_tasks: List[Dict[str, Any]] = []
        self.status_writes: List[tuple] = []
        self.connected = False

        seed_rows: List[Mapping[str, Any]] = list(rows or [])
        if seed_path:
            seed_rows.extend(load_prospect_rows(seed_path))
        for row in seed_rows:
            self._add_row(row)

    # ------------------------------------------------------------------
    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        for subscription in list(self._subscriptions):
            await subscription.close()
        self._subscriptions.clear()
        self.connected = False

    # ------------------------------------------------------------------
    async def fetch_recent(self, limit: int = 50) -> List[Dict[str, Any]]:
        self._maybe_fail("fetch_recent", StoreReadError)
        ordered = sorted(
            self._rows.values(),
            key=lambda row: (str(row.get("created_at") or ""), self._order[str(row["id"])]),
            reverse=True,
        )
        return [dict(row) for row in ordered[: clamp_limit(limit)]]

    async def subscribe_inserts(self) -> QueueSubscription:
        self._maybe_fail("subscribe_inserts", SubscriptionLost)
        subscription = QueueSubscription(name=f"memory-{len(self._subscriptions)}", on_close=self._forget)
        self._subscriptions.append(subscription)
        return subscription

    async def update_status(self, prospect_id: str, status: ProspectStatus) -> None:
        await self._wait_for_writes()
        self._maybe_fail("update_status", StoreWriteError)
        row = self._rows.get(str(prospect_id))
        if row is None:
            raise StoreWriteError(f"Prospect '{prospect_id}' does not exist")
        row["status"] = ProspectStatus(status).value
        row["updated_at"] = utc_now_iso()
        self.status_writes.append((str(prospect_id), row["status"]))

    async def enqueue_outreach(self, task: OutreachTask) -> None:
        await self._wait_for_writes()
        self._maybe_fail("enqueue_outreach", StoreWriteError)
        row = task.to_row()
        row["id"] = str(uuid.uuid4())
        row["created_at"] = utc_now_iso()
        self.outreach_tasks.append(row)

    # ------------------------------------------------------------------
    def publish_insert(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert a prospect row and deliver it to every open subscription."""

        stored = self._add_row(row)
        for subscription in list(self._subscriptions):
            subscription.push(stored)
        return dict(stored)

    def fail_next(
        self,
        operation: str,
        exc: Optional[BaseException] = None,
        *,
        times: int = 1,
        skip: int = 0,
    ) -> None:
        """Make the next ``times`` calls of ``operation`` fail, after ``skip`` successful ones."""

        if operation not in _OPERATIONS:
            raise ValueError(f"Unknown store operation '{operation}'")
        pending = self._failures.setdefault(operation, [])
        pending.extend([_PASS] * skip + [exc] * times)

    def hold_writes(self) -> None:
        self._write_gate = asyncio.Event()

    def release_writes(self) -> None:
        if self._write_gate is not None:
            self._write_gate.set()
            self._write_gate = None

    def drop_subscriptions(self) -> int:
        dropped = list(self._subscriptions)
        self._subscriptions.clear()
        for subscription in dropped:
            subscription.fail(SubscriptionLost("Change feed connection lost"))
        return len(dropped)

    def get_row(self, prospect_id: str) -> Optional[Dict[str, Any]]:
        row = self._rows.get(str(prospect_id))
        return dict(row) if row is not None else None

    @property
    def open_subscriptions(self) -> int:
        return len(self._subscriptions)

    # ------------------------------------------------------------------
    def _add_row(self, row: Mapping[str, Any]) -> Dict[str, Any]:
        stored = dict(row)
        stored["id"] = str(stored.get("id") or uuid.uuid4())
        stored.setdefault("status", ProspectStatus.NEW.value)
        if not stored.get("created_at"):
            stored["created_at"] = utc_now_iso()
        self._rows[stored["id"]] = stored
        self._order[stored["id"]] = next(self._sequence)
        return stored

    def _maybe_fail(self, operation: str, error_cls: type) -> None:
        pending = self._failures.get(operation)
        if not pending:
            return
        exc = pending.pop(0)
        if exc is _PASS:
            return
        if exc is None:
            exc = error_cls(f"Injected failure for {operation}")
        LOGGER.debug("Raising injected failure for %s: %s", operation, exc)
        raise exc

    async def _wait_for_writes(self) -> None:
        gate = self._write_gate
        if gate is not None:
            await gate.wait()

    async def _forget(self, subscription: QueueSubscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)


__all__ = ["InMemoryProspectStore"]
