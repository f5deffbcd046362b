"""Narrow contract between the triage core and the hosted prospect store."""
from __future__ import annotations

from typing import Any, AsyncIterator, Dict, List, Mapping, Protocol

from ..models import OutreachTask, ProspectStatus

Row = Mapping[str, Any]

MAX_PAGE_SIZE = 50


class StoreError(RuntimeError):
    """Base class for failures reported by a prospect store."""


class StoreReadError(StoreError):
    """Raised when the bounded prospect query fails."""


class StoreWriteError(StoreError):
    """Raised when a status update or an outreach insert fails."""


class SubscriptionLost(StoreError):
    """Raised from an insert subscription when the change feed drops."""


class InsertSubscription(Protocol):
    """Handle on a live stream of inserted prospect rows."""

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:  # pragma: no cover - runtime protocol
        ...

    async def close(self) -> None:  # pragma: no cover - runtime protocol
        """Release the subscription. Safe to call more than once."""


class ProspectStore(Protocol):
    """Operations the triage core may perform against the prospect store."""

    async def connect(self) -> None:  # pragma: no cover - runtime protocol
        """Validate credentials and open the underlying client."""

    async def close(self) -> None:  # pragma: no cover - runtime protocol
        """Release every open subscription and the client."""

    async def fetch_recent(self, limit: int = MAX_PAGE_SIZE) -> List[Dict[str, Any]]:  # pragma: no cover
        """Return at most ``limit`` prospect rows, newest ``created_at`` first."""

    async def subscribe_inserts(self) -> InsertSubscription:  # pragma: no cover - runtime protocol
        """Open a stream delivering each inserted prospect row in insertion order."""

    async def update_status(self, prospect_id: str, status: ProspectStatus) -> None:  # pragma: no cover
        """Write the ``status`` field of one prospect."""

    async def enqueue_outreach(self, task: OutreachTask) -> None:  # pragma: no cover - runtime protocol
        """Insert one outreach-queue row."""


def clamp_limit(limit: int) -> int:
    return max(0, min(int(limit), MAX_PAGE_SIZE))


__all__ = [
    "InsertSubscription",
    "MAX_PAGE_SIZE",
    "ProspectStore",
    "Row",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "SubscriptionLost",
    "clamp_limit",
]
