"""Ordered, id de-duplicated prospect list shared by the feed and the controller."""
from __future__ import annotations

import logging
from typing import Callable, Collection, Dict, Iterable, Iterator, List, Optional, Set

from .models import Prospect, ProspectStatus
from .stats import StatusCounts

LOGGER = logging.getLogger(__name__)

Listener = Callable[["ProspectList"], None]


def merge_prospects(
    current: Iterable[Prospect],
    incoming: Iterable[Prospect],
    *,
    keep: Collection[str] = (),
) -> List[Prospect]:
    """Put unseen ``incoming`` prospects ahead of ``current``, deduplicating by id.

    Prospects already present keep their position but take the incoming
    field values, since the store is the source of truth. Ids in ``keep``
    that are already present are left untouched.
    """

    merged: Dict[str, Prospect] = {}
    ordered_keys: List[str] = []
    fresh_keys: List[str] = []

    for prospect in current:
        if prospect.id in merged:
            continue
        merged[prospect.id] = prospect
        ordered_keys.append(prospect.id)

    for prospect in incoming:
        if prospect is None:
            continue
        if prospect.id not in merged:
            fresh_keys.append(prospect.id)
        elif prospect.id in fresh_keys or prospect.id in keep:
            continue
        merged[prospect.id] = prospect

    return [merged[key] for key in fresh_keys + ordered_keys]


class ProspectList:
    """Newest-first view state holding at most one entry per prospect id.

    The list has a single owner (the view's event handlers), so it takes no
    locks. Listeners run synchronously after every mutation.
    """

    def __init__(self, prospects: Iterable[Prospect] = ()) -> None:
        self._items: List[Prospect] = merge_prospects([], prospects)
        self._listeners: List[Listener] = []
        self._pinned: Set[str] = set()

    # ------------------------------------------------------------------
    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _changed(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:  # pragma: no cover - listener bugs must not break ingestion
                LOGGER.exception("Prospect list listener %r failed", listener)

    # ------------------------------------------------------------------
    def replace(self, prospects: Iterable[Prospect]) -> None:
        self._items = merge_prospects([], prospects)
        self._changed()

    def prepend(self, prospect: Prospect) -> bool:
        """Add ``prospect`` at the head unless its id is already listed."""

        if self.get(prospect.id) is not None:
            LOGGER.debug("Ignoring duplicate prospect %s", prospect.id)
            return False
        self._items.insert(0, prospect)
        self._changed()
        return True

    def pin(self, prospect_id: str) -> None:
        """Keep the local entry for ``prospect_id`` through page merges until unpinned."""

        self._pinned.add(prospect_id)

    def unpin(self, prospect_id: str) -> None:
        self._pinned.discard(prospect_id)

    def is_pinned(self, prospect_id: str) -> bool:
        return prospect_id in self._pinned

    def merge_page(self, prospects: Iterable[Prospect]) -> int:
        before = {prospect.id for prospect in self._items}
        self._items = merge_prospects(self._items, prospects, keep=self._pinned)
        added = sum(1 for prospect in self._items if prospect.id not in before)
        self._changed()
        return added

    def set_status(self, prospect_id: str, status: ProspectStatus) -> ProspectStatus:
        """Change the local status and return the previous one."""

        for index, prospect in enumerate(self._items):
            if prospect.id == prospect_id:
                self._items[index] = prospect.with_status(status)
                self._changed()
                return prospect.status
        raise KeyError(prospect_id)

    # ------------------------------------------------------------------
    def get(self, prospect_id: str) -> Optional[Prospect]:
        for prospect in self._items:
            if prospect.id == prospect_id:
                return prospect
        return None

    def ids(self) -> List[str]:
        return [prospect.id for prospect in self._items]

    def snapshot(self) -> List[Prospect]:
        return list(self._items)

    def counts(self) -> StatusCounts:
        return StatusCounts.from_prospects(self._items)

    def __contains__(self, prospect_id: object) -> bool:
        return any(prospect.id == prospect_id for prospect in self._items)

    def __iter__(self) -> Iterator[Prospect]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)


__all__ = ["ProspectList", "merge_prospects"]
