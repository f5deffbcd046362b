"""Store adapters for the prospect and outreach-queue tables."""

from .base import (  # noqa: F401
    InsertSubscription,
    MAX_PAGE_SIZE,
    ProspectStore,
    StoreError,
    StoreReadError,
    StoreWriteError,
    SubscriptionLost,
)
from .memory import InMemoryProspectStore  # noqa: F401
from .subscription import QueueSubscription  # noqa: F401

__all__ = [
    "InMemoryProspectStore",
    "InsertSubscription",
    "MAX_PAGE_SIZE",
    "ProspectStore",
    "QueueSubscription",
    "StoreError",
    "StoreReadError",
    "StoreWriteError",
    "SubscriptionLost",
]
