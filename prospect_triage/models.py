"""Data models shared by the prospect feed, triage controller, and views."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class ProspectStatus(str, Enum):
    """Lifecycle status of a prospect property."""

    NEW = "new"
    QUALIFIED = "qualified"
    CONTACTED = "contacted"
    DISQUALIFIED = "disqualified"
    CONVERTED = "converted"


class ProspectSource(str, Enum):
    """Channel the external scraper discovered the prospect on."""

    GOOGLE_MAPS = "google_maps"
    MERCADOLIBRE = "mercadolibre"
    FACEBOOK = "facebook"


class TriageAction(str, Enum):
    """Operator actions available on a prospect awaiting triage."""

    APPROVE = "approve"
    VIDEO_AUDIT = "video_audit"
    REJECT = "reject"

    @property
    def target_status(self) -> ProspectStatus:
        return _ACTION_TARGETS[self]


_ACTION_TARGETS = {
    TriageAction.APPROVE: ProspectStatus.QUALIFIED,
    TriageAction.VIDEO_AUDIT: ProspectStatus.CONTACTED,
    TriageAction.REJECT: ProspectStatus.DISQUALIFIED,
}

# Transitions this package is allowed to perform. Anything reached from
# ``new`` is terminal here; ``converted`` is set by external processes.
ALLOWED_TRANSITIONS: Mapping[ProspectStatus, frozenset] = {
    ProspectStatus.NEW: frozenset(
        {ProspectStatus.QUALIFIED, ProspectStatus.CONTACTED, ProspectStatus.DISQUALIFIED}
    ),
    ProspectStatus.QUALIFIED: frozenset(),
    ProspectStatus.CONTACTED: frozenset(),
    ProspectStatus.DISQUALIFIED: frozenset(),
    ProspectStatus.CONVERTED: frozenset(),
}

DEFAULT_ADDRESS = "Unknown address"
DEFAULT_OWNER = "Unknown owner"
DEFAULT_CHANNEL = "whatsapp"


def can_transition(current: ProspectStatus, target: ProspectStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _coerce_enum(enum_cls, value: Any, default):
    if value is None or value == "":
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _coerce_number(value: Any, cast=float):
    if value is None or value == "":
        return cast(0)
    try:
        return cast(value)
    except (TypeError, ValueError):
        try:
            return cast(float(value))
        except (TypeError, ValueError):
            return cast(0)


def _coerce_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


# --- Prospect ---

@dataclass(slots=True)
class Prospect:
    """A candidate property lead awaiting operator triage."""

    id: str
    address: str = DEFAULT_ADDRESS
    owner_name: str = DEFAULT_OWNER
    listed_price: float = 0.0
    market_estimate: float = 0.0
    source: ProspectSource = ProspectSource.GOOGLE_MAPS
    status: ProspectStatus = ProspectStatus.NEW
    quality_score: int = 0
    days_on_market: int = 0
    last_contact: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Prospect":
        """Map a ``prospect_properties`` row, replacing nulls with defaults."""

        if row.get("id") in (None, ""):
            raise ValueError("Prospect rows require an 'id'")
        market = row.get("market_price_estimate")
        if market is None:
            market = row.get("market_estimate")
        return cls(
            id=str(row["id"]),
            address=_coerce_text(row.get("address"), DEFAULT_ADDRESS),
            owner_name=_coerce_text(row.get("owner_name"), DEFAULT_OWNER),
            listed_price=_coerce_number(row.get("listed_price")),
            market_estimate=_coerce_number(market),
            source=_coerce_enum(ProspectSource, row.get("source"), ProspectSource.GOOGLE_MAPS),
            status=_coerce_enum(ProspectStatus, row.get("status"), ProspectStatus.NEW),
            quality_score=_coerce_number(row.get("quality_score"), int),
            days_on_market=_coerce_number(row.get("days_on_market"), int),
            last_contact=row.get("last_contact") or row.get("updated_at") or None,
            created_at=row.get("created_at") or None,
        )

    def with_status(self, status: ProspectStatus) -> "Prospect":
        return Prospect(
            id=self.id,
            address=self.address,
            owner_name=self.owner_name,
            listed_price=self.listed_price,
            market_estimate=self.market_estimate,
            source=self.source,
            status=status,
            quality_score=self.quality_score,
            days_on_market=self.days_on_market,
            last_contact=self.last_contact,
            created_at=self.created_at,
        )

    def as_row(self) -> Dict[str, Any]:
        """Return a flat, serialisable representation of the prospect."""
        return {
            "id": self.id,
            "address": self.address,
            "owner_name": self.owner_name,
            "listed_price": self.listed_price,
            "market_estimate": self.market_estimate,
            "source": self.source.value,
            "status": self.status.value,
            "quality_score": self.quality_score,
            "days_on_market": self.days_on_market,
            "last_contact": self.last_contact or "",
            "created_at": self.created_at or "",
        }


# --- Outreach queue ---

@dataclass(slots=True)
class OutreachTask:
    """A pending unit of work for the external outreach workflow."""

    lead_id: str
    channel: str = DEFAULT_CHANNEL
    status: str = "pending"
    scheduled_for: str = field(default_factory=utc_now_iso)

    def to_row(self) -> Dict[str, Any]:
        return {
            "lead_id": self.lead_id,
            "channel": self.channel,
            "status": self.status,
            "scheduled_for": self.scheduled_for,
        }


# --- Triage results ---

class TriageErrorKind(str, Enum):
    UNKNOWN_PROSPECT = "unknown_prospect"
    INVALID_TRANSITION = "invalid_transition"
    ACTION_IN_PROGRESS = "action_in_progress"
    STATUS_WRITE_FAILED = "status_write_failed"
    QUEUE_INSERT_FAILED = "queue_insert_failed"
    COMPENSATION_FAILED = "compensation_failed"


class TriageError(RuntimeError):
    """Failure of a triage action, returned inside :class:`TriageResult`."""

    def __init__(self, kind: TriageErrorKind, message: str, *, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause


@dataclass(slots=True)
class TriageResult:
    """Outcome of a triage action as seen by the operator."""

    prospect_id: str
    action: TriageAction
    ok: bool
    status: Optional[ProspectStatus] = None
    error: Optional[TriageError] = None
    outreach_task: Optional[OutreachTask] = None
    retryable: bool = False

    @property
    def needs_requeue(self) -> bool:
        """True when the prospect is qualified in the store but has no queued task."""

        return self.error is not None and self.error.kind is TriageErrorKind.COMPENSATION_FAILED


__all__ = [
    "ALLOWED_TRANSITIONS",
    "DEFAULT_ADDRESS",
    "DEFAULT_CHANNEL",
    "DEFAULT_OWNER",
    "OutreachTask",
    "Prospect",
    "ProspectSource",
    "ProspectStatus",
    "TriageAction",
    "TriageError",
    "TriageErrorKind",
    "TriageResult",
    "can_transition",
    "utc_now_iso",
]
