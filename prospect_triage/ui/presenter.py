"""Toolkit-independent presentation helpers for the triage views."""
from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from ..models import Prospect, ProspectStatus, TriageAction, TriageErrorKind, TriageResult
from ..stats import StatusCounts, format_price, source_label, status_label

TABLE_COLUMNS: Sequence[Tuple[str, str]] = (
    ("score", "Score"),
    ("address", "Property"),
    ("owner", "Owner"),
    ("source", "Source"),
    ("listed_price", "List price"),
    ("market_estimate", "Market est."),
    ("status", "Status"),
)

SORT_KEYS: Dict[str, Callable[[Prospect], object]] = {
    "score": lambda prospect: prospect.quality_score,
    "price": lambda prospect: prospect.listed_price,
    "estimate": lambda prospect: prospect.market_estimate,
    "days": lambda prospect: prospect.days_on_market,
    "newest": lambda prospect: prospect.created_at or "",
}

ACTION_LABELS = {
    TriageAction.APPROVE: "Approve",
    TriageAction.VIDEO_AUDIT: "Video audit",
    TriageAction.REJECT: "Reject",
}


def filter_prospects(prospects: Iterable[Prospect], term: str) -> List[Prospect]:
    """Case-insensitive match of ``term`` against the visible text of each prospect."""

    term = (term or "").strip().lower()
    if not term:
        return list(prospects)
    filtered: List[Prospect] = []
    for prospect in prospects:
        haystack = " ".join(
            [
                prospect.id,
                prospect.address,
                prospect.owner_name,
                prospect.source.value,
                source_label(prospect.source),
                prospect.status.value,
                status_label(prospect.status),
            ]
        ).lower()
        if term in haystack:
            filtered.append(prospect)
    return filtered


def sort_prospects(prospects: Iterable[Prospect], key: str = "score", *, descending: bool = True) -> List[Prospect]:
    try:
        sort_key = SORT_KEYS[key]
    except KeyError as exc:
        raise ValueError(f"Unknown sort key '{key}'. Choose one of {sorted(SORT_KEYS)}") from exc
    return sorted(prospects, key=sort_key, reverse=descending)


def row_values(prospect: Prospect) -> Tuple[str, ...]:
    return (
        str(prospect.quality_score),
        prospect.address,
        prospect.owner_name,
        source_label(prospect.source),
        format_price(prospect.listed_price),
        format_price(prospect.market_estimate),
        status_label(prospect.status),
    )


def available_actions(prospect: Prospect, *, pending: bool = False) -> List[TriageAction]:
    """Actions the operator may take; only untriaged, idle prospects have any."""

    if pending or prospect.status is not ProspectStatus.NEW:
        return []
    return [TriageAction.APPROVE, TriageAction.VIDEO_AUDIT, TriageAction.REJECT]


def counter_text(counts: StatusCounts, *, loading: bool = False) -> List[Tuple[str, str, str]]:
    return [(label, "-" if loading else str(value), subtext) for label, value, subtext in counts.stat_cards()]


def describe_result(result: TriageResult) -> str:
    """One-line status-bar message for a triage result."""

    label = ACTION_LABELS.get(result.action, result.action.value)
    if result.ok:
        if result.outreach_task is not None:
            return f"{label}: prospect {result.prospect_id} qualified, {result.outreach_task.channel} outreach queued"
        return f"{label}: prospect {result.prospect_id} is now {status_label(result.status)}"
    kind = result.error.kind if result.error else None
    if kind is TriageErrorKind.ACTION_IN_PROGRESS:
        return f"{label}: prospect {result.prospect_id} is still being updated"
    message = str(result.error) if result.error else "failed"
    suffix = " - retry available" if result.retryable else ""
    return f"{label} failed for prospect {result.prospect_id}: {message}{suffix}"


__all__ = [
    "ACTION_LABELS",
    "SORT_KEYS",
    "TABLE_COLUMNS",
    "available_actions",
    "counter_text",
    "describe_result",
    "filter_prospects",
    "row_values",
    "sort_prospects",
]
