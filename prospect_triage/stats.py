"""Status counters and display formatting derived from the prospect list."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .models import Prospect, ProspectSource, ProspectStatus

STATUS_LABELS = {
    ProspectStatus.NEW: "New",
    ProspectStatus.QUALIFIED: "Qualified",
    ProspectStatus.CONTACTED: "Contacted",
    ProspectStatus.CONVERTED: "Won",
    ProspectStatus.DISQUALIFIED: "Discarded",
}

SOURCE_LABELS = {
    ProspectSource.GOOGLE_MAPS: "Google Maps",
    ProspectSource.MERCADOLIBRE: "MercadoLibre",
    ProspectSource.FACEBOOK: "Facebook",
}


@dataclass(frozen=True)
class StatusCounts:
    """Per-status totals; every prospect falls in exactly one bucket."""

    total: int = 0
    new: int = 0
    qualified: int = 0
    contacted: int = 0
    disqualified: int = 0
    converted: int = 0

    @classmethod
    def from_prospects(cls, prospects: Iterable[Prospect]) -> "StatusCounts":
        counter: Counter = Counter()
        total = 0
        for prospect in prospects:
            total += 1
            counter[ProspectStatus(prospect.status)] += 1
        return cls(
            total=total,
            new=counter[ProspectStatus.NEW],
            qualified=counter[ProspectStatus.QUALIFIED],
            contacted=counter[ProspectStatus.CONTACTED],
            disqualified=counter[ProspectStatus.DISQUALIFIED],
            converted=counter[ProspectStatus.CONVERTED],
        )

    def stat_cards(self) -> List[Tuple[str, int, str]]:
        """Return ``(label, value, subtext)`` triples for the dashboard header."""
        return [
            ("Opportunities", self.total, "Detected by the scraper"),
            ("Pending review", self.new, "Awaiting approval"),
            ("In sequence", self.contacted, "Video audit / outreach"),
            ("Qualified", self.qualified, "Ready to close"),
        ]


def format_price(amount: float) -> str:
    """Format ``amount`` as whole US dollars, e.g. ``US$ 850,000``."""

    try:
        value = float(amount or 0)
    except (TypeError, ValueError):
        value = 0.0
    sign = "-" if value < 0 else ""
    return f"{sign}US$ {abs(value):,.0f}"


def status_label(status: ProspectStatus) -> str:
    return STATUS_LABELS.get(ProspectStatus(status), STATUS_LABELS[ProspectStatus.NEW])


def source_label(source: ProspectSource) -> str:
    return SOURCE_LABELS.get(ProspectSource(source), str(source))


def price_gap(prospect: Prospect) -> float:
    """Listed price minus market estimate; positive means over market."""

    return float(prospect.listed_price) - float(prospect.market_estimate)


__all__ = [
    "STATUS_LABELS",
    "SOURCE_LABELS",
    "StatusCounts",
    "format_price",
    "price_gap",
    "source_label",
    "status_label",
]
