from __future__ import annotations

import pytest

from prospect_triage.models import Prospect, ProspectSource, ProspectStatus
from prospect_triage.stats import StatusCounts, format_price, price_gap, source_label, status_label


def _prospects(*statuses: str) -> list[Prospect]:
    return [Prospect.from_row({"id": str(index), "status": status}) for index, status in enumerate(statuses)]


def test_counts_partition_the_list() -> None:
    prospects = _prospects("new", "new", "qualified", "contacted", "disqualified", "converted", "new")

    counts = StatusCounts.from_prospects(prospects)

    assert counts.total == len(prospects) == 7
    assert counts.new == 3
    assert counts.qualified == 1
    assert counts.contacted == 1
    assert counts.disqualified == 1
    assert counts.converted == 1
    assert counts.total == (
        counts.new + counts.qualified + counts.contacted + counts.disqualified + counts.converted
    )


def test_counts_for_empty_list() -> None:
    assert StatusCounts.from_prospects([]) == StatusCounts()


def test_stat_cards_follow_counts() -> None:
    counts = StatusCounts.from_prospects(_prospects("new", "contacted", "qualified", "qualified"))

    cards = {label: value for label, value, _ in counts.stat_cards()}

    assert cards == {"Opportunities": 4, "Pending review": 1, "In sequence": 1, "Qualified": 2}


@pytest.mark.parametrize(
    "amount, expected",
    [
        (850000, "US$ 850,000"),
        (1234567.6, "US$ 1,234,568"),
        (0, "US$ 0"),
        (None, "US$ 0"),
        (-2500, "-US$ 2,500"),
    ],
)
def test_format_price(amount, expected: str) -> None:
    assert format_price(amount) == expected


def test_labels_and_price_gap() -> None:
    prospect = Prospect.from_row(
        {"id": "1", "listed_price": 900000, "market_price_estimate": 850000, "source": "facebook"}
    )

    assert price_gap(prospect) == 50000
    assert status_label(ProspectStatus.CONVERTED) == "Won"
    assert status_label(ProspectStatus.DISQUALIFIED) == "Discarded"
    assert source_label(ProspectSource.FACEBOOK) == "Facebook"
