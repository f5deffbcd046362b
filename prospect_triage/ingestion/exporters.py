"""Export utilities for the operator's prospect list."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, MutableMapping, Optional, Union

import pandas as pd

from ..models import Prospect
from ..stats import format_price, price_gap, status_label

PathLike = Union[str, Path]

EXPORT_COLUMNS = [
    "id",
    "address",
    "owner_name",
    "listed_price",
    "market_estimate",
    "price_gap",
    "source",
    "status",
    "status_label",
    "quality_score",
    "days_on_market",
    "last_contact",
    "created_at",
]


def export_prospects(
    prospects: Iterable[Prospect],
    path: PathLike,
    *,
    formatted_prices: bool = False,
    sheet_name: str = "Prospects",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write prospects to a CSV, TSV or Excel file and return its path."""

    dataframe = prospects_to_dataframe(prospects, formatted_prices=formatted_prices)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def prospects_to_dataframe(prospects: Iterable[Prospect], *, formatted_prices: bool = False) -> pd.DataFrame:
    """Convert prospects into a :class:`pandas.DataFrame` with a fixed column order."""

    records = []
    for prospect in prospects:
        row = prospect.as_row()
        row["price_gap"] = price_gap(prospect)
        row["status_label"] = status_label(prospect.status)
        if formatted_prices:
            for column in ("listed_price", "market_estimate", "price_gap"):
                row[column] = format_price(row[column])
        records.append(row)
    return pd.DataFrame(records, columns=EXPORT_COLUMNS)


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["EXPORT_COLUMNS", "export_prospects", "prospects_to_dataframe"]
