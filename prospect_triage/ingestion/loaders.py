"""Utilities for loading prospect seed data from spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

PathLike = Union[str, Path]

_FIELD_SYNONYMS: Mapping[str, Sequence[str]] = {
    "id": ("id", "prospect_id", "lead_id", "record_id"),
    "address": ("address", "property_address", "direccion"),
    "owner_name": ("owner_name", "owner", "propietario"),
    "listed_price": ("listed_price", "price", "list_price", "precio"),
    "market_price_estimate": ("market_price_estimate", "market_estimate", "estimate"),
    "source": ("source", "channel", "origin"),
    "status": ("status", "estado"),
    "quality_score": ("quality_score", "score"),
    "days_on_market": ("days_on_market", "dom"),
    "last_contact": ("last_contact", "updated_at"),
    "created_at": ("created_at", "discovered_at"),
}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def load_prospect_rows(
    path: PathLike,
    *,
    column_mapping: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[Dict[str, Any]]:
    """Load prospect rows shaped like the ``prospect_properties`` table.

    Parameters
    ----------
    path:
        Path to the CSV/XLSX file to be loaded.
    column_mapping:
        Optional mapping of store column names to spreadsheet column names.
        Columns not mapped explicitly are matched through known synonyms.
    sheet_name:
        Sheet selector passed to :func:`pandas.read_excel` when loading an Excel
        file. Ignored for CSV files.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv` or
        :func:`pandas.read_excel`.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    mapping = dict(column_mapping or {})
    resolved = {field: _resolve_column(field, dataframe.columns, mapping) for field in _FIELD_SYNONYMS}

    rows: List[Dict[str, Any]] = []
    for _, row in dataframe.iterrows():
        if _row_is_empty(row):
            continue
        record = {
            field: _clean_value(row[column])
            for field, column in resolved.items()
            if column is not None and column in row
        }
        identifier = record.get("id")
        if isinstance(identifier, float) and identifier.is_integer():
            # a blank cell turns the whole id column into floats
            record["id"] = int(identifier)
        rows.append({key: value for key, value in record.items() if value is not None})
    return rows


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int, None] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        return pd.read_csv(path_obj, **loader_kwargs)

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=loader_kwargs.pop("engine", None) or "openpyxl", **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _row_is_empty(row: pd.Series) -> bool:
    return all(pd.isna(value) or (isinstance(value, str) and not value.strip()) for value in row.values)


def _resolve_column(field: str, available_columns: Iterable[str], mapping: Mapping[str, str]) -> Optional[str]:
    if field in mapping:
        return mapping[field]

    synonyms = tuple(name.lower() for name in _FIELD_SYNONYMS.get(field, (field,)))
    by_name = {str(column).strip().lower().replace(" ", "_"): column for column in available_columns}
    for synonym in synonyms:
        if synonym in by_name:
            return by_name[synonym]
    return None


def _clean_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if hasattr(value, "item"):
        # numpy scalars -> plain Python values
        return value.item()
    return value


__all__ = ["load_prospect_rows", "UnsupportedFileTypeError"]
