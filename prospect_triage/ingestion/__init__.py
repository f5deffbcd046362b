"""Spreadsheet import of seed prospects and export of the triage list."""
from __future__ import annotations

from .exporters import EXPORT_COLUMNS, export_prospects, prospects_to_dataframe
from .loaders import UnsupportedFileTypeError, load_prospect_rows

__all__ = [
    "EXPORT_COLUMNS",
    "UnsupportedFileTypeError",
    "export_prospects",
    "load_prospect_rows",
    "prospects_to_dataframe",
]
