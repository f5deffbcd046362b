"""User interface components for the prospect triage dashboard.

The tkinter window lives in :mod:`prospect_triage.ui.app` and is imported
on demand so the presenter helpers work where Tk is unavailable.
"""

from .presenter import (  # noqa: F401
    available_actions,
    counter_text,
    describe_result,
    filter_prospects,
    row_values,
    sort_prospects,
)
from .runner import AsyncRunner  # noqa: F401

__all__ = [
    "AsyncRunner",
    "available_actions",
    "counter_text",
    "describe_result",
    "filter_prospects",
    "row_values",
    "sort_prospects",
]
