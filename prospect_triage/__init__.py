"""Prospect triage and outreach dispatch for the sniper lead engine."""

from . import models  # noqa: F401
from .feed import ProspectFeed  # noqa: F401
from .merge import ProspectList  # noqa: F401
from .models import (
    OutreachTask,
    Prospect,
    ProspectSource,
    ProspectStatus,
    TriageAction,
    TriageError,
    TriageErrorKind,
    TriageResult,
)
from .stats import StatusCounts
from .triage import TriageController

__all__ = [
    "OutreachTask",
    "Prospect",
    "ProspectFeed",
    "ProspectList",
    "ProspectSource",
    "ProspectStatus",
    "StatusCounts",
    "TriageAction",
    "TriageController",
    "TriageError",
    "TriageErrorKind",
    "TriageResult",
    "ingestion",
    "store",
    "triage",
    "ui",
]
