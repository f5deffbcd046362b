"""Operator triage workflow: status transitions and outreach hand-off."""

from .service import TriageController

__all__ = ["TriageController"]
