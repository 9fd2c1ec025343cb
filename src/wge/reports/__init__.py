"""Waste report lifecycle operations."""

from wge.reports.lifecycle import (
    ALLOWED_TRANSITIONS,
    assign_report,
    compute_active_reports,
    resolve_report,
    sweep_stale_reports,
    transition_report,
    update_ward_active_reports,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "assign_report",
    "compute_active_reports",
    "resolve_report",
    "sweep_stale_reports",
    "transition_report",
    "update_ward_active_reports",
]
