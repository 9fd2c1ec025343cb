"""Report status lifecycle: transitions, assignment, resolution and the stale sweep."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from wge.errors import InvalidInputError, InvalidTransitionError
from wge.models import (
    ActiveReports,
    Assignment,
    Collections,
    Resolution,
    StatusEntry,
    TERMINAL_REPORT_STATUSES,
    Ward,
    WasteReport,
    severity_bucket,
)
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.time import days_ago, utcnow


logger = get_logger(__name__)

STALE_NOTE = "Auto-closed due to inactivity after 30 days"

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "reported": frozenset({"verified", "assigned", "resolved", "rejected"}),
    "verified": frozenset({"assigned", "resolved", "rejected"}),
    "assigned": frozenset({"assigned", "in-progress", "resolved", "rejected"}),
    "in-progress": frozenset({"resolved", "rejected"}),
    "resolved": frozenset(),
    "rejected": frozenset(),
}


def _status_changes(
    report: WasteReport,
    status: str,
    now: datetime,
    actor: Optional[str],
    notes: Optional[str],
) -> dict[str, Any]:
    allowed = ALLOWED_TRANSITIONS.get(report.status.current, frozenset())
    if status not in allowed:
        raise InvalidTransitionError(
            f"Report {report.id}: {report.status.current} -> {status} is not allowed"
        )
    entry = StatusEntry(status=status, timestamp=now, actor=actor, notes=notes)
    history = [h.model_dump(mode="json") for h in report.status.history]
    history.append(entry.model_dump(mode="json"))
    return {"status": {"current": status, "history": history}}


def transition_report(
    store: DocumentStore,
    report_id: str,
    status: str,
    actor: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WasteReport:
    """Move a report to `status`, appending to its history."""
    if status not in ALLOWED_TRANSITIONS:
        raise InvalidInputError(f"Unknown report status: {status!r}")
    now = now or utcnow()

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        return _status_changes(WasteReport.model_validate(doc), status, now, actor, notes)

    doc = store.mutate(Collections.REPORTS, report_id, _apply)
    logger.info("reports.status.changed id=%s status=%s", report_id, status)
    return WasteReport.model_validate(doc)


def assign_report(
    store: DocumentStore,
    report_id: str,
    officer_id: Optional[str] = None,
    team: Optional[str] = None,
    truck_id: Optional[str] = None,
    expected_hours: Optional[float] = None,
    actor: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WasteReport:
    if not (officer_id or team or truck_id):
        raise InvalidInputError("An assignment needs an officer, a team or a truck")
    now = now or utcnow()
    assignment = Assignment(
        officer_id=officer_id,
        team=team,
        truck_id=truck_id,
        assigned_at=now,
        expected_completion_time=now + timedelta(hours=expected_hours) if expected_hours else None,
    )

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        report = WasteReport.model_validate(doc)
        changes = _status_changes(report, "assigned", now, actor, f"Assigned to {officer_id or team or truck_id}")
        changes["assigned_to"] = assignment.model_dump(mode="json")
        return changes

    doc = store.mutate(Collections.REPORTS, report_id, _apply)
    logger.info("reports.assigned id=%s officer=%s truck=%s", report_id, officer_id, truck_id)
    return WasteReport.model_validate(doc)


def resolve_report(
    store: DocumentStore,
    report_id: str,
    resolved_by: str,
    waste_collected_kg: Optional[float] = None,
    action_taken: Optional[str] = None,
    now: Optional[datetime] = None,
) -> WasteReport:
    if waste_collected_kg is not None and waste_collected_kg < 0:
        raise InvalidInputError("waste_collected_kg must be non-negative")
    now = now or utcnow()
    resolution = Resolution(
        resolved_at=now,
        resolved_by=resolved_by,
        waste_collected_kg=waste_collected_kg,
        action_taken=action_taken,
    )

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        report = WasteReport.model_validate(doc)
        changes = _status_changes(report, "resolved", now, resolved_by, action_taken)
        changes["resolution"] = resolution.model_dump(mode="json")
        return changes

    doc = store.mutate(Collections.REPORTS, report_id, _apply)
    logger.info("reports.resolved id=%s kg=%s", report_id, waste_collected_kg)
    return WasteReport.model_validate(doc)


def is_stale(report: WasteReport, now: datetime, stale_days: int = 30) -> bool:
    return report.is_open and report.reported_at < days_ago(stale_days, now)


def reject_if_stale(
    store: DocumentStore,
    report_id: str,
    now: Optional[datetime] = None,
    stale_days: int = 30,
) -> bool:
    """Reject one report if it is still open and older than `stale_days`."""
    now = now or utcnow()
    rejected = False

    def _apply(doc: dict[str, Any]) -> Optional[dict[str, Any]]:
        nonlocal rejected
        report = WasteReport.model_validate(doc)
        if not is_stale(report, now, stale_days):
            rejected = False
            return None
        rejected = True
        return _status_changes(report, "rejected", now, "system", STALE_NOTE)

    store.mutate(Collections.REPORTS, report_id, _apply)
    return rejected


def sweep_stale_reports(
    store: DocumentStore,
    reports: Iterable[WasteReport],
    now: Optional[datetime] = None,
    stale_days: int = 30,
) -> list[str]:
    """Reject every open report older than `stale_days`; returns the rejected ids.

    A report that fails to update is logged and left for the next sweep.
    """
    now = now or utcnow()
    rejected: list[str] = []
    for report in reports:
        if not is_stale(report, now, stale_days):
            continue
        try:
            if reject_if_stale(store, report.id, now=now, stale_days=stale_days):
                rejected.append(report.id)
        except Exception:
            logger.exception("reports.stale.failed id=%s", report.id)
    logger.info("reports.stale.swept rejected=%s", len(rejected))
    return rejected


def compute_active_reports(reports: Iterable[WasteReport], ward_number: int) -> ActiveReports:
    """Open-report counts for one ward, by status and by severity bucket."""
    open_reports = [r for r in reports if r.ward_number == ward_number and r.is_open]
    by_status = Counter(r.status.current for r in open_reports)
    by_severity = Counter(severity_bucket(r.classification.severity_score) for r in open_reports)
    return ActiveReports(
        total=len(open_reports),
        by_status={
            status: by_status.get(status, 0)
            for status in ALLOWED_TRANSITIONS
            if status not in TERMINAL_REPORT_STATUSES
        },
        by_severity={level: by_severity.get(level, 0) for level in ("low", "medium", "high", "critical")},
    )


def update_ward_active_reports(
    store: DocumentStore, ward: Ward, reports: Iterable[WasteReport]
) -> ActiveReports:
    active = compute_active_reports(reports, ward.ward_number)
    store.mutate(
        Collections.WARDS,
        ward.id,
        lambda _doc: {"active_reports": active.model_dump(mode="json")},
    )
    return active
