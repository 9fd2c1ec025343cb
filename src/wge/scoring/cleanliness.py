"""Cleanliness index: a 0-100 ward score over a 30-day report window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Sequence

from wge.models import CleanlinessFactors, CleanlinessSnapshot, Collections, Ward, WasteReport
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.numbers import clamp, round_half_up, safe_ratio
from wge.utils.time import utcnow


logger = get_logger(__name__)

HISTORY_LIMIT = 90
EMPTY_WINDOW_SCORE = 100.0

WEIGHTS = {
    "report_frequency": 0.25,
    "resolution_speed": 0.30,
    "severity_factor": 0.25,
    "resolution_rate": 0.20,
}


@dataclass(frozen=True)
class CleanlinessResult:
    score: float
    factors: Optional[CleanlinessFactors]
    report_count: int


def compute_cleanliness(reports: Sequence[WasteReport], window_days: int = 30) -> CleanlinessResult:
    """Score a ward from the reports already restricted to its window.

    An empty window scores 100: no complaints are read as a clean ward, not as
    missing data.
    """
    count = len(reports)
    if count == 0:
        return CleanlinessResult(score=EMPTY_WINDOW_SCORE, factors=None, report_count=0)

    resolution_minutes = [
        minutes
        for report in reports
        if report.status.current == "resolved"
        and (minutes := report.response_time_minutes) is not None
    ]
    resolved = sum(1 for report in reports if report.status.current == "resolved")
    avg_severity = sum(r.classification.severity_score for r in reports) / count

    report_frequency = clamp(100 - 5 * (count / window_days), 0, 100)
    if resolution_minutes:
        avg_minutes = sum(resolution_minutes) / len(resolution_minutes)
        resolution_speed = clamp(100 - avg_minutes / 2, 0, 100)
    else:
        resolution_speed = 0.0
    severity_factor = clamp(100 - 15 * avg_severity, 0, 100)
    resolution_rate = clamp(100 * safe_ratio(resolved, count), 0, 100)

    factors = CleanlinessFactors(
        report_frequency=round_half_up(report_frequency, 1),
        resolution_speed=round_half_up(resolution_speed, 1),
        severity_factor=round_half_up(severity_factor, 1),
        resolution_rate=round_half_up(resolution_rate, 1),
    )
    score = (
        WEIGHTS["report_frequency"] * report_frequency
        + WEIGHTS["resolution_speed"] * resolution_speed
        + WEIGHTS["severity_factor"] * severity_factor
        + WEIGHTS["resolution_rate"] * resolution_rate
    )
    return CleanlinessResult(
        score=clamp(round_half_up(score, 1), 0, 100),
        factors=factors,
        report_count=count,
    )


def update_ward_cleanliness(
    store: DocumentStore,
    ward: Ward,
    reports: Sequence[WasteReport],
    now: Optional[datetime] = None,
    window_days: int = 30,
) -> CleanlinessResult:
    """Recompute and persist one ward's cleanliness index."""
    now = now or utcnow()
    result = compute_cleanliness(reports, window_days=window_days)
    snapshot = CleanlinessSnapshot(score=result.score, timestamp=now, factors=result.factors)

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        index = doc.get("cleanliness_index") or {}
        history = list(index.get("history") or [])
        history.append(snapshot.model_dump(mode="json"))
        return {
            "cleanliness_index": {
                "current": result.score,
                "history": history[-HISTORY_LIMIT:],
            }
        }

    store.mutate(Collections.WARDS, ward.id, _apply)
    logger.info(
        "cleanliness.ward.updated ward=%s score=%s reports=%s",
        ward.ward_number,
        result.score,
        result.report_count,
    )
    return result


def cleanliness_leaderboard(wards: Sequence[Ward], limit: int = 10) -> list[dict[str, Any]]:
    """Wards ranked by current cleanliness, cleanest first."""
    ranked = sorted(wards, key=lambda w: (-w.cleanliness_index.current, w.ward_number))
    return [
        {
            "rank": position,
            "ward_number": ward.ward_number,
            "name": ward.display_name,
            "zone": ward.zone,
            "score": ward.cleanliness_index.current,
        }
        for position, ward in enumerate(ranked[:limit], start=1)
    ]
