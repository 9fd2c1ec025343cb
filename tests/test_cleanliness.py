from datetime import datetime, timedelta, timezone

import pytest

from wge.models import Collections, Ward, WasteReport
from wge.scoring.cleanliness import (
    HISTORY_LIMIT,
    cleanliness_leaderboard,
    compute_cleanliness,
    update_ward_cleanliness,
)
from wge.store import InMemoryDocumentStore


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _report(report_id: str, severity: int = 3, resolved_after_minutes: float | None = None) -> WasteReport:
    reported_at = NOW - timedelta(days=2)
    history = [{"status": "reported", "timestamp": reported_at.isoformat()}]
    payload = {
        "id": report_id,
        "location": {"coordinates": [78.12, 9.92], "ward_number": 1},
        "classification": {"waste_type": "mixed", "severity_score": severity},
        "reported_at": reported_at.isoformat(),
        "status": {"current": "reported", "history": history},
    }
    if resolved_after_minutes is not None:
        resolved_at = reported_at + timedelta(minutes=resolved_after_minutes)
        history.append({"status": "resolved", "timestamp": resolved_at.isoformat()})
        payload["status"] = {"current": "resolved", "history": history}
        payload["resolution"] = {"resolved_at": resolved_at.isoformat(), "resolved_by": "officer-1"}
    return WasteReport.model_validate(payload)


def _ward(**overrides) -> Ward:
    payload = {"id": "ward-1", "ward_number": 1, "name": "Anna Nagar"}
    payload.update(overrides)
    return Ward.model_validate(payload)


def test_empty_window_scores_100():
    result = compute_cleanliness([])
    assert result.score == 100.0
    assert result.factors is None


def test_weighted_factors():
    reports = [_report("r1", severity=3, resolved_after_minutes=60), _report("r2", severity=3)]
    result = compute_cleanliness(reports)

    assert result.factors is not None
    assert result.factors.resolution_speed == 70.0
    assert result.factors.severity_factor == 55.0
    assert result.factors.resolution_rate == 50.0
    # 0.25*99.67 + 0.30*70 + 0.25*55 + 0.20*50
    assert result.score == 69.7


def test_no_resolved_reports_gives_zero_speed():
    result = compute_cleanliness([_report("r1", severity=1)])
    assert result.factors.resolution_speed == 0.0
    assert result.factors.resolution_rate == 0.0


def test_score_is_idempotent_and_bounded():
    reports = [_report(f"r{i}", severity=5) for i in range(400)]
    first = compute_cleanliness(reports)
    second = compute_cleanliness(reports)
    assert first == second
    assert 0.0 <= first.score <= 100.0


@pytest.mark.parametrize("severity", [1, 2, 3, 4, 5])
def test_slow_resolution_never_goes_negative(severity):
    result = compute_cleanliness([_report("r1", severity=severity, resolved_after_minutes=10_000)])
    assert result.factors.resolution_speed == 0.0
    assert 0.0 <= result.score <= 100.0


def test_update_persists_and_caps_history():
    store = InMemoryDocumentStore()
    old = [
        {"score": 80.0, "timestamp": (NOW - timedelta(days=i)).isoformat(), "factors": None}
        for i in range(HISTORY_LIMIT, 0, -1)
    ]
    ward = _ward(cleanliness_index={"current": 80.0, "history": old})
    store.create(Collections.WARDS, ward.to_document())

    result = update_ward_cleanliness(store, ward, [_report("r1", severity=2, resolved_after_minutes=20)], now=NOW)

    saved = Ward.model_validate(store.get_by_id(Collections.WARDS, "ward-1"))
    assert saved.cleanliness_index.current == result.score
    assert len(saved.cleanliness_index.history) == HISTORY_LIMIT
    assert saved.cleanliness_index.history[-1].timestamp == NOW
    assert saved.cleanliness_index.history[0].timestamp == NOW - timedelta(days=HISTORY_LIMIT - 1)


def test_update_with_no_reports_appends_default_snapshot():
    store = InMemoryDocumentStore()
    ward = _ward(cleanliness_index={"current": 42.0, "history": []})
    store.create(Collections.WARDS, ward.to_document())

    update_ward_cleanliness(store, ward, [], now=NOW)

    saved = Ward.model_validate(store.get_by_id(Collections.WARDS, "ward-1"))
    assert saved.cleanliness_index.current == 100.0
    assert saved.cleanliness_index.history[-1].factors is None


def test_leaderboard_orders_by_score():
    wards = [
        _ward(id="a", ward_number=1, cleanliness_index={"current": 55.0}),
        _ward(id="b", ward_number=2, name="", cleanliness_index={"current": 91.5}),
        _ward(id="c", ward_number=3, cleanliness_index={"current": 73.0}),
    ]
    board = cleanliness_leaderboard(wards, limit=2)
    assert [row["ward_number"] for row in board] == [2, 3]
    assert board[0]["rank"] == 1
    assert board[0]["name"] == "Ward 2"
