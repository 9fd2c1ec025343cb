from datetime import datetime, timedelta, timezone

import pytest

from wge.errors import InvalidInputError, InvalidTransitionError
from wge.models import Collections, PolicyRecommendation, Ward, WasteReport
from wge.policy.engine import (
    calculate_priority,
    classify_severity,
    evaluate_rules,
    generate_recommendations,
    metrics_summary,
    ward_policy_metrics,
)
from wge.policy.lifecycle import implement_policy, review_policy, update_progress
from wge.store import InMemoryDocumentStore


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _ward(**overrides) -> Ward:
    payload = {
        "id": "ward-3",
        "ward_number": 3,
        "name": "Simmakkal",
        "cleanliness_index": {"current": 85.0},
        "overflow_risk": {"current_level": "low", "probability": 20},
    }
    payload.update(overrides)
    return Ward.model_validate(payload)


def _reports(total: int, illegal: int, days_old: float = 3, severity: int = 3) -> list[WasteReport]:
    return [
        WasteReport.model_validate(
            {
                "id": f"r{i}",
                "location": {"coordinates": [78.12 + i / 10_000, 9.92], "ward_number": 3},
                "classification": {
                    "waste_type": "organic" if i % 2 else "plastic",
                    "severity_score": severity,
                    "is_illegal_dumping": i < illegal,
                },
                "reported_at": (NOW - timedelta(days=days_old)).isoformat(),
            }
        )
        for i in range(total)
    ]


def _rules(ward: Ward, reports: list[WasteReport]) -> list[str]:
    return evaluate_rules(ward_policy_metrics(ward, reports, now=NOW))


def test_illegal_dumping_21_percent_fires_surveillance():
    store = InMemoryDocumentStore()
    created = generate_recommendations(store, _ward(), _reports(100, 21), now=NOW)

    surveillance = [p for p in created if p.rule == "surveillance"]
    assert len(surveillance) == 1
    assert surveillance[0].priority_level == "critical"


def test_illegal_dumping_19_percent_does_not_fire():
    assert "surveillance" not in _rules(_ward(), _reports(100, 19))


def test_small_ward_above_rate_fires():
    assert "surveillance" in _rules(_ward(), _reports(10, 3))


def test_rate_just_above_threshold_fires():
    # 201 / 1004 is 20.02%, which shows as 20.0 at one decimal.
    reports = _reports(1004, 201)
    metrics = ward_policy_metrics(_ward(), reports, now=NOW)

    assert metrics.illegal_dumping_rate > 20
    assert "surveillance" in evaluate_rules(metrics)
    assert metrics_summary(metrics)["illegal_dumping_rate"] == 20.0


def test_overflow_and_cleanliness_rules():
    ward = _ward(cleanliness_index={"current": 69.9}, overflow_risk={"probability": 61})
    assert _rules(ward, _reports(5, 0)) == ["collection_frequency", "community_engagement"]


def test_quiet_ward_fires_nothing():
    ward = _ward(cleanliness_index={"current": 70.0}, overflow_risk={"probability": 60})
    assert _rules(ward, _reports(20, 0)) == []


def test_overflow_falls_back_to_local_prediction():
    ward = _ward(overflow_risk={"current_level": "low", "probability": None}, current_load=95)
    metrics = ward_policy_metrics(ward, _reports(3, 0), now=NOW)
    assert metrics.overflow_risk == 100.0


def test_lookback_window_excludes_old_reports():
    metrics = ward_policy_metrics(_ward(), _reports(30, 0, days_old=45), now=NOW)
    assert metrics.incident_count == 0
    assert metrics.illegal_dumping_rate == 0.0


def test_radius_filter():
    reports = _reports(25, 0)
    near = ward_policy_metrics(_ward(), reports, now=NOW, center=(9.92, 78.12))
    far = ward_policy_metrics(_ward(), reports, now=NOW, center=(13.08, 80.27))
    assert near.incident_count == 25
    assert far.incident_count == 0


@pytest.mark.parametrize(
    ("count", "pattern", "expected"),
    [
        (51, {}, "critical"),
        (12, {"critical": 6}, "critical"),
        (31, {}, "high"),
        (12, {"high": 11}, "high"),
        (9, {}, "low"),
        (10, {}, "medium"),
        (30, {}, "medium"),
    ],
)
def test_classify_severity(count, pattern, expected):
    assert classify_severity(count, pattern) == expected


def test_priority_scorer():
    assert calculate_priority("low", "low", 0) == 5
    assert calculate_priority("medium", "medium", 34) == 9
    assert calculate_priority("high", "high", 45) == 10
    assert calculate_priority("critical", "urgent", 78) == 10
    assert calculate_priority("low", "medium", 20) == 6


def test_organic_rule_not_repeated_while_open():
    store = InMemoryDocumentStore()
    ward = _ward()
    first = generate_recommendations(store, ward, _reports(25, 0), now=NOW)
    second = generate_recommendations(store, ward, _reports(25, 0), now=NOW + timedelta(hours=1))

    assert [p.rule for p in first] == ["organic_processing"]
    assert second == []


def test_recommendation_payload_comes_from_lookup():
    store = InMemoryDocumentStore()
    created = generate_recommendations(store, _ward(), _reports(100, 30), now=NOW)
    surveillance = next(p for p in created if p.rule == "surveillance")

    assert surveillance.budget == 800000
    assert surveillance.timeline == "2 months"
    assert surveillance.expected_impact == "-78% illegal dumping"
    assert surveillance.recommendations.budget_priority == "urgent"
    assert surveillance.context.severity == "critical"
    assert surveillance.context.incident_count == 100
    assert surveillance.status.current == "generated"
    assert store.get_by_id(Collections.POLICIES, surveillance.id) is not None


def _stored_policy(store: InMemoryDocumentStore) -> str:
    created = generate_recommendations(store, _ward(), _reports(25, 0), now=NOW)
    return created[0].id


def test_review_implement_progress_flow():
    store = InMemoryDocumentStore()
    policy_id = _stored_policy(store)

    reviewed = review_policy(store, policy_id, "approved", reviewer="supervisor-1", now=NOW)
    assert reviewed.status.current == "approved"
    assert reviewed.review.decision == "approved"

    started = implement_policy(store, policy_id, actor="admin-1", assigned_to=["team-a"], now=NOW)
    assert started.status.current == "implemented"
    assert started.implementation.budget_allocated == 520000
    assert started.implementation.progress == 0

    halfway = update_progress(store, policy_id, progress=50, milestone="Site selected", now=NOW)
    assert halfway.status.current == "implemented"
    assert [m.milestone for m in halfway.implementation.milestones_completed] == ["Site selected"]

    done = update_progress(store, policy_id, progress=150, now=NOW + timedelta(days=1))
    assert done.implementation.progress == 100
    assert done.status.current == "monitored"
    assert done.implementation.actual_completion_date == NOW + timedelta(days=1)
    assert [h.status for h in done.status.history] == ["generated", "approved", "implemented", "monitored"]


def test_needs_revision_moves_to_under_review():
    store = InMemoryDocumentStore()
    policy_id = _stored_policy(store)
    policy = review_policy(store, policy_id, "needs-revision", reviewer="s", feedback="cost", now=NOW)
    assert policy.status.current == "under-review"


def test_implement_requires_approval():
    store = InMemoryDocumentStore()
    policy_id = _stored_policy(store)
    with pytest.raises(InvalidTransitionError):
        implement_policy(store, policy_id, actor="admin-1", now=NOW)
    stored = PolicyRecommendation.model_validate(store.get_by_id(Collections.POLICIES, policy_id))
    assert stored.status.current == "generated"


def test_invalid_review_decision():
    store = InMemoryDocumentStore()
    policy_id = _stored_policy(store)
    with pytest.raises(InvalidInputError):
        review_policy(store, policy_id, "maybe", reviewer="s", now=NOW)


def test_rejected_policy_cannot_be_reviewed_again():
    store = InMemoryDocumentStore()
    policy_id = _stored_policy(store)
    review_policy(store, policy_id, "rejected", reviewer="s", now=NOW)
    with pytest.raises(InvalidTransitionError):
        review_policy(store, policy_id, "approved", reviewer="s", now=NOW)
