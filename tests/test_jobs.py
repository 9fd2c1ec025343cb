import logging
from datetime import datetime, timedelta, timezone

from wge.config import Settings
from wge.jobs.context import JobContext, LoggingNotifier
from wge.jobs.tasks import (
    build_daily_summary,
    run_cleanliness,
    run_efficiency,
    run_overflow,
    run_participation,
    run_stale_sweep,
    run_summary,
    run_ward_stats,
)
from wge.llm.gemini import Ok, ServiceError
from wge.llm.schemas import OverflowPredictionOutput
from wge.models import Collections
from wge.store import InMemoryDocumentStore


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _settings() -> Settings:
    return Settings(_env_file=None, JOB_MAX_WORKERS=4)


def _ward(number: int, active: int = 0, cleanliness: float = 100.0) -> dict:
    return {
        "id": f"ward-{number}",
        "ward_number": number,
        "name": f"Ward {number}",
        "current_load": 40,
        "active_reports": {"total": active},
        "cleanliness_index": {"current": cleanliness, "history": []},
    }


def _report(report_id: str, ward: int, reported_at: datetime, status: str = "reported", resolved_at=None) -> dict:
    doc = {
        "id": report_id,
        "location": {"coordinates": [78.12, 9.92], "ward_number": ward},
        "classification": {"waste_type": "plastic", "severity_score": 3},
        "status": {"current": status, "history": [{"status": status, "timestamp": reported_at.isoformat()}]},
        "reported_at": reported_at.isoformat(),
    }
    if resolved_at is not None:
        doc["resolution"] = {"resolved_at": resolved_at.isoformat(), "resolved_by": "officer-1"}
    return doc


def _context(store, **kwargs) -> JobContext:
    return JobContext.load(store, _settings(), now=NOW, **kwargs)


def _store(wards=(), reports=(), users=()) -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    for doc in wards:
        store.create(Collections.WARDS, doc)
    for doc in reports:
        store.create(Collections.REPORTS, doc)
    for doc in users:
        store.create(Collections.USERS, doc)
    return store


class _FakeClient:
    def __init__(self, result):
        self.result = result
        self.prompts = []

    def generate_structured(self, prompt, schema):
        self.prompts.append(prompt)
        return self.result


class _RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, summary):
        self.sent.append(summary)


def test_context_skips_invalid_documents():
    store = _store(wards=[_ward(1)])
    store.create(Collections.WARDS, {"id": "broken", "ward_number": 500})
    ctx = _context(store)
    assert [w.ward_number for w in ctx.wards] == [1]


def test_cleanliness_job_isolates_failures():
    store = _store(wards=[_ward(1), _ward(2)], reports=[_report("r1", 1, NOW - timedelta(days=2))])
    ctx = _context(store)
    # A ward that vanished between load and update.
    store.delete(Collections.WARDS, "ward-2")

    counts = run_cleanliness(ctx)

    assert counts == {"wards": 2, "updated": 1, "failed": 1}
    ward = store.get_by_id(Collections.WARDS, "ward-1")
    assert len(ward["cleanliness_index"]["history"]) == 1


def test_overflow_job_only_predicts_busy_wards():
    store = _store(wards=[_ward(1, active=11), _ward(2, active=10)])
    prediction = OverflowPredictionOutput(
        overflowProbability=72, estimatedTimeToOverflowHours=6, urgencyLevel="HIGH"
    )
    client = _FakeClient(Ok(payload=prediction, latency_ms=5, attempts=1))

    counts = run_overflow(_context(store, llm_client=client))

    assert counts == {"busy_wards": 1, "predicted": 1, "skipped": 0, "failed": 0}
    assert len(client.prompts) == 1
    risk = store.get_by_id(Collections.WARDS, "ward-1")["overflow_risk"]
    assert risk["current_level"] == "high"
    assert risk["probability"] == 72
    assert "overflow_risk" not in store.get_by_id(Collections.WARDS, "ward-2")


def test_overflow_job_keeps_prior_risk_on_service_error():
    ward = _ward(1, active=20)
    ward["overflow_risk"] = {"current_level": "medium", "probability": 40}
    store = _store(wards=[ward])
    client = _FakeClient(ServiceError(kind="timeout", message="slow", attempts=2))

    counts = run_overflow(_context(store, llm_client=client))

    assert counts == {"busy_wards": 1, "predicted": 0, "skipped": 1, "failed": 0}
    assert store.get_by_id(Collections.WARDS, "ward-1")["overflow_risk"]["probability"] == 40


def test_overflow_job_without_client_skips():
    store = _store(wards=[_ward(1, active=20)])
    counts = run_overflow(_context(store))
    assert counts["skipped"] == 1


def test_participation_and_efficiency_jobs():
    store = _store(
        users=[
            {"id": "c1", "role": "citizen", "citizen_metrics": {"reports_submitted": 10, "reports_verified": 5}},
            {"id": "c2", "role": "citizen"},
            {"id": "o1", "role": "ward-officer", "officer_metrics": {"tasks_assigned": 12, "tasks_completed": 8}},
            {"id": "a1", "role": "admin"},
        ]
    )
    ctx = _context(store)

    assert run_participation(ctx) == {"citizens": 2, "updated": 2, "failed": 0}
    assert run_efficiency(ctx) == {"officers": 1, "updated": 1, "failed": 0}

    assert store.get_by_id(Collections.USERS, "c1")["citizen_metrics"]["participation_score"] == 5.0
    assert store.get_by_id(Collections.USERS, "c2")["citizen_metrics"]["participation_score"] == 0.0
    assert store.get_by_id(Collections.USERS, "o1")["officer_metrics"]["efficiency"] == 67


def test_stale_sweep_job():
    store = _store(
        reports=[
            _report("old", 1, NOW - timedelta(days=31)),
            _report("fresh", 1, NOW - timedelta(days=29)),
            _report("closed", 1, NOW - timedelta(days=45), status="resolved"),
        ]
    )
    counts = run_stale_sweep(_context(store))
    assert counts == {"checked": 3, "rejected": 1}
    assert store.get_by_id(Collections.REPORTS, "old")["status"]["current"] == "rejected"


def test_daily_summary_counts_previous_utc_day():
    yesterday = datetime(2026, 3, 14, 10, 0, tzinfo=timezone.utc)
    store = _store(
        wards=[_ward(1, cleanliness=91), _ward(2, cleanliness=97)],
        reports=[
            _report("a", 1, yesterday),
            _report("b", 1, yesterday - timedelta(days=2), status="resolved", resolved_at=yesterday + timedelta(hours=10)),
            _report("c", 2, NOW - timedelta(hours=1)),
        ],
    )
    notifier = _RecordingNotifier()
    ctx = _context(store, notifier=notifier)

    summary = build_daily_summary(ctx)
    assert summary["date"] == "2026-03-14"
    assert summary["reports_received"] == 1
    assert summary["reports_resolved"] == 1
    assert summary["active_reports"] == 2
    assert [w["ward_number"] for w in summary["cleanest_wards"]] == [2, 1]

    counts = run_summary(ctx)
    assert counts == {"reports_received": 1, "reports_resolved": 1, "active_reports": 2}
    assert notifier.sent[0]["date"] == "2026-03-14"


def test_ward_stats_job():
    store = _store(
        wards=[_ward(1), _ward(2)],
        reports=[
            _report("a", 1, NOW - timedelta(days=1)),
            _report("b", 1, NOW - timedelta(days=1), status="assigned"),
            _report("c", 1, NOW - timedelta(days=1), status="resolved"),
        ],
    )
    counts = run_ward_stats(_context(store))
    assert counts == {"wards": 2, "updated": 2, "failed": 0}
    active = store.get_by_id(Collections.WARDS, "ward-1")["active_reports"]
    assert active["total"] == 2
    assert active["by_status"]["assigned"] == 1
    assert store.get_by_id(Collections.WARDS, "ward-2")["active_reports"]["total"] == 0


def test_logging_notifier_writes_summary_into_message(caplog):
    caplog.set_level(logging.INFO, logger="wge.jobs.context")
    LoggingNotifier().send({"date": "2026-03-14", "reports_received": 4})

    assert "summary.daily" in caplog.text
    assert '"date":"2026-03-14"' in caplog.text
    assert '"reports_received":4' in caplog.text
