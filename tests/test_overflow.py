from datetime import datetime, timedelta, timezone

import httpx
import orjson
import pytest

from wge.config import Settings
from wge.llm.gemini import GeminiClient, Ok, ServiceError
from wge.models import Collections, Ward, WasteReport
from wge.prediction.overflow import (
    build_overflow_context,
    predict_and_store,
    predict_overflow_ai,
    predict_overflow_local,
    urgency_for,
)
from wge.store import InMemoryDocumentStore


NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _ward(**overrides) -> Ward:
    payload = {
        "id": "ward-7",
        "ward_number": 7,
        "name": "Tallakulam",
        "current_load": 50,
        "infrastructure": {"bins": {"total": 12, "capacity": 100}},
    }
    payload.update(overrides)
    return Ward.model_validate(payload)


def _report(report_id: str, severity: int = 3, days_old: float = 1) -> WasteReport:
    return WasteReport.model_validate(
        {
            "id": report_id,
            "location": {"coordinates": [78.14, 9.93], "ward_number": 7},
            "classification": {"waste_type": "plastic", "severity_score": severity},
            "reported_at": (NOW - timedelta(days=days_old)).isoformat(),
        }
    )


def _settings(**overrides) -> Settings:
    values = {"GOOGLE_API_KEY": "test-key", "LLM_SLEEP_SECONDS": 0, "LLM_MAX_RETRIES": 2}
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _gemini_body(payload: dict) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": orjson.dumps(payload).decode()}]}}]}


@pytest.mark.parametrize(
    ("probability", "expected"),
    [(0, "LOW"), (40, "LOW"), (40.1, "MEDIUM"), (60, "MEDIUM"), (61, "HIGH"), (80, "HIGH"), (80.5, "CRITICAL")],
)
def test_urgency_thresholds(probability, expected):
    assert urgency_for(probability) == expected


def test_local_prediction_formula():
    prediction = predict_overflow_local(_ward(current_load=50), [_report("r1", severity=5)])
    assert prediction.overflow_probability == 100.0
    assert prediction.hours_to_overflow == 14.0
    assert prediction.urgency_level == "CRITICAL"


def test_local_prediction_without_reports():
    prediction = predict_overflow_local(_ward(current_load=30), [])
    assert prediction.overflow_probability == 30.0
    assert prediction.hours_to_overflow == 21.0
    assert prediction.urgency_level == "LOW"


def test_local_prediction_zero_capacity():
    loaded = predict_overflow_local(_ward(infrastructure={"bins": {"capacity": 0}}), [])
    empty = predict_overflow_local(_ward(current_load=0, infrastructure={"bins": {"capacity": 0}}), [])
    assert loaded.overflow_probability == 100.0
    assert empty.overflow_probability == 0.0


@pytest.mark.parametrize("load", [0, 10, 45, 99, 250, 10_000])
@pytest.mark.parametrize("severity", [1, 3, 5])
def test_local_prediction_bounds(load, severity):
    prediction = predict_overflow_local(_ward(current_load=load), [_report("r", severity=severity)])
    assert 0.0 <= prediction.overflow_probability <= 100.0
    assert prediction.hours_to_overflow >= 4.0


def test_context_histogram_and_buckets():
    reports = [
        _report("a", severity=1, days_old=0.1),
        _report("b", severity=3, days_old=1),
        _report("c", severity=4, days_old=1),
        _report("d", severity=5, days_old=6),
    ]
    ward = _ward(active_reports={"total": 14}, cleanliness_index={"current": 61.5})
    context = build_overflow_context(ward, reports, now=NOW)

    assert len(context.weekly_trend) == 7
    assert context.weekly_trend["2026-03-15"] == 1
    assert context.weekly_trend["2026-03-14"] == 2
    assert context.weekly_trend["2026-03-09"] == 1
    assert context.weekly_trend["2026-03-12"] == 0
    assert context.severity_distribution.model_dump() == {"low": 1, "medium": 1, "high": 1, "critical": 1}
    assert context.active_reports == 14
    assert context.avg_response_time_minutes == 30.0
    assert context.cleanliness_index == 61.5
    assert context.bin_capacity == 100


def test_ai_prediction_persists_on_success():
    store = InMemoryDocumentStore()
    ward = _ward(overflow_risk={"current_level": "low", "probability": 10})
    store.create(Collections.WARDS, ward.to_document())

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["key"] == "test-key"
        return httpx.Response(
            200,
            json=_gemini_body(
                {"overflowProbability": 72, "estimatedTimeToOverflowHours": 10, "urgencyLevel": "HIGH"}
            ),
        )

    client = GeminiClient(_settings(), transport=httpx.MockTransport(handler))
    risk = predict_and_store(store, ward, [_report("r1")], client, now=NOW)

    assert risk is not None
    saved = Ward.model_validate(store.get_by_id(Collections.WARDS, "ward-7"))
    assert saved.overflow_risk.current_level == "high"
    assert saved.overflow_risk.probability == 72
    assert saved.overflow_risk.estimated_overflow_time == NOW + timedelta(hours=10)
    assert saved.overflow_risk.predicted_at == NOW


def test_ai_prediction_failure_keeps_prior_state():
    store = InMemoryDocumentStore()
    ward = _ward(overflow_risk={"current_level": "medium", "probability": 45})
    store.create(Collections.WARDS, ward.to_document())

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "boom"})

    client = GeminiClient(_settings(), transport=httpx.MockTransport(handler))
    assert predict_and_store(store, ward, [_report("r1")], client, now=NOW) is None

    saved = Ward.model_validate(store.get_by_id(Collections.WARDS, "ward-7"))
    assert saved.overflow_risk.current_level == "medium"
    assert saved.overflow_risk.probability == 45


def test_ai_prediction_without_client_is_unavailable():
    result = predict_overflow_ai(_ward(), [], None, now=NOW)
    assert isinstance(result, ServiceError)
    assert result.kind == "unavailable"


def test_ai_prediction_null_hours():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=_gemini_body(
                {"overflowProbability": 20, "estimatedTimeToOverflowHours": None, "urgencyLevel": "low"}
            ),
        )

    client = GeminiClient(_settings(), transport=httpx.MockTransport(handler))
    result = predict_overflow_ai(_ward(), [], client, now=NOW)
    assert isinstance(result, Ok)
    assert result.payload.estimated_time_to_overflow_hours is None


def test_ai_prediction_rejects_unbounded_hours():
    store = InMemoryDocumentStore()
    ward = _ward(overflow_risk={"current_level": "medium", "probability": 45})
    store.create(Collections.WARDS, ward.to_document())

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json=_gemini_body(
                {"overflowProbability": 90, "estimatedTimeToOverflowHours": 1e12, "urgencyLevel": "critical"}
            ),
        )

    client = GeminiClient(_settings(), transport=httpx.MockTransport(handler))
    result = predict_overflow_ai(ward, [], client, now=NOW)
    assert isinstance(result, ServiceError)
    assert result.kind == "malformed"

    assert predict_and_store(store, ward, [], client, now=NOW) is None
    saved = Ward.model_validate(store.get_by_id(Collections.WARDS, "ward-7"))
    assert saved.overflow_risk.probability == 45
