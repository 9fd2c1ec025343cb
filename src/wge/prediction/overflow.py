"""Overflow risk for a ward.

Two variants share the urgency thresholds:

- `predict_overflow_local` is a closed-form estimate from the ward's load, bin
  capacity and report severities. It never leaves the process and feeds alerts,
  routing and the dashboard.
- `predict_overflow_ai` packages a 7-day context for the Gemini service and
  returns its validated answer, or a `ServiceError` the caller skips on.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

import orjson

from wge.llm.gemini import GeminiClient, Ok, ServiceError, StructuredResult
from wge.llm.prompt_loader import load_prompt
from wge.llm.schemas import OverflowPredictionInput, OverflowPredictionOutput, SeverityDistribution
from wge.models import Collections, OverflowRisk, Urgency, Ward, WasteReport, severity_bucket
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.numbers import clamp, round_half_up
from wge.utils.time import utcnow


logger = get_logger(__name__)

MIN_HOURS_TO_OVERFLOW = 4.0
DEFAULT_RESPONSE_MINUTES = 30.0
HISTOGRAM_DAYS = 7


def urgency_for(probability: float) -> Urgency:
    if probability > 80:
        return "CRITICAL"
    if probability > 60:
        return "HIGH"
    if probability > 40:
        return "MEDIUM"
    return "LOW"


@dataclass(frozen=True)
class LocalPrediction:
    ward_number: int
    ward_name: str
    overflow_probability: float
    hours_to_overflow: float
    urgency_level: Urgency
    current_load: float
    bin_capacity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "ward_number": self.ward_number,
            "ward_name": self.ward_name,
            "overflow_probability": self.overflow_probability,
            "hours_to_overflow": self.hours_to_overflow,
            "urgency_level": self.urgency_level,
            "current_load": self.current_load,
            "bin_capacity": self.bin_capacity,
        }


def predict_overflow_local(ward: Ward, reports: Sequence[WasteReport]) -> LocalPrediction:
    """Closed-form overflow estimate; `reports` are the ward's reports to weigh severity by."""
    capacity = ward.infrastructure.bins.capacity
    load = ward.current_load

    if reports:
        severity_fraction = sum(r.classification.severity_score for r in reports) / len(reports) / 5
    else:
        severity_fraction = 0.0

    if capacity <= 0:
        fill_ratio = 1.0 if load > 0 else 0.0
    else:
        fill_ratio = min(1.0, (load / capacity) * (1 + severity_fraction))

    probability = round_half_up(clamp(fill_ratio * 100, 0, 100), 1)
    hours = max(MIN_HOURS_TO_OVERFLOW, 24 - probability / 10)
    return LocalPrediction(
        ward_number=ward.ward_number,
        ward_name=ward.display_name,
        overflow_probability=probability,
        hours_to_overflow=round_half_up(hours, 1),
        urgency_level=urgency_for(probability),
        current_load=load,
        bin_capacity=capacity,
    )


def build_overflow_context(
    ward: Ward, reports: Sequence[WasteReport], now: Optional[datetime] = None
) -> OverflowPredictionInput:
    """Input context for the AI variant from the ward's last-7-day reports."""
    now = now or utcnow()
    buckets = {"low": 0, "medium": 0, "high": 0, "critical": 0}
    for report in reports:
        buckets[severity_bucket(report.classification.severity_score)] += 1

    today = now.date()
    trend = {
        (today - timedelta(days=offset)).isoformat(): 0
        for offset in range(HISTOGRAM_DAYS - 1, -1, -1)
    }
    for report in reports:
        key = report.reported_at.date().isoformat()
        if key in trend:
            trend[key] += 1

    response_time = ward.performance.average_response_time
    return OverflowPredictionInput(
        ward_number=ward.ward_number,
        active_reports=ward.active_reports.total,
        severity_distribution=SeverityDistribution(**buckets),
        avg_response_time_minutes=response_time if response_time is not None else DEFAULT_RESPONSE_MINUTES,
        weekly_trend=trend,
        cleanliness_index=ward.cleanliness_index.current,
        bin_capacity=ward.infrastructure.bins.capacity,
    )


def predict_overflow_ai(
    ward: Ward,
    reports: Sequence[WasteReport],
    client: Optional[GeminiClient],
    prompt_version: str = "overflow_v001",
    now: Optional[datetime] = None,
) -> StructuredResult[OverflowPredictionOutput]:
    """Ask the prediction service about one ward. Never raises for service failures."""
    if client is None:
        return ServiceError(kind="unavailable", message="Gemini client is not configured")

    context = build_overflow_context(ward, reports, now=now)
    prompt = load_prompt(prompt_version)
    llm_input = orjson.dumps(context.model_dump(mode="json"), option=orjson.OPT_INDENT_2).decode()
    full_prompt = f"{prompt}\n\nINPUT:\n{llm_input}\n"
    return client.generate_structured(full_prompt, OverflowPredictionOutput)


def apply_prediction(
    store: DocumentStore,
    ward: Ward,
    prediction: OverflowPredictionOutput,
    now: Optional[datetime] = None,
) -> OverflowRisk:
    """Persist a successful prediction as the ward's overflow risk."""
    now = now or utcnow()
    hours = prediction.estimated_time_to_overflow_hours
    risk = OverflowRisk(
        current_level=prediction.urgency_level,
        probability=prediction.overflow_probability,
        estimated_overflow_time=now + timedelta(hours=hours) if hours is not None else None,
        predicted_at=now,
    )
    store.mutate(
        Collections.WARDS,
        ward.id,
        lambda _doc: {"overflow_risk": risk.model_dump(mode="json")},
    )
    return risk


def predict_and_store(
    store: DocumentStore,
    ward: Ward,
    reports: Sequence[WasteReport],
    client: Optional[GeminiClient],
    prompt_version: str = "overflow_v001",
    now: Optional[datetime] = None,
) -> Optional[OverflowRisk]:
    """Run the AI variant and persist on success; on failure leave prior risk untouched."""
    now = now or utcnow()
    result = predict_overflow_ai(ward, reports, client, prompt_version=prompt_version, now=now)
    if isinstance(result, Ok):
        risk = apply_prediction(store, ward, result.payload, now=now)
        logger.info(
            "overflow.ward.predicted ward=%s level=%s probability=%s attempts=%s",
            ward.ward_number,
            risk.current_level,
            risk.probability,
            result.attempts,
        )
        return risk

    logger.warning(
        "overflow.ward.skipped ward=%s kind=%s error=%s",
        ward.ward_number,
        result.kind,
        result.message,
    )
    return None
