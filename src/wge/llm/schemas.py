"""LLM input/output schemas for overflow prediction."""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wge.models import RiskLevel
from wge.utils.numbers import clamp


URGENCY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")
MAX_HOURS_TO_OVERFLOW = 24 * 365


class SeverityDistribution(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class OverflowPredictionInput(BaseModel):
    """Structured ward context sent to the prediction service."""

    ward_number: int
    active_reports: int
    severity_distribution: SeverityDistribution
    avg_response_time_minutes: float
    weekly_trend: dict[str, int]
    cleanliness_index: float
    bin_capacity: float


class OverflowPredictionOutput(BaseModel):
    """Service contract: probability, optional hours to overflow, urgency."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    overflow_probability: float = Field(alias="overflowProbability")
    estimated_time_to_overflow_hours: Optional[float] = Field(
        default=None, alias="estimatedTimeToOverflowHours"
    )
    urgency_level: RiskLevel = Field(alias="urgencyLevel")
    immediate_action: str = Field(default="", alias="immediateAction")
    confidence: float = 0.0

    @field_validator("overflow_probability")
    @classmethod
    def _clamp_probability(cls, value: float) -> float:
        return clamp(value, 0.0, 100.0)

    @field_validator("estimated_time_to_overflow_hours")
    @classmethod
    def _bounded_hours(cls, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        if not math.isfinite(value) or value < 0 or value > MAX_HOURS_TO_OVERFLOW:
            raise ValueError(
                f"estimatedTimeToOverflowHours must be between 0 and {MAX_HOURS_TO_OVERFLOW}"
            )
        return value

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _normalize_urgency(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized not in URGENCY_LEVELS:
                raise ValueError(f"Invalid urgencyLevel: {value!r}")
            return normalized
        return value

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, value: float) -> float:
        return clamp(value, 0.0, 1.0)
