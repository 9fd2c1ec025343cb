"""Rule-based policy recommendations from ward report patterns."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence

from wge.models import (
    AwarenessItem,
    BudgetPriority,
    Collections,
    EnforcementItem,
    EstimatedImpact,
    InfrastructureItem,
    PolicyContext,
    PolicyRecommendation,
    PolicyStatusEntry,
    PolicyStatusState,
    RecommendationPayload,
    RiskLevel,
    Ward,
    WasteReport,
    severity_bucket,
)
from wge.prediction.overflow import predict_overflow_local
from wge.routing.geo import haversine_km
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.numbers import clamp, round_half_up, safe_ratio
from wge.utils.time import days_ago, utcnow


logger = get_logger(__name__)

ILLEGAL_DUMPING_RATE_THRESHOLD = 20.0
OVERFLOW_RISK_THRESHOLD = 60.0
CLEANLINESS_THRESHOLD = 70.0
INCIDENT_COUNT_THRESHOLD = 20
DEFAULT_RADIUS_KM = 1.0

SEVERITY_WEIGHTS: dict[str, int] = {"low": 0, "medium": 2, "high": 3, "critical": 4}
BUDGET_WEIGHTS: dict[str, int] = {"low": 0, "medium": 1, "high": 2, "urgent": 3}


@dataclass(frozen=True)
class RuleSpec:
    rule: str
    title: str
    priority_level: RiskLevel
    budget: float
    timeline: str
    expected_impact: str
    reduction_in_complaints: float
    time_to_implement_days: int
    budget_priority: BudgetPriority
    infrastructure: tuple[InfrastructureItem, ...] = ()
    enforcement: tuple[EnforcementItem, ...] = ()
    awareness: tuple[AwarenessItem, ...] = ()


RULES: dict[str, RuleSpec] = {
    "surveillance": RuleSpec(
        rule="surveillance",
        title="Install CCTV surveillance at dumping hotspots",
        priority_level="critical",
        budget=800000,
        timeline="2 months",
        expected_impact="-78% illegal dumping",
        reduction_in_complaints=78,
        time_to_implement_days=60,
        budget_priority="urgent",
        infrastructure=(
            InfrastructureItem(
                type="cctv-surveillance",
                priority="critical",
                estimated_cost=800000,
                expected_impact="-78% illegal dumping",
                timeline="2 months",
            ),
        ),
        enforcement=(
            EnforcementItem(
                action="Night patrols at repeat dumping sites",
                target="illegal dumping",
                schedule="daily 22:00-05:00",
                resources="2 enforcement officers",
            ),
        ),
    ),
    "collection_frequency": RuleSpec(
        rule="collection_frequency",
        title="Increase collection frequency and bin capacity",
        priority_level="high",
        budget=300000,
        timeline="3 weeks",
        expected_impact="+45% capacity",
        reduction_in_complaints=45,
        time_to_implement_days=21,
        budget_priority="high",
        infrastructure=(
            InfrastructureItem(
                type="additional-bins",
                priority="high",
                estimated_cost=300000,
                expected_impact="+45% capacity",
                timeline="3 weeks",
            ),
        ),
    ),
    "community_engagement": RuleSpec(
        rule="community_engagement",
        title="Community engagement and segregation drive",
        priority_level="medium",
        budget=250000,
        timeline="3-4 months",
        expected_impact="+20% community engagement",
        reduction_in_complaints=20,
        time_to_implement_days=105,
        budget_priority="medium",
        awareness=(
            AwarenessItem(
                campaign="Source segregation drive",
                target_audience="residents and shop owners",
                channel="door-to-door and ward meetings",
                duration="3-4 months",
            ),
        ),
    ),
    "organic_processing": RuleSpec(
        rule="organic_processing",
        title="Organic waste processing unit",
        priority_level="medium",
        budget=520000,
        timeline="4 months",
        expected_impact="-34% landfill load",
        reduction_in_complaints=34,
        time_to_implement_days=120,
        budget_priority="medium",
        infrastructure=(
            InfrastructureItem(
                type="composting-unit",
                priority="medium",
                estimated_cost=520000,
                expected_impact="-34% landfill load",
                timeline="4 months",
            ),
        ),
    ),
}


@dataclass
class WardPolicyMetrics:
    ward_number: int
    incident_count: int
    illegal_dumping_count: int
    illegal_dumping_rate: float  # percent, unrounded
    overflow_risk: float  # percent
    cleanliness_index: float
    severity_pattern: dict[str, int] = field(default_factory=dict)
    severity_class: RiskLevel = "medium"
    waste_types: list[str] = field(default_factory=list)
    timeframe_days: int = 30


def classify_severity(incident_count: int, pattern: dict[str, int]) -> RiskLevel:
    if incident_count > 50 or pattern.get("critical", 0) > 5:
        return "critical"
    if incident_count > 30 or pattern.get("high", 0) > 10:
        return "high"
    if incident_count < 10:
        return "low"
    return "medium"


def ward_policy_metrics(
    ward: Ward,
    reports: Iterable[WasteReport],
    now: Optional[datetime] = None,
    lookback_days: int = 30,
    center: Optional[tuple[float, float]] = None,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> WardPolicyMetrics:
    """Aggregate a ward's recent reports into rule inputs.

    `center` is an optional (latitude, longitude); when given, only reports
    within `radius_km` of it count.
    """
    now = now or utcnow()
    since = days_ago(lookback_days, now)
    incidents = [
        r for r in reports if r.ward_number == ward.ward_number and r.reported_at >= since
    ]
    if center is not None:
        lat, lon = center
        incidents = [
            r
            for r in incidents
            if haversine_km(lat, lon, r.location.latitude, r.location.longitude) <= radius_km
        ]

    pattern = {"low": 0, "medium": 0, "high": 0, "critical": 0}
    for report in incidents:
        pattern[severity_bucket(report.classification.severity_score)] += 1

    illegal = sum(1 for r in incidents if r.classification.is_illegal_dumping)
    count = len(incidents)

    overflow = ward.overflow_risk.probability
    if overflow is None:
        open_reports = [r for r in incidents if r.is_open]
        overflow = predict_overflow_local(ward, open_reports).overflow_probability

    return WardPolicyMetrics(
        ward_number=ward.ward_number,
        incident_count=count,
        illegal_dumping_count=illegal,
        illegal_dumping_rate=100 * safe_ratio(illegal, count),
        overflow_risk=overflow,
        cleanliness_index=ward.cleanliness_index.current,
        severity_pattern=pattern,
        severity_class=classify_severity(count, pattern),
        waste_types=sorted({r.classification.waste_type for r in incidents}),
        timeframe_days=lookback_days,
    )


def evaluate_rules(metrics: WardPolicyMetrics, covered: Iterable[str] = ()) -> list[str]:
    """Names of the rules that fire; each rule is independent of the others."""
    covered = set(covered)
    fired: list[str] = []
    if metrics.illegal_dumping_rate > ILLEGAL_DUMPING_RATE_THRESHOLD:
        fired.append("surveillance")
    if metrics.overflow_risk > OVERFLOW_RISK_THRESHOLD:
        fired.append("collection_frequency")
    if metrics.cleanliness_index < CLEANLINESS_THRESHOLD:
        fired.append("community_engagement")
    if metrics.incident_count > INCIDENT_COUNT_THRESHOLD and "organic_processing" not in covered:
        fired.append("organic_processing")
    return fired


def calculate_priority(
    severity_class: str, budget_priority: str, reduction_in_complaints: float
) -> int:
    score = 5 + SEVERITY_WEIGHTS.get(severity_class, 0) + BUDGET_WEIGHTS.get(budget_priority, 0)
    if reduction_in_complaints > 50:
        score += 2
    elif reduction_in_complaints > 30:
        score += 1
    return int(clamp(score, 1, 10))


def _description(rule: str, metrics: WardPolicyMetrics) -> tuple[str, str]:
    if rule == "surveillance":
        return (
            f"{metrics.illegal_dumping_count} illegal dumping incidents in the last "
            f"{metrics.timeframe_days} days",
            f"Illegal dumping is {round_half_up(metrics.illegal_dumping_rate, 1)}% of incidents "
            f"(threshold {ILLEGAL_DUMPING_RATE_THRESHOLD:.0f}%)",
        )
    if rule == "collection_frequency":
        return (
            f"Current overflow risk: {metrics.overflow_risk}%",
            f"Overflow risk above {OVERFLOW_RISK_THRESHOLD:.0f}% means bins fill faster "
            "than the current collection cycle",
        )
    if rule == "community_engagement":
        return (
            f"Cleanliness index at {metrics.cleanliness_index}",
            f"Cleanliness below {CLEANLINESS_THRESHOLD:.0f} points to low segregation "
            "and reporting participation",
        )
    return (
        "Segregate and compost organic waste locally",
        f"{metrics.incident_count} incidents in {metrics.timeframe_days} days exceed "
        f"{INCIDENT_COUNT_THRESHOLD}",
    )


def build_recommendation(
    rule: str, metrics: WardPolicyMetrics, now: Optional[datetime] = None
) -> PolicyRecommendation:
    now = now or utcnow()
    spec = RULES[rule]
    description, reasoning = _description(rule, metrics)
    priority = calculate_priority(
        metrics.severity_class, spec.budget_priority, spec.reduction_in_complaints
    )
    return PolicyRecommendation(
        id=f"policy-{metrics.ward_number}-{rule}-{uuid.uuid4().hex[:12]}",
        ward_number=metrics.ward_number,
        rule=rule,
        title=spec.title,
        description=description,
        reasoning=reasoning,
        context=PolicyContext(
            incident_count=metrics.incident_count,
            timeframe=f"{metrics.timeframe_days} days",
            severity=metrics.severity_class,
            waste_types=metrics.waste_types,
        ),
        recommendations=RecommendationPayload(
            infrastructure=list(spec.infrastructure),
            enforcement=list(spec.enforcement),
            awareness=list(spec.awareness),
            budget_priority=spec.budget_priority,
            estimated_impact=EstimatedImpact(
                reduction_in_complaints=spec.reduction_in_complaints,
                time_to_implement_days=spec.time_to_implement_days,
            ),
        ),
        budget=spec.budget,
        timeline=spec.timeline,
        expected_impact=spec.expected_impact,
        priority=priority,
        priority_level=spec.priority_level,
        status=PolicyStatusState(
            current="generated",
            history=[PolicyStatusEntry(status="generated", timestamp=now, actor="system")],
        ),
        created_at=now,
        updated_at=now,
    )


def open_rules_for_ward(store: DocumentStore, ward_number: int) -> set[str]:
    """Rules that already have an open recommendation for the ward."""
    rules: set[str] = set()
    for doc in store.get_all(Collections.POLICIES):
        policy = PolicyRecommendation.model_validate(doc)
        if policy.ward_number == ward_number and policy.is_open:
            rules.add(policy.rule)
    return rules


def generate_recommendations(
    store: DocumentStore,
    ward: Ward,
    reports: Sequence[WasteReport],
    now: Optional[datetime] = None,
    lookback_days: int = 30,
    center: Optional[tuple[float, float]] = None,
    radius_km: float = DEFAULT_RADIUS_KM,
) -> list[PolicyRecommendation]:
    """Evaluate the rules for one ward and persist every recommendation that fires."""
    now = now or utcnow()
    metrics = ward_policy_metrics(
        ward, reports, now=now, lookback_days=lookback_days, center=center, radius_km=radius_km
    )
    fired = evaluate_rules(metrics, covered=open_rules_for_ward(store, ward.ward_number))

    created: list[PolicyRecommendation] = []
    for rule in fired:
        recommendation = build_recommendation(rule, metrics, now=now)
        store.create(Collections.POLICIES, recommendation.to_document(), doc_id=recommendation.id)
        created.append(recommendation)

    logger.info(
        "policy.generate.complete ward=%s incidents=%s fired=%s",
        ward.ward_number,
        metrics.incident_count,
        ",".join(fired) or "-",
    )
    return created


def metrics_summary(metrics: WardPolicyMetrics) -> dict[str, Any]:
    return {
        "ward_number": metrics.ward_number,
        "incident_count": metrics.incident_count,
        "illegal_dumping_rate": round_half_up(metrics.illegal_dumping_rate, 1),
        "overflow_risk": metrics.overflow_risk,
        "cleanliness_index": metrics.cleanliness_index,
        "severity_class": metrics.severity_class,
        "severity_pattern": metrics.severity_pattern,
    }
