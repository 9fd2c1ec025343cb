"""Alert generation: overflow risk and illegal dumping."""

from __future__ import annotations

from collections import Counter, defaultdict
from datetime import datetime
from typing import Any, Optional, Sequence

from wge.alerts.dispatch import TruckDispatcher
from wge.models import Alert, Truck, Urgency, Ward, WasteReport
from wge.prediction.overflow import LocalPrediction, predict_overflow_local
from wge.utils.logging import get_logger
from wge.utils.numbers import round_half_up
from wge.utils.time import utcnow


logger = get_logger(__name__)

# Local overflow probability above which a ward gets an alert and a truck.
OVERFLOW_ALERT_THRESHOLD = 60.0
ILLEGAL_DUMPING_MIN_INCIDENTS = 2
HIGH_RISK_PROBABILITY = 60.0

SEVERITY_RANK: dict[str, int] = {"CRITICAL": 3, "HIGH": 2, "MEDIUM": 1, "LOW": 0}


def suggested_actions(probability: float, hours_to_overflow: Optional[float]) -> list[str]:
    """Advisory actions for a prediction; nothing is changed by them."""
    actions: list[str] = []
    if probability > 80:
        actions += ["DISPATCH_TRUCK_IMMEDIATE", "ALERT_WARD_OFFICE"]
    elif probability > 60:
        actions += ["INCREASE_COLLECTION_FREQUENCY", "MONITOR_CLOSELY"]
    if hours_to_overflow is not None and hours_to_overflow < 12:
        actions.append("EMERGENCY_PROTOCOL")
    return actions


def _reports_by_ward(reports: Sequence[WasteReport]) -> dict[int, list[WasteReport]]:
    grouped: dict[int, list[WasteReport]] = defaultdict(list)
    for report in reports:
        grouped[report.ward_number].append(report)
    return grouped


def overflow_alert(
    prediction: LocalPrediction,
    now: datetime,
    assigned_truck: Optional[str] = None,
) -> Alert:
    return Alert(
        id=f"ALERT-OVERFLOW-{prediction.ward_number}-{int(now.timestamp())}",
        type="OVERFLOW_RISK",
        severity=prediction.urgency_level,
        ward_number=prediction.ward_number,
        ward_name=prediction.ward_name,
        message=(
            f"{prediction.ward_name}: {prediction.overflow_probability:.0f}% overflow risk "
            f"within {prediction.hours_to_overflow:.0f} hours"
        ),
        created_at=now,
        overflow_probability=prediction.overflow_probability,
        hours_to_overflow=prediction.hours_to_overflow,
        assigned_truck=assigned_truck,
        actions=suggested_actions(prediction.overflow_probability, prediction.hours_to_overflow),
    )


def illegal_dumping_alert(ward: Ward, incident_count: int, now: datetime) -> Alert:
    return Alert(
        id=f"ALERT-DUMPING-{ward.ward_number}-{int(now.timestamp())}",
        type="ILLEGAL_DUMPING",
        severity="HIGH",
        ward_number=ward.ward_number,
        ward_name=ward.display_name,
        message=f"{ward.display_name}: {incident_count} open illegal dumping incidents",
        created_at=now,
        incident_count=incident_count,
        actions=["DEPLOY_ENFORCEMENT", "REVIEW_SURVEILLANCE"],
    )


def generate_alerts(
    wards: Sequence[Ward],
    open_reports: Sequence[WasteReport],
    dispatcher: Optional[TruckDispatcher] = None,
    now: Optional[datetime] = None,
) -> list[Alert]:
    """Run both generators and return their alerts, most severe first.

    Overflow alerts claim a truck through `dispatcher` when one is given. An
    empty fleet never suppresses an alert.
    """
    now = now or utcnow()
    by_ward = _reports_by_ward([r for r in open_reports if r.is_open])

    overflow: list[Alert] = []
    for ward in wards:
        prediction = predict_overflow_local(ward, by_ward.get(ward.ward_number, []))
        if prediction.overflow_probability <= OVERFLOW_ALERT_THRESHOLD:
            continue
        truck_id = dispatcher.claim(ward.ward_number) if dispatcher is not None else None
        overflow.append(overflow_alert(prediction, now, assigned_truck=truck_id))

    dumping: list[Alert] = []
    for ward in wards:
        incidents = sum(
            1 for r in by_ward.get(ward.ward_number, []) if r.classification.is_illegal_dumping
        )
        if incidents >= ILLEGAL_DUMPING_MIN_INCIDENTS:
            dumping.append(illegal_dumping_alert(ward, incidents, now))

    alerts = sorted(overflow + dumping, key=lambda a: -SEVERITY_RANK[a.severity])
    logger.info(
        "alerts.generate.complete overflow=%s illegal_dumping=%s",
        len(overflow),
        len(dumping),
    )
    return alerts


def dashboard_snapshot(
    wards: Sequence[Ward],
    reports: Sequence[WasteReport],
    trucks: Sequence[Truck],
    alerts: Sequence[Alert],
) -> dict[str, Any]:
    """Aggregate counters for the operations dashboard."""
    open_by_ward = _reports_by_ward([r for r in reports if r.is_open])
    predictions = [
        predict_overflow_local(ward, open_by_ward.get(ward.ward_number, [])) for ward in wards
    ]
    probabilities = [p.overflow_probability for p in predictions]
    by_severity: Counter[Urgency] = Counter(a.severity for a in alerts)

    return {
        "alerts": {
            "total": len(alerts),
            "by_severity": {level: by_severity.get(level, 0) for level in SEVERITY_RANK},
        },
        "overflow": {
            "average_risk": round_half_up(sum(probabilities) / len(probabilities), 1)
            if probabilities
            else 0.0,
            "high_risk_wards": sum(1 for p in probabilities if p > HIGH_RISK_PROBABILITY),
        },
        "trucks": dict(Counter(t.status for t in trucks)),
        "reports": {
            "total": len(reports),
            "open": sum(1 for r in reports if r.is_open),
            "illegal_dumping": sum(1 for r in reports if r.classification.is_illegal_dumping),
        },
    }
