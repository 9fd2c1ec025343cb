"""On-demand operations for callers outside the scheduler (CLI, HTTP layer)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from wge.alerts.dispatch import TruckDispatcher
from wge.alerts.engine import dashboard_snapshot, generate_alerts
from wge.config import Settings
from wge.errors import InvalidInputError
from wge.jobs.context import JobContext
from wge.llm.gemini import GeminiClient
from wge.models import PolicyRecommendation, Ward
from wge.policy.engine import generate_recommendations, metrics_summary, ward_policy_metrics
from wge.prediction.overflow import predict_and_store, predict_overflow_local
from wge.routing.optimizer import plan_routes_for_alerts
from wge.store import DocumentStore
from wge.utils.logging import get_logger


logger = get_logger(__name__)


def _require_ward(ctx: JobContext, ward_number: int) -> Ward:
    ward = ctx.ward(ward_number)
    if ward is None:
        raise InvalidInputError(f"Ward {ward_number} not found")
    return ward


def alerts_with_routes(
    store: DocumentStore,
    settings: Settings,
    assign_trucks: bool = True,
    plan_routes: bool = True,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Generate alerts (optionally dispatching trucks) and a route per dispatched truck."""
    ctx = JobContext.load(store, settings, now=now)
    dispatcher = TruckDispatcher(store) if assign_trucks else None
    open_reports = ctx.open_reports()
    alerts = generate_alerts(ctx.wards, open_reports, dispatcher=dispatcher, now=ctx.now)
    routes = plan_routes_for_alerts(alerts, open_reports) if plan_routes else []
    return {
        "alerts": [a.model_dump(mode="json") for a in alerts],
        "routes": [r.model_dump(mode="json") for r in routes],
    }


def dashboard(store: DocumentStore, settings: Settings, now: Optional[datetime] = None) -> dict[str, Any]:
    """Dashboard counters; alerts are computed without dispatching trucks."""
    ctx = JobContext.load(store, settings, now=now)
    alerts = generate_alerts(ctx.wards, ctx.open_reports(), dispatcher=None, now=ctx.now)
    return dashboard_snapshot(ctx.wards, ctx.reports, ctx.trucks, alerts)


def predict_ward(
    store: DocumentStore,
    settings: Settings,
    ward_number: int,
    use_ai: bool = False,
    client: Optional[GeminiClient] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Predict one ward on demand; the busy-ward filter does not apply here."""
    ctx = JobContext.load(store, settings, now=now)
    ward = _require_ward(ctx, ward_number)

    if not use_ai:
        open_reports = [r for r in ctx.reports_for_ward(ward_number) if r.is_open]
        return {"variant": "local", **predict_overflow_local(ward, open_reports).to_dict()}

    if client is None and settings.google_api_key:
        client = GeminiClient(settings)
    risk = predict_and_store(
        store,
        ward,
        ctx.reports_for_ward(ward_number, settings.overflow_window_days),
        client,
        prompt_version=settings.overflow_prompt_version,
        now=ctx.now,
    )
    if risk is None:
        return {"variant": "ai", "ward_number": ward_number, "predicted": False}
    return {"variant": "ai", "ward_number": ward_number, "predicted": True, **risk.model_dump(mode="json")}


def recommend_policies(
    store: DocumentStore,
    settings: Settings,
    ward_number: int,
    lookback_days: Optional[int] = None,
    center: Optional[tuple[float, float]] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    ctx = JobContext.load(store, settings, now=now)
    ward = _require_ward(ctx, ward_number)
    lookback = lookback_days or settings.policy_lookback_days
    reports = ctx.reports_for_ward(ward_number)

    metrics = ward_policy_metrics(ward, reports, now=ctx.now, lookback_days=lookback, center=center)
    created: list[PolicyRecommendation] = generate_recommendations(
        store, ward, reports, now=ctx.now, lookback_days=lookback, center=center
    )
    return {
        "metrics": metrics_summary(metrics),
        "recommendations": [p.to_document() for p in created],
    }


__all__ = [
    "alerts_with_routes",
    "dashboard",
    "predict_ward",
    "recommend_policies",
]
