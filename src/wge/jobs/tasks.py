"""Recurring jobs. Each takes a `JobContext` and returns a dict of counts."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import timedelta
from typing import Any, Callable, Iterable, TypeVar

from wge.jobs.context import JobContext
from wge.models import Collections, User, Ward
from wge.prediction.overflow import predict_and_store
from wge.reports.lifecycle import sweep_stale_reports, update_ward_active_reports
from wge.scoring.cleanliness import cleanliness_leaderboard, update_ward_cleanliness
from wge.scoring.participation import officer_efficiency, participation_score
from wge.utils.logging import get_logger


logger = get_logger(__name__)

E = TypeVar("E")
JobFn = Callable[[JobContext], dict[str, Any]]


def _fan_out(
    ctx: JobContext,
    job: str,
    entities: Iterable[E],
    work: Callable[[E], Any],
    key: Callable[[E], Any],
) -> tuple[list[Any], int]:
    """Run `work` for every entity on a worker pool.

    One entity failing is logged and counted; the others still run.
    """
    results: list[Any] = []
    failed = 0
    with ThreadPoolExecutor(max_workers=max(1, ctx.settings.job_max_workers)) as executor:
        futures = {executor.submit(work, entity): entity for entity in entities}
        for future in as_completed(futures):
            entity = futures[future]
            try:
                results.append(future.result())
            except Exception:
                failed += 1
                logger.exception("%s.entity.failed key=%s", job, key(entity))
    return results, failed


def run_cleanliness(ctx: JobContext) -> dict[str, Any]:
    window = ctx.settings.cleanliness_window_days

    def _one(ward: Ward) -> float:
        result = update_ward_cleanliness(
            ctx.store,
            ward,
            ctx.reports_for_ward(ward.ward_number, window),
            now=ctx.now,
            window_days=window,
        )
        return result.score

    scores, failed = _fan_out(ctx, "cleanliness", ctx.wards, _one, key=lambda w: w.ward_number)
    return {"wards": len(ctx.wards), "updated": len(scores), "failed": failed}


def run_overflow(ctx: JobContext) -> dict[str, Any]:
    """AI prediction for busy wards; a failed call leaves the ward's prior risk as it was."""
    threshold = ctx.settings.busy_ward_threshold
    busy = [w for w in ctx.wards if w.active_reports.total > threshold]
    if ctx.llm_client is None:
        logger.warning("overflow.run.no_client busy_wards=%s", len(busy))

    def _one(ward: Ward) -> bool:
        risk = predict_and_store(
            ctx.store,
            ward,
            ctx.reports_for_ward(ward.ward_number, ctx.settings.overflow_window_days),
            ctx.llm_client,
            prompt_version=ctx.settings.overflow_prompt_version,
            now=ctx.now,
        )
        return risk is not None

    outcomes, failed = _fan_out(ctx, "overflow", busy, _one, key=lambda w: w.ward_number)
    predicted = sum(1 for ok in outcomes if ok)
    return {
        "busy_wards": len(busy),
        "predicted": predicted,
        "skipped": len(outcomes) - predicted,
        "failed": failed,
    }


def run_participation(ctx: JobContext) -> dict[str, Any]:
    citizens = [u for u in ctx.users if u.role == "citizen"]

    def _one(user: User) -> float:
        score = 0.0

        def _apply(doc: dict[str, Any]) -> dict[str, Any]:
            nonlocal score
            metrics = User.model_validate(doc).citizen_metrics
            score = participation_score(metrics.reports_submitted, metrics.reports_verified)
            return {"citizen_metrics": {"participation_score": score}}

        ctx.store.mutate(Collections.USERS, user.id, _apply)
        return score

    scores, failed = _fan_out(ctx, "participation", citizens, _one, key=lambda u: u.id)
    return {"citizens": len(citizens), "updated": len(scores), "failed": failed}


def run_efficiency(ctx: JobContext) -> dict[str, Any]:
    officers = [u for u in ctx.users if u.role == "ward-officer"]

    def _one(user: User) -> float:
        efficiency = 0.0

        def _apply(doc: dict[str, Any]) -> dict[str, Any]:
            nonlocal efficiency
            metrics = User.model_validate(doc).officer_metrics
            efficiency = officer_efficiency(metrics.tasks_assigned, metrics.tasks_completed)
            return {"officer_metrics": {"efficiency": efficiency}}

        ctx.store.mutate(Collections.USERS, user.id, _apply)
        return efficiency

    scores, failed = _fan_out(ctx, "efficiency", officers, _one, key=lambda u: u.id)
    return {"officers": len(officers), "updated": len(scores), "failed": failed}


def run_stale_sweep(ctx: JobContext) -> dict[str, Any]:
    rejected = sweep_stale_reports(
        ctx.store, ctx.reports, now=ctx.now, stale_days=ctx.settings.stale_report_days
    )
    return {"checked": len(ctx.reports), "rejected": len(rejected)}


def build_daily_summary(ctx: JobContext) -> dict[str, Any]:
    """Yesterday's intake and resolutions plus the current backlog (UTC days)."""
    today = ctx.now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)

    received = sum(1 for r in ctx.reports if yesterday <= r.reported_at < today)
    resolved = sum(
        1
        for r in ctx.reports
        if r.resolution is not None
        and r.resolution.resolved_at is not None
        and yesterday <= r.resolution.resolved_at < today
    )
    return {
        "date": yesterday.date().isoformat(),
        "reports_received": received,
        "reports_resolved": resolved,
        "active_reports": sum(1 for r in ctx.reports if r.is_open),
        "cleanest_wards": cleanliness_leaderboard(ctx.wards, limit=5),
    }


def run_summary(ctx: JobContext) -> dict[str, Any]:
    summary = build_daily_summary(ctx)
    ctx.notifier.send(summary)
    return {
        "reports_received": summary["reports_received"],
        "reports_resolved": summary["reports_resolved"],
        "active_reports": summary["active_reports"],
    }


def run_ward_stats(ctx: JobContext) -> dict[str, Any]:
    def _one(ward: Ward) -> int:
        active = update_ward_active_reports(
            ctx.store, ward, ctx.reports_for_ward(ward.ward_number)
        )
        return active.total

    totals, failed = _fan_out(ctx, "ward_stats", ctx.wards, _one, key=lambda w: w.ward_number)
    return {"wards": len(ctx.wards), "updated": len(totals), "failed": failed}


JOBS: dict[str, JobFn] = {
    "cleanliness": run_cleanliness,
    "overflow": run_overflow,
    "participation": run_participation,
    "efficiency": run_efficiency,
    "stale_sweep": run_stale_sweep,
    "summary": run_summary,
    "ward_stats": run_ward_stats,
}
