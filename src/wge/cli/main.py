"""Typer CLI entry point."""

from __future__ import annotations

import signal
from pathlib import Path
from typing import Any, Optional

import orjson
import typer

from wge import api
from wge.circular.valuator import value_waste
from wge.config import Settings
from wge.errors import InvalidInputError, InvalidTransitionError, StoreError
from wge.jobs.run_log import recent_runs
from wge.jobs.scheduler import INTERVAL_SETTINGS, build_default_scheduler
from wge.policy.lifecycle import implement_policy, review_policy, update_progress
from wge.routing.optimizer import Hotspot, optimize_route
from wge.store import DocumentStore, get_store
from wge.utils.logging import configure_logging, get_logger


app = typer.Typer(help="Waste governance analytics engine CLI")
jobs_app = typer.Typer(help="Scheduled job commands")
scheduler_app = typer.Typer(help="Background scheduler")
alerts_app = typer.Typer(help="Alert commands")
route_app = typer.Typer(help="Route optimisation")
circular_app = typer.Typer(help="Circular-economy valuation")
policy_app = typer.Typer(help="Policy recommendations")
ward_app = typer.Typer(help="Ward analytics")
db_app = typer.Typer(help="Database utilities")

app.add_typer(jobs_app, name="jobs")
app.add_typer(scheduler_app, name="scheduler")
app.add_typer(alerts_app, name="alerts")
app.add_typer(route_app, name="route")
app.add_typer(circular_app, name="circular")
app.add_typer(policy_app, name="policy")
app.add_typer(ward_app, name="ward")
app.add_typer(db_app, name="db")

logger = get_logger(__name__)


def _echo(payload: Any) -> None:
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8"))


def _store(settings: Settings) -> DocumentStore:
    return get_store(settings)


@app.callback()
def main() -> None:
    """Initialize logging for all commands."""
    settings = Settings()
    configure_logging(settings.log_level)


@jobs_app.command("list")
def jobs_list() -> None:
    """List jobs with their intervals and most recent runs."""
    settings = Settings()
    store = _store(settings)
    rows = []
    for name, attr in INTERVAL_SETTINGS.items():
        last = recent_runs(store, job=name, limit=1)
        rows.append(
            {
                "job": name,
                "interval_hours": getattr(settings, attr),
                "last_run": last[0] if last else None,
            }
        )
    _echo(rows)


@jobs_app.command("run")
def jobs_run(name: str = typer.Argument(..., help="Job name, or 'all'")) -> None:
    """Run one job (or all of them) immediately."""
    settings = Settings()
    scheduler = build_default_scheduler(_store(settings), settings)
    if name != "all" and name not in scheduler.jobs:
        typer.echo(f"Unknown job {name!r}; choose from {', '.join(scheduler.jobs)}", err=True)
        raise typer.Exit(2)

    results = scheduler.run_once(None if name == "all" else [name])
    _echo(results)
    if any(counts is None for counts in results.values()):
        raise typer.Exit(1)


@scheduler_app.command("start")
def scheduler_start(
    run_on_start: Optional[bool] = typer.Option(
        None, help="Run every job once at startup (default from SCHEDULER_RUN_ON_START)"
    ),
) -> None:
    """Start the scheduler and block until interrupted."""
    settings = Settings()
    scheduler = build_default_scheduler(_store(settings), settings)

    def _shutdown(signum: int, _frame: object) -> None:
        logger.info("scheduler.signal signum=%s", signum)
        scheduler.stop(timeout=0)

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)
    scheduler.start(run_on_start=run_on_start)
    scheduler.wait()


@alerts_app.command("generate")
def alerts_generate(
    no_assign: bool = typer.Option(False, help="Do not dispatch trucks"),
    no_routes: bool = typer.Option(False, help="Skip route planning"),
) -> None:
    """Generate alerts and route plans for dispatched trucks."""
    settings = Settings()
    _echo(
        api.alerts_with_routes(
            _store(settings), settings, assign_trucks=not no_assign, plan_routes=not no_routes
        )
    )


@alerts_app.command("dashboard")
def alerts_dashboard() -> None:
    """Dashboard counters (no trucks are dispatched)."""
    settings = Settings()
    _echo(api.dashboard(_store(settings), settings))


@route_app.command("optimize")
def route_optimize(
    truck_id: str = typer.Option(..., help="Truck identifier"),
    hotspots_file: Path = typer.Option(
        ..., exists=True, dir_okay=False, help="JSON list of {latitude, longitude, severity}"
    ),
) -> None:
    """Order hotspots from a JSON file into a route."""
    raw = orjson.loads(hotspots_file.read_bytes())
    if not isinstance(raw, list):
        typer.echo("Hotspots file must contain a JSON list", err=True)
        raise typer.Exit(2)
    plan = optimize_route(truck_id, [Hotspot.model_validate(item) for item in raw])
    _echo(plan.model_dump(mode="json") if plan else None)


@circular_app.command("value")
def circular_value(
    waste_type: str = typer.Option(..., help="plastic, organic, e-waste, construction, metal, glass, mixed, hazardous"),
    weight_kg: float = typer.Option(..., help="Weight in kilograms"),
) -> None:
    """Value a load of segregated waste."""
    try:
        _echo(value_waste(waste_type, weight_kg))
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)


@ward_app.command("predict")
def ward_predict(
    ward_number: int = typer.Argument(..., help="Ward number"),
    ai: bool = typer.Option(False, help="Use the Gemini prediction and persist it"),
) -> None:
    """Overflow prediction for one ward."""
    settings = Settings()
    try:
        _echo(api.predict_ward(_store(settings), settings, ward_number, use_ai=ai))
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)


@policy_app.command("generate")
def policy_generate(
    ward_number: int = typer.Option(..., help="Ward number"),
    lookback_days: Optional[int] = typer.Option(
        None, help="Lookback window (default from POLICY_LOOKBACK_DAYS)"
    ),
    lat: Optional[float] = typer.Option(None, help="Latitude of the focus area"),
    lon: Optional[float] = typer.Option(None, help="Longitude of the focus area"),
) -> None:
    """Evaluate the policy rules for a ward and store what fires."""
    if (lat is None) != (lon is None):
        typer.echo("--lat and --lon must be given together", err=True)
        raise typer.Exit(2)
    settings = Settings()
    center = (lat, lon) if lat is not None and lon is not None else None
    try:
        _echo(
            api.recommend_policies(
                _store(settings), settings, ward_number, lookback_days=lookback_days, center=center
            )
        )
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(2)


def _policy_call(fn: Any, *args: Any, **kwargs: Any) -> None:
    try:
        policy = fn(*args, **kwargs)
    except (InvalidInputError, InvalidTransitionError, StoreError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(1)
    _echo(policy.to_document())


@policy_app.command("review")
def policy_review(
    policy_id: str = typer.Argument(...),
    decision: str = typer.Option(..., help="approved, rejected or needs-revision"),
    reviewer: str = typer.Option(..., help="Reviewer id"),
    feedback: Optional[str] = typer.Option(None),
) -> None:
    """Record a review decision."""
    settings = Settings()
    _policy_call(review_policy, _store(settings), policy_id, decision, reviewer, feedback=feedback)


@policy_app.command("implement")
def policy_implement(
    policy_id: str = typer.Argument(...),
    actor: str = typer.Option(..., help="Approver id"),
    assigned_to: Optional[list[str]] = typer.Option(None, help="Assignee (repeatable)"),
    budget: Optional[float] = typer.Option(None, help="Budget allocated"),
) -> None:
    """Start implementing an approved policy."""
    settings = Settings()
    _policy_call(
        implement_policy,
        _store(settings),
        policy_id,
        actor,
        assigned_to=assigned_to,
        budget_allocated=budget,
    )


@policy_app.command("progress")
def policy_progress(
    policy_id: str = typer.Argument(...),
    progress: Optional[float] = typer.Option(None, help="Progress percentage"),
    milestone: Optional[str] = typer.Option(None),
    budget_spent: Optional[float] = typer.Option(None),
) -> None:
    """Update implementation progress."""
    settings = Settings()
    _policy_call(
        update_progress,
        _store(settings),
        policy_id,
        progress=progress,
        milestone=milestone,
        budget_spent=budget_spent,
    )


@db_app.command("check")
def db_check() -> None:
    """Check database connectivity."""
    settings = Settings()
    if settings.store_backend != "postgres":
        typer.echo("STORE_BACKEND is not postgres; nothing to check")
        return

    from wge.store.postgres import PostgresDocumentStore

    try:
        PostgresDocumentStore(settings).check()
        logger.info("db.check.ok")
    except Exception as exc:
        logger.error("db.check.failed: %s", exc)
        typer.echo(f"Database check failed: {exc}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
