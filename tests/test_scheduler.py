import threading

import pytest

from wge.config import Settings
from wge.jobs.run_log import recent_runs
from wge.jobs.scheduler import JobSpec, Scheduler, default_job_specs
from wge.jobs.tasks import JOBS
from wge.store import InMemoryDocumentStore


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def _boom(ctx):
    raise RuntimeError("boom")


def test_failing_job_does_not_stop_others():
    store = InMemoryDocumentStore()
    scheduler = Scheduler(
        store,
        _settings(),
        [
            JobSpec("broken", 3600, _boom),
            JobSpec("ok", 3600, lambda ctx: {"wards": len(ctx.wards)}),
        ],
    )

    results = scheduler.run_once()

    assert results == {"broken": None, "ok": {"wards": 0}}
    broken = recent_runs(store, "broken")
    assert broken[0]["status"] == "failed"
    assert broken[0]["error"] == {"type": "RuntimeError", "message": "boom"}
    assert recent_runs(store, "ok")[0]["status"] == "success"


def test_unknown_job():
    scheduler = Scheduler(InMemoryDocumentStore(), _settings(), [])
    with pytest.raises(KeyError):
        scheduler.run_job("nope")


def test_threads_keep_running_after_failures():
    store = InMemoryDocumentStore()
    ran = threading.Event()
    calls = {"ok": 0, "broken": 0}

    def _ok(ctx):
        calls["ok"] += 1
        if calls["ok"] >= 3:
            ran.set()
        return {}

    def _broken(ctx):
        calls["broken"] += 1
        raise RuntimeError("boom")

    scheduler = Scheduler(
        store,
        _settings(),
        [JobSpec("ok", 0.01, _ok), JobSpec("broken", 0.01, _broken)],
    )
    scheduler.start(run_on_start=True)
    try:
        assert ran.wait(5)
    finally:
        scheduler.stop(timeout=5)

    assert calls["broken"] >= 1
    assert len(recent_runs(store, "ok", limit=100)) >= 3


def test_default_job_specs_use_configured_intervals():
    specs = {spec.name: spec for spec in default_job_specs(_settings(OVERFLOW_INTERVAL_HOURS=2))}
    assert set(specs) == set(JOBS)
    assert specs["overflow"].interval_seconds == 7200
    assert specs["ward_stats"].interval_seconds == 3600
