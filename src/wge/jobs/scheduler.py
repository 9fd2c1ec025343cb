"""Fixed-interval scheduler: one thread per job, one run at a time per job."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional

from wge.config import Settings
from wge.jobs.context import JobContext, SummaryNotifier
from wge.jobs.run_log import complete_run_failed, complete_run_success, create_run
from wge.jobs.tasks import JOBS, JobFn
from wge.llm.gemini import GeminiClient
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.time import utcnow


logger = get_logger(__name__)

INTERVAL_SETTINGS = {
    "cleanliness": "cleanliness_interval_hours",
    "overflow": "overflow_interval_hours",
    "participation": "participation_interval_hours",
    "efficiency": "efficiency_interval_hours",
    "stale_sweep": "stale_sweep_interval_hours",
    "summary": "summary_interval_hours",
    "ward_stats": "ward_stats_interval_hours",
}


@dataclass(frozen=True)
class JobSpec:
    name: str
    interval_seconds: float
    fn: JobFn


class Scheduler:
    """Runs each job on its own interval, isolated from the others.

    A job that raises is recorded as failed in `job_runs` and logged; its
    thread keeps its schedule and no other job notices.
    """

    def __init__(
        self,
        store: DocumentStore,
        settings: Settings,
        jobs: Iterable[JobSpec],
        llm_client: Optional[GeminiClient] = None,
        notifier: Optional[SummaryNotifier] = None,
        context_factory: Optional[Callable[..., JobContext]] = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.jobs = {job.name: job for job in jobs}
        self.llm_client = llm_client
        self.notifier = notifier
        self._context_factory = context_factory or JobContext.load
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

    def run_job(self, name: str) -> Optional[dict[str, Any]]:
        """Run one job now. Returns its counts, or None when it failed."""
        spec = self.jobs.get(name)
        if spec is None:
            raise KeyError(f"Unknown job: {name}")

        run_id: Optional[str] = None
        logger.info("jobs.run.start job=%s", name)
        try:
            run_id = create_run(self.store, name)
            ctx = self._context_factory(
                self.store,
                self.settings,
                now=utcnow(),
                llm_client=self.llm_client,
                notifier=self.notifier,
            )
            counts = spec.fn(ctx)
        except Exception as exc:
            logger.exception("jobs.run.failed job=%s", name)
            if run_id is not None:
                try:
                    complete_run_failed(self.store, run_id, exc)
                except Exception:
                    logger.exception("jobs.run_log.failed job=%s run_id=%s", name, run_id)
            return None

        try:
            complete_run_success(self.store, run_id, counts)
        except Exception:
            logger.exception("jobs.run_log.failed job=%s run_id=%s", name, run_id)
        logger.info("jobs.run.complete job=%s counts=%s", name, counts)
        return counts

    def run_once(self, names: Optional[Iterable[str]] = None) -> dict[str, Optional[dict[str, Any]]]:
        """Run the named jobs (default: all) one after another."""
        selected = list(names) if names is not None else list(self.jobs)
        return {name: self.run_job(name) for name in selected}

    def _loop(self, spec: JobSpec, run_on_start: bool) -> None:
        if run_on_start and not self._stop.is_set():
            self.run_job(spec.name)
        while not self._stop.wait(spec.interval_seconds):
            self.run_job(spec.name)

    def start(self, run_on_start: Optional[bool] = None) -> None:
        if self._threads:
            raise RuntimeError("Scheduler already started")
        run_on_start = self.settings.scheduler_run_on_start if run_on_start is None else run_on_start
        self._stop.clear()
        for spec in self.jobs.values():
            thread = threading.Thread(
                target=self._loop,
                args=(spec, run_on_start),
                name=f"job-{spec.name}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("scheduler.started jobs=%s", ",".join(self.jobs))

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        for thread in self._threads:
            thread.join(timeout)
        self._threads = []
        logger.info("scheduler.stopped")

    def wait(self) -> None:
        """Block until `stop` is called from another thread."""
        self._stop.wait()


def default_job_specs(settings: Settings) -> list[JobSpec]:
    return [
        JobSpec(
            name=name,
            interval_seconds=float(getattr(settings, INTERVAL_SETTINGS[name])) * 3600,
            fn=fn,
        )
        for name, fn in JOBS.items()
    ]


def build_default_scheduler(
    store: DocumentStore,
    settings: Settings,
    notifier: Optional[SummaryNotifier] = None,
) -> Scheduler:
    """Scheduler with every job; the Gemini client is attached only when a key is set."""
    llm_client = GeminiClient(settings) if settings.google_api_key else None
    return Scheduler(
        store,
        settings,
        default_job_specs(settings),
        llm_client=llm_client,
        notifier=notifier,
    )
