"""Job run bookkeeping in the `job_runs` collection."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Optional

from wge.models import Collections
from wge.store import DocumentStore
from wge.utils.time import utcnow


def create_run(store: DocumentStore, job: str, started_at: Optional[datetime] = None) -> str:
    run_id = f"{job}-{uuid.uuid4().hex[:12]}"
    store.create(
        Collections.JOB_RUNS,
        {
            "job": job,
            "status": "running",
            "started_at": (started_at or utcnow()).isoformat(),
            "finished_at": None,
            "counts": {},
            "error": None,
        },
        doc_id=run_id,
    )
    return run_id


def complete_run_success(store: DocumentStore, run_id: str, counts: dict[str, Any]) -> None:
    store.update(
        Collections.JOB_RUNS,
        run_id,
        {"status": "success", "finished_at": utcnow().isoformat(), "counts": counts},
    )


def complete_run_failed(store: DocumentStore, run_id: str, error: Exception) -> None:
    store.update(
        Collections.JOB_RUNS,
        run_id,
        {
            "status": "failed",
            "finished_at": utcnow().isoformat(),
            "error": {"type": type(error).__name__, "message": str(error)},
        },
    )


def recent_runs(store: DocumentStore, job: Optional[str] = None, limit: int = 20) -> list[dict[str, Any]]:
    runs = [r for r in store.get_all(Collections.JOB_RUNS) if job is None or r.get("job") == job]
    runs.sort(key=lambda r: r.get("started_at") or "", reverse=True)
    return runs[:limit]
