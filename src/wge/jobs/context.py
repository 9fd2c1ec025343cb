"""Per-run job context: one snapshot of the store, built at the start of a run."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Protocol, TypeVar

import orjson
from pydantic import BaseModel, ValidationError

from wge.config import Settings
from wge.llm.gemini import GeminiClient
from wge.models import Collections, Truck, User, Ward, WasteReport
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.time import days_ago, utcnow


logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class SummaryNotifier(Protocol):
    """Delivers the daily summary somewhere people will read it."""

    def send(self, summary: dict[str, Any]) -> None:
        """Deliver one summary."""


class LoggingNotifier:
    def send(self, summary: dict[str, Any]) -> None:
        logger.info("summary.daily %s", orjson.dumps(summary).decode("utf-8"))


def _load(store: DocumentStore, collection: str, model: type[M]) -> list[M]:
    items: list[M] = []
    for doc in store.get_all(collection):
        try:
            items.append(model.model_validate(doc))
        except ValidationError as exc:
            logger.warning(
                "jobs.context.invalid_document collection=%s id=%s errors=%s",
                collection,
                doc.get("id"),
                exc.error_count(),
            )
    return items


@dataclass
class JobContext:
    store: DocumentStore
    settings: Settings
    now: datetime
    wards: list[Ward] = field(default_factory=list)
    reports: list[WasteReport] = field(default_factory=list)
    users: list[User] = field(default_factory=list)
    trucks: list[Truck] = field(default_factory=list)
    llm_client: Optional[GeminiClient] = None
    notifier: SummaryNotifier = field(default_factory=LoggingNotifier)

    def __post_init__(self) -> None:
        self._by_ward: dict[int, list[WasteReport]] = defaultdict(list)
        for report in self.reports:
            self._by_ward[report.ward_number].append(report)

    @classmethod
    def load(
        cls,
        store: DocumentStore,
        settings: Settings,
        now: Optional[datetime] = None,
        llm_client: Optional[GeminiClient] = None,
        notifier: Optional[SummaryNotifier] = None,
    ) -> "JobContext":
        """Read every collection a job may need, once."""
        return cls(
            store=store,
            settings=settings,
            now=now or utcnow(),
            wards=_load(store, Collections.WARDS, Ward),
            reports=_load(store, Collections.REPORTS, WasteReport),
            users=_load(store, Collections.USERS, User),
            trucks=_load(store, Collections.TRUCKS, Truck),
            llm_client=llm_client,
            notifier=notifier or LoggingNotifier(),
        )

    def reports_for_ward(self, ward_number: int, window_days: Optional[float] = None) -> list[WasteReport]:
        reports = self._by_ward.get(ward_number, [])
        if window_days is None:
            return list(reports)
        since = days_ago(window_days, self.now)
        return [r for r in reports if r.reported_at >= since]

    def open_reports(self) -> list[WasteReport]:
        return [r for r in self.reports if r.is_open]

    def ward(self, ward_number: int) -> Optional[Ward]:
        for ward in self.wards:
            if ward.ward_number == ward_number:
                return ward
        return None
