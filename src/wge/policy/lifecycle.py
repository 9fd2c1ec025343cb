"""Review, implementation and progress tracking for policy recommendations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from wge.errors import InvalidInputError, InvalidTransitionError
from wge.models import (
    Collections,
    Implementation,
    Milestone,
    PolicyRecommendation,
    PolicyReview,
    PolicyStatusEntry,
)
from wge.store import DocumentStore
from wge.utils.logging import get_logger
from wge.utils.numbers import clamp
from wge.utils.time import utcnow


logger = get_logger(__name__)

REVIEWABLE = frozenset({"generated", "under-review"})
DECISION_STATUS = {
    "approved": "approved",
    "rejected": "rejected",
    "needs-revision": "under-review",
}


def _status_changes(
    policy: PolicyRecommendation, status: str, now: datetime, actor: Optional[str], notes: Optional[str]
) -> dict[str, Any]:
    entry = PolicyStatusEntry(status=status, timestamp=now, actor=actor, notes=notes)
    history = [h.model_dump(mode="json") for h in policy.status.history]
    history.append(entry.model_dump(mode="json"))
    return {"status": {"current": status, "history": history}}


def review_policy(
    store: DocumentStore,
    policy_id: str,
    decision: str,
    reviewer: str,
    feedback: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PolicyRecommendation:
    if decision not in DECISION_STATUS:
        raise InvalidInputError(f"Invalid review decision: {decision!r}")
    now = now or utcnow()

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        policy = PolicyRecommendation.model_validate(doc)
        if policy.status.current not in REVIEWABLE:
            raise InvalidTransitionError(
                f"Policy {policy_id} is {policy.status.current}; only generated or "
                "under-review policies can be reviewed"
            )
        review = PolicyReview(
            reviewed_by=reviewer, reviewed_at=now, decision=decision, feedback=feedback
        )
        changes = _status_changes(policy, DECISION_STATUS[decision], now, reviewer, feedback)
        changes["review"] = review.model_dump(mode="json")
        changes["updated_at"] = now.isoformat()
        return changes

    doc = store.mutate(Collections.POLICIES, policy_id, _apply)
    logger.info("policy.review.recorded id=%s decision=%s", policy_id, decision)
    return PolicyRecommendation.model_validate(doc)


def implement_policy(
    store: DocumentStore,
    policy_id: str,
    actor: str,
    assigned_to: Optional[list[str]] = None,
    expected_completion_date: Optional[datetime] = None,
    budget_allocated: Optional[float] = None,
    now: Optional[datetime] = None,
) -> PolicyRecommendation:
    """Start implementation of an approved policy."""
    now = now or utcnow()

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        policy = PolicyRecommendation.model_validate(doc)
        if policy.status.current != "approved":
            raise InvalidTransitionError("Policy must be approved before implementation")
        implementation = Implementation(
            progress=0,
            started_at=now,
            expected_completion_date=expected_completion_date,
            assigned_to=assigned_to or [],
            budget_allocated=budget_allocated if budget_allocated is not None else policy.budget,
        )
        changes = _status_changes(
            policy, "implemented", now, actor, "Policy approved for implementation"
        )
        changes["implementation"] = implementation.model_dump(mode="json")
        changes["updated_at"] = now.isoformat()
        return changes

    doc = store.mutate(Collections.POLICIES, policy_id, _apply)
    logger.info("policy.implement.started id=%s", policy_id)
    return PolicyRecommendation.model_validate(doc)


def update_progress(
    store: DocumentStore,
    policy_id: str,
    progress: Optional[float] = None,
    milestone: Optional[str] = None,
    budget_spent: Optional[float] = None,
    actor: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PolicyRecommendation:
    """Record implementation progress; reaching 100 moves the policy to monitored."""
    now = now or utcnow()

    def _apply(doc: dict[str, Any]) -> dict[str, Any]:
        policy = PolicyRecommendation.model_validate(doc)
        if policy.status.current != "implemented":
            raise InvalidTransitionError(
                f"Policy {policy_id} is {policy.status.current}; progress needs an implemented policy"
            )
        implementation = policy.implementation.model_copy(deep=True)
        if progress is not None:
            implementation.progress = clamp(progress, 0, 100)
        if budget_spent is not None:
            implementation.budget_spent = budget_spent
        if milestone:
            implementation.milestones_completed.append(
                Milestone(milestone=milestone, completed_at=now)
            )

        changes: dict[str, Any] = {"updated_at": now.isoformat()}
        if implementation.progress >= 100:
            implementation.actual_completion_date = now
            changes.update(_status_changes(policy, "monitored", now, actor, "Implementation complete"))
        changes["implementation"] = implementation.model_dump(mode="json")
        return changes

    doc = store.mutate(Collections.POLICIES, policy_id, _apply)
    logger.info("policy.progress.updated id=%s progress=%s", policy_id, progress)
    return PolicyRecommendation.model_validate(doc)
