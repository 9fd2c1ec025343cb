"""Policy recommendations and their lifecycle."""

from wge.policy.engine import (
    RULES,
    WardPolicyMetrics,
    calculate_priority,
    evaluate_rules,
    generate_recommendations,
    ward_policy_metrics,
)
from wge.policy.lifecycle import implement_policy, review_policy, update_progress

__all__ = [
    "RULES",
    "WardPolicyMetrics",
    "calculate_priority",
    "evaluate_rules",
    "generate_recommendations",
    "implement_policy",
    "review_policy",
    "update_progress",
    "ward_policy_metrics",
]
