"""Citizen participation and officer efficiency scores."""

from __future__ import annotations

from wge.utils.numbers import clamp, round_half_up


def participation_score(submitted: int, verified: int) -> float:
    """0-10 score from submitted/verified counters; 0 when nothing was submitted."""
    if submitted <= 0:
        return 0.0
    verified = max(0, min(verified, submitted))
    raw = 5 * (verified / submitted) + min(submitted / 20, 3) + 2
    return round_half_up(clamp(raw, 0, 10), 1)


def officer_efficiency(assigned: int, completed: int) -> float:
    """Percentage of assigned tasks completed, rounded to a whole number."""
    if assigned <= 0:
        return 0.0
    return clamp(round_half_up(100 * max(0, completed) / assigned), 0, 100)
