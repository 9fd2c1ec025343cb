"""Numeric helpers shared by the scorers."""

from __future__ import annotations

import math


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float, digits: int = 0) -> float:
    """Round halves away from zero for non-negative values (``round`` uses banker's rounding)."""
    factor = 10**digits
    return math.floor(value * factor + 0.5) / factor


def safe_ratio(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Return numerator / denominator, or default when the denominator is not positive."""
    if denominator <= 0:
        return default
    return numerator / denominator
