"""Utility helpers."""

from wge.utils.logging import configure_logging, get_logger
from wge.utils.numbers import clamp, round_half_up
from wge.utils.time import days_ago, utcnow

__all__ = [
    "clamp",
    "configure_logging",
    "days_ago",
    "get_logger",
    "round_half_up",
    "utcnow",
]
