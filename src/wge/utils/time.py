"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def days_ago(days: float, now: Optional[datetime] = None) -> datetime:
    """Return the instant `days` before `now`."""
    return (now or utcnow()) - timedelta(days=days)
