"""Alerting and truck dispatch."""

from wge.alerts.dispatch import TruckDispatcher
from wge.alerts.engine import (
    OVERFLOW_ALERT_THRESHOLD,
    dashboard_snapshot,
    generate_alerts,
    suggested_actions,
)

__all__ = [
    "OVERFLOW_ALERT_THRESHOLD",
    "TruckDispatcher",
    "dashboard_snapshot",
    "generate_alerts",
    "suggested_actions",
]
