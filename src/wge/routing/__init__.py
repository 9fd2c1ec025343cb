"""Route optimisation for collection trucks."""

from wge.routing.geo import haversine_km
from wge.routing.optimizer import (
    Hotspot,
    RoutePlan,
    hotspots_from_reports,
    optimize_route,
    plan_routes_for_alerts,
)

__all__ = [
    "Hotspot",
    "RoutePlan",
    "haversine_km",
    "hotspots_from_reports",
    "optimize_route",
    "plan_routes_for_alerts",
]
