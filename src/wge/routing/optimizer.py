"""Single-truck route ordering with fuel, cost and CO2 estimates.

Ordering is greedy nearest-neighbour from the first hotspot, closed back to the
start. That is O(n^2), fine for the tens of hotspots a ward produces; a spatial
index or 2-opt pass would be needed for thousands.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from wge.models import Alert, WasteReport
from wge.routing.geo import haversine_km
from wge.utils.logging import get_logger
from wge.utils.numbers import round_half_up


logger = get_logger(__name__)

AVERAGE_SPEED_KMH = 30.0
FUEL_EFFICIENCY_KM_PER_L = 4.0
OPTIMIZED_FUEL_FACTOR = 0.75
FUEL_PRICE_PER_L = 100.0
CO2_KG_PER_L = 2.3


class Hotspot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    severity: int = Field(default=1, ge=1, le=5)
    report_id: Optional[str] = None
    ward_number: Optional[int] = None


class RoutePlan(BaseModel):
    truck_id: str
    route: list[Hotspot]
    total_distance_km: float
    estimated_time_minutes: int
    fuel_required_l: float
    fuel_savings_l: float
    cost_savings: float
    co2_reduced_kg: float


def _distance(a: Hotspot, b: Hotspot) -> float:
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def optimize_route(truck_id: str, hotspots: Sequence[Hotspot]) -> Optional[RoutePlan]:
    """Order `hotspots` for one truck; None for an empty input."""
    if not hotspots:
        return None

    route = [hotspots[0]]
    remaining = list(hotspots[1:])
    total_km = 0.0

    while remaining:
        tail = route[-1]
        nearest_idx = min(range(len(remaining)), key=lambda i: _distance(tail, remaining[i]))
        total_km += _distance(tail, remaining[nearest_idx])
        route.append(remaining.pop(nearest_idx))

    total_km += _distance(route[-1], route[0])

    baseline_fuel = total_km / FUEL_EFFICIENCY_KM_PER_L
    optimized_fuel = baseline_fuel * OPTIMIZED_FUEL_FACTOR
    fuel_savings = baseline_fuel - optimized_fuel

    return RoutePlan(
        truck_id=truck_id,
        route=route,
        total_distance_km=round_half_up(total_km, 2),
        estimated_time_minutes=int(round_half_up(total_km / AVERAGE_SPEED_KMH * 60)),
        fuel_required_l=round_half_up(optimized_fuel, 2),
        fuel_savings_l=round_half_up(fuel_savings, 2),
        cost_savings=round_half_up(fuel_savings * FUEL_PRICE_PER_L),
        co2_reduced_kg=round_half_up(fuel_savings * CO2_KG_PER_L, 2),
    )


def hotspots_from_reports(reports: Sequence[WasteReport]) -> list[Hotspot]:
    """Open reports as hotspots, most severe first."""
    open_reports = sorted(
        (r for r in reports if r.is_open),
        key=lambda r: (-r.classification.severity_score, r.reported_at),
    )
    return [
        Hotspot(
            latitude=r.location.latitude,
            longitude=r.location.longitude,
            severity=r.classification.severity_score,
            report_id=r.id,
            ward_number=r.ward_number,
        )
        for r in open_reports
    ]


def plan_routes_for_alerts(
    alerts: Sequence[Alert], open_reports: Sequence[WasteReport]
) -> list[RoutePlan]:
    """One route per assigned truck over the open reports of the wards it was sent to."""
    wards_by_truck: dict[str, set[int]] = defaultdict(set)
    for alert in alerts:
        if alert.assigned_truck:
            wards_by_truck[alert.assigned_truck].add(alert.ward_number)

    plans: list[RoutePlan] = []
    for truck_id, ward_numbers in wards_by_truck.items():
        hotspots = hotspots_from_reports([r for r in open_reports if r.ward_number in ward_numbers])
        plan = optimize_route(truck_id, hotspots)
        if plan is None:
            logger.info("routing.plan.empty truck=%s wards=%s", truck_id, sorted(ward_numbers))
            continue
        plans.append(plan)
    return plans
