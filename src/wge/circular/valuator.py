"""Circular-economy valuation of collected waste.

All table values are per kilogram: costs and prices in currency/kg, CO2 in kg
saved per kg, water in litres per kg, energy in kWh per kg.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Any, Optional, Sequence

from wge.circular.processors import Processor, find_processors, load_processors
from wge.errors import InvalidInputError
from wge.utils.numbers import round_half_up


KG_PER_JOB = 50


@dataclass(frozen=True)
class WasteModel:
    collection_cost: float
    processing_cost: float
    sale_price: float
    co2_saved: float
    water_saved: float
    energy_saved: float
    recyclable_percentage: float


WASTE_MODELS: dict[str, WasteModel] = {
    "plastic": WasteModel(0.15, 0.65, 4.50, 0.95, 650, 78, 95),
    "organic": WasteModel(0.10, 0.42, 2.80, 1.2, 450, 45, 85),
    "e-waste": WasteModel(0.50, 2.10, 8.50, 2.1, 200, 125, 78),
    "construction": WasteModel(0.20, 0.80, 3.20, 0.5, 300, 35, 60),
    "metal": WasteModel(0.30, 1.10, 6.50, 1.8, 300, 95, 90),
    "glass": WasteModel(0.12, 0.55, 2.00, 0.3, 120, 25, 80),
    "mixed": WasteModel(0.10, 0.60, 1.20, 0.4, 150, 20, 40),
    "hazardous": WasteModel(1.80, 2.50, 4.00, 0.6, 100, 15, 30),
}


def value_waste(
    waste_type: str,
    weight_kg: float,
    processors: Optional[Sequence[Processor]] = None,
) -> dict[str, Any]:
    """Revenue, environmental impact, jobs and candidate processors for a load."""
    model = WASTE_MODELS.get(waste_type)
    if model is None:
        raise InvalidInputError(
            f"Unknown waste type {waste_type!r}; expected one of {sorted(WASTE_MODELS)}"
        )
    if not math.isfinite(weight_kg) or weight_kg < 0:
        raise InvalidInputError("weight_kg must be a finite, non-negative number")

    collection = weight_kg * model.collection_cost
    processing = weight_kg * model.processing_cost
    sale = weight_kg * model.sale_price
    net = collection + sale - processing

    directory = processors if processors is not None else load_processors()
    return {
        "waste_type": waste_type,
        "weight_kg": weight_kg,
        "recyclable_percentage": model.recyclable_percentage,
        "revenue": {
            "collection": round_half_up(collection, 2),
            "sale": round_half_up(sale, 2),
            "processing": round_half_up(processing, 2),
            "net": round_half_up(net, 2),
        },
        "environmental": {
            "co2_saved_kg": round_half_up(weight_kg * model.co2_saved, 2),
            "water_saved_l": round_half_up(weight_kg * model.water_saved),
            "energy_saved_kwh": round_half_up(weight_kg * model.energy_saved),
        },
        "jobs": math.ceil(weight_kg / KG_PER_JOB),
        "processors": [asdict(p) for p in find_processors(weight_kg, directory)],
    }
