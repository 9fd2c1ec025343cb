"""Local recycling processors, loaded from the packaged processors.csv."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Sequence


DATA_PATH = Path(__file__).resolve().parent / "data" / "processors.csv"


@dataclass(frozen=True)
class Processor:
    processor_id: str
    name: str
    distance_km: float
    capacity_kg: float
    rate: float


@lru_cache(maxsize=4)
def load_processors(csv_path: Path = DATA_PATH) -> tuple[Processor, ...]:
    """Load the processor directory."""
    if not csv_path.exists():
        raise FileNotFoundError(f"Processor directory not found: {csv_path}")

    processors: list[Processor] = []
    with csv_path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            name = (row.get("name") or "").strip()
            if not name:
                continue
            processors.append(
                Processor(
                    processor_id=(row.get("processor_id") or "").strip(),
                    name=name,
                    distance_km=float(row["distance_km"]),
                    capacity_kg=float(row["capacity_kg"]),
                    rate=float(row.get("rate") or 0),
                )
            )
    return tuple(processors)


def find_processors(weight_kg: float, processors: Sequence[Processor]) -> list[Processor]:
    """Processors able to take `weight_kg`, nearest first."""
    return sorted(
        (p for p in processors if p.capacity_kg >= weight_kg),
        key=lambda p: p.distance_km,
    )
