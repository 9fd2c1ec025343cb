"""Truck assignment as a compare-and-set on the truck document."""

from __future__ import annotations

from typing import Optional

from wge.errors import VersionConflictError
from wge.models import Collections
from wge.store import DocumentStore
from wge.utils.logging import get_logger


logger = get_logger(__name__)


class TruckDispatcher:
    """Greedy dispatcher: the first available truck, in store order, wins.

    Claiming reads the truck with its version and writes `assigned` only if the
    version is unchanged. A lost race re-reads the same truck and moves on if
    someone else took it, so two callers can never hold the same truck.
    """

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def claim(self, ward_number: int) -> Optional[str]:
        """Assign the first available truck to `ward_number`; None when the fleet is busy."""
        for truck in self.store.get_all(Collections.TRUCKS):
            truck_id = truck["id"]
            if truck.get("status") != "available":
                continue
            if self._try_claim(truck_id, ward_number):
                logger.info("dispatch.truck.assigned truck=%s ward=%s", truck_id, ward_number)
                return truck_id

        logger.info("dispatch.truck.none_available ward=%s", ward_number)
        return None

    def _try_claim(self, truck_id: str, ward_number: int) -> bool:
        while True:
            found = self.store.get_versioned(Collections.TRUCKS, truck_id)
            if found is None or found.doc.get("status") != "available":
                return False
            try:
                self.store.update(
                    Collections.TRUCKS,
                    truck_id,
                    {"status": "assigned", "assigned_ward": ward_number},
                    expected_version=found.version,
                )
                return True
            except VersionConflictError:
                logger.debug("dispatch.truck.conflict truck=%s", truck_id)

    def release(self, truck_id: str) -> None:
        """Return a truck to the available pool."""
        self.store.mutate(
            Collections.TRUCKS,
            truck_id,
            lambda _doc: {"status": "available", "assigned_ward": None},
        )
        logger.info("dispatch.truck.released truck=%s", truck_id)
