# app/domain/capacity_validator.py
"""
Seat accounting.

Capacity is soft while a manifest is being built (a confirmable
``CapacityWarning``) and hard when a trip is saved (``CapacityExceededError``).
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from app.db.schemas import ManifestEntry, PassengerRecord, count_seats
from .errors import CapacityExceededError
from .outcomes import CapacityWarning


@dataclass(frozen=True)
class CapacityCheck:
    ok: bool
    projected: int
    capacity: int
    overflow: int

    def as_warning(self) -> Optional[CapacityWarning]:
        if self.ok:
            return None
        return CapacityWarning(
            projected=self.projected, capacity=self.capacity, overflow=self.overflow
        )


class CapacityValidator:
    @staticmethod
    def compute_occupancy(passengers: Iterable[PassengerRecord]) -> int:
        return count_seats(passengers)

    @staticmethod
    def seats_for(entry: ManifestEntry) -> int:
        return entry.seats

    @staticmethod
    def entries_occupancy(entries: Iterable[ManifestEntry]) -> int:
        return sum(entry.seats for entry in entries)

    @staticmethod
    def validate(capacity: int, current: int, incoming: int) -> CapacityCheck:
        projected = current + incoming
        overflow = max(0, projected - capacity)
        return CapacityCheck(
            ok=overflow == 0, projected=projected, capacity=capacity, overflow=overflow
        )

    @staticmethod
    def enforce(occupied: int, capacity: int, **details: object) -> None:
        if occupied > capacity:
            raise CapacityExceededError(occupied, capacity, **details)


__all__ = ["CapacityValidator", "CapacityCheck"]
