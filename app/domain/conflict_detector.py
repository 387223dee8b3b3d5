# app/domain/conflict_detector.py
import datetime as dt
from dataclasses import dataclass
from typing import Optional

from app.db.models import TripStatus
from app.db.schemas import TripRecord
from .entity_store import EntityStore
from .outcomes import ConflictWarning


@dataclass(frozen=True)
class TravelCheck:
    is_traveling: bool
    trip: Optional[TripRecord] = None


class ConflictDetector:
    """Finds a patient already booked on another non-cancelled trip that day."""

    def __init__(self, store: EntityStore):
        self._store = store

    def is_patient_traveling_on_date(
        self,
        patient_id: str,
        date: dt.date,
        exclude_trip_id: Optional[str] = None,
    ) -> TravelCheck:
        for trip in self._store.trips():
            if trip.date != date or trip.status == TripStatus.CANCELLED:
                continue
            if exclude_trip_id is not None and trip.id == exclude_trip_id:
                continue
            if any(p.patient_id == patient_id for p in trip.passengers):
                return TravelCheck(is_traveling=True, trip=trip)
        return TravelCheck(is_traveling=False)

    def warning_for(
        self,
        patient_id: str,
        date: dt.date,
        exclude_trip_id: Optional[str] = None,
    ) -> Optional[ConflictWarning]:
        check = self.is_patient_traveling_on_date(patient_id, date, exclude_trip_id)
        if not check.is_traveling or check.trip is None:
            return None
        return ConflictWarning(patient_id=patient_id, date=date, trip_id=check.trip.id)


__all__ = ["ConflictDetector", "TravelCheck"]
