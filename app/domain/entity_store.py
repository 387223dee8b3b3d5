# app/domain/entity_store.py
"""
Authoritative in-memory collections.

All reads come from here and every write goes through ``execute``, so later
reads always see earlier writes. The repository only ever lags behind.
"""

import datetime as dt
from concurrent.futures import Future
from typing import Any, Callable, Optional, Protocol, TypeVar

from app.db.schemas import (
    AppointmentRecord,
    DestinationRecord,
    DriverRecord,
    PatientRecord,
    SupportHouseRecord,
    TreatmentTypeRecord,
    TripRecord,
    VehicleRecord,
)
from common.logger import get_app_logger
from .commands import ChangeSet, Command, CommandReceipt, EntityKind, PersistenceOp, resolved_future
from .errors import NotFoundError, StaleEntityError

T = TypeVar("T")

logger = get_app_logger(__name__)


class PersistenceSink(Protocol):
    def submit(self, label: str, ops: list[PersistenceOp]) -> "Future[Any]": ...


class RecordSource(Protocol):
    async def fetch_all(self, kind: EntityKind) -> list[Any]: ...


class EntityStore:
    def __init__(
        self,
        persistence: Optional[PersistenceSink] = None,
        clock: Callable[[], dt.date] = dt.date.today,
    ):
        self._collections: dict[EntityKind, dict[str, Any]] = {
            kind: {} for kind in EntityKind
        }
        self._persistence = persistence
        self._clock = clock

    def today(self) -> dt.date:
        return self._clock()

    def attach_persistence(self, persistence: PersistenceSink) -> None:
        self._persistence = persistence

    # Reads ---------------------------------------------------------------

    def get(self, kind: EntityKind, entity_id: Optional[str]) -> Optional[Any]:
        if entity_id is None:
            return None
        return self._collections[kind].get(entity_id)

    def require(self, kind: EntityKind, entity_id: Optional[str]) -> Any:
        record = self.get(kind, entity_id)
        if record is None:
            raise NotFoundError(kind.label, str(entity_id))
        return record

    def all(self, kind: EntityKind) -> list[Any]:
        return list(self._collections[kind].values())

    def count(self, kind: EntityKind) -> int:
        return len(self._collections[kind])

    def patient(self, patient_id: Optional[str]) -> Optional[PatientRecord]:
        return self.get(EntityKind.PATIENT, patient_id)

    def appointment(self, appointment_id: Optional[str]) -> Optional[AppointmentRecord]:
        return self.get(EntityKind.APPOINTMENT, appointment_id)

    def trip(self, trip_id: Optional[str]) -> Optional[TripRecord]:
        return self.get(EntityKind.TRIP, trip_id)

    def vehicle(self, vehicle_id: Optional[str]) -> Optional[VehicleRecord]:
        return self.get(EntityKind.VEHICLE, vehicle_id)

    def driver(self, driver_id: Optional[str]) -> Optional[DriverRecord]:
        return self.get(EntityKind.DRIVER, driver_id)

    def treatment_type(self, treatment_id: Optional[str]) -> Optional[TreatmentTypeRecord]:
        return self.get(EntityKind.TREATMENT_TYPE, treatment_id)

    def destination(self, destination_id: Optional[str]) -> Optional[DestinationRecord]:
        return self.get(EntityKind.DESTINATION, destination_id)

    def support_house(self, house_id: Optional[str]) -> Optional[SupportHouseRecord]:
        return self.get(EntityKind.SUPPORT_HOUSE, house_id)

    def appointments(self) -> list[AppointmentRecord]:
        return self.all(EntityKind.APPOINTMENT)

    def trips(self) -> list[TripRecord]:
        return self.all(EntityKind.TRIP)

    def appointments_on_trip(self, trip_id: str) -> list[AppointmentRecord]:
        return [a for a in self.appointments() if a.trip_id == trip_id]

    @staticmethod
    def check_version(
        kind: EntityKind, record: Any, expected_version: Optional[int]
    ) -> None:
        if expected_version is not None and record.version != expected_version:
            raise StaleEntityError(kind.label, record.id, expected_version, record.version)

    # Writes --------------------------------------------------------------

    def execute(self, command: Command[T]) -> CommandReceipt[T]:
        """
        Run ``command``: validate, apply through a ChangeSet, then hand the
        recorded operations to the persistence worker.

        A step that raises rolls the ChangeSet back before re-raising.
        """
        command.validate()
        changes = ChangeSet(self._collections)
        try:
            value = command.apply(changes)
        except Exception:
            changes.rollback()
            raise

        if changes.ops and self._persistence is not None:
            persisted = self._persistence.submit(command.label, list(changes.ops))
        else:
            persisted = resolved_future(None)

        logger.debug("Command applied", command=command.label, ops=len(changes.ops))
        return CommandReceipt(value=value, persisted=persisted, label=command.label)

    async def load(self, repository: RecordSource) -> dict[str, int]:
        """Replace every collection with the repository's contents."""
        loaded: dict[EntityKind, dict[str, Any]] = {}
        for kind in EntityKind:
            records = await repository.fetch_all(kind)
            loaded[kind] = {record.id: record for record in records}

        for kind, records in loaded.items():
            self._collections[kind] = records

        counts = {kind.value: len(records) for kind, records in loaded.items()}
        logger.info("Entity store loaded", **counts)
        return counts


__all__ = ["EntityStore", "PersistenceSink", "RecordSource"]
