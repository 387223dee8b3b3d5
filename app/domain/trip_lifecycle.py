# app/domain/trip_lifecycle.py
"""
Trip create/update/delete and status changes, with their consequences for
linked appointments.

Saving is where capacity becomes a hard limit. Every save writes the trip
header and its complete passenger list as one ``ReplaceTrip`` operation, so
the repository never sees a trip with a half-written manifest.
"""

import datetime as dt
from typing import Iterable, Optional

from app.db.models import (
    AppointmentStatus,
    DbBaseModel,
    PassengerStatus,
    TripStatus,
    VehicleStatus,
)
from app.db.schemas import (
    AppointmentRecord,
    ManifestEntry,
    PassengerRecord,
    TripDetails,
    TripRecord,
)
from common.logger import get_app_logger
from .appointment_state_machine import AppointmentStateMachine
from .capacity_validator import CapacityValidator
from .commands import ChangeSet, Command, CommandReceipt, EntityKind, resolved_future, revise
from .entity_store import EntityStore
from .errors import (
    DuplicateInManifestError,
    IllegalTransitionError,
    LinkageError,
    ManualAddNotAllowedError,
    NotFoundError,
    RetroactiveDateError,
    ValidationError,
)

logger = get_app_logger(__name__, track_timing=True)

T = TripStatus

# Forward-only; terminal states are final
TRIP_TRANSITIONS: dict[TripStatus, frozenset[TripStatus]] = {
    T.SCHEDULED: frozenset({T.BOARDING, T.COMPLETED, T.CANCELLED}),
    T.BOARDING: frozenset({T.COMPLETED, T.CANCELLED}),
    T.COMPLETED: frozenset(),
    T.CANCELLED: frozenset(),
}

_RowKey = tuple[str, bool, Optional[int]]


def _row_key(row: PassengerRecord) -> _RowKey:
    return (row.patient_id, row.is_companion, row.companion_slot)


def _without_back_references(rows: Iterable[PassengerRecord]) -> list[PassengerRecord]:
    return [
        r.model_copy(update={"appointment_id": None}) if r.appointment_id else r
        for r in rows
    ]


class TripLifecycleManager:
    def __init__(
        self,
        store: EntityStore,
        appointments: AppointmentStateMachine,
        capacity: Optional[CapacityValidator] = None,
    ):
        self._store = store
        self._appointments = appointments
        self._capacity = capacity or CapacityValidator()

    # Validation ----------------------------------------------------------

    def _header_fields(
        self, details: TripDetails, current: Optional[TripRecord] = None
    ) -> dict:
        """
        Resolve the header from the registry. Availability is only checked for
        a vehicle or driver being newly assigned.
        """
        vehicle = self._store.require(EntityKind.VEHICLE, details.vehicle_id)
        same_vehicle = current is not None and current.vehicle_id == vehicle.id
        if not same_vehicle and vehicle.status != VehicleStatus.ACTIVE:
            raise ValidationError(
                f"Vehicle {vehicle.plate} is in {vehicle.status.value}",
                vehicle_id=vehicle.id,
            )
        driver = self._store.require(EntityKind.DRIVER, details.driver_id)
        same_driver = current is not None and current.driver_id == driver.id
        if not same_driver and not driver.active:
            raise ValidationError(f"Driver {driver.name} is inactive", driver_id=driver.id)
        treatment = None
        if details.treatment_id is not None:
            treatment = self._store.require(EntityKind.TREATMENT_TYPE, details.treatment_id)

        return {
            "date": details.date,
            "time": details.time,
            "origin": details.origin,
            "destination": details.destination,
            "treatment_id": details.treatment_id,
            "treatment_name": treatment.name if treatment else "",
            "driver_id": driver.id,
            "driver_name": driver.name,
            "vehicle_id": vehicle.id,
            "vehicle_model": vehicle.model,
            "vehicle_plate": vehicle.plate,
            # Seats are copied when the vehicle is assigned
            "total_seats": current.total_seats if same_vehicle else vehicle.capacity,
            "status": details.status,
            "notes": details.notes,
        }

    def _check_retroactive(self, status: TripStatus, date: dt.date) -> None:
        today = self._store.today()
        if not status.is_terminal and date < today:
            raise RetroactiveDateError(
                f"Cannot schedule a trip on {date.isoformat()}, "
                f"which is before today ({today.isoformat()})",
                date=date.isoformat(),
            )

    def _check_entries(
        self,
        entries: list[ManifestEntry],
        date: dt.date,
        trip_id: Optional[str],
        historical: bool = False,
    ) -> dict[str, AppointmentRecord]:
        """
        Validate a manifest and return the appointments it references.

        Appointments already on ``trip_id`` stay valid; anything linked to
        another trip, on another date or already resolved is rejected.
        """
        if not entries:
            raise ValidationError("A trip needs at least one passenger")

        seen_patients: set[str] = set()
        appointments: dict[str, AppointmentRecord] = {}
        for entry in entries:
            if entry.patient_id in seen_patients:
                raise DuplicateInManifestError(
                    f"{entry.patient_name} appears twice on the manifest",
                    patient_id=entry.patient_id,
                )
            seen_patients.add(entry.patient_id)
            patient = self._store.require(EntityKind.PATIENT, entry.patient_id)

            if entry.appointment_id is None:
                if patient.is_tfd:
                    raise ManualAddNotAllowedError(
                        f"{patient.name} is a TFD patient and must travel through an appointment",
                        patient_id=patient.id,
                    )
                continue

            appointment = self._store.appointment(entry.appointment_id)
            if appointment is None:
                raise LinkageError(
                    f"Appointment '{entry.appointment_id}' does not exist",
                    appointment_id=entry.appointment_id,
                )
            if appointment.id in appointments:
                raise DuplicateInManifestError(
                    "Appointment appears twice on the manifest", appointment_id=appointment.id
                )
            if appointment.patient_id != entry.patient_id:
                raise LinkageError(
                    "Appointment belongs to another patient", appointment_id=appointment.id
                )
            if appointment.date != date:
                raise LinkageError(
                    f"Appointment is on {appointment.date.isoformat()}, "
                    f"the trip on {date.isoformat()}",
                    appointment_id=appointment.id,
                )
            already_here = trip_id is not None and appointment.trip_id == trip_id
            if appointment.trip_id is not None and not already_here:
                raise LinkageError(
                    f"Appointment is already on trip {appointment.trip_id}",
                    appointment_id=appointment.id,
                )
            if not already_here:
                if appointment.status.is_resolved:
                    raise LinkageError(
                        f"A {appointment.status.value} appointment cannot travel",
                        appointment_id=appointment.id,
                    )
                if not historical:
                    self._appointments.check_retroactive(
                        AppointmentStatus.SCHEDULED_TRIP, appointment.date
                    )
            appointments[appointment.id] = appointment
        return appointments

    # Rows ----------------------------------------------------------------

    @staticmethod
    def _materialize(
        trip_id: str,
        entries: list[ManifestEntry],
        previous: Iterable[PassengerRecord] = (),
    ) -> list[PassengerRecord]:
        """
        Expand entries into rows, keeping id and boarding status of rows that
        survive from the previous manifest.
        """
        kept = {_row_key(r): r for r in previous}
        rows: list[PassengerRecord] = []
        for entry in entries:
            for row in entry.rows(trip_id, DbBaseModel.generate_uuid):
                old = kept.get(_row_key(row))
                if old is not None:
                    row = row.model_copy(update={"id": old.id, "status": old.status})
                rows.append(row)
        return rows

    def _link_all(
        self,
        changes: ChangeSet,
        trip: TripRecord,
        appointments: Iterable[AppointmentRecord],
        historical: bool = False,
    ) -> None:
        for appointment in appointments:
            if historical:
                # Historical trip: rows stay as travel history
                if appointment.status != AppointmentStatus.COMPLETED:
                    self._appointments.mark_unlinked(
                        changes, appointment, AppointmentStatus.COMPLETED
                    )
            elif appointment.trip_id != trip.id:
                self._appointments.mark_linked(changes, appointment, trip.id)

    def _unlink_all(
        self, changes: ChangeSet, appointments: Iterable[AppointmentRecord]
    ) -> int:
        count = 0
        for appointment in appointments:
            self._appointments.mark_unlinked(changes, appointment, AppointmentStatus.PENDING)
            count += 1
        return count

    # Operations ----------------------------------------------------------

    def create_trip(
        self, details: TripDetails, entries: list[ManifestEntry]
    ) -> CommandReceipt[TripRecord]:
        header = self._header_fields(details, current=None)
        self._check_retroactive(details.status, details.date)
        historical = details.status == T.COMPLETED
        appointments = self._check_entries(
            entries, details.date, None, historical=details.status.is_terminal
        )
        occupied = self._capacity.entries_occupancy(entries)
        self._capacity.enforce(occupied, header["total_seats"])

        trip_id = DbBaseModel.generate_uuid()
        rows = self._materialize(trip_id, entries)
        if details.status == T.CANCELLED:
            rows = _without_back_references(rows)
        trip = TripRecord(id=trip_id, passengers=rows, **header)

        def apply(changes: ChangeSet) -> TripRecord:
            changes.put(EntityKind.TRIP, trip)
            if trip.status != T.CANCELLED:
                self._link_all(changes, trip, appointments.values(), historical)
            return trip

        receipt = self._store.execute(Command(label="trip.create", apply=apply))
        logger.info(
            "Trip created",
            trip_id=trip.id,
            date=trip.date.isoformat(),
            passengers=len(trip.passengers),
            occupied=trip.occupied_seats,
            capacity=trip.total_seats,
            linked=len(appointments),
        )
        return receipt

    def update_trip(
        self,
        trip_id: str,
        details: TripDetails,
        entries: list[ManifestEntry],
        expected_version: Optional[int] = None,
    ) -> CommandReceipt[TripRecord]:
        trip = self._store.require(EntityKind.TRIP, trip_id)
        self._store.check_version(EntityKind.TRIP, trip, expected_version)
        if trip.status.is_terminal:
            raise ValidationError(
                f"Trip is {trip.status.value} and can no longer be edited", trip_id=trip.id
            )
        if details.status != trip.status:
            self._check_transition(trip.status, details.status)

        header = self._header_fields(details, current=trip)
        self._check_retroactive(details.status, details.date)
        cancelling = details.status == T.CANCELLED
        wanted = self._check_entries(entries, details.date, trip.id, historical=cancelling)
        occupied = self._capacity.entries_occupancy(entries)
        self._capacity.enforce(occupied, header["total_seats"], trip_id=trip.id)

        linked = {a.id: a for a in self._store.appointments_on_trip(trip.id)}
        removed = [a for a_id, a in linked.items() if cancelling or a_id not in wanted]
        added = [] if cancelling else [a for a_id, a in wanted.items() if a_id not in linked]

        rows = self._materialize(trip.id, entries, trip.passengers)
        if cancelling:
            rows = _without_back_references(rows)
        updated = revise(trip, passengers=rows, **header)

        def apply(changes: ChangeSet) -> TripRecord:
            changes.put(EntityKind.TRIP, updated)
            self._unlink_all(changes, removed)
            if not cancelling:
                self._link_all(changes, updated, wanted.values())
            return updated

        receipt = self._store.execute(Command(label="trip.update", apply=apply))
        logger.info(
            "Trip updated",
            trip_id=trip.id,
            version=updated.version,
            occupied=updated.occupied_seats,
            capacity=updated.total_seats,
            linked=len(added),
            unlinked=len(removed),
        )
        return receipt

    def delete_trip(self, trip_id: str) -> CommandReceipt[TripRecord]:
        """Remove the trip and its rows; every linked appointment goes back to pending."""
        trip = self._store.require(EntityKind.TRIP, trip_id)
        linked = self._store.appointments_on_trip(trip.id)

        def apply(changes: ChangeSet) -> TripRecord:
            self._unlink_all(changes, linked)
            return changes.remove(EntityKind.TRIP, trip.id)

        receipt = self._store.execute(Command(label="trip.delete", apply=apply))
        logger.info("Trip deleted", trip_id=trip.id, reverted_appointments=len(linked))
        return receipt

    @staticmethod
    def _check_transition(current: TripStatus, target: TripStatus) -> None:
        if target not in TRIP_TRANSITIONS[current]:
            raise IllegalTransitionError("Trip", current.value, target.value)

    def update_trip_status(
        self,
        trip_id: str,
        new_status: TripStatus,
        expected_version: Optional[int] = None,
    ) -> CommandReceipt[TripRecord]:
        trip = self._store.require(EntityKind.TRIP, trip_id)
        self._store.check_version(EntityKind.TRIP, trip, expected_version)
        if new_status == trip.status:
            return CommandReceipt(value=trip, persisted=resolved_future(None), label="trip.noop")
        self._check_transition(trip.status, new_status)

        linked = self._store.appointments_on_trip(trip.id) if new_status == T.CANCELLED else []

        def apply(changes: ChangeSet) -> TripRecord:
            if new_status == T.CANCELLED:
                # Rows stay as history without pointing at the reverted appointments
                self._unlink_all(changes, linked)
                updated = revise(
                    trip, status=new_status, passengers=_without_back_references(trip.passengers)
                )
            else:
                updated = revise(trip, status=new_status)
            return changes.put(EntityKind.TRIP, updated)

        receipt = self._store.execute(
            Command(label=f"trip.status.{new_status.value}", apply=apply)
        )
        logger.info(
            "Trip status changed",
            trip_id=trip.id,
            from_status=trip.status.value,
            to_status=new_status.value,
            reverted_appointments=len(linked),
        )
        return receipt

    def mark_passenger(
        self, trip_id: str, passenger_id: str, status: PassengerStatus
    ) -> CommandReceipt[PassengerRecord]:
        trip = self._store.require(EntityKind.TRIP, trip_id)
        if trip.status.is_terminal:
            raise ValidationError(
                f"Trip is {trip.status.value}; boarding can no longer change", trip_id=trip.id
            )
        row = next((p for p in trip.passengers if p.id == passenger_id), None)
        if row is None:
            raise NotFoundError("Passenger", passenger_id)

        marked = row.model_copy(update={"status": status})
        rows = [marked if p.id == passenger_id else p for p in trip.passengers]

        def apply(changes: ChangeSet) -> PassengerRecord:
            changes.put(EntityKind.TRIP, revise(trip, passengers=rows))
            return marked

        return self._store.execute(Command(label="trip.passenger.mark", apply=apply))

    def list_trips(
        self,
        search: Optional[str] = None,
        date: Optional[dt.date] = None,
        status: Optional[TripStatus] = None,
    ) -> list[TripRecord]:
        """Trips matching all given filters, newest date first."""
        term = search.strip().lower() if search else ""
        result = []
        for trip in self._store.trips():
            if date is not None and trip.date != date:
                continue
            if status is not None and trip.status != status:
                continue
            if term and not any(
                term in text.lower()
                for text in (trip.destination, trip.driver_name, trip.vehicle_model)
            ):
                continue
            result.append(trip)
        result.sort(key=lambda t: (t.date, t.time), reverse=True)
        return result


__all__ = ["TripLifecycleManager", "TRIP_TRANSITIONS"]
