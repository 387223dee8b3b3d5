# app/domain/appointment_state_machine.py
"""
Appointment lifecycle and its link to trips.

``trip_id`` is set exactly when the status is ``scheduled_trip``. Every
operation here keeps that true by adding or removing the patient's passenger
rows on the trip in the same command that changes the appointment.
"""

import datetime as dt
from typing import Any, Optional

from app.db.models import AppointmentStatus, DbBaseModel, LegMode, TripStatus
from app.db.schemas import (
    AppointmentCreate,
    AppointmentRecord,
    AppointmentUpdate,
    ManifestEntry,
    PassengerRecord,
    PatientRecord,
    TripRecord,
)
from common.logger import get_app_logger
from .capacity_validator import CapacityValidator
from .commands import ChangeSet, Command, CommandReceipt, EntityKind, resolved_future, revise
from .entity_store import EntityStore
from .errors import (
    DuplicateAppointmentError,
    IllegalTransitionError,
    LinkageError,
    RetroactiveDateError,
    ValidationError,
)
from .outcomes import Outcome, RequiresDetachConfirmation

logger = get_app_logger(__name__)

S = AppointmentStatus

TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.PENDING: frozenset({S.SCHEDULED_TRIP, S.CANCELLED, S.MISSED, S.RESCHEDULED}),
    S.SCHEDULED_TRIP: frozenset(
        {S.COMPLETED, S.CANCELLED, S.MISSED, S.RESCHEDULED, S.PENDING}
    ),
    S.RESCHEDULED: frozenset({S.PENDING, S.SCHEDULED_TRIP, S.CANCELLED, S.MISSED}),
    S.COMPLETED: frozenset({S.PENDING}),
    S.CANCELLED: frozenset({S.PENDING}),
    S.MISSED: frozenset({S.PENDING}),
}

# Appointments in these states never count as duplicates
_NOT_COUNTED = frozenset({S.CANCELLED, S.MISSED})

_CLEARABLE_FIELDS = frozenset({"treatment_id", "destination_id"})

_EDITABLE_FIELDS = (
    "date",
    "time",
    "notes",
    "documents",
    "treatment_id",
    "destination_id",
    "is_return",
)


def entry_for_appointment(
    appointment: AppointmentRecord,
    patient: Optional[PatientRecord],
    trip: TripRecord,
) -> ManifestEntry:
    """Manifest entry an appointment gets when it is linked straight to a trip."""
    return ManifestEntry(
        patient_id=appointment.patient_id,
        patient_name=appointment.patient_name,
        appointment_id=appointment.id,
        leg_mode=LegMode.RETURN if appointment.is_return else LegMode.ROUND_TRIP,
        origin=(patient.address if patient else "") or trip.origin,
        destination=appointment.location_name or trip.destination,
        appointment_time=appointment.time,
        has_companion=bool(patient and patient.allows_companion),
        companion_name=patient.companion_name if patient else "",
        has_second_companion=bool(patient and patient.allows_second_companion),
        second_companion_name=patient.second_companion_name if patient else "",
    )


def rows_without_appointment(
    trip: TripRecord, appointment: AppointmentRecord
) -> list[PassengerRecord]:
    """Trip rows minus the appointment's patient row and that patient's companions."""
    owner = next(
        (
            p
            for p in trip.passengers
            if not p.is_companion and p.appointment_id == appointment.id
        ),
        None,
    )
    patient_id = owner.patient_id if owner else appointment.patient_id
    return [p for p in trip.passengers if p.patient_id != patient_id]


class AppointmentStateMachine:
    def __init__(self, store: EntityStore, capacity: Optional[CapacityValidator] = None):
        self._store = store
        self._capacity = capacity or CapacityValidator()

    # Rules ---------------------------------------------------------------

    def check_retroactive(self, status: AppointmentStatus, date: dt.date) -> None:
        """Active appointments cannot sit in the past; resolved ones may."""
        today = self._store.today()
        if status.is_active and date < today:
            raise RetroactiveDateError(
                f"Cannot keep a {status.value} appointment on {date.isoformat()}, "
                f"which is before today ({today.isoformat()})",
                date=date.isoformat(),
                status=status.value,
            )

    def check_duplicate(
        self,
        patient_id: str,
        date: dt.date,
        treatment_id: Optional[str],
        destination_id: Optional[str],
        exclude_id: Optional[str] = None,
    ) -> None:
        for other in self._store.appointments():
            if other.id == exclude_id or other.status in _NOT_COUNTED:
                continue
            if other.patient_id != patient_id or other.date != date:
                continue
            same_treatment = treatment_id is not None and other.treatment_id == treatment_id
            same_destination = (
                destination_id is not None and other.destination_id == destination_id
            )
            if same_treatment or same_destination:
                raise DuplicateAppointmentError(
                    f"Patient already has appointment {other.id} on {date.isoformat()} "
                    "for the same treatment or destination",
                    existing_id=other.id,
                )

    @staticmethod
    def check_transition(current: AppointmentStatus, target: AppointmentStatus) -> None:
        if target not in TRANSITIONS[current]:
            raise IllegalTransitionError("Appointment", current.value, target.value)

    def _resolve_location(
        self, treatment_id: Optional[str], destination_id: Optional[str]
    ) -> dict[str, Any]:
        if treatment_id is None and destination_id is None:
            raise ValidationError("An appointment needs a treatment type or a destination")

        treatment = None
        if treatment_id is not None:
            treatment = self._store.require(EntityKind.TREATMENT_TYPE, treatment_id)
            if destination_id is None:
                destination_id = treatment.default_destination_id

        destination = None
        if destination_id is not None:
            destination = self._store.require(EntityKind.DESTINATION, destination_id)

        return {
            "treatment_id": treatment_id,
            "treatment_name": treatment.name if treatment else "",
            "destination_id": destination_id,
            "destination_name": destination.name if destination else "",
        }

    def _require(self, appointment_id: str) -> AppointmentRecord:
        return self._store.require(EntityKind.APPOINTMENT, appointment_id)

    # Link primitives (used inside a ChangeSet) ---------------------------

    def mark_linked(
        self, changes: ChangeSet, appointment: AppointmentRecord, trip_id: str
    ) -> AppointmentRecord:
        return changes.put(
            EntityKind.APPOINTMENT,
            revise(appointment, status=S.SCHEDULED_TRIP, trip_id=trip_id),
        )

    def mark_unlinked(
        self,
        changes: ChangeSet,
        appointment: AppointmentRecord,
        status: AppointmentStatus = S.PENDING,
        **fields: Any,
    ) -> AppointmentRecord:
        return changes.put(
            EntityKind.APPOINTMENT,
            revise(appointment, status=status, trip_id=None, **fields),
        )

    def _detach_rows(self, changes: ChangeSet, appointment: AppointmentRecord) -> None:
        trip = self._store.trip(appointment.trip_id)
        if trip is None:
            return
        changes.put(
            EntityKind.TRIP,
            revise(trip, passengers=rows_without_appointment(trip, appointment)),
        )

    # Operations ----------------------------------------------------------

    def create_appointment(self, data: AppointmentCreate) -> CommandReceipt[AppointmentRecord]:
        if not data.patient_id:
            raise ValidationError("An appointment needs a patient")
        if data.date is None:
            raise ValidationError("An appointment needs a date")
        if data.status == S.SCHEDULED_TRIP:
            raise LinkageError(
                "Appointments are linked to trips through a trip, not created linked"
            )

        patient = self._store.require(EntityKind.PATIENT, data.patient_id)
        location = self._resolve_location(data.treatment_id, data.destination_id)
        self.check_retroactive(data.status, data.date)
        if data.status not in _NOT_COUNTED:
            self.check_duplicate(
                patient.id, data.date, location["treatment_id"], location["destination_id"]
            )

        record = AppointmentRecord(
            id=DbBaseModel.generate_uuid(),
            patient_id=patient.id,
            patient_name=patient.name,
            date=data.date,
            time=data.time,
            notes=data.notes,
            documents=list(data.documents),
            status=data.status,
            is_return=data.is_return,
            **location,
        )
        receipt = self._store.execute(
            Command(
                label="appointment.create",
                apply=lambda changes: changes.put(EntityKind.APPOINTMENT, record),
            )
        )
        logger.info(
            "Appointment created",
            appointment_id=record.id,
            patient_id=record.patient_id,
            date=record.date.isoformat(),
        )
        return receipt

    def update_appointment(
        self,
        appointment_id: str,
        changes: AppointmentUpdate,
        expected_version: Optional[int] = None,
    ) -> Outcome[CommandReceipt[AppointmentRecord]]:
        """
        Edit an appointment. Moving a linked appointment to another date is
        held back with ``RequiresDetachConfirmation``.
        """
        fields = changes.model_dump(exclude_unset=True)
        appointment = self._require(appointment_id)
        self._store.check_version(EntityKind.APPOINTMENT, appointment, expected_version)

        new_date = fields.get("date") or appointment.date
        if appointment.trip_id is not None and new_date != appointment.date:
            # Validate now so the caller is not asked to confirm a doomed edit
            self._prepare_update(appointment, fields, detach=True)
            warning = RequiresDetachConfirmation(
                appointment_id=appointment.id,
                trip_id=appointment.trip_id,
                new_date=new_date,
            )
            logger.warning(
                "Date change needs detach confirmation",
                appointment_id=appointment.id,
                trip_id=appointment.trip_id,
            )
            return Outcome.pending(
                [warning],
                lambda: self._update(appointment_id, fields, expected_version, detach=True),
            )

        return Outcome.done(self._update(appointment_id, fields, expected_version, detach=False))

    def propose_date_change(
        self, appointment_id: str, new_date: dt.date
    ) -> Outcome[CommandReceipt[AppointmentRecord]]:
        return self.update_appointment(appointment_id, AppointmentUpdate(date=new_date))

    def commit_date_change(
        self, appointment_id: str, new_date: dt.date
    ) -> CommandReceipt[AppointmentRecord]:
        """Detach from the trip (if linked) and move the date, in one command."""
        return self._update(appointment_id, {"date": new_date}, None, detach=True)

    def _prepare_update(
        self, appointment: AppointmentRecord, fields: dict[str, Any], detach: bool
    ) -> dict[str, Any]:
        unknown = set(fields) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {sorted(unknown)}")

        merged = {name: getattr(appointment, name) for name in _EDITABLE_FIELDS}
        # Only the location ids may be cleared with an explicit None
        merged.update(
            {k: v for k, v in fields.items() if v is not None or k in _CLEARABLE_FIELDS}
        )
        if "treatment_id" in fields and "destination_id" not in fields:
            # A new treatment brings its own default destination
            merged["destination_id"] = None
        merged.update(self._resolve_location(merged["treatment_id"], merged["destination_id"]))

        date_changed = merged["date"] != appointment.date
        status = appointment.status
        if date_changed and appointment.trip_id is not None:
            if not detach:
                raise LinkageError(
                    "Changing the date of a linked appointment requires detaching it",
                    trip_id=appointment.trip_id,
                )
            status = S.PENDING

        self.check_retroactive(status, merged["date"])
        if status not in _NOT_COUNTED:
            self.check_duplicate(
                appointment.patient_id,
                merged["date"],
                merged["treatment_id"],
                merged["destination_id"],
                exclude_id=appointment.id,
            )
        merged["status"] = status
        return merged

    def _update(
        self,
        appointment_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int],
        detach: bool,
    ) -> CommandReceipt[AppointmentRecord]:
        appointment = self._require(appointment_id)
        self._store.check_version(EntityKind.APPOINTMENT, appointment, expected_version)
        merged = self._prepare_update(appointment, fields, detach)
        detaching = appointment.trip_id is not None and merged["status"] != appointment.status

        def apply(changes: ChangeSet) -> AppointmentRecord:
            if detaching:
                self._detach_rows(changes, appointment)
                rest = {k: v for k, v in merged.items() if k != "status"}
                return self.mark_unlinked(changes, appointment, merged["status"], **rest)
            return changes.put(EntityKind.APPOINTMENT, revise(appointment, **merged))

        receipt = self._store.execute(Command(label="appointment.update", apply=apply))
        if detaching:
            logger.warning(
                "Appointment detached from trip by date change",
                appointment_id=appointment.id,
                trip_id=appointment.trip_id,
                new_date=receipt.value.date.isoformat(),
            )
        else:
            logger.info("Appointment updated", appointment_id=appointment.id)
        return receipt

    def change_status(
        self,
        appointment_id: str,
        new_status: AppointmentStatus,
        trip_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> CommandReceipt[AppointmentRecord]:
        appointment = self._require(appointment_id)
        self._store.check_version(EntityKind.APPOINTMENT, appointment, expected_version)
        current = appointment.status

        if new_status == current:
            if new_status == S.SCHEDULED_TRIP and trip_id not in (None, appointment.trip_id):
                raise LinkageError(
                    f"Appointment is already on trip {appointment.trip_id}; "
                    "move it back to pending first",
                    trip_id=appointment.trip_id,
                )
            return CommandReceipt(
                value=appointment, persisted=resolved_future(None), label="appointment.noop"
            )

        self.check_transition(current, new_status)
        self.check_retroactive(new_status, appointment.date)
        if current in _NOT_COUNTED and new_status not in _NOT_COUNTED:
            self.check_duplicate(
                appointment.patient_id,
                appointment.date,
                appointment.treatment_id,
                appointment.destination_id,
                exclude_id=appointment.id,
            )

        if new_status == S.SCHEDULED_TRIP:
            apply = self._plan_link(appointment, trip_id)
        elif current == S.SCHEDULED_TRIP and new_status == S.COMPLETED:
            apply = self._plan_complete(appointment)
        elif current == S.SCHEDULED_TRIP:

            def apply(changes: ChangeSet) -> AppointmentRecord:
                self._detach_rows(changes, appointment)
                return self.mark_unlinked(changes, appointment, new_status)

        else:

            def apply(changes: ChangeSet) -> AppointmentRecord:
                return changes.put(EntityKind.APPOINTMENT, revise(appointment, status=new_status))

        receipt = self._store.execute(
            Command(label=f"appointment.status.{new_status.value}", apply=apply)
        )
        logger.info(
            "Appointment status changed",
            appointment_id=appointment.id,
            from_status=current.value,
            to_status=new_status.value,
            trip_id=receipt.value.trip_id or appointment.trip_id,
        )
        return receipt

    def _plan_link(self, appointment: AppointmentRecord, trip_id: Optional[str]):
        if trip_id is None:
            raise LinkageError("Scheduling an appointment on a trip needs a trip_id")
        trip = self._store.trip(trip_id)
        if trip is None:
            raise LinkageError(f"Trip '{trip_id}' does not exist", trip_id=trip_id)
        if trip.status.is_terminal:
            raise LinkageError(
                f"Trip '{trip_id}' is {trip.status.value}", trip_id=trip_id
            )
        if trip.date != appointment.date:
            raise LinkageError(
                f"Trip '{trip_id}' runs on {trip.date.isoformat()}, "
                f"the appointment is on {appointment.date.isoformat()}",
                trip_id=trip_id,
            )

        existing = trip.rows_for_patient(appointment.patient_id)
        own_row = next(
            (r for r in existing if not r.is_companion and r.appointment_id == appointment.id),
            None,
        )
        if existing and own_row is None:
            raise LinkageError(
                "Patient is already on this trip under another booking",
                trip_id=trip_id,
                patient_id=appointment.patient_id,
            )

        entry = entry_for_appointment(
            appointment, self._store.patient(appointment.patient_id), trip
        )
        if own_row is None:
            self._capacity.enforce(
                trip.occupied_seats + entry.seats, trip.total_seats, trip_id=trip_id
            )

        def apply(changes: ChangeSet) -> AppointmentRecord:
            if own_row is None:
                changes.put(
                    EntityKind.TRIP,
                    revise(trip, passengers=[*trip.passengers, *entry.rows(trip.id)]),
                )
            return self.mark_linked(changes, appointment, trip.id)

        return apply

    def _plan_complete(self, appointment: AppointmentRecord):
        trip = self._store.trip(appointment.trip_id)
        if trip is not None and trip.status != TripStatus.COMPLETED:
            raise LinkageError(
                f"Trip '{trip.id}' is {trip.status.value}; complete the trip first",
                trip_id=trip.id,
            )

        def apply(changes: ChangeSet) -> AppointmentRecord:
            # Passenger rows stay on the trip as travel history
            return self.mark_unlinked(changes, appointment, S.COMPLETED)

        return apply

    def delete_appointment(self, appointment_id: str) -> CommandReceipt[AppointmentRecord]:
        appointment = self._require(appointment_id)
        history = [
            trip
            for trip in self._store.trips()
            if trip.id != appointment.trip_id and appointment.id in trip.linked_appointment_ids()
        ]

        def apply(changes: ChangeSet) -> AppointmentRecord:
            if appointment.trip_id is not None:
                self._detach_rows(changes, appointment)
            for trip in history:
                rows = [
                    r.model_copy(update={"appointment_id": None})
                    if r.appointment_id == appointment.id
                    else r
                    for r in trip.passengers
                ]
                changes.put(EntityKind.TRIP, revise(trip, passengers=rows))
            return changes.remove(EntityKind.APPOINTMENT, appointment.id)

        receipt = self._store.execute(Command(label="appointment.delete", apply=apply))
        logger.info(
            "Appointment deleted",
            appointment_id=appointment.id,
            detached_from=appointment.trip_id,
        )
        return receipt

    def get(self, appointment_id: str) -> AppointmentRecord:
        return self._require(appointment_id)


__all__ = [
    "AppointmentStateMachine",
    "TRANSITIONS",
    "entry_for_appointment",
    "rows_without_appointment",
]
