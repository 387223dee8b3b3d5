# app/domain/manifest_builder.py
"""
Interactive manifest building.

A ``ManifestDraft`` is edited in memory until it is saved through the trip
lifecycle. Passengers come from two mutually exclusive sources: same-day
appointments (suggestions) and manual additions of non-TFD patients.
Conflicts and capacity are soft here; the hard capacity check happens at save.
"""

import datetime as dt
from dataclasses import dataclass, field
from typing import Optional

from app.db.models import AppointmentStatus, DbBaseModel, LegMode, VehicleStatus
from app.db.schemas import (
    AppointmentRecord,
    ManifestEntry,
    ManualPassengerConfig,
    PatientRecord,
    SuggestionOptions,
)
from common.logger import get_app_logger
from .capacity_validator import CapacityCheck, CapacityValidator
from .commands import EntityKind
from .conflict_detector import ConflictDetector
from .entity_store import EntityStore
from .errors import (
    DuplicateInManifestError,
    LinkageError,
    ManualAddNotAllowedError,
    NotFoundError,
    ValidationError,
)
from .outcomes import Outcome, SoftWarning

logger = get_app_logger(__name__)

_NOT_SUGGESTED = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.MISSED, AppointmentStatus.COMPLETED}
)


@dataclass
class ManifestDraft:
    date: dt.date
    origin: str = ""
    destination: str = ""
    vehicle_id: Optional[str] = None
    capacity: Optional[int] = None
    # Set when the draft edits an existing trip
    trip_id: Optional[str] = None
    entries: list[ManifestEntry] = field(default_factory=list)
    id: str = field(default_factory=DbBaseModel.generate_uuid)

    @property
    def occupancy(self) -> int:
        return CapacityValidator.entries_occupancy(self.entries)

    def index_of(self, patient_id: str) -> Optional[int]:
        for index, entry in enumerate(self.entries):
            if entry.patient_id == patient_id:
                return index
        return None

    def has_appointment(self, appointment_id: str) -> bool:
        return any(e.appointment_id == appointment_id for e in self.entries)


@dataclass(frozen=True)
class Suggestion:
    appointment: AppointmentRecord
    patient: PatientRecord
    leg_mode: LegMode
    use_companion: bool
    use_second_companion: bool

    @property
    def seats(self) -> int:
        return 1 + int(self.use_companion) + int(self.use_second_companion)


class TripManifestBuilder:
    def __init__(
        self,
        store: EntityStore,
        detector: ConflictDetector,
        capacity: Optional[CapacityValidator] = None,
    ):
        self._store = store
        self._detector = detector
        self._capacity = capacity or CapacityValidator()

    # Drafts --------------------------------------------------------------

    def start_draft(
        self,
        date: dt.date,
        vehicle_id: Optional[str] = None,
        origin: str = "",
        destination: str = "",
    ) -> ManifestDraft:
        draft = ManifestDraft(date=date, origin=origin, destination=destination)
        if vehicle_id is not None:
            self.assign_vehicle(draft, vehicle_id)
        return draft

    def open_draft(self, trip_id: str) -> ManifestDraft:
        """Rebuild a draft from a saved trip's passenger rows."""
        trip = self._store.require(EntityKind.TRIP, trip_id)
        grouped: dict[str, list] = {}
        for row in trip.passengers:
            grouped.setdefault(row.patient_id, []).append(row)

        entries = [
            ManifestEntry.from_rows(rows)
            for rows in grouped.values()
            if any(not r.is_companion for r in rows)
        ]
        return ManifestDraft(
            date=trip.date,
            origin=trip.origin,
            destination=trip.destination,
            vehicle_id=trip.vehicle_id,
            capacity=trip.total_seats,
            trip_id=trip.id,
            entries=entries,
        )

    def assign_vehicle(self, draft: ManifestDraft, vehicle_id: str) -> CapacityCheck:
        """Point the draft at a vehicle and report how the manifest fits it."""
        vehicle = self._store.require(EntityKind.VEHICLE, vehicle_id)
        if vehicle.status != VehicleStatus.ACTIVE:
            raise ValidationError(
                f"Vehicle {vehicle.plate} is in {vehicle.status.value}",
                vehicle_id=vehicle.id,
            )
        draft.vehicle_id = vehicle.id
        draft.capacity = vehicle.capacity
        return self._capacity.validate(vehicle.capacity, draft.occupancy, 0)

    # Suggestions ---------------------------------------------------------

    def _is_suggestible(self, draft: ManifestDraft, appointment: AppointmentRecord) -> bool:
        if appointment.date != draft.date or appointment.status in _NOT_SUGGESTED:
            return False
        if appointment.trip_id is not None and appointment.trip_id != draft.trip_id:
            return False
        return not draft.has_appointment(appointment.id)

    def _suggest(
        self, appointment: AppointmentRecord, patient: PatientRecord
    ) -> Suggestion:
        return Suggestion(
            appointment=appointment,
            patient=patient,
            leg_mode=LegMode.RETURN if appointment.is_return else LegMode.ROUND_TRIP,
            use_companion=patient.allows_companion,
            use_second_companion=patient.allows_second_companion,
        )

    def suggestions(self, draft: ManifestDraft) -> list[Suggestion]:
        """Same-day appointments that can still be put on this manifest."""
        result = []
        for appointment in self._store.appointments():
            if not self._is_suggestible(draft, appointment):
                continue
            patient = self._store.patient(appointment.patient_id)
            if patient is None:
                continue
            result.append(self._suggest(appointment, patient))
        result.sort(key=lambda s: (s.appointment.time, s.patient.name))
        return result

    def _soft_checks(
        self, draft: ManifestDraft, patient_id: str, seats: int
    ) -> list[SoftWarning]:
        warnings: list[SoftWarning] = []
        conflict = self._detector.warning_for(patient_id, draft.date, draft.trip_id)
        if conflict is not None:
            warnings.append(conflict)
        if draft.capacity is not None:
            capacity_warning = self._capacity.validate(
                draft.capacity, draft.occupancy, seats
            ).as_warning()
            if capacity_warning is not None:
                warnings.append(capacity_warning)
        return warnings

    def _append(self, draft: ManifestDraft, entry: ManifestEntry) -> ManifestEntry:
        if draft.index_of(entry.patient_id) is not None:
            raise DuplicateInManifestError(
                f"{entry.patient_name} is already on this manifest",
                patient_id=entry.patient_id,
            )
        if entry.appointment_id and draft.has_appointment(entry.appointment_id):
            raise DuplicateInManifestError(
                "Appointment is already on this manifest",
                appointment_id=entry.appointment_id,
            )
        draft.entries.append(entry)
        logger.info(
            "Manifest entry added",
            draft_id=draft.id,
            patient_id=entry.patient_id,
            appointment_id=entry.appointment_id,
            occupancy=draft.occupancy,
        )
        return entry

    def _guarded(
        self, draft: ManifestDraft, entry: ManifestEntry
    ) -> Outcome[ManifestEntry]:
        warnings = self._soft_checks(draft, entry.patient_id, entry.seats)
        if warnings:
            logger.warning(
                "Manifest entry needs confirmation",
                draft_id=draft.id,
                patient_id=entry.patient_id,
                warnings=[w.code for w in warnings],
            )
            return Outcome.pending(warnings, lambda: self._append(draft, entry))
        return Outcome.done(self._append(draft, entry))

    def add_suggestion(
        self,
        draft: ManifestDraft,
        appointment_id: str,
        options: Optional[SuggestionOptions] = None,
    ) -> Outcome[ManifestEntry]:
        appointment = self._store.require(EntityKind.APPOINTMENT, appointment_id)
        if draft.has_appointment(appointment.id):
            raise DuplicateInManifestError(
                "Appointment is already on this manifest", appointment_id=appointment.id
            )
        if appointment.date != draft.date:
            raise ValidationError(
                f"Appointment is on {appointment.date.isoformat()}, "
                f"the trip on {draft.date.isoformat()}"
            )
        if appointment.status in _NOT_SUGGESTED:
            raise ValidationError(
                f"A {appointment.status.value} appointment cannot travel",
                appointment_id=appointment.id,
            )
        if appointment.trip_id is not None and appointment.trip_id != draft.trip_id:
            raise LinkageError(
                f"Appointment is already on trip {appointment.trip_id}",
                trip_id=appointment.trip_id,
            )
        patient = self._store.patient(appointment.patient_id)
        if patient is None:
            raise NotFoundError("Patient", appointment.patient_id)
        if draft.index_of(patient.id) is not None:
            raise DuplicateInManifestError(
                f"{patient.name} is already on this manifest", patient_id=patient.id
            )

        defaults = self._suggest(appointment, patient)
        options = options or SuggestionOptions()
        use_companion = (
            defaults.use_companion if options.use_companion is None else options.use_companion
        )
        use_second = (
            defaults.use_second_companion
            if options.use_second_companion is None
            else options.use_second_companion
        )
        entry = ManifestEntry(
            patient_id=patient.id,
            patient_name=patient.name,
            appointment_id=appointment.id,
            leg_mode=options.leg_mode or defaults.leg_mode,
            origin=patient.address or draft.origin,
            destination=appointment.location_name or draft.destination,
            appointment_time=appointment.time,
            has_companion=use_companion,
            companion_name=patient.companion_name if use_companion else "",
            has_second_companion=use_second,
            second_companion_name=patient.second_companion_name if use_second else "",
        )
        return self._guarded(draft, entry)

    # Manual additions ----------------------------------------------------

    def add_manual(
        self,
        draft: ManifestDraft,
        patient_id: str,
        config: Optional[ManualPassengerConfig] = None,
    ) -> Outcome[ManifestEntry]:
        """Add a non-TFD passenger with no backing appointment."""
        patient = self._store.require(EntityKind.PATIENT, patient_id)
        if patient.is_tfd:
            raise ManualAddNotAllowedError(
                f"{patient.name} is a TFD patient and must travel through an appointment",
                patient_id=patient.id,
            )
        if draft.index_of(patient.id) is not None:
            raise DuplicateInManifestError(
                f"{patient.name} is already on this manifest", patient_id=patient.id
            )

        config = config or ManualPassengerConfig()
        entry = ManifestEntry(
            patient_id=patient.id,
            patient_name=patient.name,
            appointment_id=None,
            leg_mode=config.leg_mode,
            origin=config.origin or patient.address or draft.origin,
            destination=draft.destination,
            appointment_time=config.appointment_time,
            has_companion=config.has_companion,
            companion_name=config.companion_name if config.has_companion else "",
            has_second_companion=config.has_second_companion,
            second_companion_name=(
                config.second_companion_name if config.has_second_companion else ""
            ),
        )
        return self._guarded(draft, entry)

    # Editing -------------------------------------------------------------

    def _entry_index(self, draft: ManifestDraft, patient_id: str) -> int:
        index = draft.index_of(patient_id)
        if index is None:
            raise NotFoundError("Manifest entry", patient_id)
        return index

    def update_entry(
        self,
        draft: ManifestDraft,
        patient_id: str,
        origin: Optional[str] = None,
        appointment_time: Optional[str] = None,
    ) -> ManifestEntry:
        """Only the trip-specific overrides change; identity stays fixed."""
        index = self._entry_index(draft, patient_id)
        update = {}
        if origin is not None:
            update["origin"] = origin
        if appointment_time is not None:
            update["appointment_time"] = appointment_time
        entry = draft.entries[index].model_copy(update=update)
        draft.entries[index] = entry
        return entry

    def remove_entry(self, draft: ManifestDraft, patient_id: str) -> ManifestEntry:
        index = self._entry_index(draft, patient_id)
        entry = draft.entries.pop(index)
        logger.info("Manifest entry removed", draft_id=draft.id, patient_id=patient_id)
        return entry

    def remove_companion(
        self, draft: ManifestDraft, patient_id: str, slot: int
    ) -> ManifestEntry:
        """Drop one companion seat; the patient stays on the manifest."""
        if slot not in (1, 2):
            raise ValidationError("Companion slot must be 1 or 2", slot=slot)
        index = self._entry_index(draft, patient_id)
        if slot == 1:
            update = {"has_companion": False, "companion_name": ""}
        else:
            update = {"has_second_companion": False, "second_companion_name": ""}
        entry = draft.entries[index].model_copy(update=update)
        draft.entries[index] = entry
        return entry


__all__ = ["ManifestDraft", "ManifestEntry", "Suggestion", "TripManifestBuilder"]
