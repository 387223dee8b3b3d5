# app/services/v1/transport_service.py
"""
Facade the HTTP layer talks to.

Wires the domain components around one EntityStore and keeps open manifest
drafts between requests.
"""

import datetime as dt
import time
from collections import OrderedDict
from typing import Any, Callable, Optional

from app.db.models import AppointmentStatus, PassengerStatus, PatientStatus, TripStatus
from app.db.schemas import (
    AppointmentCreate,
    AppointmentRecord,
    AppointmentUpdate,
    DraftStart,
    ManifestDraftView,
    ManifestEntry,
    ManualPassengerConfig,
    PassengerRecord,
    SuggestionOptions,
    SuggestionView,
    TripDetails,
    TripRecord,
)
from app.domain import (
    AppointmentStateMachine,
    CapacityCheck,
    CapacityValidator,
    CommandReceipt,
    ConflictDetector,
    EntityStore,
    ManifestDraft,
    NotFoundError,
    Outcome,
    Registry,
    TripLifecycleManager,
    TripManifestBuilder,
)
from common.config import DraftConfig
from common.logger import get_app_logger

logger = get_app_logger(__name__)


class TransportService:
    def __init__(
        self,
        store: EntityStore,
        drafts: Optional[DraftConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.capacity = CapacityValidator()
        self.detector = ConflictDetector(store)
        self.registry = Registry(store)
        self.appointments = AppointmentStateMachine(store, self.capacity)
        self.builder = TripManifestBuilder(store, self.detector, self.capacity)
        self.trips = TripLifecycleManager(store, self.appointments, self.capacity)
        self._draft_config = drafts or DraftConfig()
        self._clock = clock
        # draft id -> (draft, last use), least recently used first
        self._drafts: "OrderedDict[str, tuple[ManifestDraft, float]]" = OrderedDict()

    # Appointments ----------------------------------------------------------

    def search_appointments(
        self,
        date: Optional[dt.date] = None,
        patient_name: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        treatment_id: Optional[str] = None,
        return_only: bool = False,
    ) -> list[AppointmentRecord]:
        return self.registry.search_appointments(
            date=date,
            patient_name=patient_name,
            location=location,
            status=status,
            treatment_id=treatment_id,
            return_only=return_only,
        )

    def create_appointment(self, data: AppointmentCreate) -> CommandReceipt[AppointmentRecord]:
        return self.appointments.create_appointment(data)

    def update_appointment(
        self, appointment_id: str, changes: AppointmentUpdate, expected_version: Optional[int] = None
    ) -> Outcome[CommandReceipt[AppointmentRecord]]:
        return self.appointments.update_appointment(appointment_id, changes, expected_version)

    def change_appointment_status(
        self,
        appointment_id: str,
        status: AppointmentStatus,
        trip_id: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> CommandReceipt[AppointmentRecord]:
        return self.appointments.change_status(appointment_id, status, trip_id, expected_version)

    def propose_date_change(
        self, appointment_id: str, new_date: dt.date
    ) -> Outcome[CommandReceipt[AppointmentRecord]]:
        return self.appointments.propose_date_change(appointment_id, new_date)

    def delete_appointment(self, appointment_id: str) -> CommandReceipt[AppointmentRecord]:
        return self.appointments.delete_appointment(appointment_id)

    # Patients --------------------------------------------------------------

    def list_patients(
        self,
        search: Optional[str] = None,
        is_tfd: Optional[bool] = None,
        status: Optional[PatientStatus] = None,
    ) -> list[Any]:
        return self.registry.list_patients(search, is_tfd, status)

    # Trips -----------------------------------------------------------------

    def list_trips(
        self,
        search: Optional[str] = None,
        date: Optional[dt.date] = None,
        status: Optional[TripStatus] = None,
    ) -> list[TripRecord]:
        return self.trips.list_trips(search, date, status)

    def create_trip(
        self, details: TripDetails, entries: list[ManifestEntry]
    ) -> CommandReceipt[TripRecord]:
        return self.trips.create_trip(details, entries)

    def update_trip(
        self,
        trip_id: str,
        details: TripDetails,
        entries: list[ManifestEntry],
        expected_version: Optional[int] = None,
    ) -> CommandReceipt[TripRecord]:
        return self.trips.update_trip(trip_id, details, entries, expected_version)

    def update_trip_status(
        self, trip_id: str, status: TripStatus, expected_version: Optional[int] = None
    ) -> CommandReceipt[TripRecord]:
        return self.trips.update_trip_status(trip_id, status, expected_version)

    def mark_passenger(
        self, trip_id: str, passenger_id: str, status: PassengerStatus
    ) -> CommandReceipt[PassengerRecord]:
        return self.trips.mark_passenger(trip_id, passenger_id, status)

    def delete_trip(self, trip_id: str) -> CommandReceipt[TripRecord]:
        receipt = self.trips.delete_trip(trip_id)
        # Drafts editing a deleted trip cannot be saved any more
        for draft_id in [d_id for d_id, (d, _) in self._drafts.items() if d.trip_id == trip_id]:
            del self._drafts[draft_id]
        return receipt

    # Manifest drafts -------------------------------------------------------

    def _is_idle(self, last_used: float, now: float) -> bool:
        return now - last_used > self._draft_config.ttl_minutes * 60

    def _keep_draft(self, draft: ManifestDraft) -> None:
        now = self._clock()
        evicted = [
            draft_id
            for draft_id, (_, last_used) in self._drafts.items()
            if self._is_idle(last_used, now)
        ]
        for draft_id in evicted:
            del self._drafts[draft_id]
        while len(self._drafts) >= self._draft_config.max_open:
            draft_id, _ = self._drafts.popitem(last=False)
            evicted.append(draft_id)
        if evicted:
            logger.info("Manifest drafts evicted", count=len(evicted), open=len(self._drafts))
        self._drafts[draft.id] = (draft, now)

    def start_draft(self, data: DraftStart) -> ManifestDraft:
        draft = self.builder.start_draft(
            data.date, data.vehicle_id, origin=data.origin, destination=data.destination
        )
        self._keep_draft(draft)
        logger.info("Manifest draft started", draft_id=draft.id, date=data.date.isoformat())
        return draft

    def open_draft(self, trip_id: str) -> ManifestDraft:
        draft = self.builder.open_draft(trip_id)
        self._keep_draft(draft)
        logger.info("Manifest draft opened", draft_id=draft.id, trip_id=trip_id)
        return draft

    def get_draft(self, draft_id: str) -> ManifestDraft:
        kept = self._drafts.get(draft_id)
        now = self._clock()
        if kept is None or self._is_idle(kept[1], now):
            self._drafts.pop(draft_id, None)
            raise NotFoundError("Manifest draft", draft_id)
        draft = kept[0]
        self._drafts[draft_id] = (draft, now)
        self._drafts.move_to_end(draft_id)
        return draft

    def discard_draft(self, draft_id: str) -> ManifestDraft:
        draft = self.get_draft(draft_id)
        del self._drafts[draft_id]
        return draft

    def assign_vehicle(self, draft_id: str, vehicle_id: str) -> CapacityCheck:
        return self.builder.assign_vehicle(self.get_draft(draft_id), vehicle_id)

    def suggestions(self, draft_id: str) -> list[SuggestionView]:
        return [
            SuggestionView(
                appointment=s.appointment,
                patient_id=s.patient.id,
                patient_name=s.patient.name,
                leg_mode=s.leg_mode,
                use_companion=s.use_companion,
                use_second_companion=s.use_second_companion,
                seats=s.seats,
            )
            for s in self.builder.suggestions(self.get_draft(draft_id))
        ]

    def add_suggestion(
        self, draft_id: str, appointment_id: str, options: Optional[SuggestionOptions] = None
    ) -> Outcome[ManifestEntry]:
        return self.builder.add_suggestion(self.get_draft(draft_id), appointment_id, options)

    def add_manual(
        self, draft_id: str, patient_id: str, config: Optional[ManualPassengerConfig] = None
    ) -> Outcome[ManifestEntry]:
        return self.builder.add_manual(self.get_draft(draft_id), patient_id, config)

    def update_entry(
        self,
        draft_id: str,
        patient_id: str,
        origin: Optional[str] = None,
        appointment_time: Optional[str] = None,
    ) -> ManifestEntry:
        return self.builder.update_entry(
            self.get_draft(draft_id), patient_id, origin, appointment_time
        )

    def remove_entry(self, draft_id: str, patient_id: str) -> ManifestEntry:
        return self.builder.remove_entry(self.get_draft(draft_id), patient_id)

    def remove_companion(self, draft_id: str, patient_id: str, slot: int) -> ManifestEntry:
        return self.builder.remove_companion(self.get_draft(draft_id), patient_id, slot)

    def save_draft(
        self, draft_id: str, details: TripDetails, expected_version: Optional[int] = None
    ) -> CommandReceipt[TripRecord]:
        """Create or update the draft's trip; the draft is closed on success."""
        draft = self.get_draft(draft_id)
        entries = list(draft.entries)
        if draft.trip_id is None:
            receipt = self.trips.create_trip(details, entries)
        else:
            receipt = self.trips.update_trip(draft.trip_id, details, entries, expected_version)
        del self._drafts[draft_id]
        return receipt

    @staticmethod
    def draft_view(draft: ManifestDraft) -> ManifestDraftView:
        return ManifestDraftView(
            id=draft.id,
            date=draft.date,
            origin=draft.origin,
            destination=draft.destination,
            vehicle_id=draft.vehicle_id,
            capacity=draft.capacity,
            trip_id=draft.trip_id,
            occupancy=draft.occupancy,
            entries=list(draft.entries),
        )


__all__ = ["TransportService"]
