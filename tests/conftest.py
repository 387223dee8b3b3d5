import datetime as dt
import logging

import pytest

from common.config import configure_structlog

# Loggers resolve lazily; configure once before any test module logs
configure_structlog(logging.WARNING)

from app.db.models import LegMode  # noqa: E402
from app.db.schemas import (  # noqa: E402
    AppointmentCreate,
    DestinationBase,
    DriverBase,
    ManifestEntry,
    PatientCreate,
    TreatmentTypeBase,
    TripDetails,
    VehicleBase,
)
from app.domain import EntityKind, EntityStore  # noqa: E402
from app.services.v1 import TransportService  # noqa: E402

TODAY = dt.date(2030, 5, 10)
TRIP_DAY = dt.date(2030, 5, 20)


@pytest.fixture()
def store() -> EntityStore:
    return EntityStore(clock=lambda: TODAY)


@pytest.fixture()
def service(store: EntityStore) -> TransportService:
    return TransportService(store)


class World:
    """Builds registry records and appointments through the service."""

    def __init__(self, service: TransportService):
        self.service = service
        self.destination = self.make(EntityKind.DESTINATION, DestinationBase(name="Hospital A"))
        self.treatment = self.make(
            EntityKind.TREATMENT_TYPE,
            TreatmentTypeBase(name="Oncology", default_destination_id=self.destination.id),
        )
        self.vehicle = self.make(
            EntityKind.VEHICLE, VehicleBase(model="Sprinter", plate="ABC1234", capacity=4)
        )
        self.driver = self.make(EntityKind.DRIVER, DriverBase(name="Joao Motorista"))

    def make(self, kind: EntityKind, data):
        return self.service.registry.create(kind, data).value

    def vehicle_with(self, capacity: int, plate: str):
        return self.make(
            EntityKind.VEHICLE, VehicleBase(model="Van", plate=plate, capacity=capacity)
        )

    def patient(self, name: str = "Maria Silva", **fields):
        fields.setdefault("address", f"Rua {name}, 1")
        return self.service.registry.create_patient(PatientCreate(name=name, **fields)).value

    def appointment(self, patient, date: dt.date = TRIP_DAY, **fields):
        fields.setdefault("treatment_id", self.treatment.id)
        data = AppointmentCreate(patient_id=patient.id, date=date, time="08:00", **fields)
        return self.service.create_appointment(data).value

    def details(self, date: dt.date = TRIP_DAY, vehicle=None, **fields) -> TripDetails:
        return TripDetails(
            date=date,
            time="05:00",
            origin="Home Town",
            destination="Capital",
            vehicle_id=(vehicle or self.vehicle).id,
            driver_id=self.driver.id,
            **fields,
        )

    @staticmethod
    def entry(patient, appointment=None, companions: int = 0, **fields) -> ManifestEntry:
        return ManifestEntry(
            patient_id=patient.id,
            patient_name=patient.name,
            appointment_id=appointment.id if appointment else None,
            leg_mode=fields.pop("leg_mode", LegMode.ROUND_TRIP),
            has_companion=companions >= 1,
            companion_name="Companion" if companions >= 1 else "",
            has_second_companion=companions >= 2,
            second_companion_name="Second" if companions >= 2 else "",
            **fields,
        )


@pytest.fixture()
def world(service: TransportService) -> World:
    return World(service)
