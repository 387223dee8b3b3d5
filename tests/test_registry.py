import pytest

from app.db.models import TripStatus
from app.db.schemas import (
    DestinationBase,
    PatientUpdate,
    SupportHouseBase,
    SupportHouseUpdate,
    TreatmentTypeBase,
    VehicleBase,
    VehicleUpdate,
)
from app.domain import EntityKind, NotFoundError, ReferentialIntegrityError, ValidationError
from tests.conftest import TRIP_DAY, World


def test_patient_with_appointments_cannot_be_deleted(world: World):
    patient = world.patient()
    world.appointment(patient)

    with pytest.raises(ReferentialIntegrityError) as exc:
        world.service.registry.delete_patient(patient.id)
    assert exc.value.details["referenced_by"] == "appointments"


def test_unreferenced_patient_is_deleted(world: World):
    patient = world.patient()

    world.service.registry.delete_patient(patient.id)

    with pytest.raises(NotFoundError):
        world.service.store.require(EntityKind.PATIENT, patient.id)


def test_destination_used_as_treatment_default_is_guarded(world: World):
    with pytest.raises(ReferentialIntegrityError):
        world.service.registry.delete(EntityKind.DESTINATION, world.destination.id)


def test_cancelled_trips_keep_vehicle_and_driver_referenced(world: World):
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(world.details(), [World.entry(walker)]).value
    world.service.update_trip_status(trip.id, TripStatus.CANCELLED)

    for kind, entity_id in (
        (EntityKind.VEHICLE, world.vehicle.id),
        (EntityKind.DRIVER, world.driver.id),
    ):
        with pytest.raises(ReferentialIntegrityError) as exc:
            world.service.registry.delete(kind, entity_id)
        assert exc.value.details["referenced_by"] == "trips"
    assert world.service.store.vehicle(world.vehicle.id) is not None

    world.service.delete_trip(trip.id)
    world.service.registry.delete(EntityKind.VEHICLE, world.vehicle.id)
    world.service.registry.delete(EntityKind.DRIVER, world.driver.id)
    assert world.service.store.vehicle(world.vehicle.id) is None
    assert world.service.store.driver(world.driver.id) is None


def test_plates_are_unique_ignoring_case(world: World):
    with pytest.raises(ValidationError):
        world.make(EntityKind.VEHICLE, VehicleBase(model="Van", plate="abc1234", capacity=8))

    other = world.vehicle_with(capacity=8, plate="XYZ0001")
    with pytest.raises(ValidationError):
        world.service.registry.update(EntityKind.VEHICLE, other.id, VehicleUpdate(plate="ABC1234"))


def test_treatment_default_destination_must_exist(world: World):
    with pytest.raises(ValidationError):
        world.make(
            EntityKind.TREATMENT_TYPE,
            TreatmentTypeBase(name="Cardiology", default_destination_id="missing"),
        )


def test_update_keeps_unset_fields(world: World):
    patient = world.patient("Maria Silva", cpf="123.456.789-00")

    updated = world.service.registry.update_patient(patient.id, PatientUpdate(phone="555-0101")).value

    assert updated.phone == "555-0101"
    assert updated.cpf == "123.456.789-00"
    assert updated.name == "Maria Silva"


def test_records_are_listed_by_name(world: World):
    world.make(EntityKind.DESTINATION, DestinationBase(name="Albert Clinic"))

    names = [d.name for d in world.service.registry.list_records(EntityKind.DESTINATION)]

    assert names == ["Albert Clinic", "Hospital A"]


def test_patient_search_matches_name_or_cpf(world: World):
    maria = world.patient("Maria Silva", cpf="111.222.333-44")
    walker = world.patient("Walker", is_tfd=False)

    assert world.service.list_patients(search="silva") == [maria]
    assert world.service.list_patients(search="222.333") == [maria]
    assert world.service.list_patients(is_tfd=False) == [walker]


def test_appointment_search_filters(world: World):
    maria = world.patient("Maria Silva")
    outbound = world.appointment(maria)
    joana = world.patient("Joana")
    back = world.appointment(joana, is_return=True)

    service = world.service
    assert service.search_appointments(patient_name="silva") == [outbound]
    assert service.search_appointments(return_only=True) == [back]
    assert len(service.search_appointments(date=TRIP_DAY, location="hospital")) == 2
    assert service.search_appointments(location="elsewhere") == []


def test_support_houses_have_plain_crud(world: World):
    registry = world.service.registry
    house = registry.create(
        EntityKind.SUPPORT_HOUSE, SupportHouseBase(name="Casa de Apoio", daily_cost=45.5)
    ).value

    updated = registry.update(
        EntityKind.SUPPORT_HOUSE, house.id, SupportHouseUpdate(capacity=12)
    ).value
    assert (updated.capacity, updated.daily_cost) == (12, 45.5)

    registry.delete(EntityKind.SUPPORT_HOUSE, house.id)
    assert registry.list_records(EntityKind.SUPPORT_HOUSE) == []
