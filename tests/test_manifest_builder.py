import pytest

from app.db.models import AppointmentStatus, LegMode, VehicleStatus
from app.db.schemas import DraftStart, ManualPassengerConfig, SuggestionOptions, VehicleBase
from app.domain import (
    CapacityExceededError,
    DuplicateInManifestError,
    EntityKind,
    ManualAddNotAllowedError,
    NotFoundError,
    ValidationError,
)
from app.services.v1 import TransportService
from common.config import DraftConfig
from tests.conftest import TRIP_DAY, World


@pytest.fixture()
def draft(world: World):
    return world.service.start_draft(
        DraftStart(date=TRIP_DAY, vehicle_id=world.vehicle.id, destination="Capital")
    )


def _fill(world: World, draft, count: int) -> None:
    for i in range(count):
        walker = world.patient(f"Walker {i}", is_tfd=False)
        outcome = world.service.add_manual(draft.id, walker.id)
        assert not outcome.requires_confirmation


def test_suggestion_fits_exactly_at_capacity(world: World, draft):
    _fill(world, draft, 3)
    appointment = world.appointment(world.patient("Paula"))

    outcome = world.service.add_suggestion(draft.id, appointment.id)

    assert not outcome.requires_confirmation
    assert draft.occupancy == 4 == draft.capacity


def test_overflow_is_a_confirmable_warning(world: World, draft):
    _fill(world, draft, 4)
    appointment = world.appointment(world.patient("Paula"))

    outcome = world.service.add_suggestion(draft.id, appointment.id)

    assert outcome.requires_confirmation
    assert [w.code for w in outcome.warnings] == ["CAPACITY_WARNING"]
    assert draft.occupancy == 4

    entry = outcome.proceed_anyway()
    assert entry.appointment_id == appointment.id
    assert draft.occupancy == 5


def test_overbooked_draft_cannot_be_saved(world: World, draft):
    _fill(world, draft, 4)
    extra = world.patient("Extra", is_tfd=False)
    world.service.add_manual(draft.id, extra.id).proceed_anyway()

    with pytest.raises(CapacityExceededError):
        world.service.save_draft(draft.id, world.details())

    assert world.service.store.trips() == []
    assert world.service.get_draft(draft.id) is draft


def test_non_tfd_patient_is_added_by_hand_not_suggested(world: World, draft):
    walker = world.patient("Walker", is_tfd=False)
    booked = world.appointment(world.patient("Booked"))

    suggested = [s.appointment.id for s in world.service.suggestions(draft.id)]
    assert suggested == [booked.id]

    config = ManualPassengerConfig(
        leg_mode=LegMode.ONE_WAY, origin="Bus station", has_companion=True, companion_name="Rui"
    )
    entry = world.service.add_manual(draft.id, walker.id, config).value

    assert entry.is_manual
    assert entry.origin == "Bus station"
    assert entry.destination == "Capital"
    assert entry.seats == 2


def test_tfd_patient_cannot_be_added_by_hand(world: World, draft):
    patient = world.patient("Tereza", is_tfd=True)

    with pytest.raises(ManualAddNotAllowedError):
        world.service.add_manual(draft.id, patient.id)


def test_suggestion_follows_companion_entitlements(world: World, draft):
    patient = world.patient(
        "Carla",
        allows_companion=True,
        companion_name="Jose",
        allows_second_companion=True,
        second_companion_name="Lia",
    )
    appointment = world.appointment(patient, is_return=True)

    [suggestion] = world.service.suggestions(draft.id)
    assert suggestion.seats == 3
    assert suggestion.leg_mode == LegMode.RETURN

    entry = world.service.add_suggestion(
        draft.id, appointment.id, SuggestionOptions(use_second_companion=False)
    ).value
    assert entry.has_companion and entry.companion_name == "Jose"
    assert not entry.has_second_companion
    assert entry.origin == patient.address
    assert entry.destination == "Hospital A"


def test_same_patient_cannot_be_added_twice(world: World, draft):
    patient = world.patient()
    appointment = world.appointment(patient)
    world.service.add_suggestion(draft.id, appointment.id)

    with pytest.raises(DuplicateInManifestError):
        world.service.add_suggestion(draft.id, appointment.id)
    assert world.service.suggestions(draft.id) == []


def test_patient_on_another_trip_needs_confirmation(world: World, draft):
    walker = world.patient("Walker", is_tfd=False)
    world.service.create_trip(world.details(), [World.entry(walker)])

    outcome = world.service.add_manual(draft.id, walker.id)

    assert outcome.requires_confirmation
    assert outcome.warning_payloads()[0]["code"] == "CONFLICT_WARNING"
    assert draft.entries == []


def test_edit_and_remove_entries(world: World, draft):
    walker = world.patient("Walker", is_tfd=False)
    config = ManualPassengerConfig(has_companion=True, companion_name="Rui")
    world.service.add_manual(draft.id, walker.id, config)

    edited = world.service.update_entry(draft.id, walker.id, origin="Square", appointment_time="07:00")
    assert edited.origin == "Square"
    assert edited.patient_name == "Walker"

    trimmed = world.service.remove_companion(draft.id, walker.id, 1)
    assert trimmed.seats == 1
    assert draft.occupancy == 1

    world.service.remove_entry(draft.id, walker.id)
    assert draft.entries == []
    with pytest.raises(NotFoundError):
        world.service.remove_entry(draft.id, walker.id)


def test_save_links_appointments_and_closes_draft(world: World, draft):
    patient = world.patient()
    appointment = world.appointment(patient)
    world.service.add_suggestion(draft.id, appointment.id)

    trip = world.service.save_draft(draft.id, world.details()).value

    linked = world.service.store.appointment(appointment.id)
    assert linked.status == AppointmentStatus.SCHEDULED_TRIP
    assert linked.trip_id == trip.id
    assert trip.occupied_seats == 1
    with pytest.raises(NotFoundError):
        world.service.get_draft(draft.id)


def test_reopened_trip_round_trips_its_entries(world: World, draft):
    patient = world.patient("Carla", allows_companion=True, companion_name="Jose")
    appointment = world.appointment(patient)
    world.service.add_suggestion(draft.id, appointment.id)
    trip = world.service.save_draft(draft.id, world.details()).value

    reopened = world.service.open_draft(trip.id)

    [entry] = reopened.entries
    assert entry.appointment_id == appointment.id
    assert entry.companion_name == "Jose"
    assert reopened.trip_id == trip.id
    # Its own appointment is already on the manifest
    assert world.service.suggestions(reopened.id) == []

    world.service.remove_entry(reopened.id, patient.id)
    walker = world.patient("Walker", is_tfd=False)
    world.service.add_manual(reopened.id, walker.id)
    updated = world.service.save_draft(reopened.id, world.details(), expected_version=1).value

    assert updated.version == 2
    assert world.service.store.appointment(appointment.id).status == AppointmentStatus.PENDING


def test_smaller_vehicle_reports_the_overflow(world: World, draft):
    _fill(world, draft, 3)
    car = world.vehicle_with(2, "CAR0002")

    check = world.service.assign_vehicle(draft.id, car.id)

    assert (check.ok, check.projected, check.overflow) == (False, 3, 1)
    assert draft.capacity == 2


def test_vehicle_in_maintenance_cannot_be_assigned(world: World, draft):
    van = world.make(
        EntityKind.VEHICLE,
        VehicleBase(model="Van", plate="VAN0001", capacity=8, status=VehicleStatus.MAINTENANCE),
    )

    with pytest.raises(ValidationError):
        world.service.assign_vehicle(draft.id, van.id)
    assert draft.vehicle_id == world.vehicle.id


def test_idle_draft_expires(store):
    now = [0.0]
    service = TransportService(store, DraftConfig(ttl_minutes=10), clock=lambda: now[0])
    draft = service.start_draft(DraftStart(date=TRIP_DAY))

    now[0] = 9 * 60
    assert service.get_draft(draft.id) is draft

    now[0] += 11 * 60
    with pytest.raises(NotFoundError):
        service.get_draft(draft.id)


def test_least_recently_used_draft_makes_room(store):
    service = TransportService(store, DraftConfig(max_open=2), clock=lambda: 0.0)
    first = service.start_draft(DraftStart(date=TRIP_DAY))
    second = service.start_draft(DraftStart(date=TRIP_DAY))
    service.get_draft(first.id)

    third = service.start_draft(DraftStart(date=TRIP_DAY))

    assert service.get_draft(first.id) is first
    assert service.get_draft(third.id) is third
    with pytest.raises(NotFoundError):
        service.get_draft(second.id)
