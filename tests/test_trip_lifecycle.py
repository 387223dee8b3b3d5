import datetime as dt

import pytest

from app.db.models import AppointmentStatus, PassengerStatus, TripStatus
from app.domain import (
    CapacityExceededError,
    IllegalTransitionError,
    LinkageError,
    ManualAddNotAllowedError,
    RetroactiveDateError,
    StaleEntityError,
    ValidationError,
)
from tests.conftest import TODAY, TRIP_DAY, World


def _booked(world: World, name: str = "Maria"):
    patient = world.patient(name)
    return patient, world.appointment(patient)


def test_create_links_appointments(world: World):
    patient, appointment = _booked(world)

    trip = world.service.create_trip(
        world.details(), [World.entry(patient, appointment, companions=1)]
    ).value

    assert trip.vehicle_plate == "ABC1234"
    assert trip.driver_name == "Joao Motorista"
    assert trip.total_seats == 4
    assert trip.occupied_seats == 2
    linked = world.service.store.appointment(appointment.id)
    assert linked.status == AppointmentStatus.SCHEDULED_TRIP
    assert linked.trip_id == trip.id


def test_trip_needs_passengers(world: World):
    with pytest.raises(ValidationError):
        world.service.create_trip(world.details(), [])


def test_capacity_is_hard_on_save(world: World):
    small = world.vehicle_with(capacity=2, plate="SML0001")
    walker = world.patient("Walker", is_tfd=False)

    with pytest.raises(CapacityExceededError):
        world.service.create_trip(
            world.details(vehicle=small), [World.entry(walker, companions=2)]
        )
    assert world.service.store.trips() == []


def test_tfd_patient_needs_an_appointment(world: World):
    patient = world.patient("Tereza", is_tfd=True)

    with pytest.raises(ManualAddNotAllowedError):
        world.service.create_trip(world.details(), [World.entry(patient)])


def test_appointment_on_another_date_is_rejected(world: World):
    patient = world.patient()
    appointment = world.appointment(patient, date=TRIP_DAY + dt.timedelta(days=1))

    with pytest.raises(LinkageError):
        world.service.create_trip(world.details(), [World.entry(patient, appointment)])


def test_trip_cannot_be_scheduled_in_the_past(world: World):
    walker = world.patient("Walker", is_tfd=False)

    with pytest.raises(RetroactiveDateError):
        world.service.create_trip(
            world.details(date=TODAY - dt.timedelta(days=1)), [World.entry(walker)]
        )


def test_update_reconciles_links_and_keeps_surviving_rows(world: World):
    first, first_appt = _booked(world, "First")
    second, second_appt = _booked(world, "Second")
    trip = world.service.create_trip(
        world.details(),
        [World.entry(first, first_appt), World.entry(second, second_appt)],
    ).value
    kept_row = trip.rows_for_patient(first.id)[0]
    world.service.mark_passenger(trip.id, kept_row.id, PassengerStatus.BOARDED)

    updated = world.service.update_trip(
        trip.id, world.details(notes="second dropped"), [World.entry(first, first_appt)]
    ).value

    assert updated.notes == "second dropped"
    [row] = updated.passengers
    assert row.id == kept_row.id
    assert row.status == PassengerStatus.BOARDED
    store = world.service.store
    assert store.appointment(first_appt.id).trip_id == trip.id
    dropped = store.appointment(second_appt.id)
    assert dropped.status == AppointmentStatus.PENDING
    assert dropped.trip_id is None


def test_update_links_new_appointments(world: World):
    first, first_appt = _booked(world, "First")
    second, second_appt = _booked(world, "Second")
    trip = world.service.create_trip(world.details(), [World.entry(first, first_appt)]).value

    updated = world.service.update_trip(
        trip.id,
        world.details(),
        [World.entry(first, first_appt), World.entry(second, second_appt, companions=1)],
    ).value

    assert updated.version == 2
    assert updated.occupied_seats == 3
    assert [p.patient_id for p in updated.passengers if not p.is_companion] == [
        first.id,
        second.id,
    ]
    added = world.service.store.appointment(second_appt.id)
    assert added.status == AppointmentStatus.SCHEDULED_TRIP
    assert added.trip_id == trip.id
    assert world.service.store.appointment(first_appt.id).trip_id == trip.id


def test_update_over_capacity_leaves_the_trip_untouched(world: World):
    first, first_appt = _booked(world, "First")
    second, second_appt = _booked(world, "Second")
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(
        world.details(), [World.entry(first, first_appt, companions=1)]
    ).value
    linked_before = world.service.store.appointment(first_appt.id)

    with pytest.raises(CapacityExceededError):
        world.service.update_trip(
            trip.id,
            world.details(notes="too many"),
            [
                World.entry(first, first_appt, companions=1),
                World.entry(second, second_appt),
                World.entry(walker, companions=2),
            ],
        )

    store = world.service.store
    unchanged = store.trip(trip.id)
    assert unchanged == trip
    assert (unchanged.version, unchanged.occupied_seats, unchanged.notes) == (1, 2, "")
    assert store.appointment(first_appt.id) == linked_before
    assert linked_before.trip_id == trip.id
    untouched = store.appointment(second_appt.id)
    assert untouched == second_appt
    assert untouched.trip_id is None


def test_update_with_stale_version_is_rejected(world: World):
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(world.details(), [World.entry(walker)]).value
    world.service.update_trip(trip.id, world.details(notes="v2"), [World.entry(walker)])

    with pytest.raises(StaleEntityError):
        world.service.update_trip(
            trip.id, world.details(notes="v3"), [World.entry(walker)], expected_version=1
        )


def test_delete_returns_appointments_to_pending(world: World):
    patient, appointment = _booked(world)
    trip = world.service.create_trip(world.details(), [World.entry(patient, appointment)]).value

    world.service.delete_trip(trip.id)

    assert world.service.store.trip(trip.id) is None
    reverted = world.service.store.appointment(appointment.id)
    assert reverted.status == AppointmentStatus.PENDING
    assert reverted.trip_id is None


def test_cancel_cascades_to_appointments(world: World):
    patient, appointment = _booked(world)
    trip = world.service.create_trip(world.details(), [World.entry(patient, appointment)]).value

    cancelled = world.service.update_trip_status(trip.id, TripStatus.CANCELLED).value

    assert cancelled.status == TripStatus.CANCELLED
    [row] = cancelled.passengers
    assert row.appointment_id is None
    assert world.service.store.appointment(appointment.id).status == AppointmentStatus.PENDING


def test_status_only_moves_forward(world: World):
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(world.details(), [World.entry(walker)]).value

    world.service.update_trip_status(trip.id, TripStatus.BOARDING)
    with pytest.raises(IllegalTransitionError):
        world.service.update_trip_status(trip.id, TripStatus.SCHEDULED)

    world.service.update_trip_status(trip.id, TripStatus.COMPLETED)
    with pytest.raises(IllegalTransitionError):
        world.service.update_trip_status(trip.id, TripStatus.CANCELLED)
    with pytest.raises(ValidationError):
        world.service.update_trip(trip.id, world.details(), [World.entry(walker)])


def test_list_filters_by_text_and_status(world: World):
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(world.details(), [World.entry(walker)]).value

    assert world.service.list_trips(search="capital") == [trip]
    assert world.service.list_trips(search="nowhere") == []
    assert world.service.list_trips(date=TRIP_DAY, status=TripStatus.SCHEDULED) == [trip]
    assert world.service.list_trips(status=TripStatus.CANCELLED) == []
