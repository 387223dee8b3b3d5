import datetime as dt

import pytest

from app.db.models import AppointmentStatus, TripStatus
from app.db.schemas import AppointmentCreate, AppointmentUpdate, DestinationBase
from app.domain import (
    DuplicateAppointmentError,
    EntityKind,
    IllegalTransitionError,
    LinkageError,
    RetroactiveDateError,
    StaleEntityError,
    ValidationError,
)
from tests.conftest import TODAY, TRIP_DAY, World


def _trip(world: World, date: dt.date = TRIP_DAY):
    rider = world.patient("Rider", is_tfd=False)
    return world.service.create_trip(world.details(date=date), [World.entry(rider)]).value


def test_create_resolves_treatment_default_destination(world: World):
    appointment = world.appointment(world.patient())

    assert appointment.status == AppointmentStatus.PENDING
    assert appointment.treatment_name == "Oncology"
    assert appointment.destination_id == world.destination.id
    assert appointment.location_name == "Hospital A"
    assert appointment.version == 1


def test_create_requires_patient_and_date(service):
    with pytest.raises(ValidationError):
        service.create_appointment(AppointmentCreate(date=TRIP_DAY))
    with pytest.raises(ValidationError):
        service.create_appointment(AppointmentCreate(patient_id="p1"))


def test_create_requires_treatment_or_destination(world: World):
    patient = world.patient()
    with pytest.raises(ValidationError):
        world.service.create_appointment(AppointmentCreate(patient_id=patient.id, date=TRIP_DAY))


def test_create_cannot_start_linked(world: World):
    patient = world.patient()
    with pytest.raises(LinkageError):
        world.appointment(patient, status=AppointmentStatus.SCHEDULED_TRIP)


def test_same_patient_date_and_treatment_is_duplicate(world: World):
    patient = world.patient()
    world.appointment(patient)

    with pytest.raises(DuplicateAppointmentError):
        world.appointment(patient)


def test_cancelled_appointment_does_not_block_rebooking(world: World):
    patient = world.patient()
    first = world.appointment(patient)
    world.service.change_appointment_status(first.id, AppointmentStatus.CANCELLED)

    second = world.appointment(patient)

    assert second.id != first.id


def test_other_destination_same_day_is_not_duplicate(world: World):
    patient = world.patient()
    world.appointment(patient)
    clinic = world.make(EntityKind.DESTINATION, DestinationBase(name="Clinic B"))

    other = world.appointment(patient, treatment_id=None, destination_id=clinic.id)

    assert other.destination_name == "Clinic B"


def test_active_appointment_cannot_be_in_the_past(world: World):
    patient = world.patient()
    yesterday = TODAY - dt.timedelta(days=1)

    with pytest.raises(RetroactiveDateError):
        world.appointment(patient, date=yesterday)

    past = world.appointment(patient, date=yesterday, status=AppointmentStatus.COMPLETED)
    assert past.status == AppointmentStatus.COMPLETED


def test_illegal_transition_is_rejected(world: World):
    appointment = world.appointment(world.patient())
    world.service.change_appointment_status(appointment.id, AppointmentStatus.CANCELLED)

    with pytest.raises(IllegalTransitionError):
        world.service.change_appointment_status(appointment.id, AppointmentStatus.MISSED)

    reopened = world.service.change_appointment_status(
        appointment.id, AppointmentStatus.PENDING
    ).value
    assert reopened.status == AppointmentStatus.PENDING


def test_scheduling_on_trip_adds_patient_and_companion_rows(world: World):
    patient = world.patient("Carla", allows_companion=True, companion_name="Jose")
    appointment = world.appointment(patient)
    trip = _trip(world)

    linked = world.service.change_appointment_status(
        appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=trip.id
    ).value

    assert linked.trip_id == trip.id
    updated = world.service.store.trip(trip.id)
    rows = updated.rows_for_patient(patient.id)
    assert len(rows) == 2
    companion = next(r for r in rows if r.is_companion)
    assert companion.patient_name == "Jose"
    assert companion.related_patient_id == patient.id
    assert companion.companion_slot == 1
    assert updated.occupied_seats == 3


@pytest.mark.parametrize("resolution", [AppointmentStatus.CANCELLED, AppointmentStatus.MISSED])
def test_resolving_a_linked_appointment_frees_its_seats(world: World, resolution):
    patient = world.patient("Carla", allows_companion=True, companion_name="Jose")
    appointment = world.appointment(patient)
    trip = _trip(world)
    world.service.change_appointment_status(
        appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=trip.id
    )
    assert world.service.store.trip(trip.id).occupied_seats == 3

    resolved = world.service.change_appointment_status(appointment.id, resolution).value

    assert resolved.status == resolution
    assert resolved.trip_id is None
    after = world.service.store.trip(trip.id)
    assert after.rows_for_patient(patient.id) == []
    assert after.occupied_seats == 1
    assert not any(p.appointment_id == appointment.id for p in after.passengers)


def test_scheduling_needs_a_trip_on_the_same_date(world: World):
    appointment = world.appointment(world.patient())
    other_day = _trip(world, date=TRIP_DAY + dt.timedelta(days=1))

    with pytest.raises(LinkageError):
        world.service.change_appointment_status(appointment.id, AppointmentStatus.SCHEDULED_TRIP)
    with pytest.raises(LinkageError):
        world.service.change_appointment_status(
            appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=other_day.id
        )


def test_date_change_on_linked_appointment_needs_confirmation(world: World):
    patient = world.patient()
    appointment = world.appointment(patient)
    trip = _trip(world)
    world.service.change_appointment_status(
        appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=trip.id
    )
    seats_before = world.service.store.trip(trip.id).occupied_seats
    new_date = TRIP_DAY + dt.timedelta(days=2)

    outcome = world.service.propose_date_change(appointment.id, new_date)

    assert outcome.requires_confirmation
    assert [w.code for w in outcome.warnings] == ["REQUIRES_DETACH_CONFIRMATION"]
    # Nothing changes until the caller confirms
    assert world.service.store.appointment(appointment.id).trip_id == trip.id

    moved = outcome.proceed_anyway().value
    assert moved.date == new_date
    assert moved.status == AppointmentStatus.PENDING
    assert moved.trip_id is None
    after = world.service.store.trip(trip.id)
    assert after.rows_for_patient(patient.id) == []
    assert after.occupied_seats == seats_before - 1


def test_unlinked_edit_applies_immediately(world: World):
    appointment = world.appointment(world.patient())

    outcome = world.service.update_appointment(
        appointment.id, AppointmentUpdate(time="10:30", notes="fasting")
    )

    assert not outcome.requires_confirmation
    updated = outcome.value.value
    assert updated.time == "10:30"
    assert updated.version == 2


def test_stale_version_is_rejected(world: World):
    appointment = world.appointment(world.patient())
    world.service.update_appointment(appointment.id, AppointmentUpdate(notes="first"))

    with pytest.raises(StaleEntityError):
        world.service.update_appointment(
            appointment.id, AppointmentUpdate(notes="second"), expected_version=1
        )


def test_completion_waits_for_the_trip(world: World):
    patient = world.patient()
    appointment = world.appointment(patient)
    trip = _trip(world)
    world.service.change_appointment_status(
        appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=trip.id
    )

    with pytest.raises(LinkageError):
        world.service.change_appointment_status(appointment.id, AppointmentStatus.COMPLETED)

    world.service.update_trip_status(trip.id, TripStatus.COMPLETED)
    done = world.service.change_appointment_status(
        appointment.id, AppointmentStatus.COMPLETED
    ).value

    assert done.trip_id is None
    # Travel history stays on the trip
    assert world.service.store.trip(trip.id).rows_for_patient(patient.id)


def test_delete_detaches_from_trip(world: World):
    patient = world.patient()
    appointment = world.appointment(patient)
    trip = _trip(world)
    world.service.change_appointment_status(
        appointment.id, AppointmentStatus.SCHEDULED_TRIP, trip_id=trip.id
    )

    world.service.delete_appointment(appointment.id)

    assert world.service.store.appointment(appointment.id) is None
    assert world.service.store.trip(trip.id).rows_for_patient(patient.id) == []


def test_committed_date_change_cannot_move_into_the_past(world: World):
    appointment = world.appointment(world.patient())

    with pytest.raises(RetroactiveDateError):
        world.service.appointments.commit_date_change(
            appointment.id, TODAY - dt.timedelta(days=1)
        )
    assert world.service.store.appointment(appointment.id).date == TRIP_DAY

    later = TRIP_DAY + dt.timedelta(days=7)
    moved = world.service.appointments.commit_date_change(appointment.id, later).value
    assert (moved.date, moved.status) == (later, AppointmentStatus.PENDING)
