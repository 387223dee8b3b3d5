from app.db.models import TripStatus
from tests.conftest import TRIP_DAY, World


def _trip_with(world: World, patient):
    return world.service.create_trip(world.details(), [World.entry(patient)]).value


def test_patient_on_trip_is_traveling(world: World):
    patient = world.patient("Ana", is_tfd=False)
    trip = _trip_with(world, patient)

    check = world.service.detector.is_patient_traveling_on_date(patient.id, TRIP_DAY)

    assert check.is_traveling
    assert check.trip.id == trip.id


def test_own_trip_is_excluded(world: World):
    patient = world.patient("Ana", is_tfd=False)
    trip = _trip_with(world, patient)

    check = world.service.detector.is_patient_traveling_on_date(
        patient.id, TRIP_DAY, exclude_trip_id=trip.id
    )

    assert not check.is_traveling
    assert world.service.detector.warning_for(patient.id, TRIP_DAY, trip.id) is None


def test_cancelled_trip_and_other_dates_do_not_conflict(world: World):
    patient = world.patient("Ana", is_tfd=False)
    trip = _trip_with(world, patient)
    detector = world.service.detector

    other_day = TRIP_DAY.replace(day=TRIP_DAY.day + 1)
    assert not detector.is_patient_traveling_on_date(patient.id, other_day).is_traveling

    world.service.update_trip_status(trip.id, TripStatus.CANCELLED)
    assert not detector.is_patient_traveling_on_date(patient.id, TRIP_DAY).is_traveling


def test_warning_payload_names_the_trip(world: World):
    patient = world.patient("Ana", is_tfd=False)
    trip = _trip_with(world, patient)

    warning = world.service.detector.warning_for(patient.id, TRIP_DAY)

    payload = warning.to_payload()
    assert payload["code"] == "CONFLICT_WARNING"
    assert payload["trip_id"] == trip.id
    assert payload["date"] == TRIP_DAY.isoformat()
