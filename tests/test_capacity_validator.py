import pytest

from app.db.schemas import PassengerRecord
from app.domain import CapacityExceededError, CapacityValidator
from tests.conftest import World


def _row(row_id: str, patient_id: str, slot=None) -> PassengerRecord:
    return PassengerRecord(
        id=row_id,
        trip_id="t1",
        patient_id=patient_id,
        patient_name=patient_id,
        is_companion=slot is not None,
        related_patient_id=patient_id if slot is not None else None,
        companion_slot=slot,
    )


def test_occupancy_counts_patients_and_both_companion_slots():
    rows = [
        _row("r1", "p1"),
        _row("r2", "p1", slot=1),
        _row("r3", "p1", slot=2),
        _row("r4", "p2"),
    ]
    assert CapacityValidator.compute_occupancy(rows) == 4


def test_orphan_companion_row_takes_no_seat():
    rows = [_row("r1", "p1"), _row("r2", "p9", slot=1)]
    assert CapacityValidator.compute_occupancy(rows) == 1


def test_seats_for_entry(world: World):
    patient = world.patient("Ana", is_tfd=False)
    assert CapacityValidator.seats_for(World.entry(patient, companions=2)) == 3
    assert CapacityValidator.seats_for(World.entry(patient)) == 1


def test_validate_reports_overflow_as_warning():
    check = CapacityValidator.validate(capacity=4, current=3, incoming=3)
    assert not check.ok
    assert check.projected == 6
    assert check.overflow == 2
    warning = check.as_warning()
    assert warning is not None
    assert warning.to_payload()["code"] == "CAPACITY_WARNING"


def test_validate_at_exact_capacity_is_ok():
    check = CapacityValidator.validate(capacity=4, current=2, incoming=2)
    assert check.ok
    assert check.as_warning() is None


def test_enforce_raises_hard_error():
    CapacityValidator.enforce(4, 4)
    with pytest.raises(CapacityExceededError) as exc:
        CapacityValidator.enforce(5, 4)
    assert exc.value.status_code == 422
    assert exc.value.details["capacity"] == 4
