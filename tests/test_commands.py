import pytest

from app.db.schemas import AppointmentRecord, DestinationRecord
from app.domain import (
    ChangeSet,
    Command,
    Delete,
    EntityKind,
    EntityStore,
    NotFoundError,
    Upsert,
    resolved_future,
    revise,
)
from tests.conftest import TRIP_DAY


class RecordingSink:
    def __init__(self):
        self.jobs = []

    def submit(self, label, ops):
        self.jobs.append((label, ops))
        return resolved_future(len(ops))


def _destination(name: str = "Hospital A") -> DestinationRecord:
    return DestinationRecord(id=f"d-{name}", name=name)


def test_revise_bumps_version_only_when_asked():
    appointment = AppointmentRecord(id="a1", patient_id="p1", patient_name="P", date=TRIP_DAY)

    assert revise(appointment, notes="x").version == 2
    assert revise(appointment, bump=False, notes="x").version == 1
    assert revise(_destination(), name="Other").name == "Other"


def test_failing_command_leaves_store_untouched():
    store = EntityStore()
    kept = _destination("Kept")
    store.execute(Command(label="seed", apply=lambda c: c.put(EntityKind.DESTINATION, kept)))

    def apply(changes: ChangeSet):
        changes.put(EntityKind.DESTINATION, _destination("New"))
        changes.remove(EntityKind.DESTINATION, kept.id)
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        store.execute(Command(label="broken", apply=apply))

    assert store.all(EntityKind.DESTINATION) == [kept]


def test_validation_runs_before_apply():
    store = EntityStore()
    applied = []

    def reject():
        raise NotFoundError("Destination", "x")

    with pytest.raises(NotFoundError):
        store.execute(Command(label="rejected", apply=applied.append, validate=reject))
    assert applied == []


def test_ops_are_handed_to_persistence_in_order():
    sink = RecordingSink()
    store = EntityStore(sink)
    first = _destination("First")

    def apply(changes: ChangeSet):
        changes.put(EntityKind.DESTINATION, first)
        changes.remove(EntityKind.DESTINATION, first.id)
        return "ok"

    receipt = store.execute(Command(label="put-then-remove", apply=apply))

    assert receipt.value == "ok"
    assert receipt.wait_persisted(timeout=1) == 2
    [(label, ops)] = sink.jobs
    assert label == "put-then-remove"
    assert ops == [Upsert(EntityKind.DESTINATION, first), Delete(EntityKind.DESTINATION, first.id)]


def test_removing_unknown_record_raises():
    store = EntityStore()
    with pytest.raises(NotFoundError):
        store.execute(
            Command(label="remove", apply=lambda c: c.remove(EntityKind.DESTINATION, "nope"))
        )
