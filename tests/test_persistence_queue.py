import asyncio

import pytest

from app.db.schemas import AppointmentCreate, DestinationBase, DestinationRecord
from app.domain import EntityKind, EntityStore, PersistenceError
from app.persistence import InMemoryEntityRepository, PersistenceQueue
from app.services.v1 import TransportService
from common.config import PersistenceConfig
from tests.conftest import TODAY, TRIP_DAY, World


@pytest.fixture()
def repository():
    return InMemoryEntityRepository()


@pytest.fixture()
def delays():
    return []


@pytest.fixture()
def persistence(repository, delays):
    queue = PersistenceQueue(
        repository,
        PersistenceConfig(max_retries=2, retry_base_delay=0.1, queue_size=100),
        sleep=delays.append,
    )
    queue.start()
    yield queue
    queue.shutdown(timeout=2)


@pytest.fixture()
def persisted_world(persistence):
    return World(TransportService(EntityStore(persistence, clock=lambda: TODAY)))


def _book(world: World, patient):
    return world.service.create_appointment(
        AppointmentCreate(patient_id=patient.id, date=TRIP_DAY, treatment_id=world.treatment.id)
    )


def test_writes_reach_the_repository(persisted_world, persistence, repository):
    receipt = _book(persisted_world, persisted_world.patient())

    assert receipt.wait_persisted(timeout=2) == 1
    persistence.drain()
    assert repository.snapshot(EntityKind.APPOINTMENT)[receipt.value.id] == receipt.value
    vehicle = persisted_world.vehicle
    assert repository.snapshot(EntityKind.VEHICLE)[vehicle.id] == vehicle
    assert persistence.get_metrics()["total_jobs"] == repository.applied_jobs


def test_transient_failures_are_retried_with_backoff(
    persisted_world, persistence, repository, delays
):
    patient = persisted_world.patient()
    persistence.drain()
    repository.fail_next = 2

    receipt = _book(persisted_world, patient)

    assert receipt.wait_persisted(timeout=2) == 1
    assert delays == [0.1, 0.2]
    assert persistence.get_metrics()["retries"] == 2
    assert receipt.value.id in repository.snapshot(EntityKind.APPOINTMENT)


def test_exhausted_retries_fail_the_future_and_keep_memory(
    persisted_world, persistence, repository
):
    failures = []
    persistence.on_failure(lambda label, ops, error: failures.append((label, len(ops))))
    patient = persisted_world.patient()
    persistence.drain()
    repository.fail_next = 3

    receipt = _book(persisted_world, patient)

    with pytest.raises(PersistenceError):
        receipt.wait_persisted(timeout=2)
    persistence.drain()
    assert failures == [("appointment.create", 1)]
    assert persistence.get_metrics()["failed_jobs"] == 1
    # The in-memory model is still authoritative
    assert persisted_world.service.store.appointment(receipt.value.id) == receipt.value
    assert receipt.value.id not in repository.snapshot(EntityKind.APPOINTMENT)


def test_store_loads_through_the_worker(persistence, repository):
    seeded = DestinationRecord(id="d1", name="Hospital A")
    asyncio.run(repository.upsert(EntityKind.DESTINATION, seeded))
    store = EntityStore(persistence, clock=lambda: TODAY)

    counts = asyncio.run(store.load(persistence))

    assert counts["destinations"] == 1
    assert store.destination("d1") == seeded


def test_full_queue_fails_immediately(repository):
    queue = PersistenceQueue(repository, PersistenceConfig(queue_size=1))
    failures = []
    queue.on_failure(lambda label, ops, error: failures.append(error.code))
    store = EntityStore(queue)
    service = TransportService(store)

    # Worker not started: the first job fills the queue
    service.registry.create(EntityKind.DESTINATION, DestinationBase(name="First"))
    second = service.registry.create(EntityKind.DESTINATION, DestinationBase(name="Second"))

    with pytest.raises(PersistenceError):
        second.wait_persisted(timeout=0)
    assert failures == ["PERSISTENCE_ERROR"]
    assert len(store.all(EntityKind.DESTINATION)) == 2


def test_shutdown_stops_the_worker(repository):
    queue = PersistenceQueue(repository)
    queue.start()
    assert queue.is_running

    queue.shutdown(timeout=2)

    assert not queue.is_running
    assert queue.get_metrics()["worker_alive"] is False


def test_calls_share_the_worker_loop(persistence):
    async def running_loop():
        return asyncio.get_running_loop()

    first = persistence.call(running_loop).result(timeout=2)
    second = persistence.call(running_loop).result(timeout=2)

    assert first is second
    assert not first.is_closed()
