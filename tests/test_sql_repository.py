import asyncio

import pytest

from app.db import DbManager
from app.db.models import DbBaseModel, TripStatus
from app.domain import EntityKind, EntityStore, ReferentialIntegrityError
from app.persistence import PersistenceQueue, SqlEntityRepository
from app.services.v1 import TransportService
from common.config import PersistenceConfig
from tests.conftest import TODAY, World


async def _create_schema(db_manager: DbManager) -> None:
    async with db_manager.engine.begin() as conn:
        await conn.run_sync(DbBaseModel.metadata.create_all)


@pytest.fixture()
def sql_persistence(tmp_path):
    db_manager = DbManager(f"sqlite+aiosqlite:///{tmp_path / 'tfd.sqlite3'}")
    queue = PersistenceQueue(SqlEntityRepository(db_manager), PersistenceConfig(max_retries=0))
    queue.start()
    queue.call(lambda: _create_schema(db_manager)).result(timeout=5)
    yield queue
    queue.shutdown(timeout=5)


@pytest.fixture()
def sql_world(sql_persistence):
    return World(TransportService(EntityStore(sql_persistence, clock=lambda: TODAY)))


def _reload(persistence: PersistenceQueue) -> EntityStore:
    store = EntityStore(persistence, clock=lambda: TODAY)
    asyncio.run(store.load(persistence))
    return store


def _cancelled_trip(world: World):
    walker = world.patient("Walker", is_tfd=False)
    trip = world.service.create_trip(world.details(), [World.entry(walker)]).value
    world.service.update_trip_status(trip.id, TripStatus.CANCELLED).wait_persisted(timeout=5)
    return trip


def test_cancelled_trip_keeps_vehicle_and_driver_in_the_database(sql_world, sql_persistence):
    trip = _cancelled_trip(sql_world)

    with pytest.raises(ReferentialIntegrityError):
        sql_world.service.registry.delete(EntityKind.VEHICLE, sql_world.vehicle.id)
    with pytest.raises(ReferentialIntegrityError):
        sql_world.service.registry.delete(EntityKind.DRIVER, sql_world.driver.id)

    reloaded = _reload(sql_persistence)
    assert reloaded.vehicle(sql_world.vehicle.id).plate == "ABC1234"
    assert reloaded.driver(sql_world.driver.id) is not None
    assert reloaded.trip(trip.id).status == TripStatus.CANCELLED
    assert sql_persistence.get_metrics()["failed_jobs"] == 0


def test_vehicle_delete_persists_once_its_trips_are_gone(sql_world, sql_persistence):
    trip = _cancelled_trip(sql_world)

    sql_world.service.delete_trip(trip.id)
    receipt = sql_world.service.registry.delete(EntityKind.VEHICLE, sql_world.vehicle.id)

    assert receipt.wait_persisted(timeout=5) == 1
    reloaded = _reload(sql_persistence)
    assert reloaded.vehicle(sql_world.vehicle.id) is None
    assert reloaded.trip(trip.id) is None
    assert reloaded.driver(sql_world.driver.id) is not None
