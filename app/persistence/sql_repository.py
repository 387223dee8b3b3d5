# app/persistence/sql_repository.py
"""
SQLAlchemy repository.

Each ``apply`` call opens one ``DbManager.session()`` so a job commits or
rolls back as a whole. Trip passenger rows are diffed against what is
stored, which keeps the manifest readable while the job runs.
"""

from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import DbManager
from app.db.models import (
    Appointment,
    DbBaseModel,
    Destination,
    Driver,
    Patient,
    SupportHouse,
    TreatmentType,
    Trip,
    TripPassenger,
    Vehicle,
)
from app.db.schemas import (
    AppointmentRecord,
    DestinationRecord,
    DriverRecord,
    PassengerRecord,
    PatientRecord,
    SupportHouseRecord,
    TreatmentTypeRecord,
    TripRecord,
    VehicleRecord,
)
from app.domain.commands import EntityKind, PersistenceOp
from common.api_error import DatabaseError
from common.logger import get_app_logger
from .repository import EntityRepository

logger = get_app_logger(__name__)

TABLES: dict[EntityKind, tuple[type[DbBaseModel], type[BaseModel]]] = {
    EntityKind.PATIENT: (Patient, PatientRecord),
    EntityKind.TREATMENT_TYPE: (TreatmentType, TreatmentTypeRecord),
    EntityKind.DESTINATION: (Destination, DestinationRecord),
    EntityKind.VEHICLE: (Vehicle, VehicleRecord),
    EntityKind.DRIVER: (Driver, DriverRecord),
    EntityKind.APPOINTMENT: (Appointment, AppointmentRecord),
    EntityKind.SUPPORT_HOUSE: (SupportHouse, SupportHouseRecord),
}

_AUDIT_COLUMNS = {"created_at", "updated_at"}


def _columns(model: type[DbBaseModel]) -> list[str]:
    return [c.key for c in model.__table__.columns if c.key not in _AUDIT_COLUMNS]


def row_values(model: type[DbBaseModel], obj: Any) -> dict[str, Any]:
    return {key: getattr(obj, key) for key in _columns(model)}


def to_row(model: type[DbBaseModel], record: BaseModel, **extra: Any) -> DbBaseModel:
    data = record.model_dump()
    data.update(extra)
    return model(**{key: data[key] for key in _columns(model) if key in data})


class SqlEntityRepository(EntityRepository):
    def __init__(self, db_manager: DbManager):
        self._db = db_manager
        self._session: Optional[AsyncSession] = None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError("Repository write used outside apply()")
        return self._session

    # Reads ---------------------------------------------------------------

    async def fetch_all(self, kind: EntityKind) -> list[Any]:
        try:
            async with self._db.session() as session:
                if kind is EntityKind.TRIP:
                    return await self._fetch_trips(session)
                model, record_cls = TABLES[kind]
                result = await session.execute(
                    select(model).execution_options(
                        logging_token=f"SqlEntityRepository.fetch_all.{kind.value}"
                    )
                )
                return [
                    record_cls.model_validate(row_values(model, row))
                    for row in result.scalars()
                ]
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to load {kind.value}", kind=kind.value) from e

    async def _fetch_trips(self, session: AsyncSession) -> list[TripRecord]:
        rows = await session.execute(
            select(TripPassenger).order_by(TripPassenger.trip_id, TripPassenger.position)
        )
        passengers: dict[str, list[PassengerRecord]] = {}
        for row in rows.scalars():
            passengers.setdefault(row.trip_id, []).append(
                PassengerRecord.model_validate(row_values(TripPassenger, row))
            )

        headers = await session.execute(select(Trip))
        return [
            TripRecord.model_validate(
                {**row_values(Trip, trip), "passengers": passengers.get(trip.id, [])}
            )
            for trip in headers.scalars()
        ]

    # Writes --------------------------------------------------------------

    async def upsert(self, kind: EntityKind, record: BaseModel) -> None:
        model, _ = TABLES[kind]
        await self.session.merge(to_row(model, record))

    async def delete(self, kind: EntityKind, entity_id: str) -> None:
        model, _ = TABLES[kind]
        await self.session.execute(delete(model).where(model.id == entity_id))

    async def replace_trip(self, trip: TripRecord) -> None:
        session = self.session
        await session.merge(to_row(Trip, trip))

        keep = {p.id for p in trip.passengers}
        stored = await session.execute(
            select(TripPassenger.id).where(TripPassenger.trip_id == trip.id)
        )
        stale = [row_id for row_id in stored.scalars() if row_id not in keep]
        if stale:
            await session.execute(delete(TripPassenger).where(TripPassenger.id.in_(stale)))

        for position, passenger in enumerate(trip.passengers):
            await session.merge(to_row(TripPassenger, passenger, position=position))

    async def delete_trip(self, trip_id: str) -> None:
        session = self.session
        await session.execute(delete(TripPassenger).where(TripPassenger.trip_id == trip_id))
        await session.execute(delete(Trip).where(Trip.id == trip_id))

    async def apply(self, ops: list[PersistenceOp]) -> None:
        try:
            async with self._db.session() as session:
                self._session = session
                for op in ops:
                    await self._dispatch(op)
        except SQLAlchemyError as e:
            logger.error("Persistence job rolled back", ops=len(ops), error=str(e))
            raise DatabaseError("Failed to apply persistence job", ops=len(ops)) from e
        finally:
            self._session = None

    async def close(self) -> None:
        await self._db.dispose()


__all__ = ["SqlEntityRepository", "TABLES", "row_values", "to_row"]
