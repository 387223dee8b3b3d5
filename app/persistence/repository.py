# app/persistence/repository.py
"""
Persistence collaborator interface.

The in-memory store is authoritative while the process runs. A repository
only has to remember what the store told it and hand it back on startup.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel

from app.db.schemas import TripRecord
from app.domain.commands import Delete, DeleteTrip, EntityKind, PersistenceOp, ReplaceTrip, Upsert


class EntityRepository(ABC):
    """
    Async storage for every entity collection.

    ``apply`` runs one job's operations as a single unit: either all of
    them are stored or none is.
    """

    @abstractmethod
    async def fetch_all(self, kind: EntityKind) -> list[Any]:
        """Every record of ``kind``. Trips come with their passenger rows."""

    @abstractmethod
    async def upsert(self, kind: EntityKind, record: BaseModel) -> None: ...

    @abstractmethod
    async def delete(self, kind: EntityKind, entity_id: str) -> None: ...

    @abstractmethod
    async def replace_trip(self, trip: TripRecord) -> None:
        """Store the trip header and make its rows exactly ``trip.passengers``."""

    @abstractmethod
    async def delete_trip(self, trip_id: str) -> None: ...

    @abstractmethod
    async def apply(self, ops: list[PersistenceOp]) -> None: ...

    async def close(self) -> None:
        return None

    async def _dispatch(self, op: PersistenceOp) -> None:
        if isinstance(op, Upsert):
            await self.upsert(op.kind, op.record)
        elif isinstance(op, Delete):
            await self.delete(op.kind, op.entity_id)
        elif isinstance(op, ReplaceTrip):
            await self.replace_trip(op.trip)
        elif isinstance(op, DeleteTrip):
            await self.delete_trip(op.trip_id)
        else:
            raise TypeError(f"Unknown persistence operation: {op!r}")


__all__ = ["EntityRepository"]
