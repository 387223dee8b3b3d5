# app/persistence/memory_repository.py
import copy
from typing import Any, Optional

from pydantic import BaseModel

from app.db.schemas import TripRecord
from app.domain.commands import EntityKind, PersistenceOp
from .repository import EntityRepository


class InMemoryEntityRepository(EntityRepository):
    """
    Dict-backed repository for tests and local runs without a database.

    ``fail_next`` makes the next N ``apply`` calls raise before touching
    anything, which is how tests drive the retry path.
    """

    def __init__(self, seed: Optional[dict[EntityKind, list[Any]]] = None):
        self._data: dict[EntityKind, dict[str, Any]] = {kind: {} for kind in EntityKind}
        for kind, records in (seed or {}).items():
            self._data[kind] = {r.id: r for r in records}
        self.fail_next = 0
        self.applied_jobs = 0

    async def fetch_all(self, kind: EntityKind) -> list[Any]:
        return list(self._data[kind].values())

    async def upsert(self, kind: EntityKind, record: BaseModel) -> None:
        self._data[kind][record.id] = record  # type: ignore[attr-defined]

    async def delete(self, kind: EntityKind, entity_id: str) -> None:
        self._data[kind].pop(entity_id, None)

    async def replace_trip(self, trip: TripRecord) -> None:
        self._data[EntityKind.TRIP][trip.id] = trip

    async def delete_trip(self, trip_id: str) -> None:
        self._data[EntityKind.TRIP].pop(trip_id, None)

    async def apply(self, ops: list[PersistenceOp]) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            raise ConnectionError("Simulated repository outage")

        snapshot = copy.copy(self._data)
        self._data = {kind: dict(records) for kind, records in self._data.items()}
        try:
            for op in ops:
                await self._dispatch(op)
        except Exception:
            self._data = snapshot
            raise
        self.applied_jobs += 1

    def snapshot(self, kind: EntityKind) -> dict[str, Any]:
        """Synchronous view for assertions."""
        return dict(self._data[kind])


__all__ = ["InMemoryEntityRepository"]
