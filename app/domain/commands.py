# app/domain/commands.py
"""
Command model: validate, mutate in memory, enqueue persistence.

A ``ChangeSet`` is the only way to change the store. It keeps an undo log so
a step that raises halfway leaves the model untouched, and it records the
persistence operations the background worker replays against the repository.
"""

from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from pydantic import BaseModel

from app.db.schemas import TripRecord
from .errors import NotFoundError

T = TypeVar("T")
R = TypeVar("R", bound=BaseModel)


class EntityKind(str, Enum):
    """Entity collections. Values are the table names."""

    PATIENT = "patients"
    TREATMENT_TYPE = "treatment_types"
    DESTINATION = "destinations"
    VEHICLE = "vehicles"
    DRIVER = "drivers"
    APPOINTMENT = "appointments"
    TRIP = "trips"
    SUPPORT_HOUSE = "support_houses"

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    EntityKind.PATIENT: "Patient",
    EntityKind.TREATMENT_TYPE: "Treatment type",
    EntityKind.DESTINATION: "Destination",
    EntityKind.VEHICLE: "Vehicle",
    EntityKind.DRIVER: "Driver",
    EntityKind.APPOINTMENT: "Appointment",
    EntityKind.TRIP: "Trip",
    EntityKind.SUPPORT_HOUSE: "Support house",
}


# Persistence operations ------------------------------------------------------


@dataclass(frozen=True)
class Upsert:
    kind: EntityKind
    record: BaseModel


@dataclass(frozen=True)
class Delete:
    kind: EntityKind
    entity_id: str


@dataclass(frozen=True)
class ReplaceTrip:
    """Trip header plus its complete passenger list, written in one transaction."""

    trip: TripRecord


@dataclass(frozen=True)
class DeleteTrip:
    trip_id: str


PersistenceOp = Union[Upsert, Delete, ReplaceTrip, DeleteTrip]


def revise(record: R, bump: bool = True, **changes: Any) -> R:
    """
    Copy ``record`` with ``changes`` applied and validated.

    Records with a ``version`` stamp get it incremented unless ``bump`` is off.
    """
    data = record.model_dump()
    data.update(changes)
    if bump and "version" in type(record).model_fields and "version" not in changes:
        data["version"] = record.version + 1  # type: ignore[attr-defined]
    return type(record).model_validate(data)


class ChangeSet:
    def __init__(self, collections: dict[EntityKind, dict[str, Any]]):
        self._collections = collections
        self._undo: list[tuple[EntityKind, str, Optional[Any]]] = []
        self.ops: list[PersistenceOp] = []

    def put(self, kind: EntityKind, record: Any) -> Any:
        collection = self._collections[kind]
        self._undo.append((kind, record.id, collection.get(record.id)))
        collection[record.id] = record
        if kind is EntityKind.TRIP:
            self.ops.append(ReplaceTrip(record))
        else:
            self.ops.append(Upsert(kind, record))
        return record

    def remove(self, kind: EntityKind, entity_id: str) -> Any:
        collection = self._collections[kind]
        if entity_id not in collection:
            raise NotFoundError(kind.label, entity_id)
        previous = collection.pop(entity_id)
        self._undo.append((kind, entity_id, previous))
        if kind is EntityKind.TRIP:
            self.ops.append(DeleteTrip(entity_id))
        else:
            self.ops.append(Delete(kind, entity_id))
        return previous

    def rollback(self) -> None:
        for kind, entity_id, previous in reversed(self._undo):
            collection = self._collections[kind]
            if previous is None:
                collection.pop(entity_id, None)
            else:
                collection[entity_id] = previous
        self._undo.clear()
        self.ops.clear()

    @property
    def touched(self) -> int:
        return len(self._undo)


def _no_validation() -> None:
    return None


@dataclass
class Command(Generic[T]):
    """
    One mutation of the store.

    ``validate`` runs first and must not mutate. ``apply`` receives the
    ChangeSet and returns the command's value.
    """

    label: str
    apply: Callable[[ChangeSet], T]
    validate: Callable[[], None] = field(default=_no_validation)


def resolved_future(value: Any = None) -> "Future[Any]":
    future: Future[Any] = Future()
    future.set_result(value)
    return future


@dataclass
class CommandReceipt(Generic[T]):
    """
    ``value`` is available immediately. ``persisted`` resolves once the
    repository has the change, or fails with PersistenceError.
    """

    value: T
    persisted: "Future[Any]"
    label: str = ""

    def wait_persisted(self, timeout: Optional[float] = None) -> Any:
        return self.persisted.result(timeout=timeout)


__all__ = [
    "EntityKind",
    "Upsert",
    "Delete",
    "ReplaceTrip",
    "DeleteTrip",
    "PersistenceOp",
    "ChangeSet",
    "Command",
    "CommandReceipt",
    "resolved_future",
    "revise",
]
