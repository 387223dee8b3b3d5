# app/persistence/__init__.py
from .repository import EntityRepository
from .memory_repository import InMemoryEntityRepository
from .sql_repository import SqlEntityRepository
from .persistence_queue import PersistenceQueue, FailureListener

__all__ = [
    "EntityRepository",
    "InMemoryEntityRepository",
    "SqlEntityRepository",
    "PersistenceQueue",
    "FailureListener",
]
