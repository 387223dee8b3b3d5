# app/db/models/db_base_model.py
from enum import Enum
from typing import Type
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import DateTime, Enum as sqlalchemy_Enum
from datetime import datetime, timezone
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class DbBaseModel(DeclarativeBase):
    __abstract__ = True  # prevents SQLAlchemy from creating a table for this base

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,  # always UTC
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,  # auto-update on row change
        nullable=False,
    )

    @staticmethod
    def generate_uuid() -> str:
        return str(uuid4())


def enum_column(enum_cls: Type[Enum], name: str) -> sqlalchemy_Enum:
    """Enum column storing the enum *values* ("scheduled_trip"), not member names."""
    return sqlalchemy_Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


__all__ = ["DbBaseModel", "enum_column"]
