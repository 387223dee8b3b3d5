# app/db/models/registry_tables.py
from sqlalchemy import String, Text, Integer, Boolean, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_column
from .enums import VehicleStatus


class Destination(DbBaseModel):
    __tablename__ = "destinations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")


class TreatmentType(DbBaseModel):
    __tablename__ = "treatment_types"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    specialist_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    default_destination_id: Mapped[str | None] = mapped_column(
        ForeignKey("destinations.id"), nullable=True
    )


class Vehicle(DbBaseModel):
    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    plate: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[VehicleStatus] = mapped_column(
        enum_column(VehicleStatus, "vehicle_status"), nullable=False
    )


class Driver(DbBaseModel):
    __tablename__ = "drivers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    document: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    cnh: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class SupportHouse(DbBaseModel):
    __tablename__ = "support_houses"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    daily_cost: Mapped[float] = mapped_column(
        Numeric(10, 2, asdecimal=False), nullable=False, default=0
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["Destination", "TreatmentType", "Vehicle", "Driver", "SupportHouse"]
