# app/db/models/trip_table.py
import datetime as dt
from sqlalchemy import String, Date, Text, Integer, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_column
from .enums import TripStatus, PassengerStatus, LegMode


class Trip(DbBaseModel):
    """Trip header. Passenger rows live in ``trip_passengers`` joined by trip_id."""

    __tablename__ = "trips"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    origin: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    destination: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    treatment_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    treatment_name: Mapped[str] = mapped_column(String(150), nullable=False, default="")

    driver_id: Mapped[str] = mapped_column(ForeignKey("drivers.id"), nullable=False)
    driver_name: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    vehicle_id: Mapped[str] = mapped_column(ForeignKey("vehicles.id"), nullable=False)
    vehicle_model: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    vehicle_plate: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[TripStatus] = mapped_column(
        enum_column(TripStatus, "trip_status"), nullable=False
    )
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


class TripPassenger(DbBaseModel):
    __tablename__ = "trip_passengers"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=DbBaseModel.generate_uuid
    )
    trip_id: Mapped[str] = mapped_column(
        ForeignKey("trips.id", ondelete="CASCADE"), nullable=False, index=True
    )
    patient_id: Mapped[str] = mapped_column(
        ForeignKey("patients.id"), nullable=False, index=True
    )
    patient_name: Mapped[str] = mapped_column(String(150), nullable=False)
    is_companion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    related_patient_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    companion_slot: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[PassengerStatus] = mapped_column(
        enum_column(PassengerStatus, "passenger_status"), nullable=False
    )
    origin: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    destination: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    appointment_time: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    appointment_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    leg_mode: Mapped[LegMode] = mapped_column(
        enum_column(LegMode, "leg_mode"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


__all__ = ["Trip", "TripPassenger"]
