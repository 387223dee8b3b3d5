# app/db/models/appointment_table.py
import datetime as dt
from sqlalchemy import String, Date, Text, Integer, Boolean, JSON, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_column
from .enums import AppointmentStatus


class Appointment(DbBaseModel):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    patient_id: Mapped[str] = mapped_column(
        ForeignKey("patients.id"), nullable=False, index=True
    )
    # Names are denormalized so history survives registry edits
    patient_name: Mapped[str] = mapped_column(String(150), nullable=False)

    destination_id: Mapped[str | None] = mapped_column(
        ForeignKey("destinations.id"), nullable=True
    )
    destination_name: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    treatment_id: Mapped[str | None] = mapped_column(
        ForeignKey("treatment_types.id"), nullable=True
    )
    treatment_name: Mapped[str] = mapped_column(String(150), nullable=False, default="")

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    time: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    documents: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    status: Mapped[AppointmentStatus] = mapped_column(
        enum_column(AppointmentStatus, "appointment_status"),
        nullable=False,
    )
    # Set iff status == scheduled_trip. No FK: trip rows are replaced transactionally
    trip_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    is_return: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)


__all__ = ["Appointment"]
