# app/db/models/patient_table.py
from datetime import date
from sqlalchemy import String, Date, Boolean, Text
from sqlalchemy.orm import Mapped, mapped_column
from .db_base_model import DbBaseModel, enum_column
from .enums import PatientStatus


class Patient(DbBaseModel):
    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=DbBaseModel.generate_uuid,
    )

    # Identity
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    cpf: Mapped[str] = mapped_column(String(14), nullable=False, default="")
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    sus_card: Mapped[str] = mapped_column(String(20), nullable=False, default="")
    phone: Mapped[str] = mapped_column(String(30), nullable=False, default="")
    status: Mapped[PatientStatus] = mapped_column(
        enum_column(PatientStatus, "patient_status"), nullable=False
    )
    is_tfd: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Address, used as the default pickup origin
    address: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    neighborhood: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    reference_point: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # Companion entitlements
    allows_companion: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    companion_name: Mapped[str] = mapped_column(String(150), nullable=False, default="")
    companion_cpf: Mapped[str] = mapped_column(String(14), nullable=False, default="")
    allows_second_companion: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    second_companion_name: Mapped[str] = mapped_column(
        String(150), nullable=False, default=""
    )
    second_companion_cpf: Mapped[str] = mapped_column(
        String(14), nullable=False, default=""
    )
    second_companion_justification: Mapped[str] = mapped_column(
        Text, nullable=False, default=""
    )

    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")


__all__ = ["Patient"]
