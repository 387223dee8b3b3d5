"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    op.create_table(
        "patients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("cpf", sa.String(14), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("sus_card", sa.String(20), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("status", _enum("patient_status", "active", "inactive"), nullable=False),
        sa.Column("is_tfd", sa.Boolean(), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("neighborhood", sa.String(100), nullable=False),
        sa.Column("city", sa.String(100), nullable=False),
        sa.Column("reference_point", sa.String(255), nullable=False),
        sa.Column("allows_companion", sa.Boolean(), nullable=False),
        sa.Column("companion_name", sa.String(150), nullable=False),
        sa.Column("companion_cpf", sa.String(14), nullable=False),
        sa.Column("allows_second_companion", sa.Boolean(), nullable=False),
        sa.Column("second_companion_name", sa.String(150), nullable=False),
        sa.Column("second_companion_cpf", sa.String(14), nullable=False),
        sa.Column("second_companion_justification", sa.Text(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_patients_name", "patients", ["name"])

    op.create_table(
        "destinations",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "treatment_types",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("specialist_name", sa.String(150), nullable=True),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column(
            "default_destination_id",
            sa.String(36),
            sa.ForeignKey("destinations.id"),
            nullable=True,
        ),
        *_audit_columns(),
    )

    op.create_table(
        "vehicles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("plate", sa.String(10), nullable=False, unique=True),
        sa.Column("capacity", sa.Integer(), nullable=False),
        sa.Column("status", _enum("vehicle_status", "active", "maintenance"), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "drivers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("document", sa.String(20), nullable=False),
        sa.Column("cnh", sa.String(20), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "support_houses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(150), nullable=False),
        sa.Column("address", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(30), nullable=False),
        sa.Column("daily_cost", sa.Numeric(10, 2, asdecimal=False), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "appointments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("patient_name", sa.String(150), nullable=False),
        sa.Column(
            "destination_id", sa.String(36), sa.ForeignKey("destinations.id"), nullable=True
        ),
        sa.Column("destination_name", sa.String(150), nullable=False),
        sa.Column(
            "treatment_id", sa.String(36), sa.ForeignKey("treatment_types.id"), nullable=True
        ),
        sa.Column("treatment_name", sa.String(150), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(10), nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("documents", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            _enum(
                "appointment_status",
                "pending",
                "scheduled_trip",
                "completed",
                "cancelled",
                "missed",
                "rescheduled",
            ),
            nullable=False,
        ),
        sa.Column("trip_id", sa.String(36), nullable=True),
        sa.Column("is_return", sa.Boolean(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_appointments_patient_id", "appointments", ["patient_id"])
    op.create_index("ix_appointments_date", "appointments", ["date"])
    op.create_index("ix_appointments_trip_id", "appointments", ["trip_id"])

    op.create_table(
        "trips",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(10), nullable=False),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("treatment_id", sa.String(36), nullable=True),
        sa.Column("treatment_name", sa.String(150), nullable=False),
        sa.Column("driver_id", sa.String(36), sa.ForeignKey("drivers.id"), nullable=False),
        sa.Column("driver_name", sa.String(150), nullable=False),
        sa.Column("vehicle_id", sa.String(36), sa.ForeignKey("vehicles.id"), nullable=False),
        sa.Column("vehicle_model", sa.String(100), nullable=False),
        sa.Column("vehicle_plate", sa.String(10), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column(
            "status",
            _enum("trip_status", "scheduled", "boarding", "completed", "cancelled"),
            nullable=False,
        ),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_trips_date", "trips", ["date"])

    op.create_table(
        "trip_passengers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "trip_id",
            sa.String(36),
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("patient_id", sa.String(36), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("patient_name", sa.String(150), nullable=False),
        sa.Column("is_companion", sa.Boolean(), nullable=False),
        sa.Column("related_patient_id", sa.String(36), nullable=True),
        sa.Column("companion_slot", sa.Integer(), nullable=True),
        sa.Column(
            "status",
            _enum("passenger_status", "confirmed", "boarded", "missing"),
            nullable=False,
        ),
        sa.Column("origin", sa.String(255), nullable=False),
        sa.Column("destination", sa.String(255), nullable=False),
        sa.Column("appointment_time", sa.String(20), nullable=False),
        sa.Column("appointment_id", sa.String(36), nullable=True),
        sa.Column(
            "leg_mode", _enum("leg_mode", "one-way", "return", "round-trip"), nullable=False
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        *_audit_columns(),
    )
    op.create_index("ix_trip_passengers_trip_id", "trip_passengers", ["trip_id"])
    op.create_index("ix_trip_passengers_patient_id", "trip_passengers", ["patient_id"])


def downgrade() -> None:
    op.drop_index("ix_trip_passengers_patient_id", table_name="trip_passengers")
    op.drop_index("ix_trip_passengers_trip_id", table_name="trip_passengers")
    op.drop_table("trip_passengers")
    op.drop_index("ix_trips_date", table_name="trips")
    op.drop_table("trips")
    op.drop_index("ix_appointments_trip_id", table_name="appointments")
    op.drop_index("ix_appointments_date", table_name="appointments")
    op.drop_index("ix_appointments_patient_id", table_name="appointments")
    op.drop_table("appointments")
    op.drop_table("support_houses")
    op.drop_table("drivers")
    op.drop_table("vehicles")
    op.drop_table("treatment_types")
    op.drop_table("destinations")
    op.drop_index("ix_patients_name", table_name="patients")
    op.drop_table("patients")
