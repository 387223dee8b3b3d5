# app/db/schemas/appointment_schemas.py
import datetime as dt
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import Optional
from ..models import AppointmentStatus


class AppointmentCreate(BaseModel):
    # patient and date are checked by the state machine so every caller
    # gets the same ValidationError
    patient_id: Optional[str] = None
    date: Optional[dt.date] = None
    time: str = Field("", max_length=10)
    destination_id: Optional[str] = None
    treatment_id: Optional[str] = None
    notes: str = ""
    documents: list[str] = Field(default_factory=list)
    status: AppointmentStatus = AppointmentStatus.PENDING
    is_return: bool = False


class AppointmentUpdate(BaseModel):
    # Status changes go through the state machine, not through edits
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, max_length=10)
    notes: Optional[str] = None
    documents: Optional[list[str]] = None
    treatment_id: Optional[str] = None
    destination_id: Optional[str] = None
    is_return: Optional[bool] = None


class AppointmentStatusChange(BaseModel):
    status: AppointmentStatus
    trip_id: Optional[str] = None


class AppointmentDateChange(BaseModel):
    date: dt.date


class AppointmentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    patient_id: str
    patient_name: str
    destination_id: Optional[str] = None
    destination_name: str = ""
    treatment_id: Optional[str] = None
    treatment_name: str = ""
    date: dt.date
    time: str = ""
    notes: str = ""
    documents: list[str] = Field(default_factory=list)
    status: AppointmentStatus = AppointmentStatus.PENDING
    trip_id: Optional[str] = None
    is_return: bool = False
    version: int = Field(1, ge=1)

    @model_validator(mode="after")
    def check_trip_link(self) -> "AppointmentRecord":
        linked = self.trip_id is not None
        if linked != (self.status == AppointmentStatus.SCHEDULED_TRIP):
            raise ValueError(
                "trip_id must be set exactly when status is scheduled_trip "
                f"(status={self.status.value}, trip_id={self.trip_id})"
            )
        return self

    @property
    def location_name(self) -> str:
        """Destination shown on manifests: destination, else treatment name."""
        return self.destination_name or self.treatment_name


__all__ = [
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentStatusChange",
    "AppointmentDateChange",
    "AppointmentRecord",
]
