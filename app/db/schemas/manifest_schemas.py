# app/db/schemas/manifest_schemas.py
"""Operator choices when adding passengers to a manifest draft."""

import datetime as dt
from pydantic import BaseModel, Field
from typing import Optional
from ..models import LegMode
from .appointment_schemas import AppointmentRecord
from .trip_schemas import ManifestEntry, TripDetails


class SuggestionOptions(BaseModel):
    # None means "use the default": return leg for return appointments,
    # companions per the patient's entitlements
    leg_mode: Optional[LegMode] = None
    use_companion: Optional[bool] = None
    use_second_companion: Optional[bool] = None


class ManualPassengerConfig(BaseModel):
    leg_mode: LegMode = LegMode.ROUND_TRIP
    origin: str = ""
    appointment_time: str = Field("", max_length=20)
    has_companion: bool = False
    companion_name: str = ""
    has_second_companion: bool = False
    second_companion_name: str = ""


class DraftStart(BaseModel):
    date: dt.date
    vehicle_id: Optional[str] = None
    origin: str = ""
    destination: str = ""


class EntryEdit(BaseModel):
    origin: Optional[str] = None
    appointment_time: Optional[str] = None


class DraftSave(BaseModel):
    details: TripDetails
    expected_version: Optional[int] = None


class ManifestDraftView(BaseModel):
    id: str
    date: dt.date
    origin: str
    destination: str
    vehicle_id: Optional[str]
    capacity: Optional[int]
    trip_id: Optional[str]
    occupancy: int
    entries: list[ManifestEntry]


class SuggestionView(BaseModel):
    appointment: AppointmentRecord
    patient_id: str
    patient_name: str
    leg_mode: LegMode
    use_companion: bool
    use_second_companion: bool
    seats: int


__all__ = [
    "SuggestionOptions",
    "ManualPassengerConfig",
    "DraftStart",
    "EntryEdit",
    "DraftSave",
    "ManifestDraftView",
    "SuggestionView",
]
