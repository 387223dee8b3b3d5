# app/db/schemas/registry_schemas.py
"""Registry entities: destinations, treatment types, fleet and support houses."""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from ..models import VehicleStatus

_record_config = ConfigDict(from_attributes=True, frozen=True)


class DestinationBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    address: str = Field("", max_length=255)
    phone: str = Field("", max_length=30)


class DestinationUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    address: Optional[str] = None
    phone: Optional[str] = None


class DestinationRecord(DestinationBase):
    model_config = _record_config

    id: str


class TreatmentTypeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    specialist_name: Optional[str] = Field(None, max_length=150)
    notes: str = ""
    default_destination_id: Optional[str] = None


class TreatmentTypeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    specialist_name: Optional[str] = None
    notes: Optional[str] = None
    default_destination_id: Optional[str] = None


class TreatmentTypeRecord(TreatmentTypeBase):
    model_config = _record_config

    id: str


class VehicleBase(BaseModel):
    model: str = Field(..., min_length=1, max_length=100)
    plate: str = Field(..., min_length=1, max_length=10)
    capacity: int = Field(..., gt=0, le=100)
    status: VehicleStatus = VehicleStatus.ACTIVE


class VehicleUpdate(BaseModel):
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    plate: Optional[str] = Field(None, min_length=1, max_length=10)
    capacity: Optional[int] = Field(None, gt=0, le=100)
    status: Optional[VehicleStatus] = None


class VehicleRecord(VehicleBase):
    model_config = _record_config

    id: str


class DriverBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    document: str = Field("", max_length=20)
    cnh: str = Field("", max_length=20)
    phone: str = Field("", max_length=30)
    active: bool = True


class DriverUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    document: Optional[str] = None
    cnh: Optional[str] = None
    phone: Optional[str] = None
    active: Optional[bool] = None


class DriverRecord(DriverBase):
    model_config = _record_config

    id: str


class SupportHouseBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    address: str = Field("", max_length=255)
    phone: str = Field("", max_length=30)
    daily_cost: float = Field(0, ge=0)
    capacity: int = Field(0, ge=0)


class SupportHouseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    address: Optional[str] = None
    phone: Optional[str] = None
    daily_cost: Optional[float] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)


class SupportHouseRecord(SupportHouseBase):
    model_config = _record_config

    id: str


__all__ = [
    "DestinationBase",
    "DestinationUpdate",
    "DestinationRecord",
    "TreatmentTypeBase",
    "TreatmentTypeUpdate",
    "TreatmentTypeRecord",
    "VehicleBase",
    "VehicleUpdate",
    "VehicleRecord",
    "DriverBase",
    "DriverUpdate",
    "DriverRecord",
    "SupportHouseBase",
    "SupportHouseUpdate",
    "SupportHouseRecord",
]
