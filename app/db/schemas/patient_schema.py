# app/db/schemas/patient_schema.py
import datetime as dt
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from ..models import PatientStatus


class PatientBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=150)
    cpf: str = Field("", max_length=14)
    birth_date: Optional[dt.date] = None
    sus_card: str = Field("", max_length=20)
    phone: str = Field("", max_length=30)
    status: PatientStatus = PatientStatus.ACTIVE
    # TFD patients travel through appointments; others may be added by hand
    is_tfd: bool = True

    address: str = Field("", max_length=255)
    neighborhood: str = Field("", max_length=100)
    city: str = Field("", max_length=100)
    reference_point: str = Field("", max_length=255)

    allows_companion: bool = False
    companion_name: str = Field("", max_length=150)
    companion_cpf: str = Field("", max_length=14)
    allows_second_companion: bool = False
    second_companion_name: str = Field("", max_length=150)
    second_companion_cpf: str = Field("", max_length=14)
    second_companion_justification: str = ""

    notes: str = ""


class PatientCreate(PatientBase):
    pass


class PatientUpdate(BaseModel):
    # All fields optional for PATCH
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    cpf: Optional[str] = None
    birth_date: Optional[dt.date] = None
    sus_card: Optional[str] = None
    phone: Optional[str] = None
    status: Optional[PatientStatus] = None
    is_tfd: Optional[bool] = None
    address: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    reference_point: Optional[str] = None
    allows_companion: Optional[bool] = None
    companion_name: Optional[str] = None
    companion_cpf: Optional[str] = None
    allows_second_companion: Optional[bool] = None
    second_companion_name: Optional[str] = None
    second_companion_cpf: Optional[str] = None
    second_companion_justification: Optional[str] = None
    notes: Optional[str] = None


class PatientRecord(PatientBase):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str


__all__ = ["PatientBase", "PatientCreate", "PatientUpdate", "PatientRecord"]
