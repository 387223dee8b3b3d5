# app/api/v1/patient_router.py
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from app.api.deps import get_transport_service
from app.db.models import PatientStatus
from app.domain import EntityKind
from app.db.schemas import PatientCreate, PatientRecord, PatientUpdate
from app.services.v1 import TransportService

patient_router = APIRouter(
    prefix="/patients",
    tags=["Patients"],
)


@patient_router.get(
    "",
    response_model=list[PatientRecord],
    summary="List patients",
    description="Name or CPF search, optionally restricted to TFD or non-TFD patients.",
)
async def list_patients(
    search: Optional[str] = Query(None, description="Substring of name or CPF"),
    is_tfd: Optional[bool] = None,
    patient_status: Optional[PatientStatus] = Query(None, alias="status"),
    service: TransportService = Depends(get_transport_service),
):
    return service.list_patients(search, is_tfd, patient_status)


@patient_router.get(
    "/{patient_id}",
    response_model=PatientRecord,
    summary="Get patient details",
    responses={404: {"description": "Patient not found"}},
)
async def get_patient(patient_id: str, service: TransportService = Depends(get_transport_service)):
    return service.store.require(EntityKind.PATIENT, patient_id)


@patient_router.post(
    "",
    response_model=PatientRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Register a patient",
)
async def create_patient(
    data: PatientCreate, service: TransportService = Depends(get_transport_service)
):
    return service.registry.create_patient(data).value


@patient_router.patch(
    "/{patient_id}",
    response_model=PatientRecord,
    summary="Update a patient",
    responses={404: {"description": "Patient not found"}},
)
async def update_patient(
    patient_id: str,
    changes: PatientUpdate,
    service: TransportService = Depends(get_transport_service),
):
    return service.registry.update_patient(patient_id, changes).value


@patient_router.delete(
    "/{patient_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a patient",
    description="Refused with 409 while any appointment or trip row references the patient.",
    responses={
        404: {"description": "Patient not found"},
        409: {"description": "Patient is still referenced"},
    },
)
async def delete_patient(patient_id: str, service: TransportService = Depends(get_transport_service)):
    service.registry.delete_patient(patient_id)


__all__ = ["patient_router"]
