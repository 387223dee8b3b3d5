# app/api/v1/appointment_router.py
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_transport_service, settle
from app.db.models import AppointmentStatus
from app.db.schemas import (
    AppointmentCreate,
    AppointmentDateChange,
    AppointmentRecord,
    AppointmentStatusChange,
    AppointmentUpdate,
)
from app.domain import EntityKind
from app.services.v1 import TransportService

appointment_router = APIRouter(
    prefix="/appointments",
    tags=["Appointments"],
)

_CONFIRM = Query(False, description="Proceed despite soft warnings")
_VERSION = Query(None, description="Reject the write if the stored version differs")


@appointment_router.get(
    "",
    response_model=list[AppointmentRecord],
    summary="Search appointments",
    description="All filters combine; results are ordered by date and time.",
)
async def search_appointments(
    date: Optional[dt.date] = None,
    patient_name: Optional[str] = None,
    location: Optional[str] = Query(None, description="Substring of the destination name"),
    appointment_status: Optional[AppointmentStatus] = Query(None, alias="status"),
    treatment_id: Optional[str] = None,
    return_only: bool = False,
    service: TransportService = Depends(get_transport_service),
):
    return service.search_appointments(
        date=date,
        patient_name=patient_name,
        location=location,
        status=appointment_status,
        treatment_id=treatment_id,
        return_only=return_only,
    )


@appointment_router.get(
    "/{appointment_id}",
    response_model=AppointmentRecord,
    responses={404: {"description": "Appointment not found"}},
)
async def get_appointment(
    appointment_id: str, service: TransportService = Depends(get_transport_service)
):
    return service.store.require(EntityKind.APPOINTMENT, appointment_id)


@appointment_router.post(
    "",
    response_model=AppointmentRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Create an appointment",
    responses={
        409: {"description": "Duplicate appointment for the patient on that date"},
        422: {"description": "Missing data or retroactive date"},
    },
)
async def create_appointment(
    data: AppointmentCreate, service: TransportService = Depends(get_transport_service)
):
    return service.create_appointment(data).value


@appointment_router.patch(
    "/{appointment_id}",
    response_model=AppointmentRecord,
    summary="Edit an appointment",
    description="""
    Moving a linked appointment to another date detaches it from its trip.
    Without `confirm=true` that edit answers 409 with a
    `REQUIRES_DETACH_CONFIRMATION` warning and changes nothing.
    """,
)
async def update_appointment(
    appointment_id: str,
    changes: AppointmentUpdate,
    confirm: bool = _CONFIRM,
    expected_version: Optional[int] = _VERSION,
    service: TransportService = Depends(get_transport_service),
):
    outcome = service.update_appointment(appointment_id, changes, expected_version)
    return settle(outcome, confirm).value


@appointment_router.post(
    "/{appointment_id}/date",
    response_model=AppointmentRecord,
    summary="Move an appointment to another date",
)
async def change_date(
    appointment_id: str,
    body: AppointmentDateChange,
    confirm: bool = _CONFIRM,
    service: TransportService = Depends(get_transport_service),
):
    outcome = service.propose_date_change(appointment_id, body.date)
    return settle(outcome, confirm).value


@appointment_router.post(
    "/{appointment_id}/status",
    response_model=AppointmentRecord,
    summary="Change appointment status",
    description="Entering `scheduled_trip` needs `trip_id`; the patient is added to that trip.",
    responses={
        409: {"description": "Trip cannot take this appointment"},
        422: {"description": "Illegal transition or capacity exceeded"},
    },
)
async def change_status(
    appointment_id: str,
    body: AppointmentStatusChange,
    expected_version: Optional[int] = _VERSION,
    service: TransportService = Depends(get_transport_service),
):
    receipt = service.change_appointment_status(
        appointment_id, body.status, body.trip_id, expected_version
    )
    return receipt.value


@appointment_router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an appointment",
)
async def delete_appointment(
    appointment_id: str, service: TransportService = Depends(get_transport_service)
):
    service.delete_appointment(appointment_id)


__all__ = ["appointment_router"]
