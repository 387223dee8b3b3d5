# app/api/v1/trip_router.py
import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import get_transport_service
from app.db.models import TripStatus
from app.db.schemas import (
    PassengerRecord,
    PassengerStatusChange,
    TripRecord,
    TripStatusChange,
    TripWrite,
)
from app.domain import EntityKind
from app.services.v1 import TransportService

trip_router = APIRouter(
    prefix="/trips",
    tags=["Trips"],
)


@trip_router.get(
    "",
    response_model=list[TripRecord],
    summary="List trips",
    description="Search matches destination, driver name or vehicle model. Newest first.",
)
async def list_trips(
    search: Optional[str] = None,
    date: Optional[dt.date] = None,
    trip_status: Optional[TripStatus] = Query(None, alias="status"),
    service: TransportService = Depends(get_transport_service),
):
    return service.list_trips(search, date, trip_status)


@trip_router.get(
    "/{trip_id}",
    response_model=TripRecord,
    responses={404: {"description": "Trip not found"}},
)
async def get_trip(trip_id: str, service: TransportService = Depends(get_transport_service)):
    return service.store.require(EntityKind.TRIP, trip_id)


@trip_router.post(
    "",
    response_model=TripRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Save a new trip with its manifest",
    description="""
    Every appointment entry is linked to the trip. Capacity is a hard limit
    here, unlike while a manifest draft is being built.
    """,
    responses={
        409: {"description": "An appointment cannot be linked"},
        422: {"description": "Invalid details, retroactive date or capacity exceeded"},
    },
)
async def create_trip(body: TripWrite, service: TransportService = Depends(get_transport_service)):
    return service.create_trip(body.details, body.entries).value


@trip_router.put(
    "/{trip_id}",
    response_model=TripRecord,
    summary="Replace a trip's details and manifest",
    responses={409: {"description": "Stale version or linkage conflict"}},
)
async def update_trip(
    trip_id: str,
    body: TripWrite,
    service: TransportService = Depends(get_transport_service),
):
    receipt = service.update_trip(trip_id, body.details, body.entries, body.expected_version)
    return receipt.value


@trip_router.post(
    "/{trip_id}/status",
    response_model=TripRecord,
    summary="Advance a trip's status",
    description="Forward only. Cancelling sends every linked appointment back to pending.",
    responses={422: {"description": "Illegal transition"}},
)
async def update_trip_status(
    trip_id: str,
    body: TripStatusChange,
    expected_version: Optional[int] = None,
    service: TransportService = Depends(get_transport_service),
):
    return service.update_trip_status(trip_id, body.status, expected_version).value


@trip_router.post(
    "/{trip_id}/passengers/{passenger_id}/status",
    response_model=PassengerRecord,
    summary="Mark a passenger as boarded or missing",
)
async def mark_passenger(
    trip_id: str,
    passenger_id: str,
    body: PassengerStatusChange,
    service: TransportService = Depends(get_transport_service),
):
    return service.mark_passenger(trip_id, passenger_id, body.status).value


@trip_router.delete(
    "/{trip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a trip",
    description="Linked appointments go back to pending.",
)
async def delete_trip(trip_id: str, service: TransportService = Depends(get_transport_service)):
    service.delete_trip(trip_id)


__all__ = ["trip_router"]
