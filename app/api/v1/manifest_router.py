# app/api/v1/manifest_router.py
"""
Manifest drafts.

A draft lives in the service between requests until it is saved as a trip
or discarded. Additions that trip a soft warning answer 409 unless
``confirm=true``.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from app.api.deps import get_transport_service, settle
from app.db.schemas import (
    DraftSave,
    DraftStart,
    EntryEdit,
    ManifestDraftView,
    ManifestEntry,
    ManualPassengerConfig,
    SuggestionOptions,
    SuggestionView,
    TripRecord,
)
from app.services.v1 import TransportService

manifest_router = APIRouter(
    prefix="/manifests",
    tags=["Manifests"],
)

_CONFIRM = Query(False, description="Proceed despite soft warnings")


class VehicleAssignment(BaseModel):
    vehicle_id: str


class CapacityView(BaseModel):
    ok: bool
    projected: int
    capacity: int
    overflow: int


@manifest_router.post(
    "",
    response_model=ManifestDraftView,
    status_code=status.HTTP_201_CREATED,
    summary="Start a manifest draft",
)
async def start_draft(body: DraftStart, service: TransportService = Depends(get_transport_service)):
    return service.draft_view(service.start_draft(body))


@manifest_router.post(
    "/from-trip/{trip_id}",
    response_model=ManifestDraftView,
    status_code=status.HTTP_201_CREATED,
    summary="Open a saved trip for editing",
)
async def open_draft(trip_id: str, service: TransportService = Depends(get_transport_service)):
    return service.draft_view(service.open_draft(trip_id))


@manifest_router.get("/{draft_id}", response_model=ManifestDraftView)
async def get_draft(draft_id: str, service: TransportService = Depends(get_transport_service)):
    return service.draft_view(service.get_draft(draft_id))


@manifest_router.delete("/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_draft(draft_id: str, service: TransportService = Depends(get_transport_service)):
    service.discard_draft(draft_id)


@manifest_router.put(
    "/{draft_id}/vehicle",
    response_model=CapacityView,
    summary="Assign a vehicle",
    description="Reports whether the current manifest fits the vehicle.",
)
async def assign_vehicle(
    draft_id: str,
    body: VehicleAssignment,
    service: TransportService = Depends(get_transport_service),
):
    check = service.assign_vehicle(draft_id, body.vehicle_id)
    return CapacityView(
        ok=check.ok, projected=check.projected, capacity=check.capacity, overflow=check.overflow
    )


@manifest_router.get(
    "/{draft_id}/suggestions",
    response_model=list[SuggestionView],
    summary="Same-day appointments that can join this manifest",
)
async def suggestions(draft_id: str, service: TransportService = Depends(get_transport_service)):
    return service.suggestions(draft_id)


@manifest_router.post(
    "/{draft_id}/appointments/{appointment_id}",
    response_model=ManifestEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Add a suggested appointment",
    responses={409: {"description": "Duplicate, or unconfirmed conflict/capacity warning"}},
)
async def add_suggestion(
    draft_id: str,
    appointment_id: str,
    options: SuggestionOptions | None = None,
    confirm: bool = _CONFIRM,
    service: TransportService = Depends(get_transport_service),
):
    return settle(service.add_suggestion(draft_id, appointment_id, options), confirm)


@manifest_router.post(
    "/{draft_id}/patients/{patient_id}",
    response_model=ManifestEntry,
    status_code=status.HTTP_201_CREATED,
    summary="Add a non-TFD passenger by hand",
    responses={422: {"description": "TFD patients must travel through an appointment"}},
)
async def add_manual(
    draft_id: str,
    patient_id: str,
    config: ManualPassengerConfig | None = None,
    confirm: bool = _CONFIRM,
    service: TransportService = Depends(get_transport_service),
):
    return settle(service.add_manual(draft_id, patient_id, config), confirm)


@manifest_router.patch(
    "/{draft_id}/entries/{patient_id}",
    response_model=ManifestEntry,
    summary="Edit an entry's pickup origin or appointment time",
)
async def update_entry(
    draft_id: str,
    patient_id: str,
    body: EntryEdit,
    service: TransportService = Depends(get_transport_service),
):
    return service.update_entry(draft_id, patient_id, body.origin, body.appointment_time)


@manifest_router.delete(
    "/{draft_id}/entries/{patient_id}",
    response_model=ManifestEntry,
    summary="Remove a patient and their companions",
)
async def remove_entry(
    draft_id: str, patient_id: str, service: TransportService = Depends(get_transport_service)
):
    return service.remove_entry(draft_id, patient_id)


@manifest_router.delete(
    "/{draft_id}/entries/{patient_id}/companions/{slot}",
    response_model=ManifestEntry,
    summary="Remove one companion seat",
)
async def remove_companion(
    draft_id: str,
    patient_id: str,
    slot: int,
    service: TransportService = Depends(get_transport_service),
):
    return service.remove_companion(draft_id, patient_id, slot)


@manifest_router.post(
    "/{draft_id}/save",
    response_model=TripRecord,
    summary="Save the draft as a trip",
    description="Creates the trip, or updates the trip the draft was opened from.",
)
async def save_draft(
    draft_id: str,
    body: DraftSave,
    service: TransportService = Depends(get_transport_service),
):
    return service.save_draft(draft_id, body.details, body.expected_version).value


__all__ = ["manifest_router"]
