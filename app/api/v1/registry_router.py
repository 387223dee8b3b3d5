# app/api/v1/registry_router.py
"""
Generic CRUD for the resources trips are built from.

Bodies are validated against the schema of the ``kind`` in the path, so one
router serves destinations, treatment types, vehicles, drivers and support
houses.
"""

from enum import Enum
from typing import Any

import pydantic
from fastapi import APIRouter, Body, Depends, status
from pydantic import BaseModel

from app.api.deps import get_transport_service
from app.db.schemas import (
    DestinationBase,
    DestinationUpdate,
    DriverBase,
    DriverUpdate,
    SupportHouseBase,
    SupportHouseUpdate,
    TreatmentTypeBase,
    TreatmentTypeUpdate,
    VehicleBase,
    VehicleUpdate,
)
from app.domain import EntityKind, ValidationError
from app.services.v1 import TransportService


class ResourceKind(str, Enum):
    DESTINATIONS = "destinations"
    TREATMENT_TYPES = "treatment_types"
    VEHICLES = "vehicles"
    DRIVERS = "drivers"
    SUPPORT_HOUSES = "support_houses"

    @property
    def entity(self) -> EntityKind:
        return EntityKind(self.value)


_SCHEMAS: dict[ResourceKind, tuple[type[BaseModel], type[BaseModel]]] = {
    ResourceKind.DESTINATIONS: (DestinationBase, DestinationUpdate),
    ResourceKind.TREATMENT_TYPES: (TreatmentTypeBase, TreatmentTypeUpdate),
    ResourceKind.VEHICLES: (VehicleBase, VehicleUpdate),
    ResourceKind.DRIVERS: (DriverBase, DriverUpdate),
    ResourceKind.SUPPORT_HOUSES: (SupportHouseBase, SupportHouseUpdate),
}


def _parse(schema: type[BaseModel], payload: dict[str, Any]) -> BaseModel:
    try:
        return schema.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(
            f"Invalid {schema.__name__} payload",
            errors=e.errors(include_url=False, include_context=False),
        ) from e


registry_router = APIRouter(
    prefix="/registry",
    tags=["Registry"],
)


@registry_router.get("/{kind}", summary="List records of one kind")
async def list_records(
    kind: ResourceKind, service: TransportService = Depends(get_transport_service)
) -> list[dict[str, Any]]:
    return [r.model_dump(mode="json") for r in service.registry.list_records(kind.entity)]


@registry_router.get(
    "/{kind}/{record_id}",
    summary="Get one record",
    responses={404: {"description": "Record not found"}},
)
async def get_record(
    kind: ResourceKind,
    record_id: str,
    service: TransportService = Depends(get_transport_service),
) -> dict[str, Any]:
    return service.store.require(kind.entity, record_id).model_dump(mode="json")


@registry_router.post(
    "/{kind}",
    status_code=status.HTTP_201_CREATED,
    summary="Create a record",
    responses={422: {"description": "Invalid payload or unknown default destination"}},
)
async def create_record(
    kind: ResourceKind,
    payload: dict[str, Any] = Body(...),
    service: TransportService = Depends(get_transport_service),
) -> dict[str, Any]:
    create_schema, _ = _SCHEMAS[kind]
    receipt = service.registry.create(kind.entity, _parse(create_schema, payload))
    return receipt.value.model_dump(mode="json")


@registry_router.patch(
    "/{kind}/{record_id}",
    summary="Update a record",
    responses={404: {"description": "Record not found"}},
)
async def update_record(
    kind: ResourceKind,
    record_id: str,
    payload: dict[str, Any] = Body(...),
    service: TransportService = Depends(get_transport_service),
) -> dict[str, Any]:
    _, update_schema = _SCHEMAS[kind]
    receipt = service.registry.update(kind.entity, record_id, _parse(update_schema, payload))
    return receipt.value.model_dump(mode="json")


@registry_router.delete(
    "/{kind}/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a record",
    responses={
        404: {"description": "Record not found"},
        409: {"description": "Record is still referenced"},
    },
)
async def delete_record(
    kind: ResourceKind,
    record_id: str,
    service: TransportService = Depends(get_transport_service),
):
    service.registry.delete(kind.entity, record_id)


__all__ = ["registry_router", "ResourceKind"]
