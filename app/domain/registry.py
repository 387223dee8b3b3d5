# app/domain/registry.py
"""
Registry of patients and the resources trips are built from.

Writes go through the same command path as the manifest engine. Deletes are
refused while something still references the record.
"""

import datetime as dt
from typing import Any, Callable, Optional

from pydantic import BaseModel

from app.db.models import AppointmentStatus, DbBaseModel, PatientStatus
from app.db.schemas import (
    AppointmentRecord,
    DestinationRecord,
    DriverRecord,
    PatientCreate,
    PatientRecord,
    PatientUpdate,
    SupportHouseRecord,
    TreatmentTypeRecord,
    VehicleRecord,
)
from common.logger import get_app_logger
from .commands import Command, CommandReceipt, EntityKind, revise
from .entity_store import EntityStore
from .errors import ReferentialIntegrityError, ValidationError

logger = get_app_logger(__name__)

RESOURCE_RECORDS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.DESTINATION: DestinationRecord,
    EntityKind.TREATMENT_TYPE: TreatmentTypeRecord,
    EntityKind.VEHICLE: VehicleRecord,
    EntityKind.DRIVER: DriverRecord,
    EntityKind.SUPPORT_HOUSE: SupportHouseRecord,
}


class Registry:
    def __init__(self, store: EntityStore):
        self._store = store
        self._guards: dict[EntityKind, Callable[[str], Optional[str]]] = {
            EntityKind.PATIENT: self._patient_references,
            EntityKind.DESTINATION: self._destination_references,
            EntityKind.TREATMENT_TYPE: self._treatment_references,
            EntityKind.VEHICLE: self._vehicle_references,
            EntityKind.DRIVER: self._driver_references,
        }

    # Reference guards ----------------------------------------------------

    def _patient_references(self, patient_id: str) -> Optional[str]:
        if any(a.patient_id == patient_id for a in self._store.appointments()):
            return "appointments"
        if any(
            p.patient_id == patient_id for t in self._store.trips() for p in t.passengers
        ):
            return "trip passengers"
        return None

    def _destination_references(self, destination_id: str) -> Optional[str]:
        if any(a.destination_id == destination_id for a in self._store.appointments()):
            return "appointments"
        if any(
            t.default_destination_id == destination_id
            for t in self._store.all(EntityKind.TREATMENT_TYPE)
        ):
            return "treatment types"
        return None

    def _treatment_references(self, treatment_id: str) -> Optional[str]:
        if any(a.treatment_id == treatment_id for a in self._store.appointments()):
            return "appointments"
        if any(t.treatment_id == treatment_id for t in self._store.trips()):
            return "trips"
        return None

    # Cancelled trips are kept as history and still point at their vehicle and driver
    def _vehicle_references(self, vehicle_id: str) -> Optional[str]:
        if any(t.vehicle_id == vehicle_id for t in self._store.trips()):
            return "trips"
        return None

    def _driver_references(self, driver_id: str) -> Optional[str]:
        if any(t.driver_id == driver_id for t in self._store.trips()):
            return "trips"
        return None

    def _check_links(self, kind: EntityKind, data: dict[str, Any]) -> None:
        if kind is EntityKind.TREATMENT_TYPE and data.get("default_destination_id"):
            if self._store.destination(data["default_destination_id"]) is None:
                raise ValidationError(
                    "Default destination does not exist",
                    default_destination_id=data["default_destination_id"],
                )
        if kind is EntityKind.VEHICLE:
            plate = data.get("plate", "").upper()
            for vehicle in self._store.all(EntityKind.VEHICLE):
                if vehicle.plate.upper() == plate and vehicle.id != data.get("id"):
                    raise ValidationError(f"Plate {plate} is already registered")

    # Generic CRUD --------------------------------------------------------

    def create(self, kind: EntityKind, data: BaseModel) -> CommandReceipt[Any]:
        record_cls = PatientRecord if kind is EntityKind.PATIENT else RESOURCE_RECORDS[kind]
        fields = data.model_dump()
        self._check_links(kind, fields)
        record = record_cls.model_validate({"id": DbBaseModel.generate_uuid(), **fields})

        receipt = self._store.execute(
            Command(label=f"{kind.value}.create", apply=lambda c: c.put(kind, record))
        )
        logger.info("Registry record created", kind=kind.value, id=record.id)
        return receipt

    def update(self, kind: EntityKind, entity_id: str, changes: BaseModel) -> CommandReceipt[Any]:
        current = self._store.require(kind, entity_id)
        fields = changes.model_dump(exclude_unset=True)
        merged = {**current.model_dump(), **fields}
        self._check_links(kind, merged)
        updated = revise(current, **fields)

        receipt = self._store.execute(
            Command(label=f"{kind.value}.update", apply=lambda c: c.put(kind, updated))
        )
        logger.info("Registry record updated", kind=kind.value, id=entity_id, fields=sorted(fields))
        return receipt

    def delete(self, kind: EntityKind, entity_id: str) -> CommandReceipt[Any]:
        self._store.require(kind, entity_id)
        guard = self._guards.get(kind)
        referenced_by = guard(entity_id) if guard else None
        if referenced_by is not None:
            raise ReferentialIntegrityError(
                f"{kind.label} '{entity_id}' is still referenced by {referenced_by}",
                kind=kind.value,
                referenced_by=referenced_by,
            )

        receipt = self._store.execute(
            Command(label=f"{kind.value}.delete", apply=lambda c: c.remove(kind, entity_id))
        )
        logger.info("Registry record deleted", kind=kind.value, id=entity_id)
        return receipt

    def list_records(self, kind: EntityKind) -> list[Any]:
        records = self._store.all(kind)
        key = "model" if kind is EntityKind.VEHICLE else "name"
        return sorted(records, key=lambda r: getattr(r, key).lower())

    # Patients ------------------------------------------------------------

    def create_patient(self, data: PatientCreate) -> CommandReceipt[PatientRecord]:
        return self.create(EntityKind.PATIENT, data)

    def update_patient(self, patient_id: str, changes: PatientUpdate) -> CommandReceipt[PatientRecord]:
        return self.update(EntityKind.PATIENT, patient_id, changes)

    def delete_patient(self, patient_id: str) -> CommandReceipt[PatientRecord]:
        return self.delete(EntityKind.PATIENT, patient_id)

    def list_patients(
        self,
        search: Optional[str] = None,
        is_tfd: Optional[bool] = None,
        status: Optional[PatientStatus] = None,
    ) -> list[PatientRecord]:
        term = search.strip().lower() if search else ""
        result = []
        for patient in self.list_records(EntityKind.PATIENT):
            if is_tfd is not None and patient.is_tfd != is_tfd:
                continue
            if status is not None and patient.status != status:
                continue
            if term and term not in patient.name.lower() and term not in patient.cpf:
                continue
            result.append(patient)
        return result

    # Appointment search --------------------------------------------------

    def search_appointments(
        self,
        date: Optional[dt.date] = None,
        patient_name: Optional[str] = None,
        location: Optional[str] = None,
        status: Optional[AppointmentStatus] = None,
        treatment_id: Optional[str] = None,
        return_only: bool = False,
    ) -> list[AppointmentRecord]:
        name_term = patient_name.lower() if patient_name else ""
        location_term = location.lower() if location else ""
        result = []
        for appointment in self._store.appointments():
            if date is not None and appointment.date != date:
                continue
            if name_term and name_term not in appointment.patient_name.lower():
                continue
            if location_term and location_term not in appointment.destination_name.lower():
                continue
            if treatment_id is not None and appointment.treatment_id != treatment_id:
                continue
            if status is not None and appointment.status != status:
                continue
            if return_only and not appointment.is_return:
                continue
            result.append(appointment)
        result.sort(key=lambda a: (a.date, a.time))
        return result


__all__ = ["Registry", "RESOURCE_RECORDS"]
