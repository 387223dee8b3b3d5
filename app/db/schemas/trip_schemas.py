# app/db/schemas/trip_schemas.py
import datetime as dt
from typing import Callable, Iterable, Optional
from pydantic import BaseModel, Field, ConfigDict, computed_field, model_validator
from ..models import TripStatus, PassengerStatus, LegMode, DbBaseModel


class PassengerRecord(BaseModel):
    """
    One seat allocation on a trip.

    Companion rows carry the patient's id in both ``patient_id`` and
    ``related_patient_id`` and name the companion in ``patient_name``.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    trip_id: str
    patient_id: str
    patient_name: str
    is_companion: bool = False
    related_patient_id: Optional[str] = None
    companion_slot: Optional[int] = Field(None, ge=1, le=2)
    status: PassengerStatus = PassengerStatus.CONFIRMED
    origin: str = ""
    destination: str = ""
    appointment_time: str = ""
    appointment_id: Optional[str] = None
    leg_mode: LegMode = LegMode.ROUND_TRIP

    @model_validator(mode="after")
    def check_companion_link(self) -> "PassengerRecord":
        if self.is_companion:
            if self.related_patient_id is None or self.companion_slot is None:
                raise ValueError("Companion rows need related_patient_id and companion_slot")
        elif self.related_patient_id is not None or self.companion_slot is not None:
            raise ValueError("Patient rows cannot carry companion fields")
        return self

    @property
    def is_return(self) -> bool:
        return self.leg_mode.is_return

    @property
    def is_round_trip(self) -> bool:
        return self.leg_mode.is_round_trip


def count_seats(passengers: Iterable[PassengerRecord]) -> int:
    """Seats used: each patient row plus its first and second companion rows."""
    rows = list(passengers)
    companions = {
        (p.related_patient_id, p.companion_slot) for p in rows if p.is_companion
    }
    seats = 0
    for row in rows:
        if row.is_companion:
            continue
        seats += 1
        seats += (row.patient_id, 1) in companions
        seats += (row.patient_id, 2) in companions
    return seats


class TripRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    date: dt.date
    time: str = ""
    origin: str = ""
    destination: str = ""
    treatment_id: Optional[str] = None
    treatment_name: str = ""
    driver_id: str
    driver_name: str = ""
    vehicle_id: str
    vehicle_model: str = ""
    vehicle_plate: str = ""
    total_seats: int = Field(..., gt=0)
    status: TripStatus = TripStatus.SCHEDULED
    notes: str = ""
    passengers: list[PassengerRecord] = Field(default_factory=list)
    version: int = Field(1, ge=1)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def occupied_seats(self) -> int:
        return count_seats(self.passengers)

    def header(self) -> dict:
        """Trip columns without the passenger rows (what the trips table stores)."""
        return self.model_dump(exclude={"passengers", "occupied_seats"})

    def rows_for_patient(self, patient_id: str) -> list[PassengerRecord]:
        return [p for p in self.passengers if p.patient_id == patient_id]

    def linked_appointment_ids(self) -> set[str]:
        return {
            p.appointment_id
            for p in self.passengers
            if p.appointment_id is not None and not p.is_companion
        }


class ManifestEntry(BaseModel):
    """
    One patient on a manifest with up to two companions.

    ``appointment_id`` is None for manual (non-TFD) entries. Identity fields
    are fixed once the entry is in a draft; only ``origin`` and
    ``appointment_time`` may be edited.
    """

    model_config = ConfigDict(frozen=True)

    patient_id: str
    patient_name: str
    appointment_id: Optional[str] = None
    leg_mode: LegMode = LegMode.ROUND_TRIP
    origin: str = ""
    destination: str = ""
    appointment_time: str = ""
    has_companion: bool = False
    companion_name: str = ""
    has_second_companion: bool = False
    second_companion_name: str = ""

    @property
    def seats(self) -> int:
        return 1 + int(self.has_companion) + int(self.has_second_companion)

    @property
    def is_manual(self) -> bool:
        return self.appointment_id is None

    def rows(
        self,
        trip_id: str,
        id_factory: Callable[[], str] = DbBaseModel.generate_uuid,
    ) -> list[PassengerRecord]:
        common = {
            "trip_id": trip_id,
            "origin": self.origin,
            "destination": self.destination,
            "appointment_time": self.appointment_time,
            "leg_mode": self.leg_mode,
        }
        rows = [
            PassengerRecord(
                id=id_factory(),
                patient_id=self.patient_id,
                patient_name=self.patient_name,
                appointment_id=self.appointment_id,
                **common,
            )
        ]
        companions = (
            (1, self.has_companion, self.companion_name),
            (2, self.has_second_companion, self.second_companion_name),
        )
        for slot, present, name in companions:
            if present:
                rows.append(
                    PassengerRecord(
                        id=id_factory(),
                        patient_id=self.patient_id,
                        patient_name=name or f"Companion {slot} of {self.patient_name}",
                        is_companion=True,
                        related_patient_id=self.patient_id,
                        companion_slot=slot,
                        **common,
                    )
                )
        return rows

    @classmethod
    def from_rows(cls, rows: list[PassengerRecord]) -> "ManifestEntry":
        """Rebuild an entry from one patient's persisted rows."""
        main = next(r for r in rows if not r.is_companion)
        by_slot = {r.companion_slot: r for r in rows if r.is_companion}
        first = by_slot.get(1)
        second = by_slot.get(2)
        return cls(
            patient_id=main.patient_id,
            patient_name=main.patient_name,
            appointment_id=main.appointment_id,
            leg_mode=main.leg_mode,
            origin=main.origin,
            destination=main.destination,
            appointment_time=main.appointment_time,
            has_companion=first is not None,
            companion_name=first.patient_name if first else "",
            has_second_companion=second is not None,
            second_companion_name=second.patient_name if second else "",
        )


class TripDetails(BaseModel):
    """Header fields an operator supplies when saving a trip."""

    date: dt.date
    time: str = Field("", max_length=10)
    origin: str = ""
    destination: str = ""
    treatment_id: Optional[str] = None
    vehicle_id: str
    driver_id: str
    status: TripStatus = TripStatus.SCHEDULED
    notes: str = ""


class TripWrite(BaseModel):
    details: TripDetails
    entries: list[ManifestEntry]
    expected_version: Optional[int] = None


class TripStatusChange(BaseModel):
    status: TripStatus


class PassengerStatusChange(BaseModel):
    status: PassengerStatus


__all__ = [
    "PassengerRecord",
    "TripRecord",
    "ManifestEntry",
    "TripDetails",
    "TripWrite",
    "TripStatusChange",
    "PassengerStatusChange",
    "count_seats",
]
