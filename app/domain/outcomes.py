# app/domain/outcomes.py
"""
Soft warnings and confirmable outcomes.

A soft warning is not an exception: the operation is held back and handed
to the caller as an ``Outcome``. Calling ``proceed_anyway()`` runs it as if
no warning had occurred.
"""

import datetime as dt
from dataclasses import dataclass, asdict
from typing import Any, Callable, Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class CapacityWarning:
    projected: int
    capacity: int
    overflow: int

    code = "CAPACITY_WARNING"

    @property
    def message(self) -> str:
        return (
            f"Adding this passenger needs {self.projected} seats; "
            f"the vehicle has {self.capacity} ({self.overflow} over)"
        )

    def to_payload(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **asdict(self)}


@dataclass(frozen=True)
class ConflictWarning:
    patient_id: str
    date: dt.date
    trip_id: str

    code = "CONFLICT_WARNING"

    @property
    def message(self) -> str:
        return (
            f"Patient {self.patient_id} already travels on {self.date.isoformat()} "
            f"(trip {self.trip_id})"
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "patient_id": self.patient_id,
            "date": self.date.isoformat(),
            "trip_id": self.trip_id,
        }


@dataclass(frozen=True)
class RequiresDetachConfirmation:
    appointment_id: str
    trip_id: str
    new_date: dt.date

    code = "REQUIRES_DETACH_CONFIRMATION"

    @property
    def message(self) -> str:
        return (
            f"Appointment {self.appointment_id} is on trip {self.trip_id}; "
            f"moving it to {self.new_date.isoformat()} removes it from that trip"
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "appointment_id": self.appointment_id,
            "trip_id": self.trip_id,
            "new_date": self.new_date.isoformat(),
        }


SoftWarning = Union[CapacityWarning, ConflictWarning, RequiresDetachConfirmation]


class Outcome(Generic[T]):
    """
    Result of an operation that may need confirmation.

    Either already applied (``value`` set, no warnings) or held back with
    ``warnings`` and a continuation that ``proceed_anyway()`` runs once.
    """

    def __init__(
        self,
        value: Optional[T] = None,
        warnings: tuple[SoftWarning, ...] = (),
        continuation: Optional[Callable[[], T]] = None,
    ):
        self._value = value
        self.warnings = tuple(warnings)
        self._continuation = continuation

    @classmethod
    def done(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def pending(
        cls, warnings: list[SoftWarning], continuation: Callable[[], T]
    ) -> "Outcome[T]":
        return cls(warnings=tuple(warnings), continuation=continuation)

    @property
    def requires_confirmation(self) -> bool:
        return self._continuation is not None

    @property
    def value(self) -> Optional[T]:
        return self._value

    def proceed_anyway(self) -> T:
        if self._continuation is not None:
            continuation, self._continuation = self._continuation, None
            self._value = continuation()
        return self._value  # type: ignore[return-value]

    def warning_payloads(self) -> list[dict[str, Any]]:
        return [w.to_payload() for w in self.warnings]

    def __repr__(self) -> str:
        state = "pending" if self.requires_confirmation else "done"
        return f"Outcome({state}, warnings={[w.code for w in self.warnings]})"


__all__ = [
    "CapacityWarning",
    "ConflictWarning",
    "RequiresDetachConfirmation",
    "SoftWarning",
    "Outcome",
]
