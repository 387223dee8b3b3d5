# app/db/models/enums.py
from enum import Enum


class PatientStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class VehicleStatus(str, Enum):
    ACTIVE = "active"
    MAINTENANCE = "maintenance"


class AppointmentStatus(str, Enum):
    PENDING = "pending"  # Waiting for a trip
    SCHEDULED_TRIP = "scheduled_trip"  # Linked to a trip (trip_id set)
    COMPLETED = "completed"  # Patient attended
    CANCELLED = "cancelled"
    MISSED = "missed"  # Patient did not show up
    RESCHEDULED = "rescheduled"  # Waiting for a new date

    @property
    def is_active(self) -> bool:
        return self in _ACTIVE_APPOINTMENT_STATUSES

    @property
    def is_resolved(self) -> bool:
        """Resolved states may still be reopened to pending."""
        return not self.is_active


_ACTIVE_APPOINTMENT_STATUSES = frozenset(
    {
        AppointmentStatus.PENDING,
        AppointmentStatus.SCHEDULED_TRIP,
        AppointmentStatus.RESCHEDULED,
    }
)


class TripStatus(str, Enum):
    SCHEDULED = "scheduled"
    BOARDING = "boarding"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TripStatus.COMPLETED, TripStatus.CANCELLED)


class PassengerStatus(str, Enum):
    CONFIRMED = "confirmed"
    BOARDED = "boarded"
    MISSING = "missing"


class LegMode(str, Enum):
    """Which leg(s) of the journey a passenger row covers."""

    ONE_WAY = "one-way"  # outbound only
    RETURN = "return"  # inbound only
    ROUND_TRIP = "round-trip"  # both

    @property
    def is_return(self) -> bool:
        return self == LegMode.RETURN

    @property
    def is_round_trip(self) -> bool:
        return self == LegMode.ROUND_TRIP

    @classmethod
    def from_flags(cls, is_return: bool, is_round_trip: bool) -> "LegMode":
        """
        Map the legacy boolean pair to a leg mode.

        Raises:
            ValueError: both flags set, which names two different legs at once
        """
        if is_return and is_round_trip:
            raise ValueError("A passenger row cannot be both return-only and round-trip")
        if is_return:
            return cls.RETURN
        if is_round_trip:
            return cls.ROUND_TRIP
        return cls.ONE_WAY


__all__ = [
    "PatientStatus",
    "VehicleStatus",
    "AppointmentStatus",
    "TripStatus",
    "PassengerStatus",
    "LegMode",
]
