from .db_base_model import DbBaseModel
from .enums import *  # noqa: F401,F403
from .patient_table import Patient
from .registry_tables import Destination, TreatmentType, Vehicle, Driver, SupportHouse
from .appointment_table import Appointment
from .trip_table import Trip, TripPassenger

__all__ = [
    "DbBaseModel",
    "Patient",
    "Destination",
    "TreatmentType",
    "Vehicle",
    "Driver",
    "SupportHouse",
    "Appointment",
    "Trip",
    "TripPassenger",
    "PatientStatus",
    "VehicleStatus",
    "AppointmentStatus",
    "TripStatus",
    "PassengerStatus",
    "LegMode",
]
