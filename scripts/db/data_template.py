"""
Easily extendible template file for demo registry data.

String values are formatted with the record index, so ``"Vehicle {i}"``
becomes ``"Vehicle 0"``, ``"Vehicle 1"``...

    Example: Seed only patients
        await seed_db(repository, {"patients": PATIENT_DATA_TEMPLATE}, records=100)

    Example: Seed the whole registry
        await seed_db(repository, DEFAULT_DATA_TEMPLATE, records=20)
"""

from datetime import date
from typing import Any

# Individual templates
DESTINATION_DATA_TEMPLATE: dict[str, Any] = {
    "name": "Regional Hospital {i}",
    "address": "Av. Central, {i}",
    "phone": "555-01{i:02d}",
}

TREATMENT_TYPE_DATA_TEMPLATE: dict[str, Any] = {
    "name": "Treatment {i}",
    "specialist_name": "Dr. Specialist {i}",
    "notes": "",
}

VEHICLE_DATA_TEMPLATE: dict[str, Any] = {
    "model": "Van {i}",
    "plate": "TFD{i:04d}",
    "capacity": 15,
    "status": "active",
}

DRIVER_DATA_TEMPLATE: dict[str, Any] = {
    "name": "Driver {i}",
    "cnh": "CNH{i:06d}",
    "phone": "555-03{i:02d}",
    "active": True,
}

PATIENT_DATA_TEMPLATE: dict[str, Any] = {
    "name": "Patient {i}",
    "cpf": "000.000.{i:03d}-00",
    "birth_date": date(1970, 1, 1),
    "phone": "555-02{i:02d}",
    "address": "Rua das Flores, {i}",
    "city": "Home Town",
    "is_tfd": True,
    "allows_companion": False,
}

# Combined default template; order matters for references
DEFAULT_DATA_TEMPLATE: dict[str, dict[str, Any]] = {
    "destinations": DESTINATION_DATA_TEMPLATE,
    "treatment_types": TREATMENT_TYPE_DATA_TEMPLATE,
    "vehicles": VEHICLE_DATA_TEMPLATE,
    "drivers": DRIVER_DATA_TEMPLATE,
    "patients": PATIENT_DATA_TEMPLATE,
}

__all__ = [
    "DEFAULT_DATA_TEMPLATE",
    "DESTINATION_DATA_TEMPLATE",
    "TREATMENT_TYPE_DATA_TEMPLATE",
    "VEHICLE_DATA_TEMPLATE",
    "DRIVER_DATA_TEMPLATE",
    "PATIENT_DATA_TEMPLATE",
]
