# app/api/v1/__init__.py
from .patient_router import patient_router
from .registry_router import registry_router
from .appointment_router import appointment_router
from .trip_router import trip_router
from .manifest_router import manifest_router

routers = [
    patient_router,
    registry_router,
    appointment_router,
    trip_router,
    manifest_router,
]

__all__ = [
    "patient_router",
    "registry_router",
    "appointment_router",
    "trip_router",
    "manifest_router",
    "routers",
]
