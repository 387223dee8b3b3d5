# app/domain/errors.py
"""
Domain error taxonomy.

Every hard error aborts its operation before the in-memory model changes.
``PersistenceError`` is the exception: it arrives after the mutation has
been committed in memory, on the receipt's ``persisted`` future.
"""

from typing import Any
from common.api_error import AppError


class ValidationError(AppError):
    """Missing or malformed input (e.g. appointment without patient or date)."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR", **details: Any):
        super().__init__(message, status_code=422, code=code, **details)


class IllegalTransitionError(ValidationError):
    def __init__(self, entity: str, current: str, requested: str, **details: Any):
        super().__init__(
            f"{entity} cannot move from '{current}' to '{requested}'",
            code="ILLEGAL_TRANSITION",
            current=current,
            requested=requested,
            **details,
        )


class NotFoundError(AppError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(
            f"{kind} '{entity_id}' not found",
            status_code=404,
            code="NOT_FOUND",
            kind=kind,
            id=entity_id,
        )


class RetroactiveDateError(AppError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=422, code="RETROACTIVE_DATE", **details)


class DuplicateAppointmentError(AppError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=409, code="DUPLICATE_APPOINTMENT", **details)


class DuplicateInManifestError(AppError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=409, code="DUPLICATE_IN_MANIFEST", **details)


class ManualAddNotAllowedError(AppError):
    """TFD patients must travel through an appointment."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=422, code="MANUAL_ADD_NOT_ALLOWED", **details)


class CapacityExceededError(AppError):
    def __init__(self, occupied: int, capacity: int, **details: Any):
        super().__init__(
            f"Trip needs {occupied} seats but the vehicle has {capacity}",
            status_code=422,
            code="CAPACITY_EXCEEDED",
            occupied=occupied,
            capacity=capacity,
            **details,
        )


class LinkageError(AppError):
    """Appointment/trip link that cannot be made or kept."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=409, code="LINKAGE_ERROR", **details)


class ReferentialIntegrityError(AppError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=409, code="REFERENTIAL_INTEGRITY", **details)


class StaleEntityError(AppError):
    def __init__(self, kind: str, entity_id: str, expected: int, actual: int):
        super().__init__(
            f"{kind} '{entity_id}' was modified concurrently "
            f"(expected version {expected}, found {actual})",
            status_code=409,
            code="STALE_ENTITY",
            expected_version=expected,
            actual_version=actual,
        )


class PersistenceError(AppError):
    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=503, code="PERSISTENCE_ERROR", **details)


__all__ = [
    "ValidationError",
    "IllegalTransitionError",
    "NotFoundError",
    "RetroactiveDateError",
    "DuplicateAppointmentError",
    "DuplicateInManifestError",
    "ManualAddNotAllowedError",
    "CapacityExceededError",
    "LinkageError",
    "ReferentialIntegrityError",
    "StaleEntityError",
    "PersistenceError",
]
