# app/api/deps.py
from typing import Any, TypeVar

from fastapi import Request

from app.domain import Outcome
from app.services.v1 import TransportService
from common.api_error import AppError

T = TypeVar("T")


class ConfirmationRequiredError(AppError):
    """Soft warnings the caller has not confirmed yet."""

    def __init__(self, warnings: list[dict[str, Any]]):
        super().__init__(
            "Operation needs confirmation",
            status_code=409,
            code="CONFIRMATION_REQUIRED",
            warnings=warnings,
        )


def get_transport_service(request: Request) -> TransportService:
    """Dependency returning the process-wide service built at startup."""
    return request.app.state.transport


def settle(outcome: Outcome[T], confirm: bool) -> T:
    """Apply a held-back operation when confirmed, else report its warnings."""
    if outcome.requires_confirmation and not confirm:
        raise ConfirmationRequiredError(outcome.warning_payloads())
    return outcome.proceed_anyway()


__all__ = ["ConfirmationRequiredError", "get_transport_service", "settle"]
