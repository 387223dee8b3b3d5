# common/logger/logger_middleware/middleware_types.py
"""
Shapes of the per-request log event.
"""

from typing import Optional, Dict, Any
from datetime import datetime
from pydantic import BaseModel, Field, computed_field


class RequestMetadata(BaseModel):
    method: str = Field(..., description="HTTP method")
    # Route template (``/trips/{trip_id}``), so ids do not explode log cardinality
    route: str = Field(..., description="Matched route or raw path")
    status_code: int = Field(..., ge=100, le=599)
    duration_ms: float = Field(..., ge=0)

    model_config = {"frozen": True}


class RequestOutcome(BaseModel):
    """What the domain made of the request."""

    error_code: Optional[str] = Field(None, description="AppError code, if one was raised")
    confirmed_override: bool = Field(
        False, description="Caller passed confirm=true to accept soft warnings"
    )

    model_config = {"frozen": True}


class RequestDetails(BaseModel):
    request_id: str
    client_host: Optional[str] = None
    query_params: Optional[Dict[str, Any]] = None
    path_params: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}


class RequestLogEntry(BaseModel):
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: RequestMetadata
    outcome: RequestOutcome = Field(default_factory=RequestOutcome)
    details: Optional[RequestDetails] = None
    slow_threshold_ms: float = Field(default=1000.0, exclude=True)

    model_config = {"frozen": True}

    @computed_field
    def is_slow(self) -> bool:
        return self.metadata.duration_ms > self.slow_threshold_ms

    @computed_field
    def is_error(self) -> bool:
        return self.metadata.status_code >= 500

    @property
    def needs_confirmation(self) -> bool:
        return self.outcome.error_code == "CONFIRMATION_REQUIRED"


__all__ = [
    "RequestMetadata",
    "RequestOutcome",
    "RequestDetails",
    "RequestLogEntry",
]
