# common/api_error/ApiError.py
from typing import Any


class AppError(Exception):
    """Base error for all application-specific issues."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        code: str = "INTERNAL_ERROR",
        **details: Any,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """Serializable view used by the HTTP error handler."""
        payload: dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class DatabaseError(AppError):
    """Specific for DB issues."""

    def __init__(self, message: str, **details: Any):
        super().__init__(message, status_code=503, code="DATABASE_ERROR", **details)


__all__ = ["AppError", "DatabaseError"]
