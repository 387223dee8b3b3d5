# app/api/__init__.py
from .error_handlers import register_error_handlers
from .deps import ConfirmationRequiredError, get_transport_service, settle

__all__ = [
    "register_error_handlers",
    "ConfirmationRequiredError",
    "get_transport_service",
    "settle",
]
