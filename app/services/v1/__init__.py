# app/services/v1/__init__.py
from .transport_service import TransportService

__all__ = ["TransportService"]
