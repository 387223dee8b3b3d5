from .logger_middleware import RequestLoggingMiddleware

__all__ = ["RequestLoggingMiddleware"]
