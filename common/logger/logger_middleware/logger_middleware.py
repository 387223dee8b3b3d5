# common/logger/logger_middleware/logger_middleware.py
"""
Request logging middleware for FastAPI.

The request id is bound into structlog's context variables for the duration
of the request, so domain events ("Trip created", "Appointment detached ...")
carry the id of the request that caused them.

Usage:
    app.add_middleware(
        RequestLoggingMiddleware,
        slow_request_threshold=500,
        log_query_params=False,  # search terms carry patient names
    )
"""

from typing import Callable, Awaitable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import structlog
import time
import uuid

from ..logger import get_app_logger
from .middleware_types import (
    RequestDetails,
    RequestLogEntry,
    RequestMetadata,
    RequestOutcome,
)

REQUEST_ID_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app: ASGIApp,
        *,
        log_details: bool = True,
        slow_request_threshold: float = 1000.0,
        log_query_params: bool = True,
        log_client_info: bool = True,
        logger_name: Optional[str] = None,
    ):
        """
        Args:
            app: ASGI application
            log_details: Include request id, client and parameters
            slow_request_threshold: Milliseconds above which a request is flagged slow
            log_query_params: Include query parameters (may contain PII)
            log_client_info: Include the client address
            logger_name: Custom logger name (defaults to module name)
        """
        super().__init__(app)
        self.log_details = log_details
        self.slow_request_threshold = slow_request_threshold
        self.log_query_params = log_query_params
        self.log_client_info = log_client_info
        self.logger = get_app_logger(name=logger_name or __name__, track_timing=True)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        start_time = time.perf_counter()
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id

        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start_time) * 1000
            response.headers[REQUEST_ID_HEADER] = request_id
            self._log_request(self._build_log_entry(request, response, duration_ms))
        return response

    def _build_log_entry(
        self, request: Request, response: Response, duration_ms: float
    ) -> RequestLogEntry:
        route = getattr(request.scope.get("route"), "path", None) or request.url.path
        metadata = RequestMetadata(
            method=request.method,
            route=route,
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        outcome = RequestOutcome(
            # Set by the AppError handler
            error_code=getattr(request.state, "error_code", None),
            confirmed_override=request.query_params.get("confirm", "").lower() == "true",
        )

        details = None
        if self.log_details:
            details = RequestDetails(
                request_id=request.state.request_id,
                client_host=(
                    request.client.host if self.log_client_info and request.client else None
                ),
                query_params=(
                    dict(request.query_params)
                    if self.log_query_params and request.query_params
                    else None
                ),
                path_params=request.path_params or None,
            )

        return RequestLogEntry(
            metadata=metadata,
            outcome=outcome,
            details=details,
            slow_threshold_ms=self.slow_request_threshold,
        )

    def _log_request(self, entry: RequestLogEntry) -> None:
        """
        5xx at error; slow requests and 4xx at warning, except a pending
        confirmation, which is a normal step of the manifest flow.
        """
        log_data = entry.model_dump(mode="json", exclude_none=True)

        if entry.is_error:  # type: ignore[truthy-function]
            self.logger.error("Request failed with server error", **log_data)
        elif entry.is_slow:  # type: ignore[truthy-function]
            self.logger.warning(
                f"Slow request detected ({entry.metadata.duration_ms}ms)", **log_data
            )
        elif entry.needs_confirmation:
            self.logger.info("Request awaiting confirmation", **log_data)
        elif entry.metadata.status_code >= 400:
            self.logger.warning("Request rejected", **log_data)
        elif entry.outcome.confirmed_override:
            self.logger.info("Request completed with confirmed override", **log_data)
        else:
            self.logger.info("Request completed", **log_data)


__all__ = ["RequestLoggingMiddleware", "REQUEST_ID_HEADER"]
