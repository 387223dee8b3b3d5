# app/api/error_handlers.py
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from common.api_error import AppError
from common.logger import get_app_logger

logger = get_app_logger(__name__)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    request.state.error_code = exc.code
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Domain Error: {exc.code}",
        path=request.url.path,
        error_code=exc.code,
        message=exc.message,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            **exc.to_payload(),
            "timestamp": datetime.now().isoformat(),
        },
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and query params use the same payload as domain errors."""
    request.state.error_code = "VALIDATION_ERROR"
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", path=request.url.path, errors=len(errors))

    return JSONResponse(
        status_code=422,
        content=jsonable_encoder(
            {
                "error": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": {"errors": errors},
                "timestamp": datetime.now().isoformat(),
            }
        ),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]


__all__ = ["app_error_handler", "request_validation_handler", "register_error_handlers"]
