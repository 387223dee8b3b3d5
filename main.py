# main.py
import asyncio
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Request
from pydantic import BaseModel, Field

from app.api import register_error_handlers
from app.db import DbManager
from app.domain import EntityStore, PersistenceError
from app.domain.commands import PersistenceOp
from app.persistence import (
    EntityRepository,
    InMemoryEntityRepository,
    PersistenceQueue,
    SqlEntityRepository,
)
from app.services.v1 import TransportService
from common.api_error import ConfigurationError
from common.config import get_config, initialize_config, is_configured
from common.logger import get_app_logger
from common.logger.logger_middleware import RequestLoggingMiddleware

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    # Can't use logger yet, but that's OK - this is a fatal startup error
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

config = get_config()
logger = get_app_logger(
    name=__name__,
    track_timing=True,
)

app_title = config.app_title
app_version = config.app_version


def _report_persistence_failure(
    label: str, ops: list[PersistenceOp], error: PersistenceError
) -> None:
    logger.error(
        "Change kept in memory but not persisted",
        job=label,
        ops=len(ops),
        error=error.message,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    db_manager: Optional[DbManager] = None
    repository: EntityRepository
    if config.database is not None:
        logger.info("Database configured", **config.database.to_dict_safe())
        db_manager = DbManager.from_config(config.database)
        repository = SqlEntityRepository(db_manager)
    else:
        logger.warning("No database configured; changes live in memory only")
        repository = InMemoryEntityRepository()

    persistence = PersistenceQueue(repository, config.persistence)
    persistence.on_failure(_report_persistence_failure)
    persistence.start()

    if db_manager is not None:
        # The engine is used from the worker loop only
        await asyncio.wrap_future(persistence.call(db_manager.verify_connection))

    store = EntityStore(persistence)
    await store.load(persistence)

    app.state.db_manager = db_manager
    app.state.persistence = persistence
    app.state.transport = TransportService(store, config.drafts)

    yield
    logger.info("shutting down")
    persistence.shutdown()


app = FastAPI(
    title=app_title,
    version=app_version,
    description=f"Running in {config.environment} environment",
    lifespan=lifespan,
)
app.add_middleware(
    RequestLoggingMiddleware,
    slow_request_threshold=config.logging.slow_request_ms,
    # Search terms carry patient names
    log_query_params=not config.environment.is_production,
)
register_error_handlers(app)


class HealthCheckResponse(BaseModel):
    status: str = Field(..., description="Current system health status")
    timestamp: datetime = Field(..., description="Server time in ISO 8601 format")
    version: str = Field(..., description="Application version")
    logging_configured: bool = Field(..., description="Logging configuration status")
    log_level: str = Field(..., description="Application log level")
    persistence_worker_alive: bool = Field(..., description="Background writer is running")
    database: Optional[dict[str, Any]] = Field(None, description="Database probe result")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Error message describing the failure")
    timestamp: datetime = Field(..., description="Server time when the error occurred")


@app.get(
    "/health",
    response_model=HealthCheckResponse,
    responses={
        200: {"description": "System is healthy", "model": HealthCheckResponse},
        503: {"description": "System is unhealthy", "model": ErrorResponse},
    },
)
async def check_health(request: Request) -> HealthCheckResponse:
    persistence: PersistenceQueue = request.app.state.persistence
    db_manager: Optional[DbManager] = request.app.state.db_manager

    database = None
    if db_manager is not None:
        database = await asyncio.wrap_future(persistence.call(db_manager.health_check))

    if not persistence.is_running or (database is not None and not database["healthy"]):
        logger.error("Health check failed", endpoint="/health", database=database)
        err = ErrorResponse(error="persistence unavailable", timestamp=datetime.now())
        raise HTTPException(status_code=503, detail=err.model_dump(mode="json"))

    logger.info("Health check passed", version=app_version, endpoint="/health")
    return HealthCheckResponse(
        status="Healthy",
        timestamp=datetime.now(),
        version=app_version,
        logging_configured=is_configured(),
        log_level=config.logging.level_value,
        persistence_worker_alive=persistence.is_running,
        database=database,
    )


@app.get("/metrics")
async def metrics(request: Request) -> dict[str, Any]:
    """Logger timing and persistence worker metrics."""
    return {
        "logger": logger.get_timing_stats(),
        "persistence": request.app.state.persistence.get_metrics(),
    }


__all__ = ["app", "config"]
