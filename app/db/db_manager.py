# app/db/db_manager.py
"""
Engine and session handling for the SQL repository.

Schema changes go through Alembic; nothing here creates tables. The manager
is only ever used from the persistence worker's event loop.
"""

import ssl as ssl_module
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Any, Optional

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine,
)

from common import DatabaseConfig, get_app_logger
from common.config import SslMode

logger = get_app_logger(__name__)

_SUPPORTED_URLS = ("postgresql+asyncpg://", "postgresql+psycopg://", "sqlite+aiosqlite://")


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # trip_passengers relies on ON DELETE CASCADE, which SQLite ignores by default
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _asyncpg_ssl(config: DatabaseConfig) -> Optional[Any]:
    """``ssl`` connect argument for asyncpg, or None to leave the driver default."""
    if config.ssl_mode is None:
        return None
    if config.ssl_mode == SslMode.DISABLE:
        return False
    if not config.requires_ssl():
        return None

    context = ssl_module.create_default_context()
    if config.ssl_ca_path:
        context.load_verify_locations(cafile=str(config.ssl_ca_path))
    if config.ssl_cert_path and config.ssl_key_path:
        context.load_cert_chain(
            certfile=str(config.ssl_cert_path), keyfile=str(config.ssl_key_path)
        )
    if config.ssl_mode == SslMode.VERIFY_FULL:
        context.check_hostname = True
        context.verify_mode = ssl_module.CERT_REQUIRED
    return context


class DbManager:
    """
    Usage (on the persistence worker loop):
        db_manager = DbManager.from_config(config.database)
        await db_manager.verify_connection()

        async with db_manager.session() as session:
            await session.merge(row)

        await db_manager.dispose()
    """

    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        echo: bool = False,
        connect_args: Optional[dict[str, Any]] = None,
    ):
        if not url or not url.startswith(_SUPPORTED_URLS):
            raise ValueError(
                f"Invalid database URL. Expected one of {_SUPPORTED_URLS}, got: {url[:20]}..."
            )
        self.dialect = "sqlite" if url.startswith("sqlite") else "postgresql"

        engine_kwargs: dict[str, Any] = {"echo": echo, "connect_args": connect_args or {}}
        # A single writer thread needs only a small server pool; SQLite has none
        if self.dialect == "postgresql":
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
                pool_pre_ping=True,
            )

        self.engine: AsyncEngine = create_async_engine(url, **engine_kwargs)
        if self.dialect == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("DbManager initialized", dialect=self.dialect, pool_size=pool_size)

    @classmethod
    def from_config(cls, config: DatabaseConfig, **kwargs: Any) -> "DbManager":
        url = config.get_connection_url(include_password=True)
        if config.driver.is_sqlite:
            return cls(url=url, **kwargs)

        connect_args = kwargs.pop("connect_args", {})
        if config.driver.value == "asyncpg":
            ssl_arg = _asyncpg_ssl(config)
            if ssl_arg is not None:
                connect_args["ssl"] = ssl_arg

        return cls(
            url=url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            connect_args=connect_args,
            **kwargs,
        )

    async def verify_connection(self) -> None:
        """
        Fail fast at startup.

        Raises:
            ConnectionError: If the database cannot be reached
        """
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error("Database connection failed", error=str(e))
            raise ConnectionError(f"Failed to connect to database: {e}") from e
        logger.info("Database connection verified", dialect=self.dialect)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """One transaction: commits on success, rolls back on exception."""
        session = self.session_maker()
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error("Session error, rolled back", error=str(e))
            raise
        finally:
            await session.close()

    async def health_check(self) -> dict[str, Any]:
        start = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            return {"healthy": False, "dialect": self.dialect, "error": str(e)}

        return {
            "healthy": True,
            "dialect": self.dialect,
            "response_time_ms": round((time.perf_counter() - start) * 1000, 2),
        }

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Database connections disposed")


__all__ = ["DbManager"]
