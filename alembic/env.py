# alembic/env.py
"""
Alembic environment.

Reads the same DatabaseConfig as the application and swaps the async driver
for its synchronous counterpart, since migrations run outside the event loop.
"""

import sys
from logging.config import fileConfig
from typing import Any

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool
from sqlalchemy.engine import make_url

from app.db.models import DbBaseModel
from common.api_error import ConfigurationError
from common.config import DatabaseConfig, SslMode, get_config, initialize_config

# async driver -> sync driver used for migrations
_SYNC_DRIVERS = {
    "sqlite+aiosqlite": "sqlite",
    "postgresql+asyncpg": "postgresql+psycopg2",
    "postgresql+psycopg": "postgresql+psycopg",
}

load_dotenv()
try:
    initialize_config()
except ConfigurationError as e:
    print(f"FATAL: Configuration error:\n{e}")
    sys.exit(1)

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = DbBaseModel.metadata


def _database() -> DatabaseConfig:
    database = get_config().database
    if database is None:
        raise RuntimeError("DB_DRIVER is not set; there is no database to migrate")
    return database


def get_sync_url(database: DatabaseConfig) -> str:
    url = make_url(database.get_connection_url(include_password=True))
    url = url.set(drivername=_SYNC_DRIVERS[url.drivername])
    return url.render_as_string(hide_password=False)


def get_connect_args(database: DatabaseConfig) -> dict[str, Any]:
    """libpq-style SSL parameters matching the application's asyncpg settings."""
    if database.driver.is_sqlite or database.ssl_mode is None:
        return {}
    if database.ssl_mode == SslMode.DISABLE:
        return {"sslmode": "disable"}

    connect_args: dict[str, Any] = {"sslmode": database.ssl_mode.value}
    for key, path in (
        ("sslrootcert", database.ssl_ca_path),
        ("sslcert", database.ssl_cert_path),
        ("sslkey", database.ssl_key_path),
    ):
        if path is not None:
            connect_args[key] = str(path)
    return connect_args


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it."""
    url = get_sync_url(_database())
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=url.startswith("sqlite"),
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    database = _database()
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_sync_url(database)

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
        connect_args=get_connect_args(database),
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite cannot ALTER most constraints in place
            render_as_batch=connection.dialect.name == "sqlite",
            compare_type=True,
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
