# common/config/app_config.py
"""
Complete application configuration with validation.
Database configuration with SSL support, plus the persistence worker knobs.
"""

from typing import Optional, Any
from pydantic import BaseModel, Field, field_validator, model_validator, SecretStr
from .config_types import EnvLogLevel, DbDriver, SslMode, Environment
from .env_config import require_env, get_env, get_env_int, get_env_float
from .logging_config import LoggingConfig
from pathlib import Path


class DatabaseConfig(BaseModel):
    """
    Database configuration with SSL/TLS support.

    PostgreSQL drivers need host/port/name; the aiosqlite driver only needs
    a file path (``:memory:`` is accepted for throwaway runs).
    """

    driver: DbDriver = Field(...)

    # Basic connection (PostgreSQL)
    host: Optional[str] = Field(default=None, min_length=1)
    port: Optional[int] = Field(default=None, gt=0, le=65535)
    name: Optional[str] = Field(default=None, min_length=1, description="Database name")

    # SQLite
    path: Optional[str] = Field(default=None, min_length=1)

    # Authentication (keep separate from URL for security)
    username: Optional[str] = Field(default=None, min_length=1)
    password: Optional[SecretStr] = Field(default=None)  # Pydantic hides this in logs

    # Connection pooling
    pool_size: int = Field(default=5, ge=1, le=100)
    max_overflow: int = Field(default=10, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=1, le=300)
    pool_recycle: int = Field(default=3600, ge=300)  # Min 5 minutes

    # SSL/TLS Configuration
    ssl_mode: Optional[SslMode] = Field(default=None)
    ssl_cert_path: Optional[Path] = Field(default=None)
    ssl_key_path: Optional[Path] = Field(default=None)
    ssl_ca_path: Optional[Path] = Field(default=None)

    model_config = {"frozen": True}

    @field_validator("ssl_cert_path", "ssl_key_path", "ssl_ca_path")
    @classmethod
    def validate_ssl_paths(cls, v: Optional[Path]) -> Optional[Path]:
        """Validate SSL certificate paths exist."""
        if v is not None and not v.exists():
            raise ValueError(f"SSL file not found: {v}")
        return v

    @model_validator(mode="after")
    def validate_driver_fields(self) -> "DatabaseConfig":
        if self.driver.is_sqlite:
            if not self.path:
                raise ValueError("DB_PATH is required for the aiosqlite driver")
        elif not (self.host and self.port and self.name):
            raise ValueError("DB_HOST, DB_PORT and DB_NAME are required for PostgreSQL")
        return self

    def get_connection_url(self, include_password: bool = False) -> str:
        """
        Build SQLAlchemy connection URL.

        Args:
            include_password: If True, include password in URL (use for actual connections)
                            If False, mask it (use for logging)
        """
        if self.driver.is_sqlite:
            return f"sqlite+aiosqlite:///{self.path}"

        if self.username:
            if include_password and self.password:
                auth = f"{self.username}:{self.password.get_secret_value()}"
            else:
                auth = f"{self.username}:****"
            return f"postgresql+{self.driver.value}://{auth}@{self.host}:{self.port}/{self.name}"

        return f"postgresql+{self.driver.value}://{self.host}:{self.port}/{self.name}"

    def requires_ssl(self) -> bool:
        return self.ssl_mode in [
            SslMode.REQUIRE,
            SslMode.VERIFY_CA,
            SslMode.VERIFY_FULL,
        ]

    def to_dict_safe(self) -> dict[str, Any]:
        """Convert to dict with sensitive data masked (safe for logging)."""
        data = self.model_dump()
        if data.get("password"):
            data["password"] = "****"
        return data


class PersistenceConfig(BaseModel):
    """
    Background persistence worker configuration.

    Mutations are committed in memory first; the worker pushes them to the
    repository and retries with exponential backoff before giving up.
    """

    max_retries: int = Field(default=3, ge=0, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0, le=60)
    queue_size: int = Field(default=10000, ge=1)

    model_config = {"frozen": True}


class DraftConfig(BaseModel):
    """
    Open manifest drafts kept between requests.

    A draft untouched for ``ttl_minutes`` is dropped, and once ``max_open``
    drafts are open the least recently used one makes room for a new one.
    """

    ttl_minutes: int = Field(default=480, ge=1)
    max_open: int = Field(default=200, ge=1)

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """
    Complete application configuration.

    All configuration is loaded from environment variables and validated
    at startup. Invalid configuration will fail fast with clear error messages.
    """

    app_title: str = Field(..., min_length=1)
    app_version: str = Field(..., pattern=r"^\d+\.\d+\.\d+$")  # Semantic versioning
    environment: Environment

    logging: LoggingConfig
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    drafts: DraftConfig = Field(default_factory=DraftConfig)
    database: Optional[DatabaseConfig] = None

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def validate_production_settings(self) -> "AppConfig":
        """
        Validate production-specific requirements.
        """
        if self.environment.is_production:
            if self.database is None:
                raise ValueError("Database config required in production")
            if self.database.driver.is_sqlite:
                raise ValueError("SQLite is not allowed in production")
            if self.logging.log_level == EnvLogLevel.DEBUG:
                raise ValueError("DEBUG log level not allowed in production")
        return self


def load_database_config(environment: Environment) -> Optional[DatabaseConfig]:
    """
    Load database configuration from environment.

    Environment variables:
    - DB_DRIVER: asyncpg, psycopg or aiosqlite (absent = no database)
    - DB_PATH: SQLite file (aiosqlite only)
    - DB_HOST, DB_PORT, DB_NAME: PostgreSQL location
    - DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT, DB_POOL_RECYCLE: pool tuning
    - DB_USER, DB_PASSWORD, DB_SSL_MODE: required in production
    - DB_SSL_CERT, DB_SSL_KEY, DB_SSL_CA: optional certificate paths
    """
    driver_str = get_env("DB_DRIVER")
    if not driver_str:
        return None

    try:
        driver = DbDriver(driver_str)
    except ValueError:
        valid_drivers = [d.value for d in DbDriver]
        raise ValueError(
            f"Invalid DB_DRIVER: {driver_str}. Must be one of: {valid_drivers}"
        )

    if driver.is_sqlite:
        return DatabaseConfig(driver=driver, path=require_env("DB_PATH"))

    username: Optional[str]
    password_str: Optional[str]
    ssl_mode_str: Optional[str]

    if environment.is_production:
        # Production: credentials are REQUIRED
        username = require_env("DB_USER")
        password_str = require_env("DB_PASSWORD")
        ssl_mode_str = require_env("DB_SSL_MODE")
    else:
        username = get_env("DB_USER")
        password_str = get_env("DB_PASSWORD")
        ssl_mode_str = get_env("DB_SSL_MODE")

    ssl_mode: Optional[SslMode] = None
    if ssl_mode_str:
        try:
            ssl_mode = SslMode(ssl_mode_str)
        except ValueError:
            valid_modes = [m.value for m in SslMode]
            raise ValueError(
                f"Invalid DB_SSL_MODE: {ssl_mode_str}. Must be one of: {valid_modes}"
            )

    ssl_cert = get_env("DB_SSL_CERT")
    ssl_key = get_env("DB_SSL_KEY")
    ssl_ca = get_env("DB_SSL_CA")

    return DatabaseConfig(
        driver=driver,
        host=require_env("DB_HOST"),
        port=int(require_env("DB_PORT")),
        name=require_env("DB_NAME"),
        username=username,
        password=SecretStr(password_str) if password_str else None,
        pool_size=get_env_int("DB_POOL_SIZE", 5),
        max_overflow=get_env_int("DB_MAX_OVERFLOW", 10),
        pool_timeout=get_env_int("DB_POOL_TIMEOUT", 30),
        pool_recycle=get_env_int("DB_POOL_RECYCLE", 3600),
        ssl_mode=ssl_mode,
        ssl_cert_path=Path(ssl_cert) if ssl_cert else None,
        ssl_key_path=Path(ssl_key) if ssl_key else None,
        ssl_ca_path=Path(ssl_ca) if ssl_ca else None,
    )


def load_persistence_config() -> PersistenceConfig:
    return PersistenceConfig(
        max_retries=get_env_int("PERSIST_MAX_RETRIES", 3),
        retry_base_delay=get_env_float("PERSIST_RETRY_BASE_DELAY", 0.5),
        queue_size=get_env_int("PERSIST_QUEUE_SIZE", 10000),
    )


def load_draft_config() -> DraftConfig:
    return DraftConfig(
        ttl_minutes=get_env_int("DRAFT_TTL_MINUTES", 480),
        max_open=get_env_int("DRAFT_MAX_OPEN", 200),
    )


def load_app_config() -> AppConfig:
    """
    Load complete application configuration.

    Raises:
        ValidationError: If configuration is invalid
        ConfigurationError: If required env vars are missing
    """
    from .logging_config import load_logging_config

    env_str = require_env("ENVIRONMENT")

    try:
        environment = Environment(env_str)
    except ValueError:
        valid_envs = [e.value for e in Environment]
        raise ValueError(
            f"Invalid ENVIRONMENT: {env_str}. Must be one of: {valid_envs}"
        )

    return AppConfig(
        app_title=require_env("APP_TITLE"),
        app_version=require_env("APP_VERSION"),
        environment=environment,
        logging=load_logging_config(),
        persistence=load_persistence_config(),
        drafts=load_draft_config(),
        database=load_database_config(environment),
    )


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "PersistenceConfig",
    "DraftConfig",
    "load_app_config",
]
