# common/config/config_types.py
"""Configuration type definitions."""

from enum import Enum
import logging


class EnvLogLevel(str, Enum):
    """
    Supported log levels.

    Inherits from str so enum values serialize naturally to JSON/strings
    without custom serialization logic.

    Examples:
        >>> EnvLogLevel.INFO
        <EnvLogLevel.INFO: 'INFO'>
        >>> str(EnvLogLevel.INFO)
        'INFO'
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @property
    def level(self) -> int:
        """Get numeric logging level for stdlib logging module."""
        return getattr(logging, self.value)

    def __str__(self) -> str:
        return self.value


class Environment(str, Enum):
    """Application environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self == Environment.DEVELOPMENT

    def __str__(self) -> str:
        return self.value


class DbDriver(str, Enum):
    """Supported database drivers."""

    ASYNCPG = "asyncpg"
    PSYCOPG = "psycopg"
    AIOSQLITE = "aiosqlite"

    @property
    def is_sqlite(self) -> bool:
        return self == DbDriver.AIOSQLITE


class SslMode(str, Enum):
    """PostgreSQL SSL modes."""

    DISABLE = "disable"
    ALLOW = "allow"
    PREFER = "prefer"
    REQUIRE = "require"
    VERIFY_CA = "verify-ca"
    VERIFY_FULL = "verify-full"


__all__ = [
    "EnvLogLevel",
    "Environment",
    "DbDriver",
    "SslMode",
]
