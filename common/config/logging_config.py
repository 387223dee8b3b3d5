# common/config/logging_config.py
from dataclasses import dataclass
from typing import Optional

from .env_config import require_env, get_env, get_env_float
from .config_types import EnvLogLevel, Environment
from common.api_error import ConfigurationError

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging configuration.

    ``json_logs`` left as None means: JSON lines in production, console
    output everywhere else.
    """

    log_level: EnvLogLevel
    slow_request_ms: float = 1000.0
    json_logs: Optional[bool] = None

    @property
    def level_value(self) -> str:
        return self.log_level.value

    @property
    def level_int(self) -> int:
        return self.log_level.level

    def renders_json(self, environment: Environment) -> bool:
        if self.json_logs is None:
            return environment.is_production
        return self.json_logs


def _parse_flag(name: str) -> Optional[bool]:
    raw = get_env(name)
    if raw is None or raw == "":
        return None
    if raw.lower() in _TRUTHY:
        return True
    if raw.lower() in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean flag, got: {raw!r}")


def load_logging_config() -> LoggingConfig:
    """
    Environment variables:
    - LOG_LEVEL: required, one of EnvLogLevel (case-insensitive)
    - LOG_SLOW_REQUEST_MS: requests slower than this are logged as warnings
    - LOG_JSON: force JSON (true) or console (false) rendering

    Raises:
        ConfigurationError: If LOG_LEVEL is missing or invalid
    """
    raw_level = require_env("LOG_LEVEL").upper()
    try:
        log_level = EnvLogLevel(raw_level)
    except ValueError as exc:
        valid_levels = ", ".join(level.value for level in EnvLogLevel)
        raise ConfigurationError(
            f"Invalid logging configuration. LOG_LEVEL must be one of [{valid_levels}]"
        ) from exc

    return LoggingConfig(
        log_level=log_level,
        slow_request_ms=get_env_float("LOG_SLOW_REQUEST_MS", 1000.0),
        json_logs=_parse_flag("LOG_JSON"),
    )


__all__ = [
    "LoggingConfig",
    "load_logging_config",
]
