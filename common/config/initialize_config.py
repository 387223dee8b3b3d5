# common/config/initialize_config.py
"""
Configuration initialization module.

Handles the complete application configuration lifecycle.
"""
from typing import Optional, List
from pydantic import ValidationError
from .app_config import AppConfig, load_app_config
from .structlog_config import configure_structlog
from common.api_error import ConfigurationError


class _ConfigState:
    """
    Process-wide holder for application configuration.
    """

    _instance: Optional["_ConfigState"] = None
    _config: Optional[AppConfig]

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = None
        return cls._instance

    @property
    def config(self) -> AppConfig:
        if not self._config:
            raise RuntimeError(
                "Configuration not initialized. Call initialize_config() at startup."
            )
        return self._config

    @property
    def is_initialized(self) -> bool:
        return self._config is not None

    def set_config(self, config: AppConfig) -> None:
        self._config = config

    def reset(self) -> None:
        """Reset state. FOR TESTING ONLY."""
        self._config = None


_state = _ConfigState()


def initialize_config() -> AppConfig:
    """
    Initialize and validate all application configuration.

    This MUST be called once at application startup before any other code.
    Configuration is validated using Pydantic and will fail fast with clear
    error messages if invalid.

    Raises:
        ConfigurationError: If configuration is invalid or missing
    """
    try:
        config = load_app_config()
    except ValidationError as e:
        # Convert Pydantic errors to ConfigurationError with better messages
        errors: List[str] = []
        for error in e.errors():
            field = ".".join(str(x) for x in error["loc"])
            errors.append(f"{field}: {error['msg']}")

        raise ConfigurationError(
            "Configuration validation failed:\n"
            + "\n".join(f"  - {err}" for err in errors)
        ) from e
    except ValueError as e:
        raise ConfigurationError(f"Configuration validation failed: {e}") from e

    configure_structlog(
        config.logging.level_int,
        json_logs=config.logging.renders_json(config.environment),
    )
    _state.set_config(config)
    return config


def get_config() -> AppConfig:
    """
    Get validated application configuration.

    Raises:
        RuntimeError: If not initialized
    """
    return _state.config


def is_config_initialized() -> bool:
    return _state.is_initialized


def reset_config() -> None:
    """Forget the loaded configuration. FOR TESTING ONLY."""
    _state.reset()


__all__ = ["initialize_config", "get_config", "is_config_initialized", "reset_config"]
