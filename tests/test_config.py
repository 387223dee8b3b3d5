import pytest

from common.api_error import ConfigurationError
from common.config import (
    DbDriver,
    Environment,
    get_config,
    initialize_config,
    load_app_config,
    redact_documents,
    reset_config,
)

_BASE_ENV = {
    "APP_TITLE": "TFD Transport",
    "APP_VERSION": "1.2.3",
    "ENVIRONMENT": "development",
    "LOG_LEVEL": "warning",
}


@pytest.fixture()
def env(monkeypatch):
    for name in (
        "DB_DRIVER",
        "DB_PATH",
        "DB_HOST",
        "DB_PORT",
        "DB_NAME",
        "DB_USER",
        "DB_PASSWORD",
        "DB_SSL_MODE",
        "PERSIST_MAX_RETRIES",
        "LOG_JSON",
        "DRAFT_MAX_OPEN",
        "DRAFT_TTL_MINUTES",
    ):
        monkeypatch.delenv(name, raising=False)
    for name, value in _BASE_ENV.items():
        monkeypatch.setenv(name, value)
    yield monkeypatch
    reset_config()


def test_minimal_environment_runs_in_memory(env):
    config = load_app_config()

    assert config.environment == Environment.DEVELOPMENT
    assert config.database is None
    assert config.logging.level_value == "WARNING"
    assert config.persistence.max_retries == 3
    assert not config.logging.renders_json(config.environment)


def test_sqlite_database_and_worker_settings(env):
    env.setenv("DB_DRIVER", "aiosqlite")
    env.setenv("DB_PATH", "tfd.db")
    env.setenv("PERSIST_MAX_RETRIES", "5")
    env.setenv("DRAFT_MAX_OPEN", "25")

    config = load_app_config()

    assert config.database.driver == DbDriver.AIOSQLITE
    assert config.database.get_connection_url() == "sqlite+aiosqlite:///tfd.db"
    assert config.persistence.max_retries == 5
    assert config.drafts.max_open == 25
    assert config.drafts.ttl_minutes == 480


def test_postgres_url_masks_password(env):
    env.setenv("DB_DRIVER", "asyncpg")
    env.setenv("DB_HOST", "db")
    env.setenv("DB_PORT", "5432")
    env.setenv("DB_NAME", "tfd")
    env.setenv("DB_USER", "tfd")
    env.setenv("DB_PASSWORD", "secret")

    database = load_app_config().database

    assert database.get_connection_url() == "postgresql+asyncpg://tfd:****@db:5432/tfd"
    assert "secret" in database.get_connection_url(include_password=True)
    assert database.to_dict_safe()["password"] == "****"


def test_initialize_config_makes_config_available(env):
    config = initialize_config()

    assert get_config() is config
    assert config.app_title == "TFD Transport"


def test_missing_variable_is_a_configuration_error(env):
    env.delenv("APP_TITLE")

    with pytest.raises(ConfigurationError):
        initialize_config()


def test_production_requires_a_database(env):
    env.setenv("ENVIRONMENT", "production")

    with pytest.raises(ConfigurationError) as exc:
        initialize_config()
    assert "Database config required" in str(exc.value)


def test_unknown_driver_is_rejected(env):
    env.setenv("DB_DRIVER", "oracle")

    with pytest.raises(ConfigurationError):
        initialize_config()


def test_document_numbers_are_masked_in_log_events():
    event = {
        "event": "Patient updated",
        "cpf": "12345678900",
        "patient": {"name": "Maria", "sus_card": "898001"},
    }

    redacted = redact_documents(None, "info", event)

    assert redacted["cpf"] == "*********00"
    assert redacted["patient"] == {"name": "Maria", "sus_card": "****01"}
    assert redacted["event"] == "Patient updated"


def test_log_json_flag_overrides_environment_default(env):
    env.setenv("LOG_JSON", "yes")
    assert load_app_config().logging.renders_json(Environment.DEVELOPMENT)

    env.setenv("LOG_JSON", "maybe")
    with pytest.raises(ConfigurationError):
        load_app_config()
