from common.config import AppConfig, DatabaseConfig, PersistenceConfig
from common.logger import logger, get_app_logger, AppLogger

__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "PersistenceConfig",
    "logger",
    "get_app_logger",
    "AppLogger",
]
