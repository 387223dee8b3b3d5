# common/logger/logger.py
"""
Application logger with explicit initialization.

Usage:
    from common.logger import get_app_logger

    logger = get_app_logger(__name__)
    logger.info("Trip created", trip_id=trip.id, passengers=3)

    # Bind context that every later call carries
    trip_log = logger.bind(trip_id=trip.id)
    trip_log.warning("Capacity override confirmed")
"""

import time
from typing import Any, Dict, Optional
import structlog

from common.config.structlog_config import get_logger as _get_structlog_logger


class TimingStats:
    """Track timing statistics for logger performance."""

    def __init__(self) -> None:
        self.total_calls = 0
        self.total_time = 0.0
        self.max_time = 0.0
        self.min_time = float("inf")

    def record(self, elapsed: float) -> None:
        self.total_calls += 1
        self.total_time += elapsed
        self.max_time = max(self.max_time, elapsed)
        self.min_time = min(self.min_time, elapsed)

    def get_stats(self) -> Dict[str, Any]:
        avg = self.total_time / self.total_calls if self.total_calls > 0 else 0
        return {
            "total_calls": self.total_calls,
            "avg_time_ms": avg * 1000,
            "max_time_ms": self.max_time * 1000,
            "min_time_ms": self.min_time * 1000 if self.min_time != float("inf") else 0,
        }

    def reset(self) -> None:
        self.total_calls = 0
        self.total_time = 0.0
        self.max_time = 0.0
        self.min_time = float("inf")


class AppLogger:
    """
    Application logger wrapper with optional timing.

    Provides a type-safe interface to structlog. The underlying logger is
    resolved lazily so modules can create loggers at import time, before
    configure_structlog() has run.
    """

    def __init__(
        self,
        name: str = "app",
        track_timing: bool = False,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._name = name
        self._track_timing = track_timing
        self._context: Dict[str, Any] = dict(context or {})
        self._logger_instance: Optional[structlog.BoundLogger] = None
        self._timing_stats: Optional[TimingStats] = (
            TimingStats() if track_timing else None
        )

    @property
    def _logger(self) -> structlog.BoundLogger:
        """
        Lazy-load logger instance.
        This ensures structlog is configured before first use.
        """
        if self._logger_instance is None:
            base = _get_structlog_logger(self._name)
            self._logger_instance = base.bind(**self._context) if self._context else base
        return self._logger_instance

    def _log(self, level: str, msg: str, **kwargs: Any) -> None:
        start_time = time.perf_counter() if self._timing_stats is not None else None
        try:
            getattr(self._logger, level)(msg, **kwargs)
        finally:
            if start_time is not None and self._timing_stats is not None:
                self._timing_stats.record(time.perf_counter() - start_time)

    def bind(self, **context: Any) -> "AppLogger":
        """Return a logger that adds ``context`` to every event."""
        return AppLogger(
            name=self._name,
            track_timing=self._track_timing,
            context={**self._context, **context},
        )

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._log("debug", msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._log("info", msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._log("warning", msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._log("error", msg, **kwargs)

    def critical(self, msg: str, **kwargs: Any) -> None:
        self._log("critical", msg, **kwargs)

    def get_timing_stats(self) -> Dict[str, Any]:
        """
        Get timing statistics for this logger.

        Returns:
            Dictionary with timing metrics or error message if timing disabled.
        """
        if self._timing_stats is None:
            return {"error": "Timing tracking not enabled"}
        return self._timing_stats.get_stats()


def get_app_logger(name: str = "app", track_timing: bool = False) -> AppLogger:
    """
    Get application logger instance.

    Example:
        >>> logger = get_app_logger("trips", track_timing=True)
        >>> logger.info("Trip deleted", trip_id="t-1")
        >>> print(logger.get_timing_stats())
        {'total_calls': 1, 'avg_time_ms': 0.234, ...}
    """
    return AppLogger(name=name, track_timing=track_timing)


# Convenience instance for simple usage
logger = get_app_logger()

__all__ = ["logger", "AppLogger", "get_app_logger"]
