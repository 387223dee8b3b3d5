# common/config/structlog_config.py
"""
Structlog configuration.

Configured once per process via configure_structlog(). Patient document
numbers never reach the log output: the redaction processor masks them in
every event, whatever the renderer.
"""
import sys
import os
import threading
from typing import Any, MutableMapping, Optional
import structlog
from rich.traceback import install as install_rich_traceback

install_rich_traceback(show_locals=False, width=None, extra_lines=3)

# Event keys that hold personal document numbers
REDACTED_KEYS = frozenset(
    {"cpf", "companion_cpf", "second_companion_cpf", "sus_card", "document", "cnh"}
)


class _StructlogState:
    """
    Per-process configuration flag.

    Under uvicorn reload every worker process configures structlog on its
    own, so the flag is tied to the pid that set it.
    """

    _lock = threading.Lock()

    def __init__(self) -> None:
        self._log_level: Optional[int] = None
        self._process_id: Optional[int] = None

    @property
    def is_configured(self) -> bool:
        return self._log_level is not None and self._process_id == os.getpid()

    @property
    def log_level(self) -> Optional[int]:
        return self._log_level

    def mark_configured(self, log_level: int) -> None:
        with self._lock:
            self._log_level = log_level
            self._process_id = os.getpid()

    def reset(self) -> None:
        """Reset state. FOR TESTING ONLY."""
        with self._lock:
            self._log_level = None
            self._process_id = None


_state = _StructlogState()


def _mask(value: Any) -> Any:
    if not isinstance(value, str) or not value:
        return value
    return "*" * max(len(value) - 2, 0) + value[-2:]


def redact_documents(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Mask document numbers, including inside nested dicts (e.g. dumped records)."""
    for key, value in list(event_dict.items()):
        if key in REDACTED_KEYS:
            event_dict[key] = _mask(value)
        elif isinstance(value, dict):
            event_dict[key] = redact_documents(_logger, _method, dict(value))
    return event_dict


def _renderer(json_logs: bool) -> Any:
    if json_logs:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stderr.isatty(),
        exception_formatter=structlog.dev.RichTracebackFormatter(
            show_locals=False,
            width=None,
            suppress=["starlette", "uvicorn", "fastapi"],
        ),
    )


def configure_structlog(log_level: int, json_logs: bool = False) -> None:
    """
    Configure structlog with the specified log level.

    Args:
        log_level: Numeric logging level (e.g., logging.INFO)
        json_logs: Render one JSON object per line instead of console output

    Raises:
        RuntimeError: If already configured in this process with a different level
    """
    if _state.is_configured:
        if _state.log_level == log_level:
            return
        raise RuntimeError(
            f"structlog already configured in this process. "
            f"Current level: {_state.log_level}, attempted: {log_level}"
        )

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        redact_documents,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(
            fmt="iso" if json_logs else "%Y-%m-%d %H:%M:%S", utc=json_logs
        ),
    ]
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(json_logs))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    _state.mark_configured(log_level)


def get_logger(name: str = "app") -> structlog.BoundLogger:
    """
    Raises:
        RuntimeError: If structlog hasn't been configured yet in this process
    """
    if not _state.is_configured:
        raise RuntimeError(
            "structlog not configured. Call configure_structlog() at application startup."
        )
    return structlog.get_logger(name)


def is_configured() -> bool:
    return _state.is_configured


__all__ = [
    "configure_structlog",
    "get_logger",
    "is_configured",
    "redact_documents",
    "REDACTED_KEYS",
]
