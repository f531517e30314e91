"""Logging configuration for Breeze.

Human-readable output goes through Rich on stderr; ``json_output=True``
switches to one JSON object per line for log shippers. Context fields set
with :class:`LogContext` are attached to every record emitted inside the
block, and :func:`log_operation` times a whole operation.

Usage:
    configure_logging(level="INFO")
    logger = get_logger(__name__)

    with LogContext(operation="import", project="proj1"):
        logger.info("Upserted nodes", extra={"count": 42})
"""

import functools
import json
import logging
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

ROOT_LOGGER = "breeze"

_log_context: ContextVar[Dict[str, Any]] = ContextVar("breeze_log_context", default={})

# Attributes present on every LogRecord; anything else came in through `extra`
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
}

F = TypeVar("F", bound=Callable[..., Any])


class ContextFilter(logging.Filter):
    """Copy the active LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Message followed by any extra fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        message = escape(super().format(record))
        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if extras:
            rendered = " ".join(f"{k}={v}" for k, v in extras.items())
            message = f"{message} [dim]{escape(rendered)}[/dim]"
        return message


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    log_file: Optional[str] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """Configure the ``breeze`` logger.

    Safe to call repeatedly; existing handlers are replaced.

    Args:
        level: Logging level name (e.g. "DEBUG", "INFO")
        json_output: Emit JSON lines instead of Rich console output
        log_file: Optional path of a log file (always JSON lines)
        console: Optional Rich console for the console handler

    Returns:
        The configured ``breeze`` logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.propagate = False

    if json_output:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=True,
            show_path=False,
            markup=True,
        )
        handler.setFormatter(HumanFormatter("%(message)s"))
    handler.setLevel(numeric_level)
    handler.addFilter(ContextFilter())
    logger.addHandler(handler)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path))
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(JSONFormatter())
        file_handler.addFilter(ContextFilter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger, nested under ``breeze`` when the name is outside it."""
    if name != ROOT_LOGGER and not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_context(**fields: Any) -> None:
    """Merge fields into the current logging context."""
    _log_context.set({**_log_context.get(), **fields})


def clear_context() -> None:
    """Remove every field from the current logging context."""
    _log_context.set({})


def get_context() -> Dict[str, Any]:
    """Return a copy of the current logging context."""
    return dict(_log_context.get())


class LogContext:
    """Attach fields to every log record emitted inside the block.

    Example:
        >>> with LogContext(operation="upsert_nodes", project="proj1"):
        ...     logger.info("Upserting")
    """

    def __init__(self, **fields: Any):
        self.fields = fields
        self._token = None

    def __enter__(self) -> "LogContext":
        self._token = _log_context.set({**_log_context.get(), **self.fields})
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def log_operation(operation: str) -> Callable[[F], F]:
    """Decorator that logs start, completion with duration, and failure.

    Args:
        operation: Name recorded in the ``operation`` field
    """
    def decorator(func: F) -> F:
        op_logger = get_logger(func.__module__)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.time()
            with LogContext(operation=operation):
                op_logger.debug(f"Starting {operation}")
                try:
                    result = func(*args, **kwargs)
                except Exception as e:
                    op_logger.error(
                        f"{operation} failed: {e}",
                        extra={"duration_seconds": round(time.time() - start, 3)},
                    )
                    raise
                op_logger.info(
                    f"{operation} completed",
                    extra={"duration_seconds": round(time.time() - start, 3)},
                )
                return result

        return wrapper  # type: ignore[return-value]

    return decorator
