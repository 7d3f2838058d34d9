"""
Logging configuration for the lastseen tracker.

Console output goes through Rich; an optional file handler writes one JSON
object per record. Per-profile context (identifier, position) is
kept in a context variable, so concurrent asyncio tasks each log their own.
"""

import functools
import json
import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar

from rich.console import Console
from rich.logging import RichHandler

from lastseen.config import get_settings

T = TypeVar("T")

_log_context: ContextVar[dict[str, Any]] = ContextVar("lastseen_log_context", default={})

_RESERVED_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "thread",
    "threadName",
    "taskName",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ContextFilter(logging.Filter):
    """Copy the current task's log context onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _log_context.get().items():
            setattr(record, key, value)
        return True


context_filter = ContextFilter()


# Libraries whose INFO chatter drowns out per-profile progress
_QUIET_LOGGERS = ("urllib3", "google", "googleapiclient", "asyncio", "uvicorn.access")

_PLAIN_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _file_handler(path: Path, structured: bool) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def setup_logging(
    log_level: Optional[str] = None,
    log_file_path: Optional[Path] = None,
    use_structured_logging: bool = True,
) -> None:
    """
    Configure the root logger for a CLI command or the trigger server.

    Args:
        log_level: Logging level (defaults to settings)
        log_file_path: Path to a log file (defaults to settings; none if unset)
        use_structured_logging: Write JSON records to the log file
    """
    settings = get_settings()
    level = (log_level or settings.log_level).upper()
    log_file_path = log_file_path or settings.get_log_file_path()

    handlers: list[logging.Handler] = [
        RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
            tracebacks_show_locals=settings.dev_mode,
        )
    ]
    if log_file_path:
        handlers.append(_file_handler(log_file_path, use_structured_logging))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.addFilter(context_filter)
        root_logger.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"log_level": level, "log_file": str(log_file_path) if log_file_path else None},
    )


def logging_configured() -> bool:
    return bool(logging.getLogger().handlers)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name."""
    return logging.getLogger(name)


def current_log_context() -> dict[str, Any]:
    """Context fields attached to records logged from the current task."""
    return dict(_log_context.get())


@contextmanager
def log_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """
    Attach ``fields`` to every record logged inside the block.

    The fields are merged over the enclosing context and restored on exit.
    Tasks started inside the block inherit a copy, so concurrent tasks never
    see each other's fields.

    Usage:
        with log_context(identifier=identifier, position=index):
            logger.info("Checking profile")
    """
    merged = {**_log_context.get(), **fields}
    token = _log_context.set(merged)
    try:
        yield merged
    finally:
        _log_context.reset(token)


def log_performance(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Log start, completion time and failure of an async operation."""
    logger = get_logger(func.__module__)

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        start_time = time.perf_counter()

        with log_context(operation=func.__name__):
            logger.debug(f"Starting {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Failed {func.__name__}",
                    extra={"duration_seconds": time.perf_counter() - start_time, "error": str(e)},
                )
                raise
            logger.info(
                f"Completed {func.__name__}",
                extra={"duration_seconds": time.perf_counter() - start_time},
            )
            return result

    return wrapper
