"""Structured logging setup for the vision processing core."""

import contextvars
import functools
import inspect
import logging
from typing import Optional, Dict, Any
from pathlib import Path


# Per-task log context; concurrent uploads each see their own copy.
_log_context: contextvars.ContextVar = contextvars.ContextVar("vision_log_context", default={})


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    @property
    def context(self) -> Dict[str, Any]:
        return _log_context.get()

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context fields to log record."""
        for key, value in self.context.items():
            setattr(record, key, value)
        return True


_context_filter = ContextFilter()


def setup_logging(
    level: str = "INFO",
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up structured logging with optional file output.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format string for log messages
        log_file: Optional path to log file

    Returns:
        Configured root logger
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(_context_filter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(_context_filter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_context() -> Dict[str, Any]:
    """Return a copy of the current log context."""
    return dict(_log_context.get())


def set_context(**kwargs):
    """
    Set context fields for all subsequent log messages in the current task.

    Example:
        set_context(document_type="fuel_receipt", session_id="abc")
        logger.info("Processing upload")  # Carries document_type and session_id

    Args:
        **kwargs: Context key-value pairs
    """
    updated = dict(_log_context.get())
    updated.update(kwargs)
    _log_context.set(updated)


def clear_context():
    """Clear all context fields."""
    _log_context.set({})


def with_context(**context_kwargs):
    """
    Decorator to add context to all log messages within a function.

    Works for plain and ``async`` functions; the previous context is restored
    when the call returns.

    Args:
        **context_kwargs: Context key-value pairs
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                token = _log_context.set({**_log_context.get(), **context_kwargs})
                try:
                    return await func(*args, **kwargs)
                finally:
                    _log_context.reset(token)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            token = _log_context.set({**_log_context.get(), **context_kwargs})
            try:
                return func(*args, **kwargs)
            finally:
                _log_context.reset(token)

        return wrapper
    return decorator
