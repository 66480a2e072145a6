"""Pacer Core -- errors, result envelope, logging and settings.

Architecture::

    errors.py      Structured error hierarchy (PacerError, TaskCancelledError)
    result.py      Result[T] envelope (Ok / Err)
    logging.py     structlog configuration + get_logger
    settings.py    PacerSettings (pydantic-settings, PACER_* env vars)
"""

from pacer.core.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    InvalidTransitionError,
    PacerError,
    SchedulerCancelledError,
    TaskCancelledError,
    TaskError,
    TaskFailedError,
    TaskPermanentlyFailedError,
)
from pacer.core.logging import LogContext, configure_logging, get_logger
from pacer.core.result import Err, Ok, Result

__all__ = [
    # errors
    "ErrorCategory",
    "ErrorContext",
    "PacerError",
    "ConfigError",
    "InvalidTransitionError",
    "SchedulerCancelledError",
    "TaskError",
    "TaskCancelledError",
    "TaskFailedError",
    "TaskPermanentlyFailedError",
    # result
    "Ok",
    "Err",
    "Result",
    # logging
    "configure_logging",
    "get_logger",
    "LogContext",
]
