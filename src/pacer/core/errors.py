"""
Structured error types for pacer.

Provides a small hierarchy of typed errors carrying the metadata the
scheduler needs for retry decisions and for structured logging: a category,
a retryable flag, a context with task/scheduler identifiers, and an optional
chained cause.

Manifesto:
    - **Typed Error Hierarchy:** One error type per failure mode a caller can
      observe (scheduler cancelled, task cancelled, task permanently failed)
    - **Explicit Retry Semantics:** Each error knows if it is retryable
    - **Rich Context:** Errors carry task_id / scheduler name for logging
    - **Error Chaining:** The work function's own exception is preserved as
      ``cause`` (and ``__cause__``) on the error surfaced to the caller

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                        PacerError                                │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ConfigError              SchedulerCancelledError                │
        │  (CONFIG)                 (SCHEDULER)                            │
        │                                                                  │
        │  InvalidTransitionError   TaskError (task_id)                    │
        │  (INTERNAL)                 ├── TaskCancelledError  (CANCELLED)   │
        │                             ├── TaskFailedError     (retryable)   │
        │                             └── TaskPermanentlyFailedError       │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    Only ``SchedulerCancelledError`` (raised by ``add``/``start``/``resume``),
    ``TaskCancelledError`` and ``TaskPermanentlyFailedError`` (future
    rejections) reach callers.  ``TaskFailedError`` describes a single failed
    attempt and stays inside the retry policy.

Examples:
    >>> error = TaskPermanentlyFailedError(7, attempts=3, cause=ValueError("boom"))
    >>> error.retryable
    False
    >>> error.to_dict()["task_id"]
    7
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Invalid scheduler settings
    SCHEDULER = "SCHEDULER"       # Scheduler lifecycle (cancelled, misuse)
    TASK = "TASK"                 # Work function failures
    CANCELLED = "CANCELLED"       # Cooperative cancellation
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata context for errors.

    Attributes:
        scheduler: Name of the scheduler instance
        task_id: Task the error belongs to
        attempt: Attempt number (0-based) when the error occurred
        metadata: Additional key-value pairs
    """

    scheduler: str | None = None
    task_id: int | None = None
    attempt: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["scheduler", "task_id", "attempt"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class PacerError(Exception):
    """
    Base exception for all pacer errors.

    All PacerError instances carry:
    - **category:** ErrorCategory for classification
    - **retryable:** Whether the failed operation may be attempted again
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category`` and ``default_retryable``.

    Examples:
        >>> error = PacerError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(scheduler="ingest").context.scheduler
        'ingest'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> PacerError:
        """
        Add context to this error (fluent API).

        Usage:
            raise ConfigError("bad value").with_context(scheduler="ingest")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION & INTERNAL ERRORS
# =============================================================================


class ConfigError(PacerError):
    """
    Invalid scheduler configuration.

    Never retryable - the settings must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False

    def __init__(self, message: str, *, setting: str | None = None, value: Any = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.setting = setting
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.setting:
            result["setting"] = self.setting
            result["value"] = repr(self.value)
        return result


class InvalidTransitionError(PacerError, ValueError):
    """Raised when an illegal state transition is attempted.

    Task and run-state machines enforce which transitions are valid.  This
    error fires when code tries to move from a state that doesn't allow the
    target (e.g. fulfilled → active).
    """

    default_category = ErrorCategory.INTERNAL

    def __init__(self, current: str, target: str, enum_name: str = "Status") -> None:
        self.current = current
        self.target = target
        super().__init__(f"Invalid {enum_name} transition: {current} → {target}")


# =============================================================================
# SCHEDULER LIFECYCLE ERRORS
# =============================================================================


class SchedulerCancelledError(PacerError):
    """The scheduler was cancelled; it accepts no more work.

    Raised synchronously by ``add``, ``start`` and ``resume`` once
    ``cancel`` has been called.
    """

    default_category = ErrorCategory.SCHEDULER

    def __init__(self, message: str = "Cannot submit work: scheduler cancelled", **kwargs: Any):
        super().__init__(message, **kwargs)


# =============================================================================
# TASK ERRORS
# =============================================================================


class TaskError(PacerError):
    """Base class for errors tied to a single task."""

    default_category = ErrorCategory.TASK

    def __init__(self, message: str, *, task_id: int | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.task_id = task_id
        if task_id is not None:
            self.context.task_id = task_id

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["task_id"] = self.task_id
        return result


class TaskCancelledError(TaskError):
    """The task was cancelled.

    Terminal outcome for every task swept by ``TaskScheduler.cancel`` and for
    any task whose work function reports cancellation (by raising this error,
    usually through ``CancellationToken.raise_if_cancelled``).  Cancellation
    never consumes a retry.
    """

    default_category = ErrorCategory.CANCELLED

    def __init__(self, message: str = "Task cancelled", *, task_id: int | None = None, **kwargs: Any):
        super().__init__(message, task_id=task_id, **kwargs)


class TaskFailedError(TaskError):
    """A single attempt of a task failed and will be retried.

    Only used to describe retry decisions in logs; never surfaced to callers.
    """

    default_retryable = True

    def __init__(self, task_id: int, *, attempt: int, cause: BaseException, **kwargs: Any):
        super().__init__(
            f"Task {task_id} failed on attempt {attempt}: {cause!r}",
            task_id=task_id,
            cause=cause,
            **kwargs,
        )
        self.attempt = attempt
        self.context.attempt = attempt


class TaskPermanentlyFailedError(TaskError):
    """A task failed and its retries are exhausted.

    ``cause`` is the work function's last error.  The task's future is
    rejected with this error; ``on_error`` receives the original ``cause``.
    """

    def __init__(self, task_id: int, *, attempts: int, cause: BaseException, **kwargs: Any):
        super().__init__(
            f"Task {task_id} failed permanently after {attempts} retries: {cause!r}",
            task_id=task_id,
            cause=cause,
            **kwargs,
        )
        self.attempts = attempts
        self.context.attempt = attempts

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["attempts"] = self.attempts
        return result


__all__ = [
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
]
