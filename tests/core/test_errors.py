"""
Tests for the pacer error hierarchy.

Tests cover:
- Categories and retryable defaults per error type
- Context handling (with_context, to_dict)
- Cause chaining
"""

import pytest

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


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_empty(self):
        assert ErrorContext().to_dict() == {}

    def test_fields_and_metadata(self):
        ctx = ErrorContext(scheduler="s", task_id=3, attempt=0, metadata={"extra": 1})
        assert ctx.to_dict() == {"scheduler": "s", "task_id": 3, "attempt": 0, "extra": 1}


class TestPacerError:
    """Tests for the base error."""

    def test_defaults(self):
        error = PacerError("oops")
        assert error.message == "oops"
        assert str(error) == "oops"
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_overrides(self):
        error = PacerError("x", category=ErrorCategory.TASK, retryable=True)
        assert error.category is ErrorCategory.TASK
        assert error.retryable is True

    def test_with_context_sets_fields_and_metadata(self):
        error = PacerError("x").with_context(scheduler="ingest", region="eu")
        assert error.context.scheduler == "ingest"
        assert error.context.metadata == {"region": "eu"}

    def test_cause_chaining(self):
        root = OSError("disk")
        error = PacerError("wrapped", cause=root)
        assert error.cause is root
        assert error.__cause__ is root
        assert error.to_dict()["cause"] == repr(root)

    def test_to_dict(self):
        d = PacerError("x").with_context(scheduler="s").to_dict()
        assert d == {
            "error_type": "PacerError",
            "message": "x",
            "category": "INTERNAL",
            "retryable": False,
            "context": {"scheduler": "s"},
        }

    def test_repr(self):
        assert repr(PacerError("x")) == "PacerError('x', category=INTERNAL)"


class TestSubclasses:
    """Tests for category / retryable defaults of each subclass."""

    @pytest.mark.parametrize(
        "error,category,retryable",
        [
            (ConfigError("bad"), ErrorCategory.CONFIG, False),
            (SchedulerCancelledError(), ErrorCategory.SCHEDULER, False),
            (TaskError("t"), ErrorCategory.TASK, False),
            (TaskCancelledError(), ErrorCategory.CANCELLED, False),
            (TaskFailedError(1, attempt=0, cause=ValueError()), ErrorCategory.TASK, True),
            (TaskPermanentlyFailedError(1, attempts=2, cause=ValueError()), ErrorCategory.TASK, False),
            (InvalidTransitionError("a", "b"), ErrorCategory.INTERNAL, False),
        ],
    )
    def test_defaults(self, error, category, retryable):
        assert isinstance(error, PacerError)
        assert error.category is category
        assert error.retryable is retryable

    def test_config_error_fields(self):
        error = ConfigError("must be positive", setting="concurrency", value=0)
        d = error.to_dict()
        assert d["setting"] == "concurrency"
        assert d["value"] == "0"

    def test_scheduler_cancelled_message(self):
        assert str(SchedulerCancelledError()) == "Cannot submit work: scheduler cancelled"

    def test_task_cancelled_carries_task_id(self):
        error = TaskCancelledError("stop", task_id=5)
        assert error.task_id == 5
        assert error.context.task_id == 5
        assert error.to_dict()["task_id"] == 5
        assert isinstance(error, TaskError)

    def test_task_failed_records_attempt(self):
        cause = ValueError("boom")
        error = TaskFailedError(2, attempt=1, cause=cause)
        assert error.attempt == 1
        assert error.context.attempt == 1
        assert error.__cause__ is cause
        assert "attempt 1" in str(error)

    def test_permanently_failed(self):
        cause = RuntimeError("boom")
        error = TaskPermanentlyFailedError(7, attempts=3, cause=cause)
        assert error.cause is cause
        assert error.attempts == 3
        d = error.to_dict()
        assert d["task_id"] == 7
        assert d["attempts"] == 3
        assert "after 3 retries" in d["message"]

    def test_invalid_transition_is_value_error(self):
        error = InvalidTransitionError("fulfilled", "active", "TaskStatus")
        assert isinstance(error, ValueError)
        assert str(error) == "Invalid TaskStatus transition: fulfilled → active"
