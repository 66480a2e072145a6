"""Scheduler domain models.

Defines the core data structures of the scheduler:
- TaskStatus / RunState: the two state machines, with transition tables
- TaskRecord: mutable bookkeeping for one submitted task
- TaskOutcome: immutable status snapshot / terminal result of a task
- SchedulerStats: point-in-time counters for ``get_stats()``
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pacer.core.errors import InvalidTransitionError
from pacer.execution.cancellation import CancellationToken

WorkFn = Callable[[Any, CancellationToken], Awaitable[Any]]


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class TaskStatus(str, Enum):
    """Lifecycle status of a task.

    Valid transition graph::

        QUEUED    → ACTIVE | CANCELLED
        ACTIVE    → QUEUED (retry) | FULFILLED | REJECTED | CANCELLED
        FULFILLED → (terminal)
        REJECTED  → (terminal)
        CANCELLED → (terminal)
    """

    QUEUED = "queued"
    ACTIVE = "active"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_TASK_STATUSES


TERMINAL_TASK_STATUSES: frozenset[TaskStatus] = frozenset({
    TaskStatus.FULFILLED,
    TaskStatus.REJECTED,
    TaskStatus.CANCELLED,
})

TASK_VALID_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.QUEUED: frozenset({
        TaskStatus.ACTIVE,
        TaskStatus.CANCELLED,
    }),
    TaskStatus.ACTIVE: frozenset({
        TaskStatus.QUEUED,  # retry
        TaskStatus.FULFILLED,
        TaskStatus.REJECTED,
        TaskStatus.CANCELLED,
    }),
    TaskStatus.FULFILLED: frozenset(),  # terminal
    TaskStatus.REJECTED: frozenset(),  # terminal
    TaskStatus.CANCELLED: frozenset(),  # terminal
}


def validate_task_transition(current: TaskStatus, target: TaskStatus) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal.

    Example:
        >>> validate_task_transition(TaskStatus.ACTIVE, TaskStatus.FULFILLED)
        >>> validate_task_transition(TaskStatus.FULFILLED, TaskStatus.ACTIVE)
        InvalidTransitionError: Invalid TaskStatus transition: fulfilled → active
    """
    if target not in TASK_VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value, "TaskStatus")


class RunState(str, Enum):
    """Run state of a scheduler.

    Valid transition graph::

        IDLE      → RUNNING | CANCELLED
        RUNNING   → PAUSED | DONE | CANCELLED
        PAUSED    → RUNNING | DONE | CANCELLED
        DONE      → RUNNING | CANCELLED
        CANCELLED → (terminal)

    ``DONE`` means every submitted task reached a terminal state; new
    submissions wait for ``start()`` just like in ``IDLE``.
    """

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    DONE = "done"
    CANCELLED = "cancelled"


RUN_VALID_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.IDLE: frozenset({RunState.RUNNING, RunState.CANCELLED}),
    RunState.RUNNING: frozenset({RunState.PAUSED, RunState.DONE, RunState.CANCELLED}),
    RunState.PAUSED: frozenset({RunState.RUNNING, RunState.DONE, RunState.CANCELLED}),
    RunState.DONE: frozenset({RunState.RUNNING, RunState.CANCELLED}),
    RunState.CANCELLED: frozenset(),  # terminal
}


def validate_run_transition(current: RunState, target: RunState) -> None:
    """Raise :class:`InvalidTransitionError` if *current → target* is illegal."""
    if target not in RUN_VALID_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current.value, target.value, "RunState")


@dataclass(frozen=True)
class TaskOutcome:
    """Status snapshot of a task.

    Stored in the scheduler's results once the task is terminal (and then
    never replaced); also returned by ``get_task_status`` for queued and
    active tasks.

    Attributes:
        task_id: Task identifier
        status: Current (or final) status
        metadata: Caller-supplied metadata, unchanged
        retries: Retries consumed so far
        value: Work function's return value (FULFILLED only)
        error: Final error (REJECTED: the work function's last error;
            CANCELLED: the cancellation error)
        finished_at: When the terminal state was reached
    """

    task_id: int
    status: TaskStatus
    metadata: Any = None
    retries: int = 0
    value: Any = None
    error: BaseException | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def reason(self) -> str | None:
        """Human-readable failure reason, if any."""
        return str(self.error) if self.error is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / CLI output."""
        result: dict[str, Any] = {
            "task_id": self.task_id,
            "status": self.status.value,
            "retries": self.retries,
        }
        if self.status is TaskStatus.FULFILLED:
            result["value"] = self.value
        if self.error is not None:
            result["reason"] = self.reason
            result["error_type"] = type(self.error).__name__
        if self.finished_at is not None:
            result["finished_at"] = self.finished_at.isoformat()
        return result


@dataclass
class TaskRecord:
    """Scheduler-side bookkeeping for one submitted task.

    ``token`` is dropped once the task is terminal; ``attempts`` counts
    retries consumed and never exceeds the scheduler's ``max_retries``.
    """

    task_id: int
    work_fn: WorkFn
    future: asyncio.Future[Any]
    metadata: Any = None
    attempts: int = 0
    status: TaskStatus = TaskStatus.QUEUED
    token: CancellationToken | None = None
    submitted_at: datetime = field(default_factory=utcnow)
    runner: asyncio.Task[None] | None = field(default=None, repr=False)

    def transition_to(self, target: TaskStatus) -> None:
        """Move to *target*, enforcing the task state machine."""
        validate_task_transition(self.status, target)
        self.status = target

    def snapshot(self) -> TaskOutcome:
        """Non-terminal status view of this task."""
        return TaskOutcome(
            task_id=self.task_id,
            status=self.status,
            metadata=self.metadata,
            retries=self.attempts,
        )


@dataclass(frozen=True)
class SchedulerStats:
    """Point-in-time counters of a scheduler.

    ``failed`` includes cancelled tasks: a cancel sweep folds every
    outstanding task into the failure count.  ``cancelled`` breaks that
    share out separately.
    """

    pending: int
    active: int
    completed: int
    failed: int
    cancelled: int
    total: int
    retries: int
    run_state: RunState

    @property
    def finished(self) -> int:
        """Tasks in a terminal state."""
        return self.completed + self.failed

    @property
    def is_active(self) -> bool:
        """Admitting work, or paused with work still outstanding."""
        return self.run_state in (RunState.RUNNING, RunState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.run_state is RunState.PAUSED

    @property
    def is_cancelled(self) -> bool:
        return self.run_state is RunState.CANCELLED

    @property
    def is_done(self) -> bool:
        return self.run_state is RunState.DONE

    def to_dict(self) -> dict[str, Any]:
        """Serialise for logging / API responses."""
        return {
            "pending": self.pending,
            "active": self.active,
            "completed": self.completed,
            "failed": self.failed,
            "cancelled": self.cancelled,
            "total": self.total,
            "retries": self.retries,
            "run_state": self.run_state.value,
            "is_active": self.is_active,
            "is_paused": self.is_paused,
            "is_cancelled": self.is_cancelled,
            "is_done": self.is_done,
        }
