"""Pacer Execution — bounded-concurrency task scheduling.

MODULE MAP (recommended reading order)
──────────────────────────────────────
  1. cancellation.py   ─ CancellationToken (cooperative abort signal)
  2. models.py         ─ TaskStatus / RunState machines, TaskOutcome, stats
  3. retry.py          ─ RetryPolicy, Ok | Err | Aborted attempt results
  4. scheduler.py      ─ TaskScheduler (THE public API)
"""

from pacer.execution.cancellation import CancellationToken
from pacer.execution.models import (
    RUN_VALID_TRANSITIONS,
    TASK_VALID_TRANSITIONS,
    RunState,
    SchedulerStats,
    TaskOutcome,
    TaskRecord,
    TaskStatus,
    validate_run_transition,
    validate_task_transition,
)
from pacer.execution.retry import Aborted, RetryDecision, RetryPolicy, run_attempt
from pacer.execution.scheduler import TaskScheduler

__all__ = [
    # cancellation
    "CancellationToken",
    # models
    "RunState",
    "TaskStatus",
    "TaskOutcome",
    "TaskRecord",
    "SchedulerStats",
    "RUN_VALID_TRANSITIONS",
    "TASK_VALID_TRANSITIONS",
    "validate_run_transition",
    "validate_task_transition",
    # retry
    "Aborted",
    "RetryDecision",
    "RetryPolicy",
    "run_attempt",
    # scheduler
    "TaskScheduler",
]
