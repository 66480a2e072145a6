"""
Pacer - bounded-concurrency task scheduling for asyncio.

- pacer.core: errors, result envelope, logging, settings
- pacer.execution: TaskScheduler and its state machines
- pacer.cli: ``pacer`` command-line interface
"""

__version__ = "0.1.0"

from pacer.core.errors import (  # noqa: E402
    ConfigError,
    PacerError,
    SchedulerCancelledError,
    TaskCancelledError,
    TaskPermanentlyFailedError,
)
from pacer.execution import (  # noqa: E402
    CancellationToken,
    RunState,
    SchedulerStats,
    TaskOutcome,
    TaskScheduler,
    TaskStatus,
)

__all__ = [
    "__version__",
    "TaskScheduler",
    "CancellationToken",
    "RunState",
    "TaskStatus",
    "TaskOutcome",
    "SchedulerStats",
    "PacerError",
    "ConfigError",
    "SchedulerCancelledError",
    "TaskCancelledError",
    "TaskPermanentlyFailedError",
]
