"""Task Scheduler — bounded-concurrency admission, retry, and cancellation.

WHY
───
``asyncio.gather`` with a semaphore runs a fixed batch.  Long-lived
producers need more: submit work at any time, cap how much runs at once,
retry flaky work without starving fresh submissions, pause admission
without killing in-flight work, and abort everything on demand while every
caller's future still settles exactly once.

ARCHITECTURE
────────────
::

    TaskScheduler
      ├── .add(work_fn, metadata)   ─ register task → Future
      ├── .start() / .resume()      ─ RunState → RUNNING, admit
      ├── .pause()                  ─ stop admitting (no preemption)
      ├── .cancel()                 ─ sweep queued + active → CANCELLED
      ├── .join()                   ─ await the next completion
      └── .get_stats() / .get_all_results() / .get_task_status(id)

    add ──► wait_queue (FIFO) ──admission──► active (≤ concurrency)
                 ▲                              │
                 │ retry (tail)          run_attempt → Ok | Err | Aborted
                 │                              │
                 └──── RetryPolicy.decide ◄─────┘
                                                │
                                  results[id] = TaskOutcome (once)

    RunState:  IDLE → RUNNING ⇄ PAUSED → DONE … CANCELLED (terminal)

All bookkeeping (admission, requeue, terminal transitions, the cancel sweep)
is synchronous and never awaits, so on a single event loop the invariants
hold without locks:

- a task id is in at most one of wait_queue / active / results
- ``len(active) <= concurrency``
- ``total == len(results) + len(wait_queue) + len(active)``

Related modules:
    retry.py         — RetryPolicy + attempt classification
    cancellation.py  — per-task CancellationToken
    models.py        — TaskStatus / RunState machines, TaskOutcome, stats

Example::

    scheduler = TaskScheduler(concurrency=4, max_retries=2)
    futures = [scheduler.add(download, {"url": u}) for u in urls]
    scheduler.start()
    await scheduler.join()
    print(scheduler.get_stats().to_dict())
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

from pacer.core.errors import (
    ConfigError,
    SchedulerCancelledError,
    TaskCancelledError,
    TaskFailedError,
    TaskPermanentlyFailedError,
)
from pacer.core.logging import get_logger
from pacer.core.settings import PacerSettings, get_settings
from pacer.execution.cancellation import CancellationToken
from pacer.execution.models import (
    RunState,
    SchedulerStats,
    TaskOutcome,
    TaskRecord,
    TaskStatus,
    WorkFn,
    utcnow,
    validate_run_transition,
)
from pacer.execution.retry import Aborted, RetryDecision, RetryPolicy, run_attempt

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]
ErrorCallback = Callable[[BaseException, int], None]
CancelCallback = Callable[[list[int]], None]


def _noop(*args: Any) -> None:
    return None


class TaskScheduler:
    """Bounded-concurrency scheduler for asynchronous work.

    Work functions are called as ``work_fn(metadata, token)`` and usually are
    coroutine functions.  A scheduler belongs to the event loop it is first
    used on; ``add`` must be called from a running loop.

    Parameters
    ----------
    concurrency : int
        Maximum simultaneously active tasks (default 5).
    max_retries : int
        Retries before a task fails permanently (default 3).
    on_progress : callable, optional
        ``(finished, total)`` after every submission and terminal transition.
    on_complete : callable, optional
        ``()`` once each time every submitted task has become terminal.
    on_error : callable, optional
        ``(error, task_id)`` once per permanently failed task.
    on_cancel : callable, optional
        ``(task_ids)`` once, when :meth:`cancel` sweeps the scheduler.
    retryable_errors : iterable of exception types, optional
        Restrict retries to these error types (default: retry everything).
    name : str, optional
        Name used in logs and error context.
    """

    def __init__(
        self,
        concurrency: int = 5,
        max_retries: int = 3,
        *,
        on_progress: ProgressCallback | None = None,
        on_complete: Callable[[], None] | None = None,
        on_error: ErrorCallback | None = None,
        on_cancel: CancelCallback | None = None,
        retryable_errors: Iterable[type[BaseException]] | None = None,
        name: str | None = None,
    ) -> None:
        if isinstance(concurrency, bool) or not isinstance(concurrency, int) or concurrency < 1:
            raise ConfigError(
                "concurrency must be a positive integer",
                setting="concurrency",
                value=concurrency,
            )
        if isinstance(max_retries, bool):
            raise ConfigError(
                "max_retries must be a non-negative integer",
                setting="max_retries",
                value=max_retries,
            )

        self._concurrency = concurrency
        self._policy = RetryPolicy(
            max_retries=max_retries,
            retryable_errors=tuple(retryable_errors) if retryable_errors is not None else None,
        )
        self._name = name or f"scheduler-{uuid.uuid4().hex[:8]}"

        self._on_progress = on_progress or _noop
        self._on_complete = on_complete or _noop
        self._on_error = on_error or _noop
        self._on_cancel = on_cancel or _noop

        self._run_state = RunState.IDLE
        self._next_id = 0
        self._tasks: dict[int, TaskRecord] = {}
        self._wait_queue: deque[int] = deque()
        self._active: set[int] = set()
        self._results: dict[int, TaskOutcome] = {}

        self._total = 0
        self._fulfilled = 0
        self._rejected = 0
        self._cancelled = 0
        self._retries = 0
        self._completion_pending = False
        self._join_waiters: list[asyncio.Future[None]] = []

    @classmethod
    def from_settings(
        cls,
        settings: PacerSettings | None = None,
        **kwargs: Any,
    ) -> TaskScheduler:
        """Build a scheduler from :class:`PacerSettings` (default: environment)."""
        settings = settings or get_settings()
        return cls(
            concurrency=settings.concurrency,
            max_retries=settings.max_retries,
            **kwargs,
        )

    # ── Properties ───────────────────────────────────────────────────

    @property
    def name(self) -> str:
        return self._name

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def max_retries(self) -> int:
        return self._policy.max_retries

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._policy

    @property
    def run_state(self) -> RunState:
        return self._run_state

    # ── Submission ───────────────────────────────────────────────────

    def add(self, work_fn: WorkFn, metadata: Any = None) -> asyncio.Future[Any]:
        """Submit a unit of work.

        Args:
            work_fn: Callable ``(metadata, token) -> awaitable``.
            metadata: Opaque value passed to ``work_fn`` and kept in results.

        Returns:
            Future resolved with the work function's value, or rejected with
            :class:`TaskCancelledError` / :class:`TaskPermanentlyFailedError`.

        Raises:
            SchedulerCancelledError: If the scheduler has been cancelled.
            TypeError: If ``work_fn`` is not callable.
            RuntimeError: If called without a running event loop.
        """
        if self._run_state is RunState.CANCELLED:
            raise SchedulerCancelledError().with_context(scheduler=self._name)
        if not callable(work_fn):
            raise TypeError(f"work_fn must be callable, got {type(work_fn).__name__}")

        loop = asyncio.get_running_loop()
        task_id = self._next_id
        self._next_id += 1

        record = TaskRecord(
            task_id=task_id,
            work_fn=work_fn,
            future=loop.create_future(),
            metadata=metadata,
            token=CancellationToken(task_id),
        )
        self._tasks[task_id] = record
        self._wait_queue.append(task_id)
        self._total += 1
        self._completion_pending = True

        logger.debug(
            "scheduler.task_submitted",
            scheduler=self._name,
            task_id=task_id,
            run_state=self._run_state.value,
        )

        if self._run_state is RunState.RUNNING:
            self._process_queue()
        self._report_progress()
        return record.future

    # ── Run state ────────────────────────────────────────────────────

    def start(self) -> None:
        """Begin (or continue) admitting queued work.

        Raises:
            SchedulerCancelledError: If the scheduler has been cancelled.
        """
        if self._run_state is RunState.CANCELLED:
            raise SchedulerCancelledError(
                "Cannot start: scheduler cancelled"
            ).with_context(scheduler=self._name)
        if self._run_state is RunState.RUNNING:
            return

        self._set_run_state(RunState.RUNNING)
        logger.info(
            "scheduler.started",
            scheduler=self._name,
            queued=len(self._wait_queue),
            concurrency=self._concurrency,
        )
        self._process_queue()

    def pause(self) -> None:
        """Stop admitting new work; active tasks run to completion."""
        if self._run_state is not RunState.RUNNING:
            return
        self._set_run_state(RunState.PAUSED)
        logger.info("scheduler.paused", scheduler=self._name, active=len(self._active))

    def resume(self) -> None:
        """Resume admission after :meth:`pause` (acts as :meth:`start` if idle)."""
        if self._run_state is RunState.CANCELLED:
            raise SchedulerCancelledError(
                "Cannot resume: scheduler cancelled"
            ).with_context(scheduler=self._name)
        if self._run_state in (RunState.IDLE, RunState.DONE):
            self.start()
            return
        if self._run_state is RunState.PAUSED:
            self._set_run_state(RunState.RUNNING)
            logger.info("scheduler.resumed", scheduler=self._name, queued=len(self._wait_queue))
            self._process_queue()

    def cancel(self, reason: str = "Scheduler cancelled") -> None:
        """Cancel every queued and active task and refuse further work.

        Idempotent.  ``on_cancel`` receives the swept task ids (queued first,
        then active); each swept task's token fires, its future is rejected
        with :class:`TaskCancelledError` and its outcome is recorded as
        CANCELLED.  Work functions that ignore their token keep running, but
        their results are discarded.  ``on_complete`` fires once the sweep is
        done, even when nothing was outstanding.
        """
        if self._run_state is RunState.CANCELLED:
            return

        self._set_run_state(RunState.CANCELLED)
        swept = list(self._wait_queue) + sorted(self._active)

        logger.warning(
            "scheduler.cancelled",
            scheduler=self._name,
            queued=len(self._wait_queue),
            active=len(self._active),
            reason=reason,
        )
        self._safe_call("on_cancel", self._on_cancel, list(swept))

        for task_id in swept:
            record = self._tasks[task_id]
            if record.token is not None:
                record.token.cancel(reason)
            error = TaskCancelledError(reason, task_id=task_id).with_context(scheduler=self._name)
            self._record_cancelled(record, error)

        self._wait_queue.clear()
        self._active.clear()

        # every task is terminal now; cancel always ends with on_complete
        self._completion_pending = True
        self._report_progress()
        self._check_completion()

    async def join(self) -> None:
        """Wait until every task submitted so far is terminal.

        Returns immediately when nothing is outstanding.  Work queued on an
        idle or paused scheduler keeps ``join`` waiting until it is started.
        """
        if self._finished_count() == self._total:
            return
        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._join_waiters.append(waiter)
        await waiter

    async def __aenter__(self) -> TaskScheduler:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.cancel(reason=f"Scheduler context exited with {exc_type.__name__}")
            return
        await self.join()

    # ── Queries ──────────────────────────────────────────────────────

    def get_stats(self) -> SchedulerStats:
        """Point-in-time snapshot of queue sizes, counters and run state."""
        return SchedulerStats(
            pending=len(self._wait_queue),
            active=len(self._active),
            completed=self._fulfilled,
            failed=self._rejected + self._cancelled,
            cancelled=self._cancelled,
            total=self._total,
            retries=self._retries,
            run_state=self._run_state,
        )

    def get_all_results(self) -> Mapping[int, TaskOutcome]:
        """Read-only live view of task id → terminal outcome."""
        return MappingProxyType(self._results)

    def get_task_status(self, task_id: int) -> TaskOutcome | None:
        """Terminal outcome, a queued/active snapshot, or None if unknown."""
        outcome = self._results.get(task_id)
        if outcome is not None:
            return outcome
        record = self._tasks.get(task_id)
        if record is not None:
            return record.snapshot()
        return None

    # ── Admission controller ─────────────────────────────────────────

    def _process_queue(self) -> None:
        while (
            self._run_state is RunState.RUNNING
            and self._wait_queue
            and len(self._active) < self._concurrency
        ):
            task_id = self._wait_queue.popleft()
            record = self._tasks[task_id]
            record.transition_to(TaskStatus.ACTIVE)
            self._active.add(task_id)

            logger.debug(
                "scheduler.task_admitted",
                scheduler=self._name,
                task_id=task_id,
                attempt=record.attempts,
                active=len(self._active),
            )
            record.runner = record.future.get_loop().create_task(
                self._run_task(record),
                name=f"{self._name}:task-{task_id}",
            )

    # ── Execution & outcome resolution ───────────────────────────────

    async def _run_task(self, record: TaskRecord) -> None:
        try:
            result = await run_attempt(record.work_fn, record.metadata, record.token)
        except BaseException as e:
            # Non-Exception errors (KeyboardInterrupt, SystemExit) still settle the task.
            if self._run_state is not RunState.CANCELLED and record.status is TaskStatus.ACTIVE:
                self._handle_failure(record, e)
            raise

        if self._run_state is RunState.CANCELLED or record.status is not TaskStatus.ACTIVE:
            # Already swept by cancel(); the attempt's result is stale.
            logger.debug(
                "scheduler.result_discarded",
                scheduler=self._name,
                task_id=record.task_id,
                result=repr(result),
            )
        else:
            match self._policy.decide(result, record.attempts):
                case RetryDecision.FULFILL:
                    self._handle_success(record, result.value)
                case RetryDecision.RETRY:
                    self._handle_retry(record, result.error)
                case RetryDecision.REJECT:
                    self._handle_failure(record, result.error)
                case RetryDecision.CANCEL:
                    self._handle_aborted(record, result.error)

        if isinstance(result, Aborted) and isinstance(result.error, asyncio.CancelledError):
            raise result.error

    def _handle_success(self, record: TaskRecord, value: Any) -> None:
        self._active.discard(record.task_id)
        record.transition_to(TaskStatus.FULFILLED)
        self._fulfilled += 1
        self._store_outcome(record, value=value)

        if not record.future.done():
            record.future.set_result(value)

        logger.debug(
            "scheduler.task_fulfilled",
            scheduler=self._name,
            task_id=record.task_id,
            retries=record.attempts,
        )
        self._after_terminal()

    def _handle_retry(self, record: TaskRecord, error: BaseException) -> None:
        self._active.discard(record.task_id)
        record.transition_to(TaskStatus.QUEUED)
        record.attempts += 1
        self._retries += 1
        self._wait_queue.append(record.task_id)

        failure = TaskFailedError(record.task_id, attempt=record.attempts, cause=error)
        failure.with_context(scheduler=self._name)
        logger.warning(
            "scheduler.task_retry",
            max_retries=self._policy.max_retries,
            **failure.to_dict(),
        )
        self._process_queue()

    def _handle_failure(self, record: TaskRecord, error: BaseException) -> None:
        self._active.discard(record.task_id)
        record.transition_to(TaskStatus.REJECTED)
        self._rejected += 1
        self._store_outcome(record, error=error)

        if not record.future.done():
            record.future.set_exception(
                TaskPermanentlyFailedError(
                    record.task_id,
                    attempts=record.attempts,
                    cause=error,
                ).with_context(scheduler=self._name)
            )

        logger.error(
            "scheduler.task_failed",
            scheduler=self._name,
            task_id=record.task_id,
            retries=record.attempts,
            error=repr(error),
        )
        self._safe_call("on_error", self._on_error, error, record.task_id)
        self._after_terminal()

    def _handle_aborted(self, record: TaskRecord, error: BaseException) -> None:
        self._active.discard(record.task_id)
        if not isinstance(error, TaskCancelledError):
            error = TaskCancelledError(task_id=record.task_id, cause=error)
        error.with_context(scheduler=self._name)

        logger.info(
            "scheduler.task_aborted",
            scheduler=self._name,
            task_id=record.task_id,
            reason=str(error),
        )
        self._record_cancelled(record, error)
        self._after_terminal()

    def _after_terminal(self) -> None:
        self._report_progress()
        self._process_queue()
        self._check_completion()

    # ── Task registry ────────────────────────────────────────────────

    def _record_cancelled(self, record: TaskRecord, error: TaskCancelledError) -> None:
        record.transition_to(TaskStatus.CANCELLED)
        self._cancelled += 1
        self._store_outcome(record, error=error)
        if not record.future.done():
            record.future.set_exception(error)

    def _store_outcome(
        self,
        record: TaskRecord,
        *,
        value: Any = None,
        error: BaseException | None = None,
    ) -> None:
        """Write the terminal outcome once and release scheduling resources."""
        self._results[record.task_id] = TaskOutcome(
            task_id=record.task_id,
            status=record.status,
            metadata=record.metadata,
            retries=record.attempts,
            value=value,
            error=error,
            finished_at=utcnow(),
        )
        record.token = None
        del self._tasks[record.task_id]

    # ── Completion & callbacks ───────────────────────────────────────

    def _finished_count(self) -> int:
        return self._fulfilled + self._rejected + self._cancelled

    def _check_completion(self) -> None:
        if not self._completion_pending or self._finished_count() != self._total:
            return

        self._completion_pending = False
        if self._run_state in (RunState.RUNNING, RunState.PAUSED):
            self._set_run_state(RunState.DONE)

        logger.info("scheduler.complete", scheduler=self._name, **self.get_stats().to_dict())

        waiters, self._join_waiters = self._join_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

        self._safe_call("on_complete", self._on_complete)

    def _report_progress(self) -> None:
        self._safe_call("on_progress", self._on_progress, self._finished_count(), self._total)

    def _safe_call(self, callback_name: str, callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception(
                "scheduler.callback_failed",
                scheduler=self._name,
                callback=callback_name,
            )

    def _set_run_state(self, target: RunState) -> None:
        validate_run_transition(self._run_state, target)
        self._run_state = target

    def __repr__(self) -> str:
        return (
            f"TaskScheduler(name={self._name!r}, state={self._run_state.value}, "
            f"concurrency={self._concurrency}, queued={len(self._wait_queue)}, "
            f"active={len(self._active)}, finished={self._finished_count()}/{self._total})"
        )
