"""Retry policy and attempt classification.

A task attempt settles into one of three tagged results:

- ``Ok(value)``       the work function returned
- ``Aborted(error)``  the work function reported cancellation
- ``Err(error)``      any other failure

:class:`RetryPolicy` turns an attempt result plus the task's retry count
into a :class:`RetryDecision`.  The scheduler then applies the decision;
no exception types are inspected past this point.

Example:
    >>> policy = RetryPolicy(max_retries=2)
    >>> policy.decide(Err(ValueError("boom")), attempts=0)
    <RetryDecision.RETRY: 'retry'>
    >>> policy.decide(Err(ValueError("boom")), attempts=2)
    <RetryDecision.REJECT: 'reject'>
"""

from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from pacer.core.errors import ConfigError, TaskCancelledError
from pacer.core.result import Err, Ok
from pacer.execution.cancellation import CancellationToken
from pacer.execution.models import WorkFn


@dataclass(frozen=True, slots=True)
class Aborted:
    """An attempt that ended in cooperative cancellation."""

    error: BaseException

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Aborted({self.error!r})"


AttemptResult = Union[Ok[Any], Err[Any], Aborted]


class RetryDecision(str, Enum):
    """What the scheduler does with a settled attempt."""

    FULFILL = "fulfill"
    RETRY = "retry"
    REJECT = "reject"
    CANCEL = "cancel"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed retry budget with an optional error-type filter.

    Attributes:
        max_retries: Retries allowed before a task fails permanently
            (0 = fail on the first error)
        retryable_errors: Exception types that may be retried
            (None = every ordinary error)
    """

    max_retries: int = 3
    retryable_errors: tuple[type[BaseException], ...] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.max_retries, int) or self.max_retries < 0:
            raise ConfigError(
                "max_retries must be a non-negative integer",
                setting="max_retries",
                value=self.max_retries,
            )

    def should_retry(self, attempts: int, error: BaseException | None = None) -> bool:
        """Check if a task that has used *attempts* retries may run again."""
        if attempts >= self.max_retries:
            return False

        if error is not None and self.retryable_errors is not None:
            return isinstance(error, self.retryable_errors)

        return True

    def decide(self, result: AttemptResult, attempts: int) -> RetryDecision:
        """Map an attempt result to a decision."""
        match result:
            case Ok():
                return RetryDecision.FULFILL
            case Aborted():
                return RetryDecision.CANCEL
            case Err(error):
                if self.should_retry(attempts, error):
                    return RetryDecision.RETRY
                return RetryDecision.REJECT
        raise TypeError(f"Unknown attempt result: {result!r}")


async def run_attempt(work_fn: WorkFn, metadata: Any, token: CancellationToken) -> AttemptResult:
    """Invoke *work_fn(metadata, token)* once and classify how it settled.

    Plain callables are accepted too; a non-awaitable return value is the
    attempt's result.  ``asyncio.CancelledError`` is reported as
    ``Aborted`` so the caller can record the outcome before re-raising it.
    """
    try:
        result = work_fn(metadata, token)
        if inspect.isawaitable(result):
            result = await result
    except TaskCancelledError as e:
        return Aborted(e)
    except asyncio.CancelledError as e:
        return Aborted(e)
    except Exception as e:
        return Err(e)
    return Ok(result)
