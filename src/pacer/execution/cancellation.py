"""Cooperative cancellation tokens.

Each task gets its own :class:`CancellationToken` at submission.  The
scheduler owns and fires it; the work function only observes it::

    async def download(metadata, token):
        for chunk in chunks(metadata["url"]):
            token.raise_if_cancelled()
            await fetch(chunk)

Cancellation is a signal, not preemption.  A work function that never
checks its token runs to its natural end; the scheduler then discards the
result.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from pacer.core.errors import TaskCancelledError
from pacer.core.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """One-shot cancellation signal for a single task.

    Attributes:
        task_id: Task this token belongs to (``None`` for standalone tokens)
    """

    def __init__(self, task_id: int | None = None) -> None:
        self.task_id = task_id
        self._cancelled = False
        self._reason: str | None = None
        self._callbacks: list[Callable[[CancellationToken], None]] = []
        self._event: asyncio.Event | None = None

    @property
    def cancelled(self) -> bool:
        """True once :meth:`cancel` has been called."""
        return self._cancelled

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Task cancelled") -> bool:
        """Fire the token.

        Returns:
            True if this call cancelled the token, False if it was
            already cancelled.
        """
        if self._cancelled:
            return False
        self._cancelled = True
        self._reason = reason
        if self._event is not None:
            self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(self)
            except Exception:
                logger.exception("cancellation.callback_failed", task_id=self.task_id)
        return True

    def raise_if_cancelled(self) -> None:
        """Raise :class:`TaskCancelledError` if the token has fired."""
        if self._cancelled:
            raise TaskCancelledError(self._reason or "Task cancelled", task_id=self.task_id)

    def add_callback(self, callback: Callable[[CancellationToken], None]) -> None:
        """Run *callback(token)* on cancellation (immediately if already fired)."""
        if self._cancelled:
            callback(self)
            return
        self._callbacks.append(callback)

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    def __repr__(self) -> str:
        state = f"cancelled, reason={self._reason!r}" if self._cancelled else "active"
        return f"CancellationToken(task_id={self.task_id}, {state})"
