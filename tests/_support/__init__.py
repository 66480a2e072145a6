"""
Test support utilities for pacer tests.

Work-function doubles and helpers that don't fit as pytest fixtures but
are shared by several test files.
"""

from __future__ import annotations

import asyncio
from typing import Any

from pacer.execution.cancellation import CancellationToken


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks and callbacks run a few loop iterations."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class Gate:
    """
    Work function whose calls block until released (or cancelled).

    Tracks calls in flight and the peak, so tests can assert the
    concurrency bound and who is currently running.

    Usage:
        gate = Gate()
        scheduler.add(gate, "a")
        await settle()
        assert gate.running == ["a"]
        gate.open()
    """

    def __init__(self, ignore_cancel: bool = False) -> None:
        self.ignore_cancel = ignore_cancel
        self._release = asyncio.Event()
        self.started: list[Any] = []
        self.running: list[Any] = []
        self.peak = 0

    def open(self) -> None:
        """Release every current and future call."""
        self._release.set()

    async def __call__(self, metadata: Any, token: CancellationToken) -> Any:
        self.started.append(metadata)
        self.running.append(metadata)
        self.peak = max(self.peak, len(self.running))
        try:
            if self.ignore_cancel:
                await self._release.wait()
            else:
                await _first_of(self._release.wait(), token.wait())
                token.raise_if_cancelled()
            return metadata
        finally:
            self.running.remove(metadata)


class Flaky:
    """Work function that fails its first ``failures`` calls, then succeeds."""

    def __init__(self, failures: int, value: Any = "ok") -> None:
        self.failures = failures
        self.value = value
        self.calls = 0

    async def __call__(self, metadata: Any, token: CancellationToken) -> Any:
        self.calls += 1
        await asyncio.sleep(0)
        if self.calls <= self.failures:
            raise RuntimeError(f"flaky failure #{self.calls}")
        return self.value


class Recorder:
    """Collects scheduler callback invocations."""

    def __init__(self) -> None:
        self.progress: list[tuple[int, int]] = []
        self.completed = 0
        self.errors: list[tuple[BaseException, int]] = []
        self.cancelled: list[list[int]] = []

    def callbacks(self) -> dict[str, Any]:
        """Keyword arguments for ``TaskScheduler(...)``."""
        return {
            "on_progress": lambda done, total: self.progress.append((done, total)),
            "on_complete": self._on_complete,
            "on_error": lambda error, task_id: self.errors.append((error, task_id)),
            "on_cancel": lambda ids: self.cancelled.append(list(ids)),
        }

    def _on_complete(self) -> None:
        self.completed += 1


async def _first_of(*aws: Any) -> None:
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in tasks:
            task.cancel()
