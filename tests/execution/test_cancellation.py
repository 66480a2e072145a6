"""Tests for CancellationToken."""

import asyncio

import pytest

from pacer.core.errors import TaskCancelledError
from pacer.execution.cancellation import CancellationToken


class TestCancellationToken:
    """Tests for the one-shot cancellation signal."""

    def test_initial_state(self):
        token = CancellationToken(task_id=1)
        assert token.cancelled is False
        assert token.reason is None
        token.raise_if_cancelled()

    def test_cancel_is_one_shot(self):
        token = CancellationToken()
        assert token.cancel("first") is True
        assert token.cancel("second") is False
        assert token.reason == "first"

    def test_raise_if_cancelled(self):
        token = CancellationToken(task_id=9)
        token.cancel("shutting down")
        with pytest.raises(TaskCancelledError) as exc_info:
            token.raise_if_cancelled()
        assert exc_info.value.task_id == 9
        assert str(exc_info.value) == "shutting down"

    def test_callbacks_run_once(self):
        token = CancellationToken()
        seen = []
        token.add_callback(seen.append)
        token.cancel()
        token.cancel()
        assert seen == [token]

    def test_callback_added_after_cancel_runs_immediately(self):
        token = CancellationToken()
        token.cancel()
        seen = []
        token.add_callback(seen.append)
        assert seen == [token]

    def test_failing_callback_does_not_stop_others(self):
        token = CancellationToken()
        seen = []

        def explode(_token):
            raise RuntimeError("callback bug")

        token.add_callback(explode)
        token.add_callback(seen.append)
        assert token.cancel() is True
        assert seen == [token]

    @pytest.mark.asyncio
    async def test_wait_wakes_on_cancel(self):
        token = CancellationToken()
        waiter = asyncio.ensure_future(token.wait())
        await asyncio.sleep(0)
        assert not waiter.done()

        token.cancel()
        await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_wait_returns_when_already_cancelled(self):
        token = CancellationToken()
        token.cancel()
        await asyncio.wait_for(token.wait(), timeout=1)

    def test_repr(self):
        token = CancellationToken(task_id=2)
        assert "active" in repr(token)
        token.cancel("x")
        assert "cancelled" in repr(token)
