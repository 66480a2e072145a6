"""
CLI: ``pacer simulate`` — run a synthetic workload through a scheduler.

Each simulated task sleeps for a random delay (returning early when its
token fires) and then fails with probability ``--failure-rate``.  Useful to
see admission, retries and cancellation at work::

    pacer simulate --tasks 50 --concurrency 4 --failure-rate 0.3 --results
"""

from __future__ import annotations

import asyncio
import random
from typing import Any

import typer

from pacer.cli.utils import console, err_console, output_dict, output_json, output_table
from pacer.core.errors import ConfigError
from pacer.execution.cancellation import CancellationToken
from pacer.execution.scheduler import TaskScheduler


def make_work(rng: random.Random, failure_rate: float, max_delay: float):
    """Build the simulated work function."""

    async def work(metadata: dict[str, Any], token: CancellationToken) -> dict[str, Any]:
        delay = rng.uniform(0, max_delay)
        try:
            await asyncio.wait_for(token.wait(), timeout=delay)
        except TimeoutError:
            pass
        token.raise_if_cancelled()
        if rng.random() < failure_rate:
            raise RuntimeError(f"simulated failure in task {metadata['index']}")
        return {"index": metadata["index"], "delay": round(delay, 4)}

    return work


async def run_simulation(
    scheduler: TaskScheduler,
    *,
    tasks: int,
    failure_rate: float,
    max_delay: float,
    cancel_after: float | None = None,
    seed: int | None = None,
) -> TaskScheduler:
    """Submit *tasks* simulated tasks, run them, and wait for completion."""
    work = make_work(random.Random(seed), failure_rate, max_delay)
    futures = [scheduler.add(work, {"index": i}) for i in range(tasks)]

    timer = None
    if cancel_after is not None:
        timer = asyncio.get_running_loop().call_later(cancel_after, scheduler.cancel)

    scheduler.start()
    await scheduler.join()
    if timer is not None:
        timer.cancel()
    # Retrieve rejections so they are not reported as unhandled.
    await asyncio.gather(*futures, return_exceptions=True)
    return scheduler


def simulate(
    tasks: int = typer.Option(20, "--tasks", "-n", min=0, help="Number of tasks to submit"),
    concurrency: int | None = typer.Option(None, "--concurrency", "-c", help="Max active tasks [default: settings]"),
    max_retries: int | None = typer.Option(None, "--max-retries", "-r", help="Retries per task [default: settings]"),
    failure_rate: float = typer.Option(0.2, "--failure-rate", "-f", min=0.0, max=1.0, help="Probability an attempt fails"),
    max_delay: float = typer.Option(0.05, "--max-delay", min=0.0, help="Max seconds per attempt"),
    cancel_after: float | None = typer.Option(None, "--cancel-after", help="Cancel the scheduler after N seconds"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for reproducible runs"),
    log_level: str | None = typer.Option(None, "--log-level", "-l", help="Log level [default: settings]"),
    show_results: bool = typer.Option(False, "--results", help="Print every task outcome"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run a synthetic workload and print the scheduler statistics."""
    from pacer.core.logging import configure_logging
    from pacer.core.settings import get_settings

    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.log_json,
        service=settings.service,
    )

    try:
        scheduler = TaskScheduler(
            concurrency=concurrency if concurrency is not None else settings.concurrency,
            max_retries=max_retries if max_retries is not None else settings.max_retries,
            name="simulate",
        )
    except ConfigError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.setting}): {e.message}")
        raise typer.Exit(code=1) from e

    asyncio.run(
        run_simulation(
            scheduler,
            tasks=tasks,
            failure_rate=failure_rate,
            max_delay=max_delay,
            cancel_after=cancel_after,
            seed=seed,
        )
    )

    stats = scheduler.get_stats()
    outcomes = [scheduler.get_all_results()[task_id] for task_id in sorted(scheduler.get_all_results())]

    if json_out:
        payload: dict[str, Any] = {"stats": stats.to_dict()}
        if show_results:
            payload["results"] = [o.to_dict() for o in outcomes]
        output_json(payload)
        return

    output_dict(stats, title="Scheduler stats")
    if show_results:
        console.print()
        output_table(
            [{"task_id": o.task_id, "status": o.status.value, "retries": o.retries, "reason": o.reason or ""}
             for o in outcomes],
            title="Task outcomes",
        )
