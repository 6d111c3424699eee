"""jobqueue demo runner -- submits a burst of jobs and prints their timings."""
from __future__ import annotations

import asyncio
import math
import random
from pathlib import Path

from jobqueue.config import SchedulerConfig
from jobqueue.runtime.events import EventBus
from jobqueue.runtime.sinks import JsonlFileSink
from jobqueue.scheduler import JobResult, JobScheduler


async def _fake_request(index: int, max_delay: float) -> str:
    await asyncio.sleep(random.uniform(0.0, max_delay))
    return f"response-{index}"


async def _run_burst(
    config: SchedulerConfig,
    jobs: int,
    max_delay: float,
    sink: JsonlFileSink,
) -> list[JobResult | BaseException]:
    scheduler = JobScheduler(config, bus=EventBus([sink]), drain_on_exit=True)
    async with scheduler:
        futures = [scheduler.submit(_fake_request, i, max_delay) for i in range(jobs)]
        print(f"  submitted={jobs} active={scheduler.active()} pending={scheduler.size()}")
        return await asyncio.gather(*futures, return_exceptions=True)


def render_results(outcomes: list[JobResult | BaseException]) -> str:
    """Render one line per job: index, queue time, execution time, result."""
    lines = [f"  {'job':>4}  {'queue ms':>10}  {'exec ms':>10}  result"]
    for index, outcome in enumerate(outcomes):
        if isinstance(outcome, BaseException):
            lines.append(f"  {index:>4}  {'-':>10}  {'-':>10}  {type(outcome).__name__}: {outcome}")
        else:
            lines.append(
                f"  {index:>4}  {outcome.queue_time_ms:>10.1f}  "
                f"{outcome.execution_time_ms:>10.1f}  {outcome.result}"
            )
    return "\n".join(lines)


def run_demo(
    jobs: int = 10,
    concurrency: int = 3,
    rate: float | None = None,
    window: float = 60.0,
    timeout: float = 5.0,
    max_delay: float = 0.2,
    jsonl_path: str | Path = "./jobqueue-demo-events.jsonl",
) -> list[JobResult | BaseException]:
    """Run one throttled burst and write lifecycle events to JSONL.

    Returns:
        One entry per submitted job, in submission order: its JobResult or
        the exception it failed with.
    """
    config = SchedulerConfig(
        concurrency_limit=concurrency,
        rate_limit=math.inf if rate is None else rate,
        timeout_limit=timeout,
        window_seconds=window,
    )
    sink = JsonlFileSink(path=jsonl_path)

    print()
    print("=" * 72)
    print("  jobqueue -- throttled burst demo")
    print(
        f"  concurrency={config.concurrency_limit} rate={config.rate_limit}/"
        f"{config.window_seconds:g}s timeout={config.timeout_limit:g}s"
    )
    print("=" * 72)

    outcomes = asyncio.run(_run_burst(config, jobs, max_delay, sink))

    print(render_results(outcomes))
    print()
    print(f"  events written to {sink.path}")
    return outcomes
