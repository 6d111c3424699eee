"""jobqueue Scheduler — admission, rate-window gating, dispatch, and timeouts."""
from __future__ import annotations

import asyncio
import dataclasses
import inspect
import logging
import time
from typing import Any, Callable

from jobqueue.config import SchedulerConfig
from jobqueue.runtime.events import EventBus, EventTypes, make_event
from jobqueue.runtime.models import JobStatus, Severity
from jobqueue.scheduler.queue import PendingQueue, RateWindow
from jobqueue.scheduler.state_machine import is_terminal_job, transition_job
from jobqueue.scheduler.types import (
    JobRequest,
    JobResult,
    JobTimeoutError,
    SchedulerDisposedError,
    SchedulerSnapshot,
)

logger = logging.getLogger(__name__)


class JobScheduler:
    """In-process FIFO job scheduler with concurrency, rate, and timeout limits.

    All state is owned by the event loop the scheduler is first used on;
    submissions, completions, timeouts and rate re-checks all run on that
    loop, so no lock is taken.

    Example::

        scheduler = JobScheduler(concurrency_limit=4, rate_limit=60)
        outcome = await scheduler.submit(fetch_page, url)
        print(outcome.result, outcome.queue_time_ms, outcome.execution_time_ms)
    """

    def __init__(
        self,
        config: SchedulerConfig | None = None,
        *,
        concurrency_limit: int | None = None,
        rate_limit: float | None = None,
        timeout_limit: float | None = None,
        bus: EventBus | None = None,
        drain_on_exit: bool = False,
    ) -> None:
        config = config or SchedulerConfig()
        overrides = {
            name: value
            for name, value in (
                ("concurrency_limit", concurrency_limit),
                ("rate_limit", rate_limit),
                ("timeout_limit", timeout_limit),
            )
            if value is not None
        }
        if overrides:
            config = dataclasses.replace(config, **overrides)

        self._config = config
        self._bus = bus or EventBus()
        self._drain_on_exit = drain_on_exit
        self._clock: Callable[[], float] = time.monotonic
        self._pending = PendingQueue()
        self._running: dict[str, JobRequest] = {}
        self._window = RateWindow(
            max_starts=config.rate_limit,
            window_seconds=config.window_seconds,
            clock=self._clock,
        )
        self._disposed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._recheck_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()
        self._succeeded = 0
        self._failed = 0
        self._timed_out = 0

    # --- Public API ---

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    @property
    def disposed(self) -> bool:
        return self._disposed

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> asyncio.Future:
        """Queue *fn* for execution and return a future for its JobResult.

        The future resolves with a :class:`JobResult`, or fails with the
        job's own exception, :class:`JobTimeoutError`, or
        :class:`SchedulerDisposedError`.

        Raises:
            SchedulerDisposedError: the scheduler has been disposed; *fn*
                is not queued and never called.
            RuntimeError: called without a running event loop, or from a
                loop other than the one the scheduler is bound to.
        """
        if self._disposed:
            raise SchedulerDisposedError()
        loop = self._bind_loop()
        job = JobRequest(
            fn=fn,
            future=loop.create_future(),
            args=args,
            kwargs=kwargs,
            enqueued_at=self._clock(),
        )
        self._pending.enqueue(job)
        logger.debug("Job %s submitted (pending=%d)", job.job_id, len(self._pending))
        self._emit_submitted(job)
        self._process()
        return job.future

    def size(self) -> int:
        """Number of jobs waiting to start."""
        return len(self._pending)

    def active(self) -> int:
        """Number of jobs currently executing."""
        return len(self._running)

    def snapshot(self) -> SchedulerSnapshot:
        return SchedulerSnapshot(
            pending=len(self._pending),
            active=len(self._running),
            starts_in_window=self._window.count(),
            disposed=self._disposed,
            succeeded=self._succeeded,
            failed=self._failed,
            timed_out=self._timed_out,
        )

    def dispose(self) -> None:
        """Stop accepting work and reject every pending job.

        Running jobs are left to finish (or time out) on their own.
        Calling dispose() again is a no-op.
        """
        if self._disposed:
            return
        self._disposed = True
        if self._recheck_handle is not None:
            self._recheck_handle.cancel()
            self._recheck_handle = None

        rejected = 0
        for job in self._pending.drain():
            if job.future.cancelled():
                self._discard_canceled(job)
                continue
            transition_job(job, JobStatus.DISPOSED)
            job.future.set_exception(SchedulerDisposedError(job.job_id))
            rejected += 1
            self._emit_job_disposed(job)

        logger.info(
            "Scheduler disposed: %d pending jobs rejected, %d still running",
            rejected,
            len(self._running),
        )
        self._emit_scheduler_disposed(rejected)
        self._update_idle()

    async def join(self) -> None:
        """Wait until no job is pending or running. Job errors are not raised."""
        await self._idle.wait()

    async def __aenter__(self) -> JobScheduler:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        if self._drain_on_exit and exc_type is None:
            await self.join()
        self.dispose()

    # --- Dispatch ---

    def _process(self) -> None:
        """Start as many pending jobs as capacity and the rate window allow."""
        while (
            not self._disposed
            and len(self._running) < self._config.concurrency_limit
            and not self._pending.is_empty
        ):
            now = self._clock()
            if not self._window.has_capacity(now):
                self._schedule_recheck(now)
                break
            job = self._pending.dequeue()
            if job is None:
                break
            if job.future.cancelled():
                self._discard_canceled(job)
                continue
            self._start(job, now)
        self._update_idle()

    def _schedule_recheck(self, now: float) -> None:
        if self._recheck_handle is not None or self._loop is None:
            return
        self._recheck_handle = self._loop.call_later(
            self._config.recheck_interval, self._on_recheck
        )
        self._emit_rate_limited(now)

    def _on_recheck(self) -> None:
        self._recheck_handle = None
        self._process()

    def _start(self, job: JobRequest, now: float) -> None:
        assert self._loop is not None
        transition_job(job, JobStatus.RUNNING)
        queue_time_ms = max(0.0, (now - job.enqueued_at) * 1000)
        self._running[job.job_id] = job
        self._window.record(now)
        job.timeout_handle = self._loop.call_later(
            self._config.timeout_limit, self._on_timeout, job
        )
        job.started_at = self._clock()
        logger.debug(
            "Job %s started (queue_time=%.1fms, active=%d)",
            job.job_id,
            queue_time_ms,
            len(self._running),
        )
        self._emit_started(job, queue_time_ms)

        task = self._loop.create_task(self._execute(job, queue_time_ms))
        job.task = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _execute(self, job: JobRequest, queue_time_ms: float) -> None:
        try:
            result = job.invoke()
            if inspect.isawaitable(result):
                result = await result
        except asyncio.CancelledError:
            if self._finish(job, JobStatus.CANCELED):
                job.future.cancel()
                self._emit_job_canceled(job)
                self._update_idle()
                if self._loop is not None:
                    self._loop.call_soon(self._process)
            raise
        except Exception as exc:
            self._on_failure(job, exc)
        else:
            self._on_success(job, result, queue_time_ms)

    def _on_success(self, job: JobRequest, result: Any, queue_time_ms: float) -> None:
        execution_time_ms = max(0.0, (self._clock() - (job.started_at or 0.0)) * 1000)
        if not self._finish(job, JobStatus.SUCCEEDED):
            logger.debug("Job %s finished after timeout; result discarded", job.job_id)
            return
        self._succeeded += 1
        if not job.future.done():
            job.future.set_result(JobResult(
                result=result,
                queue_time_ms=queue_time_ms,
                execution_time_ms=execution_time_ms,
            ))
        logger.debug("Job %s succeeded in %.1fms", job.job_id, execution_time_ms)
        self._emit_succeeded(job, queue_time_ms, execution_time_ms)
        self._process()

    def _on_failure(self, job: JobRequest, exc: Exception) -> None:
        if not self._finish(job, JobStatus.FAILED):
            logger.debug("Job %s failed after timeout; error discarded: %r", job.job_id, exc)
            return
        self._failed += 1
        if not job.future.done():
            job.future.set_exception(exc)
        logger.debug("Job %s failed: %r", job.job_id, exc)
        self._emit_failed(job, exc)
        self._process()

    def _on_timeout(self, job: JobRequest) -> None:
        job.timeout_handle = None
        if not self._finish(job, JobStatus.TIMED_OUT):
            return
        self._timed_out += 1
        timeout = self._config.timeout_limit
        if not job.future.done():
            job.future.set_exception(JobTimeoutError(job.job_id, timeout))
        logger.debug("Job %s timed out after %gs", job.job_id, timeout)
        self._emit_timed_out(job, timeout)
        if self._config.cancel_on_timeout and job.task is not None:
            job.task.cancel()
        self._process()

    def _finish(self, job: JobRequest, status: JobStatus) -> bool:
        """Move a running job to a terminal status exactly once.

        Returns False if the job was already settled (e.g. a late result
        after its timeout fired).
        """
        if is_terminal_job(job.status):
            return False
        transition_job(job, status)
        if job.timeout_handle is not None:
            job.timeout_handle.cancel()
            job.timeout_handle = None
        self._running.pop(job.job_id, None)
        return True

    def _discard_canceled(self, job: JobRequest) -> None:
        transition_job(job, JobStatus.CANCELED)
        logger.debug("Job %s was canceled before it started", job.job_id)
        self._emit_job_canceled(job)

    # --- Internal ---

    def _bind_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.get_running_loop()
        if self._loop is None:
            self._loop = loop
        elif self._loop is not loop:
            raise RuntimeError("JobScheduler is bound to a different event loop")
        return loop

    def _update_idle(self) -> None:
        if self._pending.is_empty and not self._running:
            self._idle.set()
        else:
            self._idle.clear()

    def _queue_snapshot(self) -> dict[str, Any]:
        return {
            "pending": len(self._pending),
            "active": len(self._running),
        }

    # --- Event emission ---

    def _emit_submitted(self, job: JobRequest) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_SUBMITTED,
            job.job_id,
            severity=Severity.DEBUG,
            payload=self._queue_snapshot(),
        ))

    def _emit_started(self, job: JobRequest, queue_time_ms: float) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_STARTED,
            job.job_id,
            payload={
                "queue_time_ms": queue_time_ms,
                "starts_in_window": self._window.count(),
                **self._queue_snapshot(),
            },
        ))

    def _emit_succeeded(
        self, job: JobRequest, queue_time_ms: float, execution_time_ms: float
    ) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_SUCCEEDED,
            job.job_id,
            payload={
                "queue_time_ms": queue_time_ms,
                "execution_time_ms": execution_time_ms,
                **self._queue_snapshot(),
            },
        ))

    def _emit_failed(self, job: JobRequest, exc: Exception) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_FAILED,
            job.job_id,
            severity=Severity.ERROR,
            payload={
                "error_type": type(exc).__name__,
                "error": str(exc)[:500],
                **self._queue_snapshot(),
            },
        ))

    def _emit_timed_out(self, job: JobRequest, timeout: float) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_TIMED_OUT,
            job.job_id,
            severity=Severity.ERROR,
            payload={
                "timeout_s": timeout,
                "task_canceled": self._config.cancel_on_timeout,
                **self._queue_snapshot(),
            },
        ))

    def _emit_job_disposed(self, job: JobRequest) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_DISPOSED,
            job.job_id,
            severity=Severity.WARN,
            payload={"waited_ms": (self._clock() - job.enqueued_at) * 1000},
        ))

    def _emit_job_canceled(self, job: JobRequest) -> None:
        self._bus.emit(make_event(
            EventTypes.JOB_CANCELED,
            job.job_id,
            severity=Severity.WARN,
            payload=self._queue_snapshot(),
        ))

    def _emit_rate_limited(self, now: float) -> None:
        self._bus.emit(make_event(
            EventTypes.SCHEDULER_RATE_LIMITED,
            severity=Severity.WARN,
            payload={
                "starts_in_window": self._window.count(now),
                "rate_limit": self._config.rate_limit,
                "next_slot_in_s": self._window.next_slot_in(now),
                "recheck_in_s": self._config.recheck_interval,
                **self._queue_snapshot(),
            },
        ))

    def _emit_scheduler_disposed(self, rejected: int) -> None:
        self._bus.emit(make_event(
            EventTypes.SCHEDULER_DISPOSED,
            payload={"rejected": rejected, **self._queue_snapshot()},
        ))
