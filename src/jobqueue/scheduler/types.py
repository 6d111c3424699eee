"""jobqueue scheduler types — exceptions, job request, job result, snapshot."""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from jobqueue.runtime.models import JobStatus, generate_uuidv7

T = TypeVar("T")


class SchedulerError(Exception):
    """Base class for errors raised by the scheduler itself."""


class SchedulerDisposedError(SchedulerError):
    """Scheduler was disposed before the job could start."""

    def __init__(self, job_id: str = "") -> None:
        self.job_id = job_id
        super().__init__("Scheduler has been disposed")


class JobTimeoutError(SchedulerError, TimeoutError):
    """Job execution exceeded the configured timeout."""

    def __init__(self, job_id: str = "", timeout: float = 0.0) -> None:
        self.job_id = job_id
        self.timeout = timeout
        super().__init__(f"Job {job_id} timed out after {timeout:g}s")


@dataclass(frozen=True)
class JobResult(Generic[T]):
    """Outcome of a successful job."""
    result: T
    queue_time_ms: float
    execution_time_ms: float


@dataclass
class JobRequest:
    """One submitted unit of work and its completion handle."""
    fn: Callable[..., Any]
    future: asyncio.Future
    args: tuple = ()
    kwargs: dict[str, Any] = field(default_factory=dict)
    job_id: str = field(default_factory=generate_uuidv7)
    enqueued_at: float = field(default_factory=time.monotonic)
    status: JobStatus = JobStatus.PENDING
    started_at: float | None = None
    timeout_handle: asyncio.TimerHandle | None = field(default=None, repr=False)
    task: asyncio.Task | None = field(default=None, repr=False)

    def invoke(self) -> Any:
        return self.fn(*self.args, **self.kwargs)


@dataclass(frozen=True)
class SchedulerSnapshot:
    """Point-in-time view of scheduler state."""
    pending: int
    active: int
    starts_in_window: int
    disposed: bool
    succeeded: int = 0
    failed: int = 0
    timed_out: int = 0
