"""jobqueue Scheduler — FIFO dispatch with concurrency, rate-window, and timeout limits."""

from jobqueue.scheduler.queue import PendingQueue, RateWindow
from jobqueue.scheduler.scheduler import JobScheduler
from jobqueue.scheduler.state_machine import InvalidTransitionError, transition_job
from jobqueue.scheduler.types import (
    JobRequest,
    JobResult,
    JobTimeoutError,
    SchedulerDisposedError,
    SchedulerError,
    SchedulerSnapshot,
)

__all__ = [
    "InvalidTransitionError",
    "JobRequest",
    "JobResult",
    "JobScheduler",
    "JobTimeoutError",
    "PendingQueue",
    "RateWindow",
    "SchedulerDisposedError",
    "SchedulerError",
    "SchedulerSnapshot",
    "transition_job",
]
