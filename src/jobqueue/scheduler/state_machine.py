"""jobqueue job state machine — explicit transition map for JobRequest."""
from __future__ import annotations

from jobqueue.runtime.models import JobStatus
from jobqueue.scheduler.types import JobRequest

_JOB_TERMINAL = frozenset({
    JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT,
    JobStatus.DISPOSED, JobStatus.CANCELED,
})

JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({
        JobStatus.RUNNING, JobStatus.DISPOSED, JobStatus.CANCELED,
    }),
    JobStatus.RUNNING: frozenset({
        JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT,
        JobStatus.CANCELED,
    }),
    JobStatus.SUCCEEDED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.TIMED_OUT: frozenset(),
    JobStatus.DISPOSED: frozenset(),
    JobStatus.CANCELED: frozenset(),
}


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid job transition: {from_status} -> {to_status}")


def is_terminal_job(status: JobStatus) -> bool:
    return status in _JOB_TERMINAL


def transition_job(job: JobRequest, new_status: JobStatus) -> JobRequest:
    """Transition a JobRequest to a new status. Mutates in place. Raises InvalidTransitionError on invalid."""
    allowed = JOB_TRANSITIONS.get(job.status, frozenset())
    if new_status not in allowed:
        raise InvalidTransitionError(job.status.value, new_status.value)
    job.status = new_status
    return job
