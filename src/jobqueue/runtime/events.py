"""jobqueue runtime event schema, types, and EventBus."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Protocol, runtime_checkable

from jobqueue.runtime.models import Severity, generate_uuidv7, now_iso

logger = logging.getLogger(__name__)


class EventTypes:
    """Event type names emitted by JobScheduler."""

    # One per job state change
    JOB_SUBMITTED = "job.submitted"
    JOB_STARTED = "job.started"
    JOB_SUCCEEDED = "job.succeeded"
    JOB_FAILED = "job.failed"
    JOB_TIMED_OUT = "job.timed_out"
    JOB_DISPOSED = "job.disposed"
    JOB_CANCELED = "job.canceled"

    # Scheduler-wide
    SCHEDULER_RATE_LIMITED = "scheduler.rate_limited"
    SCHEDULER_DISPOSED = "scheduler.disposed"


@dataclass(frozen=True)
class Event:
    """One scheduler lifecycle event.

    ``job_id`` is empty for scheduler-wide events.  ``payload`` carries
    timings and queue depth, never job arguments or results.
    """

    type: str
    job_id: str = ""
    severity: Severity = Severity.INFO
    payload: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=generate_uuidv7)
    ts: str = field(default_factory=now_iso)


def event_to_dict(event: Event) -> dict[str, Any]:
    """Flatten an Event into a JSON-ready dict."""
    data = asdict(event)
    data["severity"] = event.severity.value
    return data


def make_event(
    event_type: str,
    job_id: str = "",
    *,
    severity: Severity = Severity.INFO,
    payload: dict[str, Any] | None = None,
) -> Event:
    return Event(
        type=event_type,
        job_id=job_id,
        severity=severity,
        payload=dict(payload) if payload else {},
    )


@runtime_checkable
class EventSinkProtocol(Protocol):
    """Anything with ``emit(event)``."""

    def emit(self, event: Event) -> None: ...


class EventBus:
    """Fans scheduler events out to registered sinks.

    A sink that raises is logged and skipped; it never affects the job
    that produced the event.
    """

    def __init__(self, sinks: list[EventSinkProtocol] | None = None) -> None:
        self._sinks: list[EventSinkProtocol] = list(sinks) if sinks else []

    @property
    def sinks(self) -> tuple[EventSinkProtocol, ...]:
        return tuple(self._sinks)

    def add_sink(self, sink: EventSinkProtocol) -> None:
        self._sinks.append(sink)

    def emit(self, event: Event) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.warning(
                    "EventBus: sink %s failed for event %s",
                    type(sink).__name__,
                    event.type,
                    exc_info=True,
                )

    def query_by_job_id(self, job_id: str) -> list[dict[str, Any]]:
        """Events for *job_id* from the first sink able to answer, else []."""
        for sink in self._sinks:
            query = getattr(sink, "query_by_job_id", None)
            if query is not None:
                return query(job_id)
        return []
