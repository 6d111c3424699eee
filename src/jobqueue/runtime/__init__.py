"""jobqueue runtime — job lifecycle models, structured events, and event sinks."""
from __future__ import annotations

from jobqueue.runtime.events import Event, EventBus, EventTypes, make_event
from jobqueue.runtime.models import JobStatus, Severity
from jobqueue.runtime.sinks import (
    CompositeSink,
    EventSink,
    JsonlFileSink,
    MemorySink,
    NullSink,
    StdoutSink,
    create_default_sinks,
)

__all__ = [
    "CompositeSink",
    "Event",
    "EventBus",
    "EventSink",
    "EventTypes",
    "JobStatus",
    "JsonlFileSink",
    "MemorySink",
    "NullSink",
    "Severity",
    "StdoutSink",
    "create_default_sinks",
    "make_event",
]
