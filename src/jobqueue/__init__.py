"""jobqueue - In-process async job scheduler with concurrency, rate, and timeout limits."""

__version__ = "0.1.0"

# Configuration
from jobqueue.config import SchedulerConfig

# Scheduler core
from jobqueue.scheduler import (
    JobRequest,
    JobResult,
    JobScheduler,
    JobTimeoutError,
    SchedulerDisposedError,
    SchedulerError,
    SchedulerSnapshot,
)

# Runtime events and sinks
from jobqueue.runtime import (
    CompositeSink,
    Event,
    EventBus,
    EventTypes,
    JobStatus,
    JsonlFileSink,
    MemorySink,
    NullSink,
    StdoutSink,
)

# OpenTelemetry (opt-in, requires the ``otel`` extra)
from jobqueue.otel import OtelSink, disable_otel, enable_otel, is_otel_enabled

__all__ = [
    # Configuration
    "SchedulerConfig",
    # Scheduler
    "JobRequest",
    "JobResult",
    "JobScheduler",
    "JobTimeoutError",
    "SchedulerDisposedError",
    "SchedulerError",
    "SchedulerSnapshot",
    # Runtime
    "CompositeSink",
    "Event",
    "EventBus",
    "EventTypes",
    "JobStatus",
    "JsonlFileSink",
    "MemorySink",
    "NullSink",
    "StdoutSink",
    # OpenTelemetry
    "OtelSink",
    "disable_otel",
    "enable_otel",
    "is_otel_enabled",
]
