"""Tests for jobqueue runtime events — Event, make_event, EventBus."""
from __future__ import annotations

import json
import uuid
from pathlib import Path

from jobqueue.runtime.events import (
    Event,
    EventBus,
    EventSinkProtocol,
    EventTypes,
    event_to_dict,
    make_event,
)
from jobqueue.runtime.models import Severity, generate_uuidv7
from jobqueue.runtime.sinks import JsonlFileSink, NullSink


def test_uuidv7_version_and_ordering() -> None:
    first = generate_uuidv7()
    second = generate_uuidv7()
    assert uuid.UUID(first).version == 7
    # Leading 48 bits are a millisecond timestamp.
    assert first[:8] <= second[:8]


def test_make_event_fills_ids_and_defaults() -> None:
    evt = make_event(EventTypes.JOB_STARTED, "job-1", payload={"queue_time_ms": 1.5})
    assert evt.type == EventTypes.JOB_STARTED
    assert evt.job_id == "job-1"
    assert evt.severity == Severity.INFO
    assert evt.payload == {"queue_time_ms": 1.5}
    assert evt.event_id
    assert evt.ts.endswith("+00:00")


def test_event_to_dict_is_json_safe() -> None:
    evt = make_event(EventTypes.JOB_FAILED, "job-1", severity=Severity.ERROR)
    d = event_to_dict(evt)
    assert d["severity"] == "error"
    assert json.loads(json.dumps(d))["type"] == EventTypes.JOB_FAILED


def test_sinks_satisfy_protocol(tmp_path: Path) -> None:
    assert isinstance(NullSink(), EventSinkProtocol)
    assert isinstance(JsonlFileSink(tmp_path / "e.jsonl"), EventSinkProtocol)


def test_event_bus_fans_out_and_queries(tmp_path: Path) -> None:
    received: list[Event] = []

    class ListSink:
        def emit(self, event: Event) -> None:
            received.append(event)

    jsonl = JsonlFileSink(tmp_path / "events.jsonl")
    bus = EventBus([ListSink()])
    bus.add_sink(jsonl)
    bus.emit(make_event(EventTypes.JOB_SUBMITTED, "job-9"))

    assert len(received) == 1
    assert [e["type"] for e in bus.query_by_job_id("job-9")] == [EventTypes.JOB_SUBMITTED]


def test_event_bus_logs_failing_sink(caplog) -> None:
    class FailingSink:
        def emit(self, event: Event) -> None:
            raise RuntimeError("boom")

    bus = EventBus([FailingSink()])
    bus.emit(make_event(EventTypes.JOB_SUBMITTED, "job-1"))  # should not raise

    assert "FailingSink failed for event job.submitted" in caplog.text


def test_event_bus_without_queryable_sink() -> None:
    assert EventBus().query_by_job_id("job-1") == []
