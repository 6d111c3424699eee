"""Tests for OpenTelemetry export of scheduler events."""
from __future__ import annotations

import asyncio
import logging
import sys

import pytest

from jobqueue.otel import (
    OtelSink,
    disable_otel,
    emit_job_event,
    enable_otel,
    enable_otel_with_tracer,
    is_otel_enabled,
)
from jobqueue.runtime.events import EventBus, EventTypes, make_event
from jobqueue.scheduler import JobScheduler


@pytest.fixture(autouse=True)
def reset_otel():
    disable_otel()
    yield
    disable_otel()


def _setup_test_otel():
    """Create an in-memory OTel tracer for testing."""
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    tracer = provider.get_tracer("test")
    enable_otel_with_tracer(tracer)
    return exporter, tracer


# ---------------------------------------------------------------------------
# Basic enable/disable
# ---------------------------------------------------------------------------


def test_otel_disabled_by_default():
    assert is_otel_enabled() is False


def test_enable_with_tracer():
    enable_otel_with_tracer(object())
    assert is_otel_enabled() is True


def test_disable_otel():
    enable_otel_with_tracer(object())
    disable_otel()
    assert is_otel_enabled() is False


def test_enable_otel_with_sdk():
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    enable_otel(service_name="jobqueue-test", exporter=InMemorySpanExporter())
    assert is_otel_enabled() is True


def test_enable_otel_without_sdk_logs_warning(monkeypatch, caplog):
    monkeypatch.setitem(sys.modules, "opentelemetry.sdk.resources", None)
    with caplog.at_level(logging.WARNING, logger="jobqueue.otel"):
        enable_otel(service_name="missing-sdk")
    assert is_otel_enabled() is False
    assert "opentelemetry-sdk not installed" in caplog.text


def test_emit_job_event_noop_when_disabled():
    # Must not raise
    emit_job_event(make_event(EventTypes.JOB_STARTED, "job-1"))


# ---------------------------------------------------------------------------
# Functional tests with InMemorySpanExporter
# ---------------------------------------------------------------------------


def test_emit_job_event_with_tracer():
    exporter, tracer = _setup_test_otel()

    with tracer.start_as_current_span("test-span"):
        emit_job_event(make_event(
            EventTypes.JOB_SUCCEEDED,
            "job-1",
            payload={"queue_time_ms": 1.0, "execution_time_ms": 2.0, "result": "secret"},
        ))

    span = exporter.get_finished_spans()[0]
    otel_event = span.events[0]
    assert otel_event.name == "jobqueue.job.succeeded"
    assert otel_event.attributes["jobqueue.job_id"] == "job-1"
    assert otel_event.attributes["jobqueue.execution_time_ms"] == 2.0
    for key in otel_event.attributes:
        assert "result" not in key, f"Unexpected result key: {key}"


def test_scheduler_events_reach_current_span():
    exporter, tracer = _setup_test_otel()

    async def _run() -> None:
        scheduler = JobScheduler(bus=EventBus([OtelSink()]))
        await scheduler.submit(asyncio.sleep, 0)

    with tracer.start_as_current_span("scheduler-span"):
        asyncio.run(_run())

    span = exporter.get_finished_spans()[0]
    names = [e.name for e in span.events]
    assert names == [
        "jobqueue.job.submitted",
        "jobqueue.job.started",
        "jobqueue.job.succeeded",
    ]
