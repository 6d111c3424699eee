"""OpenTelemetry export of jobqueue lifecycle events.

Each scheduler event becomes a span event on whatever span is current
when the scheduler emits it.  Job arguments and results are never
exported; only the metadata keys listed in ``_EXPORTED_KEYS`` are.

Usage:
    from jobqueue.otel import OtelSink, enable_otel
    enable_otel(service_name="crawler")
    scheduler = JobScheduler(bus=EventBus([OtelSink()]))
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from jobqueue.runtime.events import Event

logger = logging.getLogger(__name__)

_ATTR_PREFIX = "jobqueue."

_EXPORTED_KEYS = frozenset({
    "queue_time_ms",
    "execution_time_ms",
    "timeout_s",
    "pending",
    "active",
    "starts_in_window",
    "error_type",
    "rejected",
})

_tracer: Any = None


def _build_provider(service_name: str, exporter: Any, endpoint: str | None) -> Any:
    from opentelemetry.sdk.resources import SERVICE_NAME, Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, SimpleSpanProcessor

    provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))
    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
    elif endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
                OTLPSpanExporter,
            )
        except ImportError:
            logger.warning(
                "OTLP exporter not installed; spans for %r will not leave the process",
                service_name,
            )
        else:
            provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    return provider


def enable_otel(
    service_name: str,
    exporter: Any = None,
    endpoint: str | None = None,
) -> None:
    """Install a TracerProvider and start exporting job events.

    *exporter* (e.g. an InMemorySpanExporter) wins over *endpoint*, an
    OTLP/HTTP collector URL.  Without ``opentelemetry-sdk`` a warning is
    logged and export stays off.
    """
    global _tracer
    try:
        from opentelemetry import trace

        provider = _build_provider(service_name, exporter, endpoint)
    except ImportError as exc:
        logger.warning("opentelemetry-sdk not installed. OTel disabled. %s", exc)
        return
    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer("jobqueue")
    logger.info("jobqueue OTel enabled: service=%r", service_name)


def enable_otel_with_tracer(tracer: Any) -> None:
    """Use an already configured tracer (tests, host applications)."""
    global _tracer
    _tracer = tracer


def is_otel_enabled() -> bool:
    return _tracer is not None


def disable_otel() -> None:
    global _tracer
    _tracer = None


def _span_attributes(event: "Event") -> dict[str, Any]:
    attributes: dict[str, Any] = {
        _ATTR_PREFIX + "event_type": event.type,
        _ATTR_PREFIX + "job_id": event.job_id,
        _ATTR_PREFIX + "severity": event.severity.value,
    }
    for key, value in event.payload.items():
        if key in _EXPORTED_KEYS and isinstance(value, (int, float, str)):
            attributes[_ATTR_PREFIX + key] = value
    return attributes


def emit_job_event(event: "Event") -> None:
    """Record *event* on the current span. No-op while OTel is disabled."""
    if _tracer is None:
        return
    try:
        from opentelemetry import trace

        span = trace.get_current_span()
        span.add_event(name=_ATTR_PREFIX + event.type, attributes=_span_attributes(event))
    except Exception as exc:
        logger.debug("OTel emit_job_event failed: %s", exc)


class OtelSink:
    """EventBus sink forwarding scheduler events to OpenTelemetry."""

    def emit(self, event: "Event") -> None:
        emit_job_event(event)
