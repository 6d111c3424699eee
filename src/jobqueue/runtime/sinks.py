"""jobqueue runtime event sinks — where scheduler events end up."""
from __future__ import annotations

import json
import logging
import os
import sys
import threading
from pathlib import Path
from typing import Any, Iterable, Protocol, TextIO, runtime_checkable

from jobqueue.runtime.events import Event, event_to_dict
from jobqueue.runtime.models import Severity

logger = logging.getLogger(__name__)

DEFAULT_JSONL_PATH = "./jobqueue-events.jsonl"


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event: Event) -> None: ...


def _dumps(event: Event) -> str:
    # inf is written as Infinity, which json.loads reads back.
    return json.dumps(event_to_dict(event), ensure_ascii=False, default=str)


def _by_ts(events: Iterable[dict[str, Any]], job_id: str) -> list[dict[str, Any]]:
    return sorted(
        (e for e in events if e.get("job_id") == job_id),
        key=lambda e: e.get("ts", ""),
    )


class NullSink:
    """Discards everything. Selected when JOBQUEUE_EVENTS=0."""

    def emit(self, event: Event) -> None:
        pass


class MemorySink:
    """Keeps events in a list; handy for tests and short-lived tools."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.type for e in self.events]

    def query_by_job_id(self, job_id: str) -> list[dict[str, Any]]:
        return _by_ts((event_to_dict(e) for e in self.events), job_id)


class StdoutSink:
    """Writes one JSON object per line, optionally filtered by severity.

    *stream* defaults to whatever ``sys.stdout`` is at emit time.
    """

    def __init__(
        self,
        min_severity: str | Severity | None = None,
        stream: TextIO | None = None,
    ) -> None:
        if min_severity is not None:
            try:
                min_severity = Severity(min_severity)
            except ValueError:
                raise ValueError(f"unknown severity: {min_severity!r}") from None
        self._min_severity = min_severity
        self._stream = stream

    def emit(self, event: Event) -> None:
        if self._min_severity is not None and event.severity.rank < self._min_severity.rank:
            return
        stream = self._stream or sys.stdout
        stream.write(_dumps(event) + "\n")
        stream.flush()


class JsonlFileSink:
    """Appends events to a JSON Lines file and can read them back.

    Writes are serialized with a lock so sinks may be shared with
    worker threads. Unparseable lines are skipped on read.
    """

    def __init__(self, path: str | Path = DEFAULT_JSONL_PATH) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def emit(self, event: Event) -> None:
        line = _dumps(event)
        with self._lock, open(self._path, "a", encoding="utf-8") as fh:
            fh.write(line + "\n")

    def read_all(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            return []
        records: list[dict[str, Any]] = []
        with self._lock, open(self._path, encoding="utf-8") as fh:
            for raw in fh:
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    records.append(json.loads(raw))
                except json.JSONDecodeError:
                    logger.debug("JsonlFileSink: skipping corrupt line in %s", self._path)
        return records

    def query_by_job_id(self, job_id: str) -> list[dict[str, Any]]:
        return _by_ts(self.read_all(), job_id)


class CompositeSink:
    """Forwards each event to several sinks; one failing sink does not stop the rest."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self._sinks = list(sinks)

    def emit(self, event: Event) -> None:
        for sink in self._sinks:
            try:
                sink.emit(event)
            except Exception:
                logger.warning(
                    "CompositeSink: sink %s failed for event %s",
                    type(sink).__name__,
                    event.type,
                    exc_info=True,
                )

    def query_by_job_id(self, job_id: str) -> list[dict[str, Any]]:
        for sink in self._sinks:
            query = getattr(sink, "query_by_job_id", None)
            if query is not None:
                return query(job_id)
        return []


def create_default_sinks(
    jsonl_path: str | Path = DEFAULT_JSONL_PATH,
    environ: dict[str, str] | None = None,
) -> list[EventSink]:
    """Stdout plus a JSONL file, or a single NullSink when JOBQUEUE_EVENTS=0."""
    env = os.environ if environ is None else environ
    if env.get("JOBQUEUE_EVENTS") == "0":
        return [NullSink()]
    return [StdoutSink(), JsonlFileSink(jsonl_path)]
