"""jobqueue scheduler queues — FIFO pending queue and rolling start window."""
from __future__ import annotations

import math
import time
from collections import deque
from typing import Callable, Iterator

from jobqueue.scheduler.types import JobRequest


class PendingQueue:
    """FIFO queue of jobs waiting to start. Insertion order is start order."""

    def __init__(self) -> None:
        self._queue: deque[JobRequest] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[JobRequest]:
        return iter(self._queue)

    @property
    def is_empty(self) -> bool:
        return not self._queue

    def enqueue(self, job: JobRequest) -> None:
        self._queue.append(job)

    def dequeue(self) -> JobRequest | None:
        """Pop the earliest-submitted job, or None if empty."""
        if not self._queue:
            return None
        return self._queue.popleft()

    def drain(self) -> list[JobRequest]:
        """Remove and return every pending job in FIFO order."""
        drained = list(self._queue)
        self._queue.clear()
        return drained


class RateWindow:
    """Trailing-window start counter.

    Records one timestamp per job start.  Entries at or before
    ``now - window_seconds`` are pruned before every check, so the count
    always reflects starts within the last window.  This is a plain count,
    not a token bucket: capacity returns only as the oldest start ages out.
    """

    def __init__(
        self,
        max_starts: float = math.inf,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        self._max = max_starts
        self._window = window_seconds
        self._clock = clock
        self._timestamps: deque[float] = deque()

    def _prune(self, now: float) -> None:
        cutoff = now - self._window
        while self._timestamps and self._timestamps[0] <= cutoff:
            self._timestamps.popleft()

    def count(self, now: float | None = None) -> int:
        """Number of starts recorded within the window ending at *now*."""
        self._prune(self._clock() if now is None else now)
        return len(self._timestamps)

    def has_capacity(self, now: float | None = None) -> bool:
        return self.count(now) < self._max

    def record(self, now: float | None = None) -> None:
        self._timestamps.append(self._clock() if now is None else now)

    def next_slot_in(self, now: float | None = None) -> float:
        """Seconds until the window admits another start (0.0 if it already does)."""
        if now is None:
            now = self._clock()
        if self.has_capacity(now):
            return 0.0
        if math.isinf(self._max) or self._max <= 0:
            return math.inf
        # A slot frees once the start at this index ages out of the window.
        index = len(self._timestamps) - math.ceil(self._max)
        return max(0.0, self._timestamps[index] + self._window - now)
