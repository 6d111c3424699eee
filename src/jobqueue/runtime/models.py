"""jobqueue runtime data models."""
from __future__ import annotations

import os
import time
import uuid
from datetime import datetime, timezone
from enum import Enum

_TS_MASK = (1 << 48) - 1
_RAND_B_MASK = (1 << 62) - 1


def generate_uuidv7() -> str:
    """Return a time-ordered UUIDv7 string (RFC 9562).

    Layout: 48-bit unix milliseconds, version nibble, 12 random bits,
    variant ``10``, 62 random bits.
    """
    unix_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    value = (unix_ms & _TS_MASK) << 80
    value |= 0x7 << 76
    value |= ((rand >> 62) & 0xFFF) << 64
    value |= 0b10 << 62
    value |= rand & _RAND_B_MASK
    return str(uuid.UUID(int=value))


def now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class JobStatus(str, Enum):
    """Lifecycle of a submitted job. See scheduler.state_machine for edges."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    DISPOSED = "disposed"
    CANCELED = "canceled"


class Severity(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Position in ascending order of seriousness."""
        return list(Severity).index(self)
