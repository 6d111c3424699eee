"""Scheduler configuration for jobqueue.

Uses stdlib dataclasses only. The config is frozen: limits are fixed for
the lifetime of a scheduler.

Loaders:
    SchedulerConfig.from_dict({"concurrency_limit": 4, "rate_limit": 60})
    SchedulerConfig.from_file("jobqueue.yaml")   # .json natively, .yaml via PyYAML
    SchedulerConfig.from_env()                   # JOBQUEUE_* variables
"""

from __future__ import annotations

import dataclasses
import json
import math
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

DEFAULT_CONCURRENCY_LIMIT = 1000
DEFAULT_TIMEOUT_SECONDS = 1200.0
DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_RECHECK_INTERVAL = 0.1

_ENV_PREFIX = "JOBQUEUE_"
_ENV_FIELDS: dict[str, str] = {
    "CONCURRENCY_LIMIT": "concurrency_limit",
    "RATE_LIMIT": "rate_limit",
    "TIMEOUT_LIMIT": "timeout_limit",
    "WINDOW_SECONDS": "window_seconds",
    "RECHECK_INTERVAL": "recheck_interval",
    "CANCEL_ON_TIMEOUT": "cancel_on_timeout",
}


@dataclass(frozen=True)
class SchedulerConfig:
    """Limits applied by a JobScheduler.

    ``concurrency_limit`` caps simultaneously running jobs (0 means nothing
    ever starts).  ``rate_limit`` caps job starts per trailing
    ``window_seconds`` window; ``math.inf`` disables it.  ``timeout_limit``
    is the per-job execution budget in seconds, measured from dispatch.

    ``recheck_interval`` is the polling delay used while the rate window is
    full.  ``cancel_on_timeout`` also cancels the task of a timed-out job;
    by default the work is left to finish and its outcome is discarded.
    """

    concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    rate_limit: float = math.inf
    timeout_limit: float = DEFAULT_TIMEOUT_SECONDS
    window_seconds: float = DEFAULT_WINDOW_SECONDS
    recheck_interval: float = DEFAULT_RECHECK_INTERVAL
    cancel_on_timeout: bool = False

    def __post_init__(self) -> None:
        if self.rate_limit is None:
            object.__setattr__(self, "rate_limit", math.inf)
        if isinstance(self.concurrency_limit, bool) or not isinstance(self.concurrency_limit, int):
            raise ValueError("concurrency_limit must be an int")
        if self.concurrency_limit < 0:
            raise ValueError("concurrency_limit must be >= 0")
        if math.isnan(self.rate_limit) or self.rate_limit < 0:
            raise ValueError("rate_limit must be >= 0")
        if not self.timeout_limit > 0:
            raise ValueError("timeout_limit must be > 0")
        if not self.window_seconds > 0:
            raise ValueError("window_seconds must be > 0")
        if not self.recheck_interval > 0:
            raise ValueError("recheck_interval must be > 0")

    @property
    def is_rate_limited(self) -> bool:
        """Return True if a finite start rate is configured."""
        return not math.isinf(self.rate_limit)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchedulerConfig:
        """Deserialize from a plain dictionary.

        Unknown keys are silently ignored for forward compatibility.
        """
        valid = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in (data or {}).items() if k in valid})

    @classmethod
    def from_file(cls, path: str | Path) -> SchedulerConfig:
        """Load configuration from a YAML or JSON file.

        Accepts ``.json`` files natively.  For ``.yaml`` / ``.yml`` files,
        PyYAML must be installed (optional dependency).
        """
        file_path = Path(path)

        if file_path.suffix == ".json":
            with open(file_path, encoding="utf-8") as fh:
                data = json.load(fh)
            return cls.from_dict(data)

        try:
            import yaml  # type: ignore[import-untyped]
        except ImportError:
            raise RuntimeError(
                f"PyYAML is required to load '{file_path.name}'. "
                "Install with: pip install jobqueue[yaml]"
            ) from None

        with open(file_path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> SchedulerConfig:
        """Build a SchedulerConfig from environment variables.

        Recognised variables:
            JOBQUEUE_CONCURRENCY_LIMIT=8
            JOBQUEUE_RATE_LIMIT=120      (or "inf")
            JOBQUEUE_TIMEOUT_LIMIT=30
            JOBQUEUE_WINDOW_SECONDS=60
            JOBQUEUE_RECHECK_INTERVAL=0.1
            JOBQUEUE_CANCEL_ON_TIMEOUT=1
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        for suffix, name in _ENV_FIELDS.items():
            raw = env.get(_ENV_PREFIX + suffix)
            if raw is None or raw == "":
                continue
            if name == "concurrency_limit":
                data[name] = int(raw)
            elif name == "cancel_on_timeout":
                data[name] = raw.strip().lower() in ("1", "true", "yes", "on")
            else:
                data[name] = float(raw)
        return cls(**data)
