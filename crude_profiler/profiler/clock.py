"""Clock sources for the profiler.

The profiler only needs "now" in seconds from a monotonic source. The default
reads time.perf_counter; ManualClock is advanced by hand and makes timings
exact in tests and replays.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol


class Clock(Protocol):
    def now(self) -> float: ...


class PerfCounterClock:
    """Monotonic wall clock backed by time.perf_counter."""

    def now(self) -> float:
        return time.perf_counter()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._lock = threading.Lock()

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """Move the clock forward and return the new reading."""
        if seconds < 0:
            raise ValueError(f"ManualClock cannot move backwards (got {seconds})")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, value: float) -> None:
        if value < self._now:
            raise ValueError(f"ManualClock cannot move backwards ({value} < {self._now})")
        with self._lock:
            self._now = float(value)
