"""Thread-safe totals per section path."""

from __future__ import annotations

import threading
from dataclasses import dataclass

SectionPath = tuple[str, ...]

# Issue kinds recorded on the timing path
OUT_OF_ORDER = "out_of_order"
FOREIGN_CONTEXT = "foreign_context"


@dataclass
class AccumulatorEntry:
    """Total time and number of completed spans for one path."""

    total: float = 0.0
    count: int = 0

    @property
    def avg(self) -> float:
        return self.total / self.count if self.count else 0.0


class Accumulator:
    """Additive map of path -> AccumulatorEntry shared by all contexts.

    The lock is only held around the dictionary update or copy, never around
    a clock read.
    """

    def __init__(self):
        self._entries: dict[SectionPath, AccumulatorEntry] = {}
        self._issues: dict[str, int] = {}
        self._lock = threading.Lock()

    def contribute(self, path: SectionPath, duration: float, count: int = 1) -> None:
        """Add `duration` seconds (and `count` hits) to the entry for `path`."""
        duration = max(0.0, duration)
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                entry = self._entries[path] = AccumulatorEntry()
            entry.total += duration
            entry.count += count

    def record_issue(self, kind: str) -> None:
        with self._lock:
            self._issues[kind] = self._issues.get(kind, 0) + 1

    def snapshot(self) -> dict[SectionPath, AccumulatorEntry]:
        """Copy of all entries, in first-contribution order."""
        with self._lock:
            return {
                path: AccumulatorEntry(e.total, e.count)
                for path, e in self._entries.items()
            }

    def issues(self) -> dict[str, int]:
        with self._lock:
            return dict(self._issues)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()
            self._issues.clear()

    def total(self, path: SectionPath) -> float:
        with self._lock:
            entry = self._entries.get(path)
            return entry.total if entry else 0.0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path) -> bool:
        with self._lock:
            return path in self._entries
