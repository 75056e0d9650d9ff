"""Manual profiler with nested, replaceable sections.

Usage:
    from crude_profiler import P

    # Context manager (recommended)
    with P("load_data"):
        data = load()

    # One scope, several phases
    with P.push("init") as g:
        setup()
        g.replace("compute")
        run()

    # Manual start/stop
    P.start("train")
    # ... training ...
    P.stop("train")

    # Report
    print(P.report())   # Formatted breakdown
    P.print_report()    # Same, printed
    P.reset()           # Clear all timings

A Profiler is an ordinary object: create one per program, per benchmark or per
test, and pass it where it is needed. P is just a ready-made instance.
"""

from __future__ import annotations

import threading
from dataclasses import replace as replace_fields
from typing import Optional

from .accumulator import FOREIGN_CONTEXT, OUT_OF_ORDER, Accumulator, AccumulatorEntry
from .clock import Clock, PerfCounterClock
from .config import Aggregation, ProfilerConfig
from .guard import NULL_GUARD, Guard
from .report import Report, ReportGenerator, label_totals
from .scope_stack import Frame, ScopeStack


class Profiler:
    """Attributes wall-clock time to caller-named sections.

    Each thread or asyncio task has its own stack of open sections; all of
    them add into one shared accumulator.

    Misuse never raises: closing a guard whose section still has open
    children closes those children at the same instant (keeping their time),
    and closing a guard from a context that did not open it still counts its
    time. Both are counted and shown at the bottom of the report.
    """

    def __init__(
        self, config: Optional[ProfilerConfig] = None, clock: Optional[Clock] = None
    ):
        self.config = config or ProfilerConfig()
        self.clock = clock or PerfCounterClock()
        self._enabled = self.config.enabled
        self._stack = ScopeStack()
        self._accumulator = Accumulator()
        self._lock = threading.Lock()
        self._reporter = ReportGenerator(self.config)
        self._started = self.clock.now()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    @property
    def enabled(self) -> bool:
        return self._enabled

    def enable(self) -> None:
        """Enable profiling."""
        self._enabled = True

    def disable(self) -> None:
        """Disable profiling (no-op mode). Open sections still close normally."""
        self._enabled = False

    def reset(self) -> None:
        """Clear all timing data. Guards handed out earlier become inert."""
        self._stack.invalidate()
        self._accumulator.reset()
        self._started = self.clock.now()

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def push(self, label: str) -> Guard:
        """Start timing `label` inside the current context's innermost section."""
        if not self._enabled:
            return NULL_GUARD
        frame = self._stack.push(str(label), self.clock.now())
        return Guard(self, frame)

    def __call__(self, label: str) -> Guard:
        """Context manager for timing."""
        return self.push(label)

    def time(self, label: str) -> Guard:
        """Alias for __call__ context manager."""
        return self.push(label)

    def start(self, label: str) -> Guard:
        """Start timing a section; end it with stop(label) or the returned guard."""
        return self.push(label)

    def stop(self, label: str) -> float:
        """Stop the innermost section named `label` opened in this context; return its elapsed time."""
        frame = self._stack.find(str(label))
        if frame is None:
            return 0.0
        return self._close_frame(frame)

    def replace(self, label: str) -> None:
        """Rename the current context's innermost open section, ending its span.

        Sections inherited from a creating task are left alone.
        """
        frame = self._stack.top(owned=True)
        if frame is not None:
            self._replace_frame(frame, label)

    def depth(self) -> int:
        """Number of open sections in the current context."""
        return self._stack.depth()

    def current_path(self) -> tuple[str, ...]:
        frame = self._stack.top()
        return frame.path if frame is not None else ()

    def _close_descendants(self, frame: Frame, now: float) -> None:
        for child in self._stack.descendants(frame):
            if child.closed:
                continue
            child.closed = True
            self._accumulator.contribute(child.path, child.elapsed(now))
            self._accumulator.record_issue(OUT_OF_ORDER)
        self._stack.truncate_above(frame)

    def _replace_frame(self, frame: Frame, label: str) -> None:
        now = self.clock.now()
        with self._lock:
            if frame.closed:
                return
            if frame.generation != self._stack.generation:
                frame.closed = True
                return
            if self._stack.index(frame) < 0:
                self._accumulator.record_issue(FOREIGN_CONTEXT)
            else:
                self._close_descendants(frame, now)
            self._accumulator.contribute(frame.path, frame.elapsed(now))
            frame.label = str(label)
            frame.start = max(frame.start, now)

    def _close_frame(self, frame: Frame) -> float:
        now = self.clock.now()
        # Only the first closer to take the lock contributes
        with self._lock:
            if frame.closed:
                return 0.0
            if frame.generation != self._stack.generation:
                frame.closed = True
                return 0.0
            owned = self._stack.index(frame) >= 0
            if owned:
                self._close_descendants(frame, now)
            else:
                self._accumulator.record_issue(FOREIGN_CONTEXT)
            elapsed = frame.elapsed(now)
            frame.closed = True
            self._accumulator.contribute(frame.path, elapsed)
            if owned:
                self._stack.pop(frame)
        return elapsed

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def snapshot(
        self, include_open: Optional[bool] = None
    ) -> dict[tuple[str, ...], AccumulatorEntry]:
        """Totals per path, optionally with the time so far of this context's open sections."""
        entries = self._accumulator.snapshot()
        if include_open is None:
            include_open = self.config.include_open
        if include_open:
            now = self.clock.now()
            for frame in self._stack.frames():
                entry = entries.setdefault(frame.path, AccumulatorEntry())
                entry.total += frame.elapsed(now)
        return entries

    def build_report(
        self,
        include_open: Optional[bool] = None,
        aggregation: Optional[Aggregation] = None,
    ) -> Report:
        entries = self.snapshot(include_open)
        reporter = self._reporter_for(aggregation)
        return reporter.build(
            entries,
            wall=max(0.0, self.clock.now() - self._started),
            issues=self._accumulator.issues(),
        )

    def report(
        self,
        include_open: Optional[bool] = None,
        aggregation: Optional[Aggregation] = None,
    ) -> str:
        """Formatted breakdown of where time went."""
        reporter = self._reporter_for(aggregation)
        return reporter.render(self.build_report(include_open, aggregation))

    def print_report(self, **kwargs) -> None:
        """Print timing report."""
        print("\n" + self.report(**kwargs))

    def _reporter_for(self, aggregation: Optional[Aggregation]) -> ReportGenerator:
        if aggregation is None or Aggregation(aggregation) is self.config.aggregation:
            return self._reporter
        return ReportGenerator(
            replace_fields(self.config, aggregation=Aggregation(aggregation))
        )

    def summary(self, include_open: Optional[bool] = None) -> dict[str, float]:
        """Return timing summary as dict (label -> total_ms), flat by label."""
        grouped = label_totals(self.snapshot(include_open))
        return {
            label: sum(e.total for e in paths.values()) * 1000
            for label, paths in grouped.items()
        }

    def get(self, label: str) -> float:
        """Get total time for a label in ms."""
        return self.summary().get(label, 0.0)

    def __repr__(self) -> str:
        return (
            f"Profiler(enabled={self._enabled}, sections={len(self._accumulator)}, "
            f"open={self.depth()})"
        )


# Singleton instance
P = Profiler()
