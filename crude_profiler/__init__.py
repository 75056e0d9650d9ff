"""crude_profiler: attribute wall-clock time to sections you name yourself."""

__version__ = "0.1.0"

from .profiler import (
    Aggregation,
    Guard,
    ManualClock,
    P,
    PerfCounterClock,
    Profiler,
    ProfilerConfig,
    Report,
    ReportLine,
    SortOrder,
    TimeUnit,
    profile,
)

__all__ = [
    "Aggregation",
    "Guard",
    "ManualClock",
    "P",
    "PerfCounterClock",
    "Profiler",
    "ProfilerConfig",
    "Report",
    "ReportLine",
    "SortOrder",
    "TimeUnit",
    "profile",
]
