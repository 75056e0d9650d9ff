"""Profiler configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ..common.base_schema import BaseSchema

ENV_PREFIX = "CRUDE_PROFILER_"


class Aggregation(Enum):
    """How sections with the same label are combined in the report."""

    FLAT = "flat"  # one line per label, paths listed beneath when ambiguous
    HIERARCHICAL = "hierarchical"  # nested tree, child % relative to parent


class SortOrder(Enum):
    DURATION = "duration"
    NAME = "name"
    INSERTION = "insertion"


class TimeUnit(Enum):
    MS = "ms"
    S = "s"

    @property
    def scale(self) -> float:
        return 1000.0 if self is TimeUnit.MS else 1.0


@dataclass
class ProfilerConfig(BaseSchema):
    """Settings for recording and reporting.

    Attributes:
        enabled: When False, push() hands out inert guards
        aggregation: Flat (by label) or hierarchical (by path) report
        sort: Line ordering within each level of the report
        unit: Unit used to print durations
        min_ms: Hide report lines shorter than this
        include_open: Count the calling context's open sections in reports
        show_counts: Print "(Nx, avg ...)" for sections entered more than once
        show_paths: In flat reports, list the distinct paths of a label
        show_wall: Print wall-clock time since creation/reset in the footer
    """

    enabled: bool = True
    aggregation: Aggregation = Aggregation.FLAT
    sort: SortOrder = SortOrder.DURATION
    unit: TimeUnit = TimeUnit.MS
    min_ms: float = 0.0
    include_open: bool = True
    show_counts: bool = True
    show_paths: bool = True
    show_wall: bool = False

    def __post_init__(self):
        # Accept plain strings for the enum fields
        self.aggregation = Aggregation(self.aggregation)
        self.sort = SortOrder(self.sort)
        self.unit = TimeUnit(self.unit)
        if self.min_ms < 0:
            raise ValueError(f"min_ms must be >= 0, got {self.min_ms}")

    @classmethod
    def from_env(
        cls, prefix: str = ENV_PREFIX, dotenv_path: Optional[Path] = None
    ) -> "ProfilerConfig":
        """Build a config from environment variables such as CRUDE_PROFILER_SORT.

        Variables from a .env file (searched from the working directory, or
        `dotenv_path`) are loaded first without overriding the environment.
        """
        load_dotenv(dotenv_path)
        values = {}
        for f in fields(cls):
            raw = os.environ.get(f"{prefix}{f.name.upper()}")
            if raw is not None:
                values[f.name] = raw.strip()
        return cls.from_dict(values)
