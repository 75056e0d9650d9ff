"""Pytest configuration for crude_profiler tests."""

import sys
from pathlib import Path

# Add project root to path so 'crude_profiler' imports work without installing
_project_root = str(Path(__file__).parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

import pytest

from crude_profiler.profiler import ManualClock, Profiler, ProfilerConfig


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--skip-slow",
        action="store_true",
        default=False,
        help="Skip slow tests (real sleeps, thread stress, benchmarks)",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: mark test as slow (real sleeps or benchmark)")


def pytest_collection_modifyitems(config, items):
    """Skip tests based on markers and command-line options."""
    if config.getoption("--skip-slow"):
        skip_slow = pytest.mark.skip(reason="Skipped via --skip-slow")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


@pytest.fixture
def clock():
    return ManualClock(start=100.0)


@pytest.fixture
def profiler(clock):
    """Profiler on a manual clock; sections take exactly as long as the test says."""
    return Profiler(clock=clock)


@pytest.fixture
def make_profiler(clock):
    """Factory for profilers with custom configuration on the shared manual clock."""

    def make(**config):
        return Profiler(ProfilerConfig(**config), clock=clock)

    return make
