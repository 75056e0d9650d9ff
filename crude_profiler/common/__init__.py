"""Common utilities shared by the profiler.

DO NOT add explicit __all__ lists here - use auto_export instead.
See crude_profiler/common/auto_export.py for documentation on how this works.
"""

from crude_profiler.common.auto_export import auto_export

__all__ = auto_export(__file__, __name__, globals())
