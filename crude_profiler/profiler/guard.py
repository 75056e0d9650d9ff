"""Handle that owns one open section."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from .scope_stack import Frame

if TYPE_CHECKING:
    from .timer import Profiler


class Guard:
    """Closes its section exactly once: on `with` exit or on close().

    Usage:
        with P.push("load") as g:
            read_files()
            g.replace("parse")
            parse_files()

        g = P.push("train")
        ...
        g.close()
    """

    __slots__ = ("_profiler", "_frame")

    def __init__(self, profiler: Optional[Profiler], frame: Optional[Frame]):
        self._profiler = profiler
        self._frame = frame

    @property
    def label(self) -> Optional[str]:
        return self._frame.label if self._frame is not None else None

    @property
    def path(self) -> tuple[str, ...]:
        return self._frame.path if self._frame is not None else ()

    @property
    def closed(self) -> bool:
        return self._frame is None or self._frame.closed

    def replace(self, label: str) -> "Guard":
        """End the current label's span and start timing `label` in its place."""
        if not self.closed:
            self._profiler._replace_frame(self._frame, label)
        return self

    def close(self) -> float:
        """End the section. Returns the elapsed seconds of the last label, 0.0 if already closed."""
        if self.closed:
            return 0.0
        return self._profiler._close_frame(self._frame)

    def __enter__(self) -> "Guard":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"Guard({':'.join(self.path)!r}, {state})"


# Handed out by a disabled profiler
NULL_GUARD = Guard(None, None)
