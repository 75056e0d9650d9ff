"""Per-context stack of open sections.

Each thread and each asyncio task sees its own stack: the stack lives in a
ContextVar holding an immutable tuple, so a task created inside an open
section inherits that section as its parent without being able to pop it from
its creator's stack.

Inherited frames give a task its parent path, but they still belong to the
context that opened them: lookups that act on a frame (index, find, top with
owned=True) only see the current context's own frames.
"""

from __future__ import annotations

import asyncio
import threading
from contextvars import ContextVar
from dataclasses import dataclass
from itertools import count
from typing import Any, Optional

_stack_ids = count()


def current_owner() -> tuple[int, Any]:
    """Identity of the running context: (thread id, asyncio task or None)."""
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    return threading.get_ident(), task


@dataclass(eq=False)
class Frame:
    """One open section: the label being timed and when that label started."""

    label: str
    start: float
    parent_path: tuple[str, ...] = ()
    generation: int = 0
    closed: bool = False
    owner: Any = None

    @property
    def path(self) -> tuple[str, ...]:
        return self.parent_path + (self.label,)

    @property
    def depth(self) -> int:
        return len(self.parent_path)

    def elapsed(self, now: float) -> float:
        return max(0.0, now - self.start)


class ScopeStack:
    """Ordered open frames of the current execution context."""

    def __init__(self):
        self._frames: ContextVar[tuple[Frame, ...]] = ContextVar(
            f"crude_profiler_stack_{next(_stack_ids)}", default=()
        )
        self.generation = 0

    def frames(self) -> tuple[Frame, ...]:
        """Live frames of the current context, outermost first."""
        frames = self._frames.get()
        if any(f.closed or f.generation != self.generation for f in frames):
            frames = self._prune(frames)
        return frames

    def _prune(self, frames: tuple[Frame, ...]) -> tuple[Frame, ...]:
        # Closed elsewhere or left over from before a reset
        live = tuple(
            f for f in frames if not f.closed and f.generation == self.generation
        )
        self._frames.set(live)
        return live

    def depth(self) -> int:
        return len(self.frames())

    def top(self, owned: bool = False) -> Optional[Frame]:
        """Innermost live frame; with owned=True, ignore inherited frames."""
        frames = self.frames()
        if not frames:
            return None
        if owned and frames[-1].owner != current_owner():
            return None
        return frames[-1]

    def push(self, label: str, start: float) -> Frame:
        frames = self.frames()
        parent_path = frames[-1].path if frames else ()
        frame = Frame(
            label=label,
            start=start,
            parent_path=parent_path,
            generation=self.generation,
            owner=current_owner(),
        )
        self._frames.set(frames + (frame,))
        return frame

    def index(self, frame: Frame) -> int:
        """Position of `frame` in the current context's stack, or -1.

        A frame inherited from the creating context is not found.
        """
        if frame.owner != current_owner():
            return -1
        for i, f in enumerate(self.frames()):
            if f is frame:
                return i
        return -1

    def descendants(self, frame: Frame) -> tuple[Frame, ...]:
        """Frames opened above `frame` in this context, innermost first."""
        i = self.index(frame)
        if i < 0:
            return ()
        return tuple(reversed(self.frames()[i + 1 :]))

    def pop(self, frame: Frame) -> None:
        """Remove `frame` and everything above it from this context's stack."""
        frames = self.frames()
        i = self.index(frame)
        if i >= 0:
            self._frames.set(frames[:i])

    def truncate_above(self, frame: Frame) -> None:
        """Remove everything above `frame`, keeping `frame` itself."""
        frames = self.frames()
        i = self.index(frame)
        if i >= 0:
            self._frames.set(frames[: i + 1])

    def find(self, label: str) -> Optional[Frame]:
        """Innermost live frame labeled `label` opened in this context."""
        owner = current_owner()
        for f in reversed(self.frames()):
            if f.owner != owner:
                break
            if f.label == label:
                return f
        return None

    def invalidate(self) -> None:
        """Forget every frame in every context: bump the generation."""
        self.generation += 1
        self._frames.set(())
