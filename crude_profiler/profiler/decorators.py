"""Profiling decorators for functions and coroutines."""

from __future__ import annotations

import functools
import inspect
from typing import Callable, Optional, TypeVar, Union, overload

from ..common.memory_utils import log_memory
from .timer import P, Profiler

F = TypeVar("F", bound=Callable)


@overload
def profile(func: F) -> F: ...


@overload
def profile(identifier: str, **kwargs) -> Callable[[F], F]: ...


def profile(
    func_or_identifier: Union[F, str, None] = None,
    verbose: bool = False,
    track_memory: bool = False,
    profiler: Optional[Profiler] = None,
) -> Union[F, Callable[[F], F]]:
    """Decorator to profile functions.

    Can be used with or without arguments:
        @profile
        def my_func(): ...

        @profile("custom_name", profiler=my_profiler)
        async def my_coro(): ...

    If no identifier is provided, uses the function's name. Every call is
    timed as one section on `profiler` (the shared P by default). With
    `track_memory`, memory usage is recorded after each call.
    """
    prof = profiler if profiler is not None else P

    def make_wrapper(func: F, name: str) -> F:
        profile_name = name.lower().replace(" ", "_")

        def header():
            if verbose:
                print(f"\n{'=' * 60}")
                print(f"PROFILE: {name}")
                print("=" * 60)

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                header()
                with prof.push(profile_name):
                    result = await func(*args, **kwargs)
                if track_memory:
                    log_memory(f"after_{profile_name}", verbose)
                return result

            return async_wrapper  # type: ignore

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            header()
            with prof.push(profile_name):
                result = func(*args, **kwargs)
            if track_memory:
                log_memory(f"after_{profile_name}", verbose)
            return result

        return wrapper  # type: ignore

    # Called as @profile (no parens) - func_or_identifier is the function
    if callable(func_or_identifier):
        return make_wrapper(func_or_identifier, func_or_identifier.__name__)

    # Called as @profile() or @profile("name") - func_or_identifier is str or None
    identifier = func_or_identifier or ""

    def decorator(func: F) -> F:
        return make_wrapper(func, identifier if identifier else func.__name__)

    return decorator
