"""Process and accelerator memory probes used by profiled steps."""

from __future__ import annotations

import os
import sys

import psutil

# Track memory across calls for leak detection
_memory_history: list[dict] = []


def get_memory_usage() -> dict:
    """Return current memory usage for system RAM and any available accelerator."""
    proc = psutil.Process(os.getpid())
    stats = {
        "ram_gb": proc.memory_info().rss / 1e9,
        "ram_percent": proc.memory_percent(),
    }

    # Accelerator memory, only when torch is already part of the host program
    torch = sys.modules.get("torch")
    if torch is not None:
        if torch.cuda.is_available():
            stats["cuda_alloc_gb"] = torch.cuda.memory_allocated() / 1e9
            stats["cuda_reserved_gb"] = torch.cuda.memory_reserved() / 1e9
        if torch.backends.mps.is_available() and hasattr(
            torch.mps, "current_allocated_memory"
        ):
            stats["mps_alloc_gb"] = torch.mps.current_allocated_memory() / 1e9

    return stats


def log_memory(stage: str, verbose: bool = False) -> dict:
    """Record memory usage at a given stage, printing it when verbose."""
    mem = get_memory_usage()
    _memory_history.append({"stage": stage, **mem})
    if verbose:
        mem_str = ", ".join(f"{k}={v:.2f}" for k, v in mem.items())
        print(f"  [Memory @ {stage}] {mem_str}", flush=True)
    return mem


def memory_history() -> list[dict]:
    """Return a copy of the memory samples recorded by log_memory."""
    return list(_memory_history)


def check_memory_trend() -> None:
    """Print memory trend analysis to detect leaks."""
    if len(_memory_history) < 2:
        return

    first = _memory_history[0]
    last = _memory_history[-1]

    print("\n  [Memory Trend Analysis]")
    for key in ["ram_gb", "mps_alloc_gb", "cuda_alloc_gb"]:
        if key in first and key in last:
            delta = last[key] - first[key]
            if abs(delta) > 0.1:  # Only report if > 100MB change
                print(
                    f"    {key}: {first[key]:.2f} -> {last[key]:.2f} (delta: {delta:+.2f} GB)"
                )
    print()


def clear_memory_history() -> None:
    _memory_history.clear()
