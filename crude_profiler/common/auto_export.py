"""Auto-export utilities for package __init__.py files.

Re-exports public names from the modules and subpackages of a package so that
callers can import from the package directly:

    from crude_profiler.profiler import Profiler, ManualClock
    from crude_profiler.common import BaseSchema

instead of spelling out each module:

    from crude_profiler.profiler.timer import Profiler

USAGE IN __init__.py
====================

    from crude_profiler.common.auto_export import auto_export
    __all__ = auto_export(__file__, __name__, globals())

WHAT GETS EXPORTED
==================

- Public names (not starting with _) defined in .py files of the directory
- Subpackages (directories with __init__.py)
- Excludes: stdlib modules, third-party libs, typing and dataclass helpers
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Any

# =============================================================================
# Exclusion Configuration
# =============================================================================

THIRDPARTY_MODULES = frozenset(
    {
        "dotenv",
        "load_dotenv",
        "psutil",
        "pytest",
        "torch",
        "yaml",
    }
)

TYPING_NAMES = frozenset(
    {
        "annotations",
        "Any",
        "Awaitable",
        "Callable",
        "ContextVar",
        "Iterable",
        "Iterator",
        "Mapping",
        "Optional",
        "Protocol",
        "TYPE_CHECKING",
        "TypeVar",
        "Union",
        "Enum",
        "F",
        "overload",
    }
)

DATACLASS_NAMES = frozenset({"dataclass", "field", "fields", "asdict", "is_dataclass"})

EXCLUDED_NAMES = (
    frozenset(sys.stdlib_module_names)
    | THIRDPARTY_MODULES
    | TYPING_NAMES
    | DATACLASS_NAMES
)


# =============================================================================
# Helpers
# =============================================================================


def _should_export(name: str, obj: Any) -> bool:
    if name.startswith("_") or name in EXCLUDED_NAMES:
        return False
    return not isinstance(obj, type(sys))


def _get_public_names(module: Any) -> list[str]:
    if hasattr(module, "__all__"):
        return list(module.__all__)
    return [n for n in dir(module) if not n.startswith("_")]


def _export_module_contents(module: Any, into: dict[str, Any]) -> list[str]:
    """Copy public names of `module` into `into`, returning the names exported.

    Names already present in `into` are kept as they are but still listed.
    """
    exported = []
    for name in _get_public_names(module):
        obj = getattr(module, name)
        if _should_export(name, obj):
            into.setdefault(name, obj)
            exported.append(name)
    return exported


def _find_modules(directory: Path) -> list[str]:
    return [p.stem for p in sorted(directory.glob("*.py")) if p.name != "__init__.py"]


def _find_packages(directory: Path) -> list[str]:
    return [
        p.name
        for p in sorted(directory.iterdir())
        if p.is_dir() and (p / "__init__.py").exists() and not p.name.startswith("_")
    ]


# =============================================================================
# Main API
# =============================================================================


def auto_export(
    init_file: str,
    package_name: str,
    globals_dict: dict[str, Any],
) -> list[str]:
    """Import every module and subpackage of a package and re-export their names.

    Args:
        init_file: __file__ from the calling __init__.py
        package_name: __name__ from the calling __init__.py
        globals_dict: globals() from the calling __init__.py

    Returns:
        List of exported names for __all__
    """
    directory = Path(init_file).parent
    all_names: list[str] = []

    for module_name in _find_modules(directory):
        module = importlib.import_module(f".{module_name}", package=package_name)
        all_names.extend(_export_module_contents(module, globals_dict))

    for pkg_name in _find_packages(directory):
        pkg = importlib.import_module(f".{pkg_name}", package=package_name)
        if pkg_name not in globals_dict:
            globals_dict[pkg_name] = pkg
            all_names.append(pkg_name)
        all_names.extend(_export_module_contents(pkg, globals_dict))

    # Preserve order, drop duplicates (names re-exported by several modules)
    return list(dict.fromkeys(all_names))
