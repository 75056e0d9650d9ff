"""Base schema class for configuration and report dataclasses."""

from __future__ import annotations

import json
import math
import types
from dataclasses import dataclass, fields, is_dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union, get_args, get_origin, get_type_hints

from .io import load_json, load_yaml

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


# =============================================================================
# Canonicalization
# =============================================================================


def _qfloat(x: float, places: int = 8) -> float:
    """Stable decimal rounding: converts via str -> Decimal -> quantize."""
    q = Decimal(1) / (Decimal(10) ** places)
    f = float(Decimal(str(x)).quantize(q, rounding=ROUND_HALF_EVEN))
    # normalize -0.0 to 0.0
    return 0.0 if f == 0.0 else f


def _canon(obj: Any, places: int = 8):
    """Convert dataclasses, enums and containers into plain JSON-able values."""
    if isinstance(obj, float):
        if math.isnan(obj):
            return "NaN"
        if math.isinf(obj):
            return "Inf" if obj > 0 else "-Inf"
        return _qfloat(obj, places)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj):
        return {
            f.name: _canon(getattr(obj, f.name), places)
            for f in fields(obj)
            if not f.name.startswith("_")
        }
    if isinstance(obj, dict):
        return {
            (":".join(k) if isinstance(k, tuple) else k): _canon(v, places)
            for k, v in obj.items()
            if not (isinstance(k, str) and k.startswith("_"))
        }
    if isinstance(obj, (list, tuple)):
        return [_canon(v, places) for v in obj]
    return obj


# =============================================================================
# Base schema dataclass
# =============================================================================


@dataclass
class BaseSchema:
    """Base class for dataclasses that round-trip through dicts, JSON and YAML."""

    def to_dict(self) -> dict:
        return _canon(self)

    def to_string(self) -> str:
        return json.dumps(self.to_dict(), indent=4, sort_keys=True)

    # For printing ease
    def __str__(self) -> str:
        return self.to_string()

    @classmethod
    def _convert_value(cls, val, field_type):
        """Convert a value to the expected field type."""
        # Unwrap Optional[X] / X | None to get X
        origin = get_origin(field_type)
        if origin is Union or isinstance(field_type, types.UnionType):
            args = [a for a in get_args(field_type) if a is not type(None)]
            if len(args) == 1:
                field_type = args[0]

        if val is None:
            return None

        if isinstance(field_type, type) and issubclass(field_type, Enum):
            return field_type(val) if not isinstance(val, field_type) else val

        if is_dataclass(field_type) and hasattr(field_type, "from_dict"):
            if isinstance(val, dict):
                return field_type.from_dict(val)

        if get_origin(field_type) is list:
            item_type = get_args(field_type)[0] if get_args(field_type) else None
            if item_type:
                return [cls._convert_value(item, item_type) for item in val]

        if get_origin(field_type) is tuple:
            item_types = get_args(field_type)
            if item_types and item_types[-1] is Ellipsis:
                return tuple(cls._convert_value(item, item_types[0]) for item in val)
            return tuple(val)

        # bool is a subclass of int; keep strings like "0"/"false" from the env
        if field_type is bool and isinstance(val, str):
            flag = val.strip().lower()
            if flag in _TRUE:
                return True
            if flag in _FALSE:
                return False
            raise ValueError(f"Invalid boolean value: {val!r}")
        if field_type in (int, float) and isinstance(val, (str, int, float)):
            return field_type(val)

        return val

    @classmethod
    def from_dict(cls, d: dict):
        """Recursively construct a dataclass instance from a nested dict."""
        hints = get_type_hints(cls)
        kwargs = {}
        for f in fields(cls):
            if f.name not in d:
                continue  # Let dataclass use its default
            val = d[f.name]
            field_type = hints.get(f.name)
            kwargs[f.name] = cls._convert_value(val, field_type) if field_type else val
        return cls(**kwargs)

    @classmethod
    def from_json(cls, path: Path):
        """Load from JSON file. Override from_dict for custom parsing."""
        return cls.from_dict(load_json(path))

    @classmethod
    def from_yaml(cls, path: Path):
        """Load from YAML file. Override from_dict for custom parsing."""
        return cls.from_dict(load_yaml(path))
