"""
Base I/O utilities for loading configuration files.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

import yaml


def load_json(path: Path) -> dict:
    """Load JSON file. Robust to trailing commas."""
    with open(path) as f:
        s = f.read()
    s = re.sub(r",\s*([}\]])", r"\1", s)
    return json.loads(s)


def load_yaml(path: Path) -> dict:
    """Load YAML file. An empty document loads as an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}
