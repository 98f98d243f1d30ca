"""Config loading helpers."""
from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from config import CONFIG


def load_config(path: str | Path) -> Dict[str, Any]:
    """Read a JSON or YAML override file and merge it onto the defaults."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        if path.suffix.lower() in {".yaml", ".yml"}:
            overrides = yaml.safe_load(fh) or {}
        else:
            overrides = json.load(fh)
    return merge_config(overrides)


def merge_config(overrides: Mapping[str, Any] | None = None, base: Mapping[str, Any] | None = None) -> Dict[str, Any]:
    merged = copy.deepcopy(dict(base if base is not None else CONFIG))
    for key, value in (overrides or {}).items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(value, merged[key])
        else:
            merged[key] = copy.deepcopy(value)
    return merged
