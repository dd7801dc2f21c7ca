# engine/storage.py
"""Snapshot and result files.

A snapshot is a profile export ``{profile, incomes, expenses, ...}``; a result
file holds the ``SimulationResult`` contract, optionally wrapped together with
metrics and chart rows. Results are written strict-JSON: NaN and infinities
become null.
"""
import json
import math
import os
from enum import Enum
from typing import Any, Dict, Mapping

from ..data_model import SimulationResult


def _result_json(value: Any) -> Any:
    if isinstance(value, SimulationResult):
        return _result_json(value.to_dict())
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool) or value is None or isinstance(value, (int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Mapping):
        return {str(key): _result_json(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_result_json(item) for item in value]
    if hasattr(value, "item"):
        # numpy / pandas scalars coming out of aggregate frames
        return _result_json(value.item())
    return value


def load_snapshot(path: str) -> Dict[str, Any]:
    """Reads a profile export; {} if absent, empty, unreadable or not an object."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_text = f.read().strip()
    except OSError:
        return {}
    if not raw_text:
        return {}
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def save_result(path: str, result: SimulationResult | Dict[str, Any]) -> None:
    """Atomically writes a result next to its snapshot."""
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    tmp_path = f"{path}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(_result_json(result), f, ensure_ascii=False, allow_nan=False)
    os.replace(tmp_path, path)
