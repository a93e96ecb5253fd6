from __future__ import annotations
import json
from enum import Enum
import numpy as np


def _to_jsonable(obj):
    """Convert numpy scalars/arrays and enums that json cannot encode."""
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonical_dumps(obj) -> str:
    """Serialize object to canonical JSON (sorted keys, minimal whitespace)."""
    return json.dumps(
        obj,
        ensure_ascii=False,
        sort_keys=True,
        separators=(",", ":"),
        default=_to_jsonable,
    )


def pretty_dumps(obj) -> str:
    """Indented JSON for files meant to be read by people."""
    return json.dumps(obj, ensure_ascii=False, indent=2, default=_to_jsonable)
