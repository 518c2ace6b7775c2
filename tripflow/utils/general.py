"""General Utility Functions."""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Union

from pydantic import BaseModel

__all__ = ["JsonSafeType", "convert_to_json_safe"]


JsonSafeType = Union[
    None,
    str,
    int,
    bool,
    float,
    Dict[str, "JsonSafeType"],
    List["JsonSafeType"],
]
"""Values a PostgREST request body or a SQLite parameter can carry as-is."""


def convert_to_json_safe(data: object) -> JsonSafeType:
    """Recursively convert *data* into :data:`JsonSafeType` values.

    Enum members become their value, ``Decimal`` a float, dates ISO
    strings, non-finite floats ``None``.  Pydantic models are dumped
    first.  Anything else falls back to ``str()``.
    """
    if data is None:
        return None
    if isinstance(data, Enum):
        return convert_to_json_safe(data.value)
    if isinstance(data, bool) or isinstance(data, (str, int)):
        return data
    if isinstance(data, float):
        return data if math.isfinite(data) else None
    if isinstance(data, Decimal):
        return convert_to_json_safe(float(data))
    # datetime is a subclass of date, so one branch covers both.
    if isinstance(data, date):
        return data.isoformat()
    if isinstance(data, dict):
        return {str(key): convert_to_json_safe(value) for key, value in data.items()}
    if isinstance(data, (list, tuple, set, frozenset)):
        return [convert_to_json_safe(item) for item in data]
    if isinstance(data, BaseModel):
        return convert_to_json_safe(data.model_dump())
    return str(data)
