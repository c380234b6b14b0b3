from __future__ import annotations

import math
from typing import Any, Mapping

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field_name} must be an object")
    return value


def coerce_hours(value: Any, field_name: str = "hours") -> float:
    """Hours arrive as numbers or numeric strings; negatives, NaN and infinity are rejected."""
    if value is None or value == "":
        return 0.0
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(hours):
        raise ValidationError(f"{field_name} must be a finite number")
    if hours < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return round(hours, 2)
