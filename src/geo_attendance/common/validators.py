from __future__ import annotations

import math
from typing import Any

from ..core.exceptions import ValidationError


def require_non_empty(value: Any, field_name: str) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_float(value: Any, field_name: str) -> float:
    if value is None or value == "" or isinstance(value, bool):
        raise ValidationError(f"{field_name} is required")
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number") from None
    if not math.isfinite(result):
        raise ValidationError(f"{field_name} must be finite")
    return result


def require_in_range(value: float, field_name: str, low: float, high: float) -> float:
    if not (low <= value <= high):
        raise ValidationError(f"{field_name} must be between {low:g} and {high:g}")
    return value


def require_non_negative(value: float, field_name: str) -> float:
    if value < 0:
        raise ValidationError(f"{field_name} must not be negative")
    return value
