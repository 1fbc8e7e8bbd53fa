from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_employee_id(value) -> int:
    try:
        employee_id = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Employee ID is required") from None
    if employee_id <= 0:
        raise ValidationError("Employee ID is invalid")
    return employee_id


def optional_text(value: Optional[str], default: str) -> str:
    if value is None or not str(value).strip():
        return default
    return str(value).strip()


def require_expected_hours(value: float) -> float:
    hours = float(value)
    if hours < 0 or hours > 24:
        raise ValidationError("Expected hours must be between 0 and 24")
    return hours
