from __future__ import annotations

from datetime import date
from typing import Optional

from ...common.validators import require_expected_hours
from ...core.constants import DEFAULT_EXPECTED_HOURS
from ...shifts.model import Shift
from .base import ExpectedHoursPolicy


class FixedExpectedHours(ExpectedHoursPolicy):
    """Same baseline every day (8 hours unless configured)."""

    def __init__(self, hours: float = DEFAULT_EXPECTED_HOURS):
        self.hours = require_expected_hours(hours)

    def expected_hours(self, *, work_date: date, shift: Optional[Shift]) -> float:
        return self.hours
