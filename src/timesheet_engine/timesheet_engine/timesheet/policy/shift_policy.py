from __future__ import annotations

from datetime import date
from typing import Optional

from ...shifts.model import Shift
from .base import ExpectedHoursPolicy
from .fixed_policy import FixedExpectedHours


class ShiftExpectedHours(ExpectedHoursPolicy):
    """Scheduled shift length minus its break; fallback policy on unscheduled days."""

    def __init__(self, fallback: Optional[ExpectedHoursPolicy] = None):
        self._fallback = fallback or FixedExpectedHours()

    def expected_hours(self, *, work_date: date, shift: Optional[Shift]) -> float:
        if shift is None:
            return self._fallback.expected_hours(work_date=work_date, shift=None)
        return shift.expected_hours()
