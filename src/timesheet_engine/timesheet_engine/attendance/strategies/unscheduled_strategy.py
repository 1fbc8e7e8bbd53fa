from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import Punctuality
from ...shifts.model import Shift
from .base import PunctualityStrategy, StatusDecision


class UnscheduledStrategy(PunctualityStrategy):
    """No shift scheduled for the day."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        return StatusDecision(status=Punctuality.UNSCHEDULED)

    def decide_clock_out(self, *, now: datetime, shift: Optional[Shift], current: Optional[Punctuality]) -> StatusDecision:
        return StatusDecision(status=current or Punctuality.UNSCHEDULED)
