from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import Punctuality
from ...shifts.model import Shift
from .base import PunctualityStrategy, StatusDecision


class OvertimeStrategy(PunctualityStrategy):
    """Clock-out after the shift end plus grace (only when clock-in was ON_TIME)."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        return StatusDecision(status=Punctuality.ON_TIME)

    def decide_clock_out(self, *, now: datetime, shift: Optional[Shift], current: Optional[Punctuality]) -> StatusDecision:
        return StatusDecision(status=Punctuality.OVERTIME)
