from __future__ import annotations

from datetime import datetime
from typing import Optional

from ...core.enums import Punctuality
from ...shifts.model import Shift
from .base import PunctualityStrategy, StatusDecision


class LateStrategy(PunctualityStrategy):
    """Clock-in after the shift start plus grace."""

    def decide_clock_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        note = f"Late for {shift.shift_name}" if shift else None
        return StatusDecision(status=Punctuality.LATE, note=note)

    def decide_clock_out(self, *, now: datetime, shift: Optional[Shift], current: Optional[Punctuality]) -> StatusDecision:
        return StatusDecision(status=current or Punctuality.LATE)
