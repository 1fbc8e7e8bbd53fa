from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from ..common.datetime_utils import local_instant
from ..core.constants import DEFAULT_LATE_GRACE_MINUTES, DEFAULT_TIMEZONE
from ..core.enums import Punctuality
from ..shifts.model import Shift
from .strategies.base import PunctualityStrategy
from .strategies.early_strategy import EarlyLeaveStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.on_time_strategy import OnTimeStrategy
from .strategies.overtime_strategy import OvertimeStrategy
from .strategies.unscheduled_strategy import UnscheduledStrategy


@dataclass
class PunctualityStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on the scheduled shift."""

    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES
    tz: pytz.BaseTzInfo = field(default_factory=lambda: pytz.timezone(DEFAULT_TIMEZONE))

    def _bounds(self, work_date: date, shift: Shift) -> tuple[datetime, datetime]:
        start = local_instant(work_date, shift.start_time, self.tz)
        return start, start + timedelta(minutes=shift.span_minutes())

    def for_clock_in(self, *, now: datetime, work_date: date, shift: Optional[Shift]) -> PunctualityStrategy:
        if not shift:
            return UnscheduledStrategy()

        shift_start, _ = self._bounds(work_date, shift)
        if now <= shift_start + timedelta(minutes=self.grace_minutes):
            return OnTimeStrategy()
        return LateStrategy()

    def for_clock_out(
        self,
        *,
        now: datetime,
        work_date: date,
        shift: Optional[Shift],
        current_status: Optional[Punctuality],
    ) -> PunctualityStrategy:
        if not shift:
            return UnscheduledStrategy()
        if current_status != Punctuality.ON_TIME:
            return OnTimeStrategy()

        _, shift_end = self._bounds(work_date, shift)
        if now < shift_end:
            return EarlyLeaveStrategy()
        if now > shift_end + timedelta(minutes=self.grace_minutes):
            return OvertimeStrategy()
        return OnTimeStrategy()
