from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..attendance.breaks import BreakTracker
from ..attendance.model import TimeEntry
from ..common.datetime_utils import minutes_between
from ..core.constants import DEFAULT_EXPECTED_HOURS


def format_hours(hours: float) -> str:
    """Fractional hours -> HH:MM, minutes rounded half up."""

    hours = max(float(hours or 0), 0.0)
    h = math.floor(hours)
    m = math.floor((hours - h) * 60 + 0.5)
    if m == 60:
        h += 1
        m = 0
    return f"{h:02d}:{m:02d}"


def format_minutes(minutes: float) -> str:
    minutes = int(math.floor(max(minutes, 0) + 0.5))
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


@dataclass(frozen=True)
class HoursSummary:
    hours_worked: float
    overtime: float
    negative_hours: float
    variance: float
    expected_hours: float
    gross_minutes: float = 0.0
    break_minutes: float = 0.0
    is_absent: bool = False
    is_final: bool = False

    def as_dict(self) -> dict:
        return {
            "hoursWorked": round(self.hours_worked, 2),
            "overtime": round(self.overtime, 2),
            "negativeHours": round(self.negative_hours, 2),
            "variance": round(self.variance, 2),
            "expectedHours": round(self.expected_hours, 2),
            "breakMinutes": round(self.break_minutes, 2),
            "totalHours": format_hours(self.hours_worked),
            "isAbsent": self.is_absent,
            "isFinal": self.is_final,
        }


class HoursCalculator:
    """Worked hours, overtime and shortfall of one time entry.

    Standard rule: (out - in) - breaks, not below 0. Figures are final only
    once clock_out is set; before that they are computed against `now` for
    live display, or left at zero when no `now` is given.
    """

    def summarize(
        self,
        entry: Optional[TimeEntry],
        *,
        expected_hours: float = DEFAULT_EXPECTED_HOURS,
        now: Optional[datetime] = None,
    ) -> HoursSummary:
        if entry is None or entry.clock_in is None:
            return HoursSummary(
                hours_worked=0.0,
                overtime=0.0,
                negative_hours=0.0,
                variance=0.0,
                expected_hours=expected_hours,
                is_absent=True,
            )

        end = entry.clock_out or now
        if end is None:
            return HoursSummary(
                hours_worked=0.0,
                overtime=0.0,
                negative_hours=0.0,
                variance=0.0,
                expected_hours=expected_hours,
            )

        gross = max(minutes_between(entry.clock_in, end), 0.0)
        breaks = BreakTracker(entry.breaks).total_minutes(now=end)
        net = max(0.0, gross - breaks)
        worked = net / 60

        return HoursSummary(
            hours_worked=worked,
            overtime=max(0.0, worked - expected_hours),
            negative_hours=max(0.0, expected_hours - worked),
            variance=worked - expected_hours,
            expected_hours=expected_hours,
            gross_minutes=gross,
            break_minutes=breaks,
            is_final=entry.clock_out is not None,
        )
