from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional


@dataclass(frozen=True)
class Shift:
    """Domain entity: a work shift definition."""

    shift_id: int
    shift_name: str
    start_time: time
    end_time: time
    break_minutes: int = 0

    def span_minutes(self) -> int:
        start = datetime.combine(date.min, self.start_time)
        end = datetime.combine(date.min, self.end_time)
        if end <= start:
            # overnight shift
            end += timedelta(days=1)
        return int((end - start).total_seconds() // 60)

    def expected_hours(self) -> float:
        return max(self.span_minutes() - int(self.break_minutes or 0), 0) / 60


@dataclass(frozen=True)
class ShiftAssignment:
    """A shift scheduled for one employee on one date (owned by the rota module)."""

    assignment_id: int
    employee_id: int
    work_date: date
    shift: Shift
    status: str = "scheduled"
    note: Optional[str] = None
