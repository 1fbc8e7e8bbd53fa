from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Mapping, Optional, Sequence

from ..attendance.model import TimeEntry
from ..common.datetime_utils import format_date, format_time, week_monday
from ..core.constants import DEFAULT_EXPECTED_HOURS
from ..core.enums import DayClassification
from ..shifts.model import Shift
from .hours import HoursCalculator, HoursSummary, format_hours
from .timeline import TimelineSegment, TimelineSegmentCalculator


@dataclass(frozen=True)
class WeeklyStatistics:
    total_hours_worked: float = 0.0
    total_overtime: float = 0.0
    total_negative_hours: float = 0.0

    def as_dict(self) -> dict:
        return {
            "totalHoursWorked": round(self.total_hours_worked, 2),
            "totalOvertime": round(self.total_overtime, 2),
            "totalNegativeHours": round(self.total_negative_hours, 2),
        }


@dataclass(frozen=True)
class TimesheetDay:
    """Read-model: one row of the weekly timesheet."""

    work_date: date
    classification: DayClassification
    is_today: bool
    is_weekend: bool
    entry: Optional[TimeEntry]
    summary: HoursSummary
    clocked_hours: Optional[str]
    segments: list[TimelineSegment] = field(default_factory=list)

    @property
    def day_name(self) -> str:
        return self.work_date.strftime("%a")

    @property
    def day_number(self) -> str:
        return f"{self.work_date.day:02d}"

    @property
    def total_hours(self) -> str:
        return format_hours(self.summary.hours_worked)

    @property
    def overtime(self) -> str:
        return format_hours(self.summary.overtime) if self.summary.overtime > 0 else "--"

    @property
    def location(self) -> str:
        return self.entry.location if self.entry else "--"

    def as_dict(self) -> dict:
        entry = self.entry
        return {
            "entryId": entry.entry_id if entry else None,
            "date": self.work_date.isoformat(),
            "displayDate": format_date(self.work_date),
            "dayName": self.day_name,
            "dayNumber": self.day_number,
            "classification": self.classification.value,
            "isToday": self.is_today,
            "isWeekend": self.is_weekend,
            "isAbsent": entry is None or entry.clock_in is None,
            "status": entry.status.value if entry else None,
            "clockedHours": self.clocked_hours,
            "location": self.location,
            "workType": entry.work_type if entry else None,
            "attendanceStatus": entry.attendance_status.value if entry and entry.attendance_status else None,
            "overtime": self.overtime,
            "totalHours": self.total_hours,
            "hours": self.summary.as_dict(),
            "segments": [s.as_dict() for s in self.segments],
        }


@dataclass(frozen=True)
class WeeklyTimesheet:
    week_start: date
    week_end: date
    days: list[TimesheetDay]
    statistics: WeeklyStatistics

    @property
    def week_number(self) -> int:
        return self.week_start.isocalendar()[1]

    def as_dict(self) -> dict:
        return {
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "weekNumber": self.week_number,
            "entries": [d.as_dict() for d in self.days],
            "statistics": self.statistics.as_dict(),
        }


def _is_weekend(value: date) -> bool:
    return value.weekday() >= 5


class WeeklyAggregator:
    """Combines the seven days of a week into display rows and totals.

    Display contract: days after `today` are dropped, today comes first, the
    remaining days follow in descending date order.
    """

    def __init__(self, calculator: HoursCalculator, timeline: TimelineSegmentCalculator):
        self._calculator = calculator
        self._timeline = timeline

    def week_days(self, reference_date: date) -> list[date]:
        monday = week_monday(reference_date)
        return [monday + timedelta(days=i) for i in range(7)]

    def _clocked_hours(self, entry: TimeEntry, summary: HoursSummary) -> str:
        tz = self._timeline.tz
        clock_in = format_time(entry.clock_in, tz)
        clock_out = format_time(entry.clock_out, tz) if entry.clock_out else "Present"
        text = f"{clock_in} - {clock_out}"
        if summary.break_minutes > 0:
            minutes = int(round(summary.break_minutes))
            text += f" (Break: {minutes // 60}h {minutes % 60}m)"
        return text

    def aggregate(
        self,
        *,
        reference_date: date,
        today: date,
        now: datetime,
        entries: Sequence[TimeEntry],
        expected_hours: Optional[Callable[[date, Optional[TimeEntry]], float]] = None,
        shifts: Optional[Mapping[date, Shift]] = None,
    ) -> WeeklyTimesheet:
        by_date = {e.work_date: e for e in entries}
        shifts = shifts or {}
        days = self.week_days(reference_date)

        rows: list[TimesheetDay] = []
        hours_total = overtime_total = negative_total = 0.0

        for day in days:
            entry = by_date.get(day)
            weekend = _is_weekend(day)
            expected = expected_hours(day, entry) if expected_hours else DEFAULT_EXPECTED_HOURS
            summary = self._calculator.summarize(entry, expected_hours=expected, now=now)

            if entry is not None and entry.clock_in is not None:
                classification = DayClassification.PRESENT
                # totals cover only the days that are listed
                if day <= today:
                    hours_total += summary.hours_worked
                    overtime_total += summary.overtime
                    # shortfall of a day still in progress is not known yet
                    if summary.is_final:
                        negative_total += summary.negative_hours
                clocked = self._clocked_hours(entry, summary)
                segments = self._timeline.for_entry(entry, now, shift=shifts.get(day))
            else:
                classification = DayClassification.WEEKEND if weekend else DayClassification.ABSENT
                clocked = None
                segments = []

            rows.append(
                TimesheetDay(
                    work_date=day,
                    classification=classification,
                    is_today=day == today,
                    is_weekend=weekend,
                    entry=entry,
                    summary=summary,
                    clocked_hours=clocked,
                    segments=segments,
                )
            )

        visible = [r for r in rows if r.work_date <= today]
        visible.sort(key=lambda r: (not r.is_today, -r.work_date.toordinal()))

        return WeeklyTimesheet(
            week_start=days[0],
            week_end=days[-1],
            days=visible,
            statistics=WeeklyStatistics(
                total_hours_worked=hours_total,
                total_overtime=overtime_total,
                total_negative_hours=negative_total,
            ),
        )
