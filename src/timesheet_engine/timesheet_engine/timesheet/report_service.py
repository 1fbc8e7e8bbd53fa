from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..attendance.repository import TimeEntryRepository
from ..common.datetime_utils import Clock, format_time
from ..core.exceptions import ValidationError
from .hours import HoursCalculator, format_hours, format_minutes
from .policy.base import ExpectedHoursPolicy
from .policy.fixed_policy import FixedExpectedHours

REPORT_FIELDS = [
    "work_date",
    "employee_id",
    "clock_in",
    "clock_out",
    "break_minutes",
    "worked_hours",
    "overtime",
    "negative_hours",
    "attendance_status",
    "location",
    "work_type",
    "manual",
    "notes",
]


@dataclass(frozen=True)
class ReportData:
    rows: list[dict]
    summary: list[dict]


class TimesheetReportService:
    """Flat per-day rows plus per-employee totals for a date range."""

    def __init__(
        self,
        entries: TimeEntryRepository,
        *,
        clock: Clock,
        calculator: Optional[HoursCalculator] = None,
        policy: Optional[ExpectedHoursPolicy] = None,
    ):
        self._entries = entries
        self._clock = clock
        self._calculator = calculator or HoursCalculator()
        self._policy = policy or FixedExpectedHours()

    def build_report(self, *, start: date, end: date, employee_id: Optional[int] = None) -> ReportData:
        if end < start:
            raise ValidationError("End date must not be before start date")

        now: datetime = self._clock.now()
        tz = self._clock.tz
        entries = sorted(
            self._entries.list_entries(employee_id, start, end),
            key=lambda e: (e.work_date, e.employee_id),
        )

        summary_map: dict[int, dict] = {}
        out_rows: list[dict] = []

        for e in entries:
            expected = e.scheduled_hours
            if expected is None:
                expected = self._policy.expected_hours(work_date=e.work_date, shift=None)
            s = self._calculator.summarize(e, expected_hours=expected, now=now)

            out_rows.append(
                {
                    "work_date": e.work_date.strftime("%Y-%m-%d"),
                    "employee_id": e.employee_id,
                    "clock_in": format_time(e.clock_in, tz),
                    "clock_out": format_time(e.clock_out, tz) if e.clock_out else "-",
                    "break_minutes": format_minutes(s.break_minutes),
                    "worked_hours": format_hours(s.hours_worked),
                    "overtime": format_hours(s.overtime),
                    "negative_hours": format_hours(s.negative_hours),
                    "attendance_status": e.attendance_status.value if e.attendance_status else "-",
                    "location": e.location,
                    "work_type": e.work_type,
                    "manual": "yes" if e.is_manual_entry else "no",
                    "notes": e.notes or "",
                }
            )

            totals = summary_map.get(e.employee_id)
            if not totals:
                totals = {"employee_id": e.employee_id, "days": 0, "hours": 0.0, "overtime": 0.0, "negative": 0.0}
                summary_map[e.employee_id] = totals
            totals["days"] += 1
            totals["hours"] += s.hours_worked
            totals["overtime"] += s.overtime
            if s.is_final:
                totals["negative"] += s.negative_hours

        summary = []
        for t in sorted(summary_map.values(), key=lambda x: x["hours"], reverse=True):
            summary.append(
                {
                    "employee_id": t["employee_id"],
                    "days": t["days"],
                    "total_hours": format_hours(t["hours"]),
                    "total_overtime": format_hours(t["overtime"]),
                    "total_negative_hours": format_hours(t["negative"]),
                }
            )
        return ReportData(rows=out_rows, summary=summary)
