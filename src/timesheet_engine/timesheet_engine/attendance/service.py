from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import Clock, format_time, local_date
from ..core.constants import DEFAULT_LOCATION, DEFAULT_POLL_INTERVAL_SECONDS, DEFAULT_WORK_TYPE
from ..core.enums import BreakType
from ..core.exceptions import DomainError, NotFound, ValidationError
from ..shifts.model import Shift, ShiftAssignment
from ..shifts.repository import ShiftRepository
from ..timesheet.hours import HoursCalculator, HoursSummary
from ..timesheet.policy.base import ExpectedHoursPolicy
from ..timesheet.policy.fixed_policy import FixedExpectedHours
from ..timesheet.timeline import TimelineSegment, TimelineSegmentCalculator
from ..timesheet.weekly import WeeklyAggregator, WeeklyTimesheet
from .factory import PunctualityStrategyFactory
from .model import ClockState, GpsLocation, TimeEntry, status_of
from .repository import TimeEntryRepository
from .state_machine import ClockStatusMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClockOutResult:
    entry: TimeEntry
    summary: HoursSummary


@dataclass(frozen=True)
class ManualBreak:
    start: datetime
    end: datetime
    break_type: BreakType = BreakType.OTHER


class ClockService:
    """Clock actions and timesheet reads exposed to the presentation layer.

    Each mutating action is one read-modify-write against the store: read
    the day's entry, let ClockStatusMachine decide, write back guarded by the
    entry version. Conflicts surface as ConcurrentUpdate, never merged.
    """

    def __init__(
        self,
        entries: TimeEntryRepository,
        shifts: Optional[ShiftRepository] = None,
        *,
        clock: Clock,
        policy: Optional[ExpectedHoursPolicy] = None,
        strategy_factory: Optional[PunctualityStrategyFactory] = None,
        machine: Optional[ClockStatusMachine] = None,
        calculator: Optional[HoursCalculator] = None,
        poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self._entries = entries
        self._shifts = shifts
        self._clock = clock
        self._policy = policy or FixedExpectedHours()
        self._factory = strategy_factory or PunctualityStrategyFactory(tz=clock.tz)
        self._machine = machine or ClockStatusMachine()
        self._calculator = calculator or HoursCalculator()
        self._timeline = TimelineSegmentCalculator(clock.tz)
        self._weekly = WeeklyAggregator(self._calculator, self._timeline)
        self._poll_interval = int(poll_interval_seconds)

    @property
    def tz(self):
        return self._clock.tz

    def today(self) -> date:
        return local_date(self._clock.now(), self.tz)

    @contextmanager
    def _guard(self, action: str, employee_id: Optional[int]):
        try:
            yield
        except DomainError as exc:
            logger.warning("%s rejected employee_id=%s: %s", action, employee_id, exc)
            raise

    def _assignment(self, employee_id: int, work_date: date) -> Optional[ShiftAssignment]:
        if not self._shifts:
            return None
        return self._shifts.get_assignment(employee_id=employee_id, work_date=work_date)

    def _expected_hours(self, work_date: date, entry: Optional[TimeEntry], shift: Optional[Shift]) -> float:
        if entry is not None and entry.scheduled_hours is not None:
            return entry.scheduled_hours
        return self._policy.expected_hours(work_date=work_date, shift=shift)

    def _save(self, current: Optional[TimeEntry], new: TimeEntry) -> TimeEntry:
        if current is None or current.entry_id is None:
            return self._entries.create_entry(new)
        return self._entries.update_entry(current.entry_id, new, expected_version=current.version)

    def _require_entry(self, entry_id: int) -> TimeEntry:
        entry = self._entries.get_entry(int(entry_id))
        if entry is None:
            raise NotFound("Time entry not found")
        return entry

    # ---- status -------------------------------------------------------

    def get_status(self, employee_id: int) -> ClockState:
        entry = self._entries.find_entry(employee_id, self.today())
        return ClockState(status=status_of(entry), entry=entry, poll_interval_seconds=self._poll_interval)

    def get_status_board(
        self,
        work_date: Optional[date] = None,
        employee_ids: Iterable[int] = (),
    ) -> dict[int, ClockState]:
        """Clock state of every employee with an entry on work_date (default today).

        employee_ids adds employees with no entry yet, reported as not clocked in.
        """

        work_date = work_date or self.today()
        absent = ClockState(status=status_of(None), poll_interval_seconds=self._poll_interval)
        board = {int(e): absent for e in employee_ids}
        for entry in self.list_entries(start=work_date, end=work_date):
            board[entry.employee_id] = ClockState(
                status=status_of(entry), entry=entry, poll_interval_seconds=self._poll_interval
            )
        return dict(sorted(board.items()))

    # ---- employee clock actions ---------------------------------------

    def clock_in(
        self,
        employee_id: int,
        *,
        location: Optional[str] = None,
        work_type: Optional[str] = None,
        gps_location: Optional[GpsLocation] = None,
        created_by: Optional[int] = None,
    ) -> TimeEntry:
        now = self._clock.now()
        today = local_date(now, self.tz)

        with self._guard("clock_in", employee_id):
            current = self._entries.find_entry(employee_id, today)
            entry = self._machine.clock_in(
                current,
                employee_id=employee_id,
                work_date=today,
                now=now,
                location=location or DEFAULT_LOCATION,
                work_type=work_type or DEFAULT_WORK_TYPE,
                gps_location=gps_location,
                created_by=created_by,
            )

            assignment = self._assignment(employee_id, today)
            shift = assignment.shift if assignment else None
            strategy = self._factory.for_clock_in(now=now, work_date=today, shift=shift)
            decision = strategy.decide_clock_in(now=now, shift=shift)

            entry = replace(
                entry,
                attendance_status=decision.status,
                shift_assignment_id=assignment.assignment_id if assignment else None,
                scheduled_hours=self._policy.expected_hours(work_date=today, shift=shift),
                notes=decision.note or entry.notes,
            )
            saved = self._save(current, entry)

        logger.info(
            "clock_in employee_id=%s entry_id=%s punctuality=%s",
            employee_id,
            saved.entry_id,
            decision.status.value,
        )
        return saved

    def start_break(self, employee_id: int, *, break_type: BreakType = BreakType.OTHER) -> TimeEntry:
        now = self._clock.now()
        with self._guard("start_break", employee_id):
            current = self._entries.find_entry(employee_id, local_date(now, self.tz))
            saved = self._save(current, self._machine.start_break(current, now=now, break_type=break_type))

        logger.info("start_break employee_id=%s entry_id=%s", employee_id, saved.entry_id)
        return saved

    def resume_work(self, employee_id: int) -> TimeEntry:
        now = self._clock.now()
        with self._guard("resume_work", employee_id):
            current = self._entries.find_entry(employee_id, local_date(now, self.tz))
            saved = self._save(current, self._machine.resume_work(current, now=now))

        logger.info("resume_work employee_id=%s entry_id=%s", employee_id, saved.entry_id)
        return saved

    def clock_out(self, employee_id: int) -> ClockOutResult:
        now = self._clock.now()
        today = local_date(now, self.tz)

        with self._guard("clock_out", employee_id):
            current = self._entries.find_entry(employee_id, today)
            entry = self._machine.clock_out(current, now=now)

            assignment = self._assignment(employee_id, today)
            shift = assignment.shift if assignment else None
            strategy = self._factory.for_clock_out(
                now=now,
                work_date=today,
                shift=shift,
                current_status=entry.attendance_status,
            )
            decision = strategy.decide_clock_out(now=now, shift=shift, current=entry.attendance_status)
            entry = replace(entry, attendance_status=decision.status)
            saved = self._save(current, entry)

        summary = self._calculator.summarize(
            saved,
            expected_hours=self._expected_hours(today, saved, shift),
            now=now,
        )
        logger.info(
            "clock_out employee_id=%s entry_id=%s hours_worked=%.2f overtime=%.2f negative_hours=%.2f",
            employee_id,
            saved.entry_id,
            summary.hours_worked,
            summary.overtime,
            summary.negative_hours,
        )
        return ClockOutResult(entry=saved, summary=summary)

    # ---- administrative actions ---------------------------------------

    def manual_edit(
        self,
        *,
        employee_id: int,
        work_date: date,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        entry_id: Optional[int] = None,
        created_by: Optional[int] = None,
    ) -> TimeEntry:
        """Set clock_in/clock_out/date directly; creates the entry for the date if missing."""

        with self._guard("manual_edit", employee_id):
            if entry_id is not None:
                current = self._require_entry(entry_id)
                employee_id = current.employee_id
            else:
                current = self._entries.find_entry(employee_id, work_date)

            if current is not None and current.work_date != work_date:
                if self._entries.find_entry(employee_id, work_date) is not None:
                    raise ValidationError("A time entry already exists for that date")

            entry = self._machine.manual_edit(
                current,
                employee_id=employee_id,
                work_date=work_date,
                clock_in=clock_in,
                clock_out=clock_out,
                created_by=created_by,
            )
            if entry.scheduled_hours is None or (current is not None and current.work_date != work_date):
                assignment = self._assignment(employee_id, work_date)
                entry = replace(
                    entry,
                    shift_assignment_id=assignment.assignment_id if assignment else None,
                    scheduled_hours=self._policy.expected_hours(
                        work_date=work_date,
                        shift=assignment.shift if assignment else None,
                    ),
                )
            saved = self._save(current, entry)

        logger.info("manual_edit employee_id=%s entry_id=%s work_date=%s", employee_id, saved.entry_id, work_date)
        return saved

    def add_manual_entry(
        self,
        *,
        employee_id: int,
        clock_in: datetime,
        clock_out: Optional[datetime] = None,
        breaks: Iterable[ManualBreak] = (),
        location: Optional[str] = None,
        work_type: Optional[str] = None,
        notes: str = "",
        created_by: Optional[int] = None,
    ) -> TimeEntry:
        work_date = local_date(clock_in, self.tz)

        with self._guard("add_manual_entry", employee_id):
            if self._entries.find_entry(employee_id, work_date) is not None:
                raise ValidationError("A time entry already exists for that date")

            entry = self._machine.manual_edit(
                None,
                employee_id=employee_id,
                work_date=work_date,
                clock_in=clock_in,
                clock_out=clock_out,
                created_by=created_by,
            )
            for b in breaks:
                entry = self._machine.add_break(entry, start=b.start, end=b.end, break_type=b.break_type)

            assignment = self._assignment(employee_id, work_date)
            entry = replace(
                entry,
                location=location or DEFAULT_LOCATION,
                work_type=work_type or DEFAULT_WORK_TYPE,
                notes=notes,
                shift_assignment_id=assignment.assignment_id if assignment else None,
                scheduled_hours=self._policy.expected_hours(
                    work_date=work_date,
                    shift=assignment.shift if assignment else None,
                ),
            )
            saved = self._entries.create_entry(entry)

        logger.info("add_manual_entry employee_id=%s entry_id=%s work_date=%s", employee_id, saved.entry_id, work_date)
        return saved

    def add_break(
        self,
        entry_id: int,
        *,
        start: datetime,
        end: datetime,
        break_type: BreakType = BreakType.OTHER,
    ) -> TimeEntry:
        with self._guard("add_break", None):
            current = self._require_entry(entry_id)
            entry = self._machine.add_break(current, start=start, end=end, break_type=break_type)
            saved = self._save(current, entry)

        logger.info("add_break entry_id=%s breaks=%d", saved.entry_id, len(saved.breaks))
        return saved

    def delete_entry(self, entry_id: int) -> None:
        with self._guard("delete_entry", None):
            current = self._require_entry(entry_id)
            self._entries.delete_entry(int(entry_id))

        if current.shift_assignment_id is not None and self._shifts:
            self._shifts.reset_assignment_status(assignment_id=current.shift_assignment_id)
        logger.info("delete_entry entry_id=%s employee_id=%s", entry_id, current.employee_id)

    # ---- read side ----------------------------------------------------

    def get_entry(self, entry_id: int) -> TimeEntry:
        return self._require_entry(entry_id)

    def list_entries(self, *, start: date, end: date, employee_id: Optional[int] = None) -> Sequence[TimeEntry]:
        if end < start:
            raise ValidationError("End date must not be before start date")
        return self._entries.list_entries(employee_id, start, end)

    def summarize(self, entry: Optional[TimeEntry]) -> HoursSummary:
        work_date = entry.work_date if entry else self.today()
        expected = self._expected_hours(work_date, entry, None)
        return self._calculator.summarize(entry, expected_hours=expected, now=self._clock.now())

    def get_weekly_timesheet(self, employee_id: int, week_start: date) -> WeeklyTimesheet:
        days = self._weekly.week_days(week_start)
        entries = self._entries.list_entries(employee_id, days[0], days[-1])

        shifts: dict[date, Shift] = {}
        for day in days:
            assignment = self._assignment(employee_id, day)
            if assignment:
                shifts[day] = assignment.shift

        return self._weekly.aggregate(
            reference_date=week_start,
            today=self.today(),
            now=self._clock.now(),
            entries=entries,
            expected_hours=lambda day, entry: self._expected_hours(day, entry, shifts.get(day)),
            shifts=shifts,
        )

    def get_timeline_segments(self, entry: Optional[TimeEntry], *, shift: Optional[Shift] = None) -> list[TimelineSegment]:
        return self._timeline.for_entry(entry, self._clock.now(), shift=shift)

    def to_ui(self, entry: Optional[TimeEntry]) -> dict:
        if entry is None:
            return {
                "status": status_of(None).value,
                "clockIn": None,
                "clockOut": None,
                "location": None,
                "workType": None,
                "breaks": [],
            }

        gps = entry.gps_location
        return {
            "entryId": entry.entry_id,
            "employeeId": entry.employee_id,
            "date": entry.work_date.isoformat(),
            "status": entry.status.value,
            "clockIn": format_time(entry.clock_in, self.tz) if entry.clock_in else None,
            "clockOut": format_time(entry.clock_out, self.tz) if entry.clock_out else None,
            "clockInAt": entry.clock_in.isoformat() if entry.clock_in else None,
            "clockOutAt": entry.clock_out.isoformat() if entry.clock_out else None,
            "location": entry.location,
            "workType": entry.work_type,
            "gpsLocation": (
                {"latitude": gps.latitude, "longitude": gps.longitude, "accuracy": gps.accuracy} if gps else None
            ),
            "attendanceStatus": entry.attendance_status.value if entry.attendance_status else None,
            "scheduledHours": entry.scheduled_hours,
            "isManualEntry": entry.is_manual_entry,
            "notes": entry.notes,
            "breaks": [
                {
                    "startTime": format_time(b.start_time, self.tz),
                    "endTime": format_time(b.end_time, self.tz) if b.end_time else None,
                    "duration": round(b.duration_minutes, 2) if b.duration_minutes is not None else None,
                    "type": b.break_type.value,
                }
                for b in entry.breaks
            ],
        }
