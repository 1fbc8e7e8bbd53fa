from __future__ import annotations

from datetime import date, time

import pytest

from conftest import InMemoryShifts, InMemoryTimeEntries, london

from src.timesheet_engine.timesheet_engine.attendance.service import ClockService, ManualBreak
from src.timesheet_engine.timesheet_engine.common.datetime_utils import FixedClock
from src.timesheet_engine.timesheet_engine.core.enums import BreakType, ClockStatus, DayClassification, Punctuality
from src.timesheet_engine.timesheet_engine.core.exceptions import (
    AlreadyClockedIn,
    ConcurrentUpdate,
    InvalidInterval,
    NoActiveSession,
    NotFound,
    ValidationError,
)
from src.timesheet_engine.timesheet_engine.shifts.model import Shift, ShiftAssignment
from src.timesheet_engine.timesheet_engine.timesheet.hours import format_hours
from src.timesheet_engine.timesheet_engine.timesheet.policy.shift_policy import ShiftExpectedHours

DAY = date(2024, 1, 15)
DAY_SHIFT = Shift(shift_id=1, shift_name="Day", start_time=time(9, 0), end_time=time(17, 0), break_minutes=30)


def _service(entries, clock, shifts=None, **kwargs) -> ClockService:
    return ClockService(entries, shifts, clock=clock, **kwargs)


def test_round_trip_with_lunch_break(entries, clock):
    svc = _service(entries, clock)

    clock.set(london(2024, 1, 15, 8, 30))
    svc.clock_in(1)
    clock.set(london(2024, 1, 15, 12, 0))
    svc.start_break(1, break_type=BreakType.LUNCH)
    assert svc.get_status(1).status == ClockStatus.ON_BREAK

    clock.set(london(2024, 1, 15, 12, 30))
    svc.resume_work(1)
    clock.set(london(2024, 1, 15, 17, 0))
    result = svc.clock_out(1)

    assert result.entry.status == ClockStatus.CLOCKED_OUT
    assert result.entry.version == 3
    assert result.summary.hours_worked == pytest.approx(8.0)
    assert format_hours(result.summary.hours_worked) == "08:00"
    assert result.summary.overtime == 0
    assert result.summary.negative_hours == 0


def test_short_day_reports_negative_hours(entries, clock):
    svc = _service(entries, clock)
    svc.clock_in(1)
    clock.set(london(2024, 1, 15, 13, 0))

    summary = svc.clock_out(1).summary
    assert format_hours(summary.hours_worked) == "04:00"
    assert summary.overtime == 0
    assert summary.negative_hours == pytest.approx(4.0)


def test_long_day_reports_overtime(entries, clock):
    svc = _service(entries, clock)
    svc.clock_in(1)
    clock.set(london(2024, 1, 15, 13, 0))
    svc.start_break(1)
    clock.set(london(2024, 1, 15, 13, 30))
    svc.resume_work(1)
    clock.set(london(2024, 1, 15, 19, 0))

    summary = svc.clock_out(1).summary
    assert summary.hours_worked == pytest.approx(9.5)
    assert summary.overtime == pytest.approx(1.5)
    assert summary.negative_hours == 0


def test_status_defaults_to_not_clocked_in(entries, clock):
    state = _service(entries, clock, poll_interval_seconds=30).get_status(42)
    assert state.status == ClockStatus.NOT_CLOCKED_IN
    assert state.entry is None
    assert state.poll_interval_seconds == 30


def test_rejected_actions_leave_store_untouched(entries, clock):
    svc = _service(entries, clock)
    with pytest.raises(NoActiveSession):
        svc.start_break(1)
    with pytest.raises(NoActiveSession):
        svc.clock_out(1)
    assert entries.rows == {}

    svc.clock_in(1)
    with pytest.raises(AlreadyClockedIn):
        svc.clock_in(1)
    assert len(entries.rows) == 1
    assert entries.find_entry(1, DAY).version == 0


def test_double_break_keeps_single_open_break(entries, clock):
    svc = _service(entries, clock)
    svc.clock_in(1)
    clock.advance(hours=1)
    svc.start_break(1)
    clock.advance(minutes=1)
    with pytest.raises(NoActiveSession):
        svc.start_break(1)

    stored = entries.find_entry(1, DAY)
    assert len([b for b in stored.breaks if b.is_open]) == 1


def test_clock_in_uses_local_calendar_date():
    # 23:30 UTC on 30 June is already 1 July in London (BST)
    clock = FixedClock(london(2024, 7, 1, 0, 30))
    entries = InMemoryTimeEntries()
    entry = _service(entries, clock).clock_in(1)
    assert entry.work_date == date(2024, 7, 1)


def test_clock_in_against_shift_records_punctuality(entries, clock):
    shifts = InMemoryShifts([ShiftAssignment(assignment_id=9, employee_id=1, work_date=DAY, shift=DAY_SHIFT)])
    svc = _service(entries, clock, shifts, policy=ShiftExpectedHours())

    clock.set(london(2024, 1, 15, 9, 20))
    entry = svc.clock_in(1, location="Home", work_type="Remote")

    assert entry.attendance_status == Punctuality.LATE
    assert entry.shift_assignment_id == 9
    assert entry.scheduled_hours == pytest.approx(7.5)
    assert entry.location == "Home"
    assert entry.work_type == "Remote"

    clock.set(london(2024, 1, 15, 16, 0))
    result = svc.clock_out(1)
    assert result.entry.attendance_status == Punctuality.LATE
    assert result.summary.expected_hours == pytest.approx(7.5)


def test_clock_out_after_shift_end_is_overtime(entries, clock):
    shifts = InMemoryShifts([ShiftAssignment(assignment_id=9, employee_id=1, work_date=DAY, shift=DAY_SHIFT)])
    svc = _service(entries, clock, shifts)

    svc.clock_in(1)
    clock.set(london(2024, 1, 15, 18, 0))
    assert svc.clock_out(1).entry.attendance_status == Punctuality.OVERTIME


def test_unscheduled_day_uses_fixed_expected_hours(entries, clock):
    entry = _service(entries, clock).clock_in(1)
    assert entry.attendance_status == Punctuality.UNSCHEDULED
    assert entry.scheduled_hours == pytest.approx(8.0)


class RacingEntries(InMemoryTimeEntries):
    """Another writer updates the row between our read and our write."""

    def find_entry(self, employee_id, work_date):
        entry = super().find_entry(employee_id, work_date)
        if entry is not None:
            self.update_entry(entry.entry_id, entry, expected_version=entry.version)
        return entry


def test_stale_write_raises_concurrent_update(clock):
    entries = RacingEntries()
    svc = _service(entries, clock)
    svc.clock_in(1)

    clock.advance(hours=1)
    with pytest.raises(ConcurrentUpdate):
        svc.start_break(1)
    assert entries.find_entry(1, DAY).open_break is None


class BlindEntries(InMemoryTimeEntries):
    """Simulates a concurrent clock-in that is not yet visible to the reader."""

    def find_entry(self, employee_id, work_date):
        return None


def test_concurrent_clock_in_loses_on_duplicate_key(clock):
    entries = BlindEntries()
    svc = _service(entries, clock)
    svc.clock_in(1)
    with pytest.raises(ConcurrentUpdate):
        svc.clock_in(1)


def test_manual_edit_by_entry_id(entries, clock):
    svc = _service(entries, clock)
    entry = svc.clock_in(1)

    edited = svc.manual_edit(
        entry_id=entry.entry_id,
        employee_id=1,
        work_date=DAY,
        clock_in=london(2024, 1, 15, 8, 0),
        clock_out=london(2024, 1, 15, 16, 0),
        created_by=99,
    )
    assert edited.status == ClockStatus.CLOCKED_OUT
    assert edited.is_manual_entry is True
    assert svc.summarize(edited).hours_worked == pytest.approx(8.0)


def test_manual_edit_cannot_move_onto_an_existing_date(entries, clock):
    svc = _service(entries, clock)
    svc.add_manual_entry(employee_id=1, clock_in=london(2024, 1, 12, 9, 0), clock_out=london(2024, 1, 12, 17, 0))
    today = svc.clock_in(1)

    with pytest.raises(ValidationError):
        svc.manual_edit(
            entry_id=today.entry_id,
            employee_id=1,
            work_date=date(2024, 1, 12),
            clock_in=london(2024, 1, 12, 9, 0),
            clock_out=None,
        )


def test_manual_edit_unknown_entry(entries, clock):
    with pytest.raises(NotFound):
        _service(entries, clock).manual_edit(
            entry_id=404,
            employee_id=1,
            work_date=DAY,
            clock_in=london(2024, 1, 15, 9, 0),
            clock_out=None,
        )


def test_add_manual_entry_with_breaks(entries, clock):
    svc = _service(entries, clock)
    entry = svc.add_manual_entry(
        employee_id=3,
        clock_in=london(2024, 1, 12, 9, 0),
        clock_out=london(2024, 1, 12, 17, 0),
        breaks=[ManualBreak(start=london(2024, 1, 12, 12, 0), end=london(2024, 1, 12, 12, 45), break_type=BreakType.LUNCH)],
        notes="Forgot to clock in",
        created_by=1,
    )

    assert entry.work_date == date(2024, 1, 12)
    assert entry.is_manual_entry is True
    assert entry.created_by == 1
    assert entry.notes == "Forgot to clock in"
    assert svc.summarize(entry).hours_worked == pytest.approx(7.25)

    with pytest.raises(ValidationError):
        svc.add_manual_entry(employee_id=3, clock_in=london(2024, 1, 12, 10, 0))


def test_add_break_to_existing_entry(entries, clock):
    svc = _service(entries, clock)
    entry = svc.add_manual_entry(employee_id=1, clock_in=london(2024, 1, 12, 9, 0), clock_out=london(2024, 1, 12, 17, 0))

    updated = svc.add_break(entry.entry_id, start=london(2024, 1, 12, 12, 0), end=london(2024, 1, 12, 12, 30))
    assert len(updated.breaks) == 1
    assert updated.version == entry.version + 1

    with pytest.raises(InvalidInterval):
        svc.add_break(entry.entry_id, start=london(2024, 1, 12, 12, 15), end=london(2024, 1, 12, 12, 20))
    with pytest.raises(NotFound):
        svc.add_break(404, start=london(2024, 1, 12, 12, 0), end=london(2024, 1, 12, 12, 30))


def test_delete_entry_resets_shift_assignment(entries, clock):
    shifts = InMemoryShifts([ShiftAssignment(assignment_id=9, employee_id=1, work_date=DAY, shift=DAY_SHIFT)])
    svc = _service(entries, clock, shifts)
    entry = svc.clock_in(1)

    svc.delete_entry(entry.entry_id)
    assert entries.rows == {}
    assert shifts.reset_calls == [9]
    assert svc.get_status(1).status == ClockStatus.NOT_CLOCKED_IN

    with pytest.raises(NotFound):
        svc.delete_entry(entry.entry_id)


def test_weekly_timesheet_hides_future_days_and_puts_today_first(entries):
    clock = FixedClock(london(2024, 1, 17, 14, 0))
    svc = _service(entries, clock)
    svc.add_manual_entry(employee_id=1, clock_in=london(2024, 1, 15, 9, 0), clock_out=london(2024, 1, 15, 17, 0))

    clock.set(london(2024, 1, 17, 9, 0))
    svc.clock_in(1)
    clock.set(london(2024, 1, 17, 14, 0))

    sheet = svc.get_weekly_timesheet(1, date(2024, 1, 17))
    assert sheet.week_start == DAY
    assert [d.work_date for d in sheet.days] == [date(2024, 1, 17), date(2024, 1, 16), date(2024, 1, 15)]
    assert sheet.days[0].is_today
    assert sheet.days[1].classification == DayClassification.ABSENT
    assert sheet.days[0].clocked_hours == "09:00 - Present"

    stats = sheet.statistics
    assert stats.total_hours_worked == pytest.approx(13.0)
    assert stats.total_overtime == 0
    # today's shortfall is not final yet
    assert stats.total_negative_hours == 0


def test_list_entries_validates_range(entries, clock):
    svc = _service(entries, clock)
    with pytest.raises(ValidationError):
        svc.list_entries(start=date(2024, 1, 20), end=date(2024, 1, 1))


def test_to_ui_formats_in_local_time(entries):
    clock = FixedClock(london(2024, 6, 3, 9, 0))
    svc = _service(entries, clock)
    entry = svc.clock_in(1)
    clock.set(london(2024, 6, 3, 12, 0))
    svc.start_break(1, break_type=BreakType.COFFEE)

    ui = svc.to_ui(entries.get_entry(entry.entry_id))
    assert ui["clockIn"] == "09:00"
    assert ui["clockOut"] is None
    assert ui["status"] == "on_break"
    assert ui["breaks"] == [{"startTime": "12:00", "endTime": None, "duration": None, "type": "coffee"}]
    assert svc.to_ui(None)["status"] == "not_clocked_in"


def test_status_board_for_today(entries, clock):
    svc = _service(entries, clock)
    svc.clock_in(2)
    svc.clock_in(1, created_by=99)
    svc.add_manual_entry(employee_id=3, clock_in=london(2024, 1, 12, 9, 0), clock_out=london(2024, 1, 12, 17, 0))

    board = svc.get_status_board(employee_ids=[4])
    assert list(board) == [1, 2, 4]
    assert board[1].entry.created_by == 99
    assert board[2].status == ClockStatus.CLOCKED_IN
    assert board[4].status == ClockStatus.NOT_CLOCKED_IN
    assert board[4].entry is None

    past = svc.get_status_board(date(2024, 1, 12))
    assert list(past) == [3]
    assert past[3].status == ClockStatus.CLOCKED_OUT
