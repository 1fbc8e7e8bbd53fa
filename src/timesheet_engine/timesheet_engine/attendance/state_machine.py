from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

from ..core.constants import DEFAULT_LOCATION, DEFAULT_WORK_TYPE
from ..core.enums import BreakType, ClockStatus
from ..core.exceptions import AlreadyClockedIn, InvalidInterval, NoActiveSession, NotFound, ValidationError
from .breaks import BreakTracker
from .model import GpsLocation, TimeEntry, derive_status, status_of


def _project_status(entry: TimeEntry) -> TimeEntry:
    return replace(entry, status=derive_status(entry.clock_in, entry.clock_out, entry.breaks))


class ClockStatusMachine:
    """Legal transitions of one employee's attendance on one day.

    Pure decision logic: every method takes the currently persisted entry
    (or None) and returns the entry to persist, or raises before anything
    is mutated. The stored status is always re-derived from clock_in,
    clock_out and the open break.
    """

    def clock_in(
        self,
        current: Optional[TimeEntry],
        *,
        employee_id: int,
        work_date: date,
        now: datetime,
        location: str = DEFAULT_LOCATION,
        work_type: str = DEFAULT_WORK_TYPE,
        gps_location: Optional[GpsLocation] = None,
        created_by: Optional[int] = None,
    ) -> TimeEntry:
        status = status_of(current)
        if status in (ClockStatus.CLOCKED_IN, ClockStatus.ON_BREAK):
            raise AlreadyClockedIn("Employee is already clocked in today")

        if current is None:
            entry = TimeEntry(
                entry_id=None,
                employee_id=employee_id,
                work_date=work_date,
                clock_in=now,
                clock_out=None,
                status=ClockStatus.CLOCKED_IN,
                location=location,
                work_type=work_type,
                gps_location=gps_location,
                created_by=created_by if created_by is not None else employee_id,
            )
        else:
            # a clocked-out day starts over
            entry = replace(
                current,
                clock_in=now,
                clock_out=None,
                breaks=(),
                location=location,
                work_type=work_type,
                gps_location=gps_location,
                attendance_status=None,
                is_manual_entry=False,
            )
        return _project_status(entry)

    def start_break(
        self,
        current: Optional[TimeEntry],
        *,
        now: datetime,
        break_type: BreakType = BreakType.OTHER,
    ) -> TimeEntry:
        status = status_of(current)
        if status == ClockStatus.ON_BREAK:
            raise NoActiveSession("A break is already in progress")
        if status != ClockStatus.CLOCKED_IN:
            raise NoActiveSession("You must be clocked in to start a break")

        tracker = BreakTracker(current.breaks).start(now, break_type)
        return _project_status(replace(current, breaks=tracker.breaks))

    def resume_work(self, current: Optional[TimeEntry], *, now: datetime) -> TimeEntry:
        if status_of(current) != ClockStatus.ON_BREAK:
            raise NoActiveSession("No break in progress")

        tracker = BreakTracker(current.breaks).close_open(now)
        return _project_status(replace(current, breaks=tracker.breaks))

    def clock_out(self, current: Optional[TimeEntry], *, now: datetime) -> TimeEntry:
        status = status_of(current)
        if status == ClockStatus.CLOCKED_OUT:
            raise NoActiveSession("Employee has already clocked out today")
        if status == ClockStatus.NOT_CLOCKED_IN:
            raise NoActiveSession("No active clock-in found for today")
        if now <= current.clock_in:
            raise InvalidInterval("Clock-out must be after clock-in")

        tracker = BreakTracker(current.breaks)
        if tracker.has_open_break():
            tracker = tracker.close_open(now)
        return _project_status(replace(current, breaks=tracker.breaks, clock_out=now))

    def manual_edit(
        self,
        current: Optional[TimeEntry],
        *,
        employee_id: int,
        work_date: date,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        created_by: Optional[int] = None,
    ) -> TimeEntry:
        """Admin override of clock_in/clock_out/date; creates the entry when missing."""

        if clock_in is None:
            raise ValidationError("Clock in time is required")
        if clock_out is not None and clock_out <= clock_in:
            raise InvalidInterval("Clock-out must be after clock-in")

        if current is None:
            entry = TimeEntry(
                entry_id=None,
                employee_id=employee_id,
                work_date=work_date,
                clock_in=clock_in,
                clock_out=clock_out,
                status=ClockStatus.NOT_CLOCKED_IN,
                is_manual_entry=True,
                created_by=created_by,
            )
            return _project_status(entry)

        tracker = BreakTracker(current.breaks)
        if clock_out is not None and tracker.has_open_break():
            open_start = tracker.open_break.start_time
            tracker = tracker.close_open(max(clock_out, open_start))
        # breaks outside the edited span no longer count
        tracker = tracker.clip(clock_in, clock_out)

        entry = replace(
            current,
            work_date=work_date,
            clock_in=clock_in,
            clock_out=clock_out,
            breaks=tracker.breaks,
            is_manual_entry=True,
        )
        return _project_status(entry)

    def add_break(
        self,
        current: Optional[TimeEntry],
        *,
        start: datetime,
        end: datetime,
        break_type: BreakType = BreakType.OTHER,
    ) -> TimeEntry:
        if current is None:
            raise NotFound("Time entry not found")
        if current.clock_in is None or start < current.clock_in:
            raise InvalidInterval("Break must start after clock-in")
        if current.clock_out is not None and end > current.clock_out:
            raise InvalidInterval("Break must end before clock-out")

        tracker = BreakTracker(current.breaks).add_closed(start, end, break_type)
        return _project_status(replace(current, breaks=tracker.breaks))
