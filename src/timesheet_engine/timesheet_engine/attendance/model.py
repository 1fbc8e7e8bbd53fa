from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.constants import DEFAULT_LOCATION, DEFAULT_WORK_TYPE
from ..core.enums import BreakType, ClockStatus, Punctuality


@dataclass(frozen=True)
class Break:
    """One break interval of a time entry. end_time is None while open."""

    start_time: datetime
    end_time: Optional[datetime] = None
    duration_minutes: Optional[float] = None
    break_type: BreakType = BreakType.OTHER

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class GpsLocation:
    """Snapshot taken at clock-in. Display only."""

    latitude: float
    longitude: float
    accuracy: Optional[float] = None


@dataclass(frozen=True)
class TimeEntry:
    """Domain entity: one employee's attendance for one calendar date.

    Instants (clock_in, clock_out, break times) are aware UTC datetimes;
    work_date is the calendar date in the configured zone.
    """

    entry_id: Optional[int]
    employee_id: int
    work_date: date
    clock_in: Optional[datetime]
    clock_out: Optional[datetime]
    status: ClockStatus
    breaks: tuple[Break, ...] = ()
    location: str = DEFAULT_LOCATION
    work_type: str = DEFAULT_WORK_TYPE
    gps_location: Optional[GpsLocation] = None
    attendance_status: Optional[Punctuality] = None
    shift_assignment_id: Optional[int] = None
    scheduled_hours: Optional[float] = None
    notes: str = ""
    is_manual_entry: bool = False
    created_by: Optional[int] = None
    version: int = 0

    @property
    def open_break(self) -> Optional[Break]:
        for b in self.breaks:
            if b.is_open:
                return b
        return None


def derive_status(
    clock_in: Optional[datetime],
    clock_out: Optional[datetime],
    breaks: tuple[Break, ...],
) -> ClockStatus:
    """Status is a projection of clock_in/clock_out/open break."""

    if clock_out is not None:
        return ClockStatus.CLOCKED_OUT
    if any(b.is_open for b in breaks):
        return ClockStatus.ON_BREAK
    if clock_in is not None:
        return ClockStatus.CLOCKED_IN
    return ClockStatus.NOT_CLOCKED_IN


def status_of(entry: Optional[TimeEntry]) -> ClockStatus:
    if entry is None:
        return ClockStatus.NOT_CLOCKED_IN
    return derive_status(entry.clock_in, entry.clock_out, entry.breaks)


@dataclass(frozen=True)
class ClockState:
    """Read-model returned by the status endpoint."""

    status: ClockStatus
    entry: Optional[TimeEntry] = None
    poll_interval_seconds: int = 15
