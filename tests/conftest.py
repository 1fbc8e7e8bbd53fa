from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional

import pytest
import pytz

from src.timesheet_engine.timesheet_engine.attendance.model import TimeEntry
from src.timesheet_engine.timesheet_engine.common.datetime_utils import FixedClock
from src.timesheet_engine.timesheet_engine.core.exceptions import ConcurrentUpdate, NotFound
from src.timesheet_engine.timesheet_engine.shifts.model import ShiftAssignment

LONDON = pytz.timezone("Europe/London")


def london(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware UTC instant for a Europe/London wall-clock time."""
    return LONDON.localize(datetime(year, month, day, hour, minute)).astimezone(pytz.utc)


class InMemoryTimeEntries:
    def __init__(self):
        self.rows: dict[int, TimeEntry] = {}
        self._id = 0

    def _by_key(self, employee_id: int, work_date: date) -> Optional[TimeEntry]:
        for e in self.rows.values():
            if e.employee_id == employee_id and e.work_date == work_date:
                return e
        return None

    def find_entry(self, employee_id: int, work_date: date) -> Optional[TimeEntry]:
        return self._by_key(employee_id, work_date)

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        return self.rows.get(entry_id)

    def create_entry(self, entry: TimeEntry) -> TimeEntry:
        # unique (employee_id, work_date)
        if self._by_key(entry.employee_id, entry.work_date) is not None:
            raise ConcurrentUpdate("duplicate entry")
        self._id += 1
        saved = replace(entry, entry_id=self._id, version=0)
        self.rows[self._id] = saved
        return saved

    def update_entry(self, entry_id: int, entry: TimeEntry, *, expected_version: int) -> TimeEntry:
        current = self.rows.get(entry_id)
        if current is None:
            raise NotFound("Time entry not found")
        if current.version != expected_version:
            raise ConcurrentUpdate("stale version")
        saved = replace(entry, entry_id=entry_id, version=current.version + 1)
        self.rows[entry_id] = saved
        return saved

    def delete_entry(self, entry_id: int) -> None:
        if self.rows.pop(entry_id, None) is None:
            raise NotFound("Time entry not found")

    def list_entries(self, employee_id: Optional[int], start_date: date, end_date: date):
        items = [
            e
            for e in self.rows.values()
            if (employee_id is None or e.employee_id == employee_id) and start_date <= e.work_date <= end_date
        ]
        items.sort(key=lambda e: e.work_date, reverse=True)
        return items


class InMemoryShifts:
    def __init__(self, assignments: Optional[list[ShiftAssignment]] = None):
        self.assignments = {(a.employee_id, a.work_date): a for a in (assignments or [])}
        self.reset_calls: list[int] = []

    def get_assignment(self, *, employee_id: int, work_date: date) -> Optional[ShiftAssignment]:
        return self.assignments.get((employee_id, work_date))

    def reset_assignment_status(self, *, assignment_id: int) -> bool:
        self.reset_calls.append(assignment_id)
        return True


@pytest.fixture
def clock() -> FixedClock:
    # Monday 2024-01-15, 09:00 London (GMT)
    return FixedClock(london(2024, 1, 15, 9, 0))


@pytest.fixture
def entries() -> InMemoryTimeEntries:
    return InMemoryTimeEntries()
