from __future__ import annotations

from datetime import date, datetime, time, timedelta

import mysql.connector
import pytest
import pytz

from conftest import london

from src.timesheet_engine.timesheet_engine.attendance.model import Break, TimeEntry
from src.timesheet_engine.timesheet_engine.attendance.mysql_time_entry_repository import MySQLTimeEntryRepository
from src.timesheet_engine.timesheet_engine.core.enums import BreakType, ClockStatus, Punctuality
from src.timesheet_engine.timesheet_engine.core.exceptions import ConcurrentUpdate, NotFound, StoreUnavailable
from src.timesheet_engine.timesheet_engine.database.mysql_base import (
    from_db_datetime,
    normalize_mysql_time,
    to_db_datetime,
)
from src.timesheet_engine.timesheet_engine.shifts.mysql_shift_repository import MySQLShiftRepository


class FakeCursor:
    """Replays one scripted result per execute() call."""

    def __init__(self, script):
        self.script = list(script)
        self.executed = []
        self.rowcount = 0
        self.lastrowid = None
        self._one = None
        self._all = []

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))
        step = self.script.pop(0) if self.script else {}
        if "raise" in step:
            raise step["raise"]
        self.rowcount = step.get("rowcount", 0)
        self.lastrowid = step.get("lastrowid")
        self._one = step.get("one")
        self._all = step.get("all", [])

    def fetchone(self):
        return self._one

    def fetchall(self):
        return self._all

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeConnFactory:
    def __init__(self, *script, error=None):
        self.cursor = FakeCursor(script)
        self.conn = FakeConnection(self.cursor)
        self._error = error

    def connect(self):
        if self._error is not None:
            raise self._error
        return self.conn


def _entry(**overrides) -> TimeEntry:
    values = dict(
        entry_id=5,
        employee_id=1,
        work_date=date(2024, 1, 15),
        clock_in=london(2024, 1, 15, 9, 0),
        clock_out=None,
        status=ClockStatus.ON_BREAK,
        breaks=(Break(start_time=london(2024, 1, 15, 12, 0), break_type=BreakType.LUNCH),),
        version=2,
    )
    values.update(overrides)
    return TimeEntry(**values)


ROW = {
    "entry_id": 5,
    "employee_id": 1,
    "work_date": date(2024, 6, 3),
    "clock_in": datetime(2024, 6, 3, 8, 0),
    "clock_out": datetime(2024, 6, 3, 16, 0),
    "status": "clocked_out",
    "location": "Work From Office",
    "work_type": "Regular",
    "gps_latitude": 51.5,
    "gps_longitude": -0.12,
    "gps_accuracy": None,
    "attendance_status": "On Time",
    "shift_assignment_id": 4,
    "scheduled_hours": 7.5,
    "notes": None,
    "is_manual_entry": 0,
    "created_by": 1,
    "version": 3,
}


def test_datetime_round_trip_through_naive_utc():
    aware = london(2024, 6, 3, 9, 0)
    stored = to_db_datetime(aware)
    assert stored == datetime(2024, 6, 3, 8, 0)
    assert stored.tzinfo is None
    assert from_db_datetime(stored) == aware
    assert from_db_datetime("2024-06-03 08:00:00") == aware
    assert to_db_datetime(None) is None and from_db_datetime(None) is None


def test_normalize_mysql_time_variants():
    assert normalize_mysql_time(timedelta(hours=9, minutes=30)) == time(9, 30)
    assert normalize_mysql_time("17:00:00") == time(17, 0)
    assert normalize_mysql_time(time(8, 0)) == time(8, 0)
    assert normalize_mysql_time(None) is None


def test_find_entry_maps_row_and_breaks():
    factory = FakeConnFactory(
        {"one": ROW},
        {
            "all": [
                {
                    "entry_id": 5,
                    "start_time": datetime(2024, 6, 3, 11, 0),
                    "end_time": datetime(2024, 6, 3, 11, 30),
                    "duration_minutes": 30,
                    "break_type": "lunch",
                }
            ]
        },
    )
    entry = MySQLTimeEntryRepository(factory).find_entry(1, date(2024, 6, 3))

    assert entry.clock_in == london(2024, 6, 3, 9, 0)
    assert entry.clock_in.tzinfo is not None
    assert entry.status == ClockStatus.CLOCKED_OUT
    assert entry.attendance_status == Punctuality.ON_TIME
    assert entry.gps_location.latitude == 51.5
    assert entry.gps_location.accuracy is None
    assert entry.version == 3
    assert entry.breaks[0].break_type == BreakType.LUNCH
    assert entry.breaks[0].duration_minutes == 30.0
    assert factory.cursor.executed[0][1] == (1, date(2024, 6, 3))


def test_find_entry_missing_returns_none():
    assert MySQLTimeEntryRepository(FakeConnFactory({"one": None})).find_entry(1, date(2024, 1, 15)) is None


def test_update_bumps_version_and_rewrites_breaks():
    factory = FakeConnFactory({"rowcount": 1}, {}, {})
    saved = MySQLTimeEntryRepository(factory).update_entry(5, _entry(), expected_version=2)

    assert saved.version == 3
    assert factory.conn.committed
    update_sql, update_params = factory.cursor.executed[0]
    assert "version=version+1" in update_sql
    assert update_params[-2:] == (5, 2)
    assert update_params[1] == datetime(2024, 1, 15, 9, 0)
    assert factory.cursor.executed[1][0].startswith("DELETE FROM time_entry_breaks")
    assert factory.cursor.executed[2][1][-1] == "lunch"


def test_update_with_stale_version_conflicts():
    factory = FakeConnFactory({"rowcount": 0}, {"one": {"version": 3}})
    with pytest.raises(ConcurrentUpdate):
        MySQLTimeEntryRepository(factory).update_entry(5, _entry(), expected_version=2)
    assert factory.conn.rolled_back
    assert not factory.conn.committed


def test_update_missing_row_is_not_found():
    factory = FakeConnFactory({"rowcount": 0}, {"one": None})
    with pytest.raises(NotFound):
        MySQLTimeEntryRepository(factory).update_entry(5, _entry(), expected_version=2)


def test_create_duplicate_is_concurrent_update():
    factory = FakeConnFactory({"raise": mysql.connector.IntegrityError("Duplicate entry")})
    with pytest.raises(ConcurrentUpdate):
        MySQLTimeEntryRepository(factory).create_entry(_entry(entry_id=None, version=0))


def test_create_returns_new_id():
    factory = FakeConnFactory({"lastrowid": 11}, {}, {})
    saved = MySQLTimeEntryRepository(factory).create_entry(_entry(entry_id=None, version=0))
    assert saved.entry_id == 11
    assert saved.version == 0


def test_delete_missing_is_not_found():
    with pytest.raises(NotFound):
        MySQLTimeEntryRepository(FakeConnFactory({"rowcount": 0})).delete_entry(5)


def test_driver_failure_is_store_unavailable():
    factory = FakeConnFactory(error=mysql.connector.Error("connection refused"))
    with pytest.raises(StoreUnavailable):
        MySQLTimeEntryRepository(factory).list_entries(None, date(2024, 1, 1), date(2024, 1, 31))


def test_list_entries_filters_by_employee():
    factory = FakeConnFactory({"all": [ROW]}, {"all": []})
    entries = MySQLTimeEntryRepository(factory).list_entries(1, date(2024, 6, 1), date(2024, 6, 30))
    assert [e.entry_id for e in entries] == [5]
    sql, params = factory.cursor.executed[0]
    assert "employee_id=%s" in sql
    assert params == (date(2024, 6, 1), date(2024, 6, 30), 1)


def test_shift_assignment_lookup():
    factory = FakeConnFactory(
        {
            "one": {
                "assignment_id": 4,
                "employee_id": 1,
                "work_date": date(2024, 6, 3),
                "status": "scheduled",
                "note": None,
                "shift_id": 2,
                "shift_name": "Early",
                "start_time": timedelta(hours=7),
                "end_time": timedelta(hours=15),
                "break_minutes": 30,
            }
        }
    )
    assignment = MySQLShiftRepository(factory).get_assignment(employee_id=1, work_date=date(2024, 6, 3))
    assert assignment.shift.start_time == time(7, 0)
    assert assignment.shift.expected_hours() == pytest.approx(7.5)


def test_reset_assignment_status():
    factory = FakeConnFactory({"rowcount": 1})
    assert MySQLShiftRepository(factory).reset_assignment_status(assignment_id=4) is True
    assert factory.cursor.executed[0][1] == ("scheduled", 4)
