from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Any, Optional, Sequence

import mysql.connector

from ..core.enums import BreakType, ClockStatus, Punctuality
from ..core.exceptions import ConcurrentUpdate, NotFound
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, store_errors, to_db_datetime
from .model import Break, GpsLocation, TimeEntry
from .repository import TimeEntryRepository

logger = logging.getLogger(__name__)

_ENTRY_COLUMNS = """
    entry_id, employee_id, work_date, clock_in, clock_out, status,
    location, work_type, gps_latitude, gps_longitude, gps_accuracy,
    attendance_status, shift_assignment_id, scheduled_hours, notes,
    is_manual_entry, created_by, version
"""


def _entry_params(entry: TimeEntry) -> tuple:
    gps = entry.gps_location
    return (
        to_db_datetime(entry.clock_in),
        to_db_datetime(entry.clock_out),
        entry.status.value,
        entry.location,
        entry.work_type,
        gps.latitude if gps else None,
        gps.longitude if gps else None,
        gps.accuracy if gps else None,
        entry.attendance_status.value if entry.attendance_status else None,
        entry.shift_assignment_id,
        entry.scheduled_hours,
        entry.notes,
        int(entry.is_manual_entry),
        entry.created_by,
    )


def _to_break(r: dict[str, Any]) -> Break:
    duration = r.get("duration_minutes")
    return Break(
        start_time=from_db_datetime(r["start_time"]),
        end_time=from_db_datetime(r.get("end_time")),
        duration_minutes=float(duration) if duration is not None else None,
        break_type=BreakType(r.get("break_type") or BreakType.OTHER.value),
    )


def _to_entry(r: dict[str, Any], breaks: Sequence[Break]) -> TimeEntry:
    gps = None
    if r.get("gps_latitude") is not None and r.get("gps_longitude") is not None:
        accuracy = r.get("gps_accuracy")
        gps = GpsLocation(
            latitude=float(r["gps_latitude"]),
            longitude=float(r["gps_longitude"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )
    scheduled = r.get("scheduled_hours")
    return TimeEntry(
        entry_id=int(r["entry_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        clock_in=from_db_datetime(r.get("clock_in")),
        clock_out=from_db_datetime(r.get("clock_out")),
        status=ClockStatus(r["status"]),
        breaks=tuple(breaks),
        location=r.get("location") or "",
        work_type=r.get("work_type") or "",
        gps_location=gps,
        attendance_status=Punctuality(r["attendance_status"]) if r.get("attendance_status") else None,
        shift_assignment_id=r.get("shift_assignment_id"),
        scheduled_hours=float(scheduled) if scheduled is not None else None,
        notes=r.get("notes") or "",
        is_manual_entry=bool(r.get("is_manual_entry")),
        created_by=r.get("created_by"),
        version=int(r.get("version") or 0),
    )


class MySQLTimeEntryRepository(TimeEntryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _load_breaks(self, cur, entry_ids: Sequence[int]) -> dict[int, list[Break]]:
        out: dict[int, list[Break]] = {int(i): [] for i in entry_ids}
        if not entry_ids:
            return out

        placeholders = ",".join(["%s"] * len(entry_ids))
        cur.execute(
            f"""
            SELECT entry_id, start_time, end_time, duration_minutes, break_type
            FROM time_entry_breaks
            WHERE entry_id IN ({placeholders})
            ORDER BY entry_id, start_time
            """,
            tuple(int(i) for i in entry_ids),
        )
        for r in fetchall(cur):
            out[int(r["entry_id"])].append(_to_break(r))
        return out

    def _write_breaks(self, cur, entry_id: int, breaks: Sequence[Break]) -> None:
        cur.execute("DELETE FROM time_entry_breaks WHERE entry_id=%s", (entry_id,))
        for b in breaks:
            cur.execute(
                """
                INSERT INTO time_entry_breaks(entry_id, start_time, end_time, duration_minutes, break_type)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (
                    entry_id,
                    to_db_datetime(b.start_time),
                    to_db_datetime(b.end_time),
                    b.duration_minutes,
                    b.break_type.value,
                ),
            )

    def _fetch_one(self, cur, where: str, params: tuple) -> Optional[TimeEntry]:
        cur.execute(f"SELECT {_ENTRY_COLUMNS} FROM time_entries WHERE {where}", params)
        r = fetchone(cur)
        if not r:
            return None
        breaks = self._load_breaks(cur, [int(r["entry_id"])])
        return _to_entry(r, breaks[int(r["entry_id"])])

    def find_entry(self, employee_id: int, work_date: date) -> Optional[TimeEntry]:
        with store_errors("find_entry"), db_cursor(self._conn_factory) as (_, cur):
            return self._fetch_one(cur, "employee_id=%s AND work_date=%s", (employee_id, work_date))

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        with store_errors("get_entry"), db_cursor(self._conn_factory) as (_, cur):
            return self._fetch_one(cur, "entry_id=%s", (int(entry_id),))

    def create_entry(self, entry: TimeEntry) -> TimeEntry:
        with store_errors("create_entry"):
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        """
                        INSERT INTO time_entries(
                            employee_id, work_date, clock_in, clock_out, status,
                            location, work_type, gps_latitude, gps_longitude, gps_accuracy,
                            attendance_status, shift_assignment_id, scheduled_hours, notes,
                            is_manual_entry, created_by, version
                        )
                        VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,0)
                        """,
                        (entry.employee_id, entry.work_date) + _entry_params(entry),
                    )
                    entry_id = int(cur.lastrowid)
                    self._write_breaks(cur, entry_id, entry.breaks)
            except mysql.connector.IntegrityError as exc:
                logger.warning(
                    "duplicate time entry employee_id=%s work_date=%s", entry.employee_id, entry.work_date
                )
                raise ConcurrentUpdate("A time entry for this employee and date already exists") from exc

        return replace(entry, entry_id=entry_id, version=0)

    def update_entry(self, entry_id: int, entry: TimeEntry, *, expected_version: int) -> TimeEntry:
        with store_errors("update_entry"):
            try:
                with db_cursor(self._conn_factory) as (_, cur):
                    cur.execute(
                        """
                        UPDATE time_entries
                        SET work_date=%s, clock_in=%s, clock_out=%s, status=%s,
                            location=%s, work_type=%s, gps_latitude=%s, gps_longitude=%s, gps_accuracy=%s,
                            attendance_status=%s, shift_assignment_id=%s, scheduled_hours=%s, notes=%s,
                            is_manual_entry=%s, created_by=%s, version=version+1
                        WHERE entry_id=%s AND version=%s
                        """,
                        (entry.work_date,) + _entry_params(entry) + (int(entry_id), int(expected_version)),
                    )
                    if cur.rowcount == 0:
                        cur.execute("SELECT version FROM time_entries WHERE entry_id=%s", (int(entry_id),))
                        if not fetchone(cur):
                            raise NotFound("Time entry not found")
                        raise ConcurrentUpdate("Time entry was changed by another action")

                    self._write_breaks(cur, int(entry_id), entry.breaks)
            except mysql.connector.IntegrityError as exc:
                raise ConcurrentUpdate("A time entry for this employee and date already exists") from exc

        return replace(entry, entry_id=int(entry_id), version=int(expected_version) + 1)

    def delete_entry(self, entry_id: int) -> None:
        with store_errors("delete_entry"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM time_entries WHERE entry_id=%s", (int(entry_id),))
            if cur.rowcount == 0:
                raise NotFound("Time entry not found")

    def list_entries(
        self,
        employee_id: Optional[int],
        start_date: date,
        end_date: date,
    ) -> Sequence[TimeEntry]:
        clauses = ["work_date BETWEEN %s AND %s"]
        params: list[object] = [start_date, end_date]
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        where = " AND ".join(clauses)

        with store_errors("list_entries"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_ENTRY_COLUMNS}
                FROM time_entries
                WHERE {where}
                ORDER BY work_date DESC, clock_in DESC
                """,
                tuple(params),
            )
            rows = fetchall(cur)
            breaks = self._load_breaks(cur, [int(r["entry_id"]) for r in rows])
            return [_to_entry(r, breaks[int(r["entry_id"])]) for r in rows]
