from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.constants import SHIFT_STATUS_SCHEDULED
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, normalize_mysql_time, store_errors
from .model import Shift, ShiftAssignment
from .repository import ShiftRepository


class MySQLShiftRepository(ShiftRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_assignment(self, *, employee_id: int, work_date: date) -> Optional[ShiftAssignment]:
        with store_errors("get_assignment"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT sa.assignment_id, sa.employee_id, sa.work_date, sa.status, sa.note,
                       s.shift_id, s.shift_name, s.start_time, s.end_time, s.break_minutes
                FROM shift_assignments sa
                JOIN shifts s ON s.shift_id = sa.shift_id
                WHERE sa.employee_id=%s AND sa.work_date=%s
                """,
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            if not r:
                return None
            return ShiftAssignment(
                assignment_id=int(r["assignment_id"]),
                employee_id=int(r["employee_id"]),
                work_date=r["work_date"],
                status=r.get("status") or SHIFT_STATUS_SCHEDULED,
                note=r.get("note"),
                shift=Shift(
                    shift_id=int(r["shift_id"]),
                    shift_name=r["shift_name"],
                    start_time=normalize_mysql_time(r["start_time"]),
                    end_time=normalize_mysql_time(r["end_time"]),
                    break_minutes=int(r.get("break_minutes") or 0),
                ),
            )

    def reset_assignment_status(self, *, assignment_id: int) -> bool:
        with store_errors("reset_assignment_status"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE shift_assignments SET status=%s WHERE assignment_id=%s",
                (SHIFT_STATUS_SCHEDULED, int(assignment_id)),
            )
            return cur.rowcount > 0
