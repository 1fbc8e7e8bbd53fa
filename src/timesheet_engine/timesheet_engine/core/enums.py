from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Caller role, used for admin-only clock actions."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class ClockStatus(str, Enum):
    """Daily clock status of one employee."""

    NOT_CLOCKED_IN = "not_clocked_in"
    CLOCKED_IN = "clocked_in"
    ON_BREAK = "on_break"
    CLOCKED_OUT = "clocked_out"


class BreakType(str, Enum):
    LUNCH = "lunch"
    COFFEE = "coffee"
    OTHER = "other"


class Punctuality(str, Enum):
    """Clock-in/out judged against the scheduled shift."""

    ON_TIME = "On Time"
    LATE = "Late"
    EARLY = "Early"
    UNSCHEDULED = "Unscheduled"
    OVERTIME = "Overtime"


class DayClassification(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    WEEKEND = "WeekEnd"


class SegmentType(str, Enum):
    CLOCK_IN = "clock_in"
    WORKING = "working"
    BREAK = "break"
    LATE = "late"
    OVERTIME = "overtime"
