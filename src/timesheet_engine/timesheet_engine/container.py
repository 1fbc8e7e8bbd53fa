from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import PunctualityStrategyFactory
from .attendance.mysql_time_entry_repository import MySQLTimeEntryRepository
from .attendance.repository import TimeEntryRepository
from .attendance.service import ClockService
from .common.datetime_utils import Clock, SystemClock
from .common.validators import require_expected_hours
from .core.constants import (
    DEFAULT_EXPECTED_HOURS,
    DEFAULT_LATE_GRACE_MINUTES,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_TIMEZONE,
)
from .core.exceptions import ValidationError
from .database.connection import DBConfig, DatabaseConnection
from .shifts.mysql_shift_repository import MySQLShiftRepository
from .shifts.repository import ShiftRepository
from .timesheet.policy.base import ExpectedHoursPolicy
from .timesheet.policy.fixed_policy import FixedExpectedHours
from .timesheet.policy.shift_policy import ShiftExpectedHours
from .timesheet.report_service import TimesheetReportService


@dataclass(frozen=True)
class Container:
    entries_repo: TimeEntryRepository
    shifts_repo: Optional[ShiftRepository]
    clock: Clock

    clock_service: ClockService
    report_service: TimesheetReportService

    conn: Optional[DatabaseConnection] = None


def build_policy(name: str, hours: float) -> ExpectedHoursPolicy:
    fixed = FixedExpectedHours(require_expected_hours(hours))
    name = (name or "fixed").lower()
    if name == "fixed":
        return fixed
    if name == "shift":
        return ShiftExpectedHours(fallback=fixed)
    raise ValidationError(f"Unknown expected hours policy: {name}")


def build_services(
    *,
    entries_repo: TimeEntryRepository,
    shifts_repo: Optional[ShiftRepository],
    clock: Clock,
    policy: Optional[ExpectedHoursPolicy] = None,
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
    conn: Optional[DatabaseConnection] = None,
) -> Container:
    policy = policy or FixedExpectedHours()
    clock_service = ClockService(
        entries_repo,
        shifts_repo,
        clock=clock,
        policy=policy,
        strategy_factory=PunctualityStrategyFactory(grace_minutes=grace_minutes, tz=clock.tz),
        poll_interval_seconds=poll_interval_seconds,
    )
    report_service = TimesheetReportService(entries_repo, clock=clock, policy=policy)

    return Container(
        entries_repo=entries_repo,
        shifts_repo=shifts_repo,
        clock=clock,
        clock_service=clock_service,
        report_service=report_service,
        conn=conn,
    )


def build_container(
    *,
    db_config: dict,
    timezone: str = DEFAULT_TIMEZONE,
    expected_hours: float = DEFAULT_EXPECTED_HOURS,
    expected_hours_policy: str = "fixed",
    grace_minutes: int = DEFAULT_LATE_GRACE_MINUTES,
    poll_interval_seconds: int = DEFAULT_POLL_INTERVAL_SECONDS,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_settings(db_config))

    return build_services(
        entries_repo=MySQLTimeEntryRepository(conn),
        shifts_repo=MySQLShiftRepository(conn),
        clock=SystemClock(timezone),
        policy=build_policy(expected_hours_policy, expected_hours),
        grace_minutes=grace_minutes,
        poll_interval_seconds=poll_interval_seconds,
        conn=conn,
    )
