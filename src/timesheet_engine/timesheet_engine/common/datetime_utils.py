from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Optional, Protocol

import pytz

from ..core.constants import DEFAULT_TIMEZONE


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_hhmm(value: str) -> time:
    """Parse HH:MM string into time."""
    return datetime.strptime(value.strip(), "%H:%M").time()


class Clock(Protocol):
    """Source of "now" for every clock action.

    Core operations never call datetime.now() directly; tests inject a
    FixedClock instead.
    """

    tz: pytz.BaseTzInfo

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    def __init__(self, tz_name: str = DEFAULT_TIMEZONE):
        self.tz = pytz.timezone(tz_name)

    def now(self) -> datetime:
        return datetime.now(pytz.utc)


class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, instant: datetime, tz_name: str = DEFAULT_TIMEZONE):
        self.tz = pytz.timezone(tz_name)
        self._instant = to_utc(instant, self.tz)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = to_utc(instant, self.tz)

    def advance(self, **kwargs) -> datetime:
        self._instant = self._instant + timedelta(**kwargs)
        return self._instant


def to_utc(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    """Normalize a datetime to aware UTC.

    Naive values are read as wall-clock time in the configured zone.
    """
    if value.tzinfo is None:
        value = tz.localize(value)
    return value.astimezone(pytz.utc)


def to_local(value: datetime, tz: pytz.BaseTzInfo) -> datetime:
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(tz)


def local_date(value: datetime, tz: pytz.BaseTzInfo) -> date:
    return to_local(value, tz).date()


def local_instant(work_date: date, wall: time, tz: pytz.BaseTzInfo) -> datetime:
    """UTC instant of a wall-clock time on a local calendar date."""
    return tz.localize(datetime.combine(work_date, wall)).astimezone(pytz.utc)


def minutes_since_midnight(value: datetime, tz: pytz.BaseTzInfo) -> float:
    local = to_local(value, tz)
    return local.hour * 60 + local.minute + local.second / 60


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def week_monday(value: date) -> date:
    return value - timedelta(days=value.weekday())


def format_time(value: Optional[datetime], tz: pytz.BaseTzInfo) -> str:
    """HH:MM in the configured zone; 'N/A' when missing."""
    if value is None:
        return "N/A"
    return to_local(value, tz).strftime("%H:%M")


def format_date(value: date) -> str:
    """DD/MM/YYYY (UK style)."""
    return value.strftime("%d/%m/%Y")
