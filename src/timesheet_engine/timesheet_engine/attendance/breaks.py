from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional

from ..common.datetime_utils import minutes_between
from ..core.enums import BreakType
from ..core.exceptions import InvalidInterval, NoActiveSession
from .model import Break


class BreakTracker:
    """Ordered break intervals of one time entry.

    Instances are immutable: start/close/add return a new tracker. Breaks are
    kept in chronological start order and at most one may be open.
    """

    def __init__(self, breaks: Iterable[Break] = ()):
        self._breaks = tuple(sorted(breaks, key=lambda b: b.start_time))

    @property
    def breaks(self) -> tuple[Break, ...]:
        return self._breaks

    @property
    def open_break(self) -> Optional[Break]:
        for b in self._breaks:
            if b.is_open:
                return b
        return None

    def has_open_break(self) -> bool:
        return self.open_break is not None

    def start(self, now: datetime, break_type: BreakType = BreakType.OTHER) -> "BreakTracker":
        if self.has_open_break():
            raise NoActiveSession("A break is already in progress")
        return BreakTracker(self._breaks + (Break(start_time=now, break_type=break_type),))

    def close_open(self, now: datetime) -> "BreakTracker":
        current = self.open_break
        if current is None:
            raise NoActiveSession("No break in progress")

        closed = replace(
            current,
            end_time=now,
            duration_minutes=max(0.0, minutes_between(current.start_time, now)),
        )
        return BreakTracker(closed if b is current else b for b in self._breaks)

    def add_closed(
        self,
        start: datetime,
        end: datetime,
        break_type: BreakType = BreakType.OTHER,
    ) -> "BreakTracker":
        if end <= start:
            raise InvalidInterval("Break end must be after break start")

        for b in self._breaks:
            # an open break extends indefinitely
            overlaps = b.start_time < end and (b.end_time is None or start < b.end_time)
            if overlaps:
                raise InvalidInterval("Break overlaps an existing break")

        new = Break(
            start_time=start,
            end_time=end,
            duration_minutes=minutes_between(start, end),
            break_type=break_type,
        )
        return BreakTracker(self._breaks + (new,))

    def clip(self, start: datetime, end: Optional[datetime] = None) -> "BreakTracker":
        """Trim breaks to [start, end]; breaks left with no time inside are dropped."""

        kept = []
        for b in self._breaks:
            b_start = max(b.start_time, start)
            if end is not None and b_start >= end:
                continue
            b_end = b.end_time if b.end_time is None or end is None else min(b.end_time, end)
            if b_end is not None and b_end <= b_start:
                continue
            if (b_start, b_end) == (b.start_time, b.end_time):
                kept.append(b)
                continue
            kept.append(
                replace(
                    b,
                    start_time=b_start,
                    end_time=b_end,
                    duration_minutes=minutes_between(b_start, b_end) if b_end is not None else None,
                )
            )
        return BreakTracker(kept)

    def total_minutes(self, now: Optional[datetime] = None) -> float:
        """Sum of break durations; an open break counts up to now (or 0 without now)."""

        total = 0.0
        for b in self._breaks:
            if b.end_time is not None:
                if b.duration_minutes is not None:
                    total += b.duration_minutes
                else:
                    total += minutes_between(b.start_time, b.end_time)
            elif now is not None:
                total += max(0.0, minutes_between(b.start_time, now))
        return total
