from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

import pytz

from ..attendance.model import Break, TimeEntry
from ..common.datetime_utils import format_time, local_date, local_instant, minutes_since_midnight
from ..core.constants import (
    DEFAULT_TIMEZONE,
    SEGMENT_COLORS,
    TIMELINE_END_MINUTES,
    TIMELINE_LABEL_MIN_WIDTH,
    TIMELINE_START_MINUTES,
)
from ..core.enums import SegmentType
from ..shifts.model import Shift

_LABELS = {
    SegmentType.CLOCK_IN: "Clock in",
    SegmentType.WORKING: "Working time",
    SegmentType.BREAK: "Break",
    SegmentType.LATE: "Late",
    SegmentType.OVERTIME: "Overtime",
}


@dataclass(frozen=True)
class TimelineSegment:
    type: SegmentType
    left: float
    width: float
    color: str
    label: str
    start: str
    end: str
    tooltip: str

    def as_dict(self) -> dict:
        return {
            "type": self.type.value,
            "left": self.left,
            "width": self.width,
            "color": self.color,
            "label": self.label,
            "start": self.start,
            "end": self.end,
            "tooltip": self.tooltip,
        }


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


class TimelineSegmentCalculator:
    """Lays a day's attendance onto the fixed 09:00-21:00 axis.

    Pure: (clock_in, clock_out, breaks, now) -> ordered segments. Positions
    are percentages of the axis, clamped to [0, 100].
    """

    def __init__(
        self,
        tz: Optional[pytz.BaseTzInfo] = None,
        *,
        start_minutes: int = TIMELINE_START_MINUTES,
        end_minutes: int = TIMELINE_END_MINUTES,
        label_min_width: float = TIMELINE_LABEL_MIN_WIDTH,
    ):
        self.tz = tz or pytz.timezone(DEFAULT_TIMEZONE)
        self._start = start_minutes
        self._span = end_minutes - start_minutes
        self._label_min_width = label_min_width

    def position(self, instant: datetime) -> float:
        minutes = minutes_since_midnight(instant, self.tz)
        return _clamp(round((minutes - self._start) / self._span * 100, 4))

    def _segment(self, kind: SegmentType, start: datetime, end: datetime) -> TimelineSegment:
        left = self.position(start)
        width = round(max(0.0, self.position(end) - left), 4)
        text = _LABELS[kind]
        start_s = format_time(start, self.tz)
        end_s = format_time(end, self.tz)
        tooltip = f"{text}: {start_s}" if kind == SegmentType.CLOCK_IN else f"{text}: {start_s} - {end_s}"
        return TimelineSegment(
            type=kind,
            left=left,
            width=width,
            color=SEGMENT_COLORS[kind.value],
            label=text if width > self._label_min_width else "",
            start=start_s,
            end=end_s,
            tooltip=tooltip,
        )

    def segments(
        self,
        clock_in: Optional[datetime],
        clock_out: Optional[datetime],
        breaks: Iterable[Break],
        now: datetime,
        *,
        shift: Optional[Shift] = None,
    ) -> list[TimelineSegment]:
        if clock_in is None:
            return []

        end = clock_out or now
        out = [self._segment(SegmentType.CLOCK_IN, clock_in, clock_in)]

        shift_start = shift_end = None
        if shift is not None:
            work_date = local_date(clock_in, self.tz)
            shift_start = local_instant(work_date, shift.start_time, self.tz)
            shift_end = shift_start + timedelta(minutes=shift.span_minutes())
            if clock_in > shift_start:
                out.append(self._segment(SegmentType.LATE, shift_start, clock_in))

        cursor = clock_in
        for b in sorted(breaks, key=lambda item: item.start_time):
            b_end = b.end_time or end
            if cursor < b.start_time:
                out.append(self._segment(SegmentType.WORKING, cursor, b.start_time))
            out.append(self._segment(SegmentType.BREAK, b.start_time, b_end))
            cursor = max(cursor, b_end)

        if cursor < end:
            if shift_end is not None and end > shift_end:
                if cursor < shift_end:
                    out.append(self._segment(SegmentType.WORKING, cursor, shift_end))
                out.append(self._segment(SegmentType.OVERTIME, max(cursor, shift_end), end))
            else:
                out.append(self._segment(SegmentType.WORKING, cursor, end))

        return out

    def for_entry(
        self,
        entry: Optional[TimeEntry],
        now: datetime,
        *,
        shift: Optional[Shift] = None,
    ) -> list[TimelineSegment]:
        if entry is None:
            return []
        return self.segments(entry.clock_in, entry.clock_out, entry.breaks, now, shift=shift)
