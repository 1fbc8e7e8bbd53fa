from __future__ import annotations

from datetime import time

import pytest

from conftest import london

from src.timesheet_engine.timesheet_engine.attendance.model import Break
from src.timesheet_engine.timesheet_engine.core.enums import SegmentType
from src.timesheet_engine.timesheet_engine.shifts.model import Shift
from src.timesheet_engine.timesheet_engine.timesheet.timeline import TimelineSegmentCalculator

LUNCH = Break(
    start_time=london(2024, 1, 15, 12, 0),
    end_time=london(2024, 1, 15, 12, 30),
    duration_minutes=30,
)


def test_standard_day_layout():
    calc = TimelineSegmentCalculator()
    segs = calc.segments(london(2024, 1, 15, 9, 0), london(2024, 1, 15, 17, 0), [LUNCH], london(2024, 1, 15, 18, 0))

    assert [s.type for s in segs] == [SegmentType.CLOCK_IN, SegmentType.WORKING, SegmentType.BREAK, SegmentType.WORKING]

    marker, morning, lunch, afternoon = segs
    assert (marker.left, marker.width, marker.label) == (0.0, 0.0, "")
    assert marker.tooltip == "Clock in: 09:00"
    assert marker.color == "#10b981"

    assert morning.left == 0.0
    assert morning.width == pytest.approx(25.0)
    assert morning.label == "Working time"
    assert morning.color == "#007bff"

    assert lunch.left == pytest.approx(25.0)
    assert lunch.width == pytest.approx(4.1667)
    # too narrow for a label
    assert lunch.label == ""
    assert lunch.color == "#4ade80"
    assert lunch.tooltip == "Break: 12:00 - 12:30"

    assert afternoon.left == pytest.approx(29.1667)
    assert afternoon.width == pytest.approx(37.5)
    assert afternoon.end == "17:00"


def test_segments_are_idempotent():
    calc = TimelineSegmentCalculator()
    args = (london(2024, 1, 15, 9, 0), None, [LUNCH], london(2024, 1, 15, 15, 0))
    assert calc.segments(*args) == calc.segments(*args)


def test_positions_are_clamped_to_axis():
    calc = TimelineSegmentCalculator()
    segs = calc.segments(london(2024, 1, 15, 7, 0), london(2024, 1, 15, 22, 30), [], london(2024, 1, 15, 23, 0))

    working = segs[-1]
    assert working.left == 0.0
    assert working.width == 100.0
    for s in segs:
        assert 0.0 <= s.left <= 100.0
        assert 0.0 <= s.width <= 100.0


def test_open_day_runs_to_now():
    calc = TimelineSegmentCalculator()
    open_break = Break(start_time=london(2024, 1, 15, 12, 0))
    segs = calc.segments(london(2024, 1, 15, 9, 0), None, [open_break], london(2024, 1, 15, 13, 12))

    assert segs[-1].type == SegmentType.BREAK
    assert segs[-1].end == "13:12"
    assert segs[-1].width == pytest.approx(10.0)
    assert segs[-1].label == "Break"


def test_no_clock_in_no_segments():
    assert TimelineSegmentCalculator().segments(None, None, [], london(2024, 1, 15, 12, 0)) == []
    assert TimelineSegmentCalculator().for_entry(None, london(2024, 1, 15, 12, 0)) == []


def test_shift_adds_late_and_overtime_segments():
    shift = Shift(shift_id=1, shift_name="Day", start_time=time(9, 0), end_time=time(17, 0))
    calc = TimelineSegmentCalculator()
    segs = calc.segments(
        london(2024, 1, 15, 9, 30),
        london(2024, 1, 15, 18, 0),
        [],
        london(2024, 1, 15, 18, 0),
        shift=shift,
    )

    assert [s.type for s in segs] == [
        SegmentType.CLOCK_IN,
        SegmentType.LATE,
        SegmentType.WORKING,
        SegmentType.OVERTIME,
    ]
    late, overtime = segs[1], segs[3]
    assert late.left == 0.0
    assert late.width == pytest.approx(4.1667)
    assert late.color == "#ff6b35"
    assert overtime.left == pytest.approx(66.6667)
    assert overtime.width == pytest.approx(8.3333)
    assert overtime.label == "Overtime"


def test_segment_as_dict_uses_plain_values():
    calc = TimelineSegmentCalculator()
    d = calc.segments(london(2024, 1, 15, 9, 0), london(2024, 1, 15, 17, 0), [], london(2024, 1, 15, 17, 0))[1].as_dict()
    assert d["type"] == "working"
    assert d["start"] == "09:00"
    assert d["end"] == "17:00"
