"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TIMEZONE = "Europe/London"
DEFAULT_EXPECTED_HOURS = 8.0
DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_POLL_INTERVAL_SECONDS = 15

DEFAULT_LOCATION = "Work From Office"
DEFAULT_WORK_TYPE = "Regular"

# Admin "add break" defaults (local wall-clock)
DEFAULT_BREAK_START = "12:00"
DEFAULT_BREAK_END = "12:30"

# Timeline axis: 09:00 -> 21:00
TIMELINE_START_MINUTES = 9 * 60
TIMELINE_END_MINUTES = 21 * 60
TIMELINE_LABEL_MIN_WIDTH = 6.0

SEGMENT_COLORS = {
    "clock_in": "#10b981",
    "working": "#007bff",
    "break": "#4ade80",
    "late": "#ff6b35",
    "overtime": "#f97316",
}

SHIFT_STATUS_SCHEDULED = "scheduled"

# Most recent entries returned to an employee
USER_ENTRIES_LIMIT = 50
