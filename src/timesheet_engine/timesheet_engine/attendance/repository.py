from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import TimeEntry


class TimeEntryRepository(Protocol):
    """Durable storage of time entries keyed by (employee_id, work_date).

    Implementations raise NotFound, ConcurrentUpdate or StoreUnavailable
    from core.exceptions; they never return partial writes.
    """

    def find_entry(self, employee_id: int, work_date: date) -> Optional[TimeEntry]:
        raise NotImplementedError

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        raise NotImplementedError

    def create_entry(self, entry: TimeEntry) -> TimeEntry:
        """Insert a new entry (entry_id ignored). Duplicate (employee, date) -> ConcurrentUpdate."""

        raise NotImplementedError

    def update_entry(self, entry_id: int, entry: TimeEntry, *, expected_version: int) -> TimeEntry:
        """Replace the stored fields if the stored version still equals expected_version."""

        raise NotImplementedError

    def delete_entry(self, entry_id: int) -> None:
        raise NotImplementedError

    def list_entries(
        self,
        employee_id: Optional[int],
        start_date: date,
        end_date: date,
    ) -> Sequence[TimeEntry]:
        raise NotImplementedError
