from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from .model import ShiftAssignment


class ShiftRepository(Protocol):
    def get_assignment(self, *, employee_id: int, work_date: date) -> Optional[ShiftAssignment]:
        raise NotImplementedError

    def reset_assignment_status(self, *, assignment_id: int) -> bool:
        """Put the assignment back to "scheduled" after its time entry is deleted."""

        raise NotImplementedError
