from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional

from ...shifts.model import Shift


class ExpectedHoursPolicy(ABC):
    """Policy interface (Strategy Pattern for scheduled hours of a day)."""

    @abstractmethod
    def expected_hours(self, *, work_date: date, shift: Optional[Shift]) -> float:
        raise NotImplementedError
