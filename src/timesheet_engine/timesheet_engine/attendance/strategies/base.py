from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...core.enums import Punctuality
from ...shifts.model import Shift


@dataclass(frozen=True)
class StatusDecision:
    status: Punctuality
    note: Optional[str] = None


class PunctualityStrategy(ABC):
    """Strategy Pattern: encapsulate how a clock-in/out is judged against the shift."""

    @abstractmethod
    def decide_clock_in(self, *, now: datetime, shift: Optional[Shift]) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_clock_out(self, *, now: datetime, shift: Optional[Shift], current: Optional[Punctuality]) -> StatusDecision:
        raise NotImplementedError
