from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..core.enums import DutySource


@dataclass(frozen=True)
class DutyWindow:
    """Half-open [start, end) stretch when a user is considered on duty."""

    start: datetime
    end: datetime
    source: DutySource
    ref_id: int

    @property
    def seconds(self) -> int:
        return max(0, int((self.end - self.start).total_seconds()))

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end
