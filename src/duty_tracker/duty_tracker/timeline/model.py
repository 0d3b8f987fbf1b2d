from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from ..core.enums import BreakSource, SegmentKind
from ..duty.model import DutyWindow


@dataclass(frozen=True)
class TimelineSegment:
    start: datetime
    end: datetime
    kind: SegmentKind
    ref_id: int
    break_source: Optional[BreakSource] = None

    @property
    def seconds(self) -> int:
        return max(0, int((self.end - self.start).total_seconds()))


@dataclass(frozen=True)
class TimelineTotals:
    duty_seconds: int = 0
    work_seconds: int = 0
    break_seconds: int = 0
    idle_seconds: int = 0
    manual_seconds: int = 0
    manual_on_duty_seconds: int = 0

    @property
    def utilization_percent(self) -> float:
        """Share of duty time spent on task work or logged manual work, one decimal."""
        if self.duty_seconds <= 0:
            return 0.0
        return round((self.work_seconds + self.manual_on_duty_seconds) * 100.0 / self.duty_seconds, 1)


@dataclass(frozen=True)
class DailyTimeline:
    user_id: int
    duty_date: str
    windows: List[DutyWindow] = field(default_factory=list)
    segments: List[TimelineSegment] = field(default_factory=list)
    totals: TimelineTotals = field(default_factory=TimelineTotals)
