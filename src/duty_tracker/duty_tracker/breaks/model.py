from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import BreakReason, EndedBy


@dataclass(frozen=True)
class TaskBreak:
    """Domain entity: a pause of a task's work clock."""

    break_id: int
    task_id: int
    user_id: int
    reasons: Tuple[BreakReason, ...]
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    note: Optional[str] = None
    ended_by: Optional[EndedBy] = None

    @property
    def is_open(self) -> bool:
        return self.ended_at is None

    @property
    def label(self) -> str:
        return " & ".join(r.value.title() for r in self.reasons) or BreakReason.OTHER.value.title()


@dataclass(frozen=True)
class AttendanceBreak:
    """Domain entity: a fixed-length break logged against an attendance record.

    Unlike a task break it never runs open; it is entered with a start time
    and a length in minutes.
    """

    break_id: int
    attendance_id: int
    reasons: Tuple[BreakReason, ...]
    started_at: datetime
    ended_at: datetime
    duration_minutes: int
    note: Optional[str] = None
    created_by: Optional[int] = None

    @property
    def label(self) -> str:
        return " & ".join(r.value.title() for r in self.reasons) or BreakReason.OTHER.value.title()
