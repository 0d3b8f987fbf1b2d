from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import EndedBy, TaskStatus


@dataclass(frozen=True)
class Task:
    """Domain entity: the slice of a task the time engine needs."""

    task_id: int
    owner_id: int
    title: str
    status: TaskStatus
    estimated_hours: Optional[float] = None
    total_time_spent: Optional[int] = None
    last_started_at: Optional[datetime] = None

    @property
    def estimated_seconds(self) -> int:
        hours = float(self.estimated_hours or 0)
        return max(0, round(hours * 3600))


@dataclass(frozen=True)
class TaskWorkSession:
    """One work stint of a user on a task. ended_at=None means running."""

    session_id: int
    task_id: int
    user_id: int
    started_at: datetime
    ended_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    ended_by: Optional[EndedBy] = None

    @property
    def is_running(self) -> bool:
        return self.ended_at is None
