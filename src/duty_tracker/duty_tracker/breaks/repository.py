from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import BreakReason, EndedBy
from .model import AttendanceBreak, TaskBreak


class BreakRepository(Protocol):
    """Storage contract for task breaks.

    `create` must refuse a second open break on the same task
    (BreakAlreadyOpen), even under concurrent requests.
    """

    def get_open_for_task(self, task_id: int, user_id: Optional[int] = None) -> Optional[TaskBreak]:
        raise NotImplementedError

    def list_for_task_between(self, task_id: int, start: datetime, end: datetime) -> Sequence[TaskBreak]:
        """Breaks with started_at < end AND (ended_at IS NULL OR ended_at > start)."""

        raise NotImplementedError

    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TaskBreak]:
        raise NotImplementedError

    def create(
        self,
        *,
        task_id: int,
        user_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        note: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def close(self, *, break_id: int, ended_at: datetime, duration_seconds: int, ended_by: EndedBy) -> bool:
        raise NotImplementedError

    def delete(self, break_id: int) -> bool:
        raise NotImplementedError


class AttendanceBreakRepository(Protocol):
    def get_by_id(self, break_id: int) -> Optional[AttendanceBreak]:
        raise NotImplementedError

    def list_for_attendance(self, attendance_id: int) -> Sequence[AttendanceBreak]:
        raise NotImplementedError

    def list_for_user_and_date(self, user_id: int, duty_date: str) -> Sequence[AttendanceBreak]:
        raise NotImplementedError

    def create(
        self,
        *,
        attendance_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        ended_at: datetime,
        duration_minutes: int,
        note: Optional[str],
        created_by: int,
    ) -> int:
        raise NotImplementedError

    def update(
        self,
        *,
        break_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        ended_at: datetime,
        duration_minutes: int,
        note: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def delete(self, break_id: int) -> bool:
        raise NotImplementedError
