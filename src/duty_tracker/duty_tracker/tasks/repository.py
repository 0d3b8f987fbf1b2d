from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import EndedBy
from .model import Task, TaskWorkSession


class TaskRepository(Protocol):
    def get_by_id(self, task_id: int) -> Optional[Task]:
        raise NotImplementedError

    def record_time_spent(self, *, task_id: int, add_seconds: int, last_started_at: Optional[datetime]) -> bool:
        """Atomically add to total_time_spent and set last_started_at."""

        raise NotImplementedError

    def set_last_started_at(self, *, task_id: int, last_started_at: Optional[datetime]) -> bool:
        raise NotImplementedError


class WorkSessionRepository(Protocol):
    """Storage contract for task work sessions.

    `create` must refuse a second running session for the same user
    (WorkSessionAlreadyRunning), even under concurrent requests.
    """

    def get_open_for_user(self, user_id: int) -> Optional[TaskWorkSession]:
        raise NotImplementedError

    def get_open_for_task(self, task_id: int, user_id: int) -> Optional[TaskWorkSession]:
        raise NotImplementedError

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[TaskWorkSession]:
        raise NotImplementedError

    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TaskWorkSession]:
        """Sessions with started_at < end AND (ended_at IS NULL OR ended_at > start)."""

        raise NotImplementedError

    def list_closed_for_task(self, task_id: int) -> Sequence[TaskWorkSession]:
        raise NotImplementedError

    def create(self, *, task_id: int, user_id: int, started_at: datetime) -> int:
        raise NotImplementedError

    def close(self, *, session_id: int, ended_at: datetime, duration_seconds: int, ended_by: EndedBy) -> bool:
        raise NotImplementedError
