from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..attendance.auto_off import AutoOffNormalizer
from ..breaks.model import TaskBreak
from ..breaks.repository import BreakRepository
from ..common.access import Actor
from ..common.duty_calendar import DutyCalendar
from ..duty.model import DutyWindow
from ..duty.service import DutyWindowResolver, find_window_for
from .model import Task, TaskWorkSession
from .repository import TaskRepository, WorkSessionRepository


@dataclass(frozen=True)
class ActiveSessionView:
    """What a client needs to render a live task timer.

    The client shows accumulated_seconds plus (server_now - running_started_at)
    while running_started_at is set.
    """

    session: TaskWorkSession
    task: Task
    active_break: Optional[TaskBreak]
    accumulated_seconds: int
    running_started_at: Optional[datetime]
    server_now: datetime
    duty_window: Optional[DutyWindow] = None

    @property
    def is_paused(self) -> bool:
        return self.active_break is not None


class ActiveSessionTracker:
    def __init__(
        self,
        tasks: TaskRepository,
        sessions: WorkSessionRepository,
        breaks: BreakRepository,
        *,
        auto_off: AutoOffNormalizer,
        windows: DutyWindowResolver,
        calendar: DutyCalendar,
    ):
        self._tasks = tasks
        self._sessions = sessions
        self._breaks = breaks
        self._auto_off = auto_off
        self._windows = windows
        self._calendar = calendar

    def _accumulated_seconds(self, task: Task) -> int:
        if task.total_time_spent is not None:
            return max(0, int(task.total_time_spent))
        return sum(s.duration_seconds or 0 for s in self._sessions.list_closed_for_task(task.task_id))

    def active_session(self, actor: Actor, now: datetime) -> Optional[ActiveSessionView]:
        self._auto_off.normalize_for_user(actor.user_id, now)

        session = self._sessions.get_open_for_user(actor.user_id)
        if session is None:
            return None
        task = self._tasks.get_by_id(session.task_id)
        if task is None:
            return None

        active_break = self._breaks.get_open_for_task(task.task_id, actor.user_id)
        running_started_at = None
        if active_break is None:
            running_started_at = max(task.last_started_at or session.started_at, session.started_at)

        duty_window = None
        for duty_date in (self._calendar.today(now), self._calendar.duty_date_of(session.started_at)):
            duty_window = find_window_for(self._windows.resolve(actor.user_id, duty_date, now), now, inclusive_end=True)
            if duty_window:
                break

        return ActiveSessionView(
            session=session,
            task=task,
            active_break=active_break,
            accumulated_seconds=self._accumulated_seconds(task),
            running_started_at=running_started_at,
            server_now=now,
            duty_window=duty_window,
        )
