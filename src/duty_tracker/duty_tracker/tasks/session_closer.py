from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import List

from ..breaks.repository import BreakRepository
from ..breaks.service import break_seconds_within
from ..common.datetime_utils import elapsed_seconds
from ..core.enums import EndedBy
from .model import TaskWorkSession
from .repository import TaskRepository, WorkSessionRepository

logger = logging.getLogger(__name__)


class WorkSessionCloser:
    """Ends a work session and keeps the task counter and breaks consistent.

    Shared by the user-facing stop action, clock-out and auto-off, so all
    three leave the same trail behind.
    """

    def __init__(self, tasks: TaskRepository, sessions: WorkSessionRepository, breaks: BreakRepository):
        self._tasks = tasks
        self._sessions = sessions
        self._breaks = breaks

    def end_session(self, session: TaskWorkSession, ended_at: datetime, *, ended_by: EndedBy) -> TaskWorkSession:
        ended_at = max(ended_at, session.started_at)

        open_break = self._breaks.get_open_for_task(session.task_id, session.user_id)
        if open_break is None:
            task = self._tasks.get_by_id(session.task_id)
            # last_started_at is None once the running stretch has been flushed.
            if task is not None and task.last_started_at is not None:
                running_since = max(task.last_started_at, session.started_at)
                self._tasks.record_time_spent(
                    task_id=task.task_id,
                    add_seconds=elapsed_seconds(running_since, ended_at),
                    last_started_at=None,
                )
        else:
            closed_at = max(ended_at, open_break.started_at)
            self._breaks.close(
                break_id=open_break.break_id,
                ended_at=closed_at,
                duration_seconds=elapsed_seconds(open_break.started_at, closed_at),
                ended_by=ended_by,
            )
            self._tasks.set_last_started_at(task_id=session.task_id, last_started_at=None)

        breaks = self._breaks.list_for_task_between(session.task_id, session.started_at, ended_at)
        paused = break_seconds_within(
            [b for b in breaks if b.user_id == session.user_id], session.started_at, ended_at, now=ended_at
        )
        duration = max(0, elapsed_seconds(session.started_at, ended_at) - paused)

        closed = self._sessions.close(
            session_id=session.session_id,
            ended_at=ended_at,
            duration_seconds=duration,
            ended_by=ended_by,
        )
        if closed:
            logger.info(
                "work session %s on task %s ended by %s after %ss",
                session.session_id,
                session.task_id,
                ended_by.value,
                duration,
            )
        return replace(session, ended_at=ended_at, duration_seconds=duration, ended_by=ended_by)

    def end_sessions_started_before(self, user_id: int, before: datetime, *, ended_by: EndedBy) -> List[TaskWorkSession]:
        """Close every running session of the user that began before `before`, at `before`."""
        return [
            self.end_session(session, before, ended_by=ended_by)
            for session in self._sessions.list_open_started_before(user_id, before)
        ]
