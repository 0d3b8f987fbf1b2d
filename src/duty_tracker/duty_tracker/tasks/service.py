from __future__ import annotations

import logging
from datetime import datetime

from ..attendance.service import AttendanceService
from ..common.access import Actor
from ..core.enums import EndedBy
from ..core.exceptions import (
    AuthorizationError,
    InvalidTaskStatus,
    NoActiveWorkSession,
    NotFoundError,
    WorkSessionAlreadyRunning,
)
from .model import Task, TaskWorkSession
from .repository import TaskRepository, WorkSessionRepository
from .session_closer import WorkSessionCloser

logger = logging.getLogger(__name__)


class WorkSessionService:
    """Use case: start and stop work on a task.

    Starting work is the user's first duty action of the day when they have
    not clocked in, so it opens today's attendance as a side effect.
    """

    def __init__(
        self,
        tasks: TaskRepository,
        sessions: WorkSessionRepository,
        *,
        closer: WorkSessionCloser,
        attendance: AttendanceService,
    ):
        self._tasks = tasks
        self._sessions = sessions
        self._closer = closer
        self._attendance = attendance

    def _owned_task(self, actor: Actor, task_id: int) -> Task:
        task = self._tasks.get_by_id(int(task_id))
        if not task:
            raise NotFoundError("Task not found.")
        if task.owner_id != actor.user_id:
            raise AuthorizationError("You do not have permission to work on this task.")
        return task

    def start_session(self, actor: Actor, task_id: int, *, now: datetime) -> TaskWorkSession:
        task = self._owned_task(actor, task_id)
        if not task.status.is_active_work:
            raise InvalidTaskStatus("Move the task to an active status before starting work.")

        self._attendance.ensure_on_duty(actor.user_id, now)

        running = self._sessions.get_open_for_user(actor.user_id)
        if running:
            raise WorkSessionAlreadyRunning(f"A work session is already running on task {running.task_id}.")

        session_id = self._sessions.create(task_id=task.task_id, user_id=actor.user_id, started_at=now)
        self._tasks.set_last_started_at(task_id=task.task_id, last_started_at=now)
        logger.info("work session %s started on task %s by user %s", session_id, task.task_id, actor.user_id)

        return TaskWorkSession(session_id=session_id, task_id=task.task_id, user_id=actor.user_id, started_at=now)

    def stop_session(self, actor: Actor, task_id: int, *, now: datetime) -> TaskWorkSession:
        task = self._owned_task(actor, task_id)
        session = self._sessions.get_open_for_task(task.task_id, actor.user_id)
        if not session:
            raise NoActiveWorkSession("No active work session found for this task.")
        return self._closer.end_session(session, now, ended_by=EndedBy.USER)
