from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, Optional, Tuple

from ..common.access import Actor
from ..common.datetime_utils import elapsed_seconds
from ..common.validators import optional_text
from ..core.enums import BreakReason, EndedBy
from ..core.exceptions import (
    AuthorizationError,
    BreakAlreadyOpen,
    InvalidTaskStatus,
    NoActiveBreak,
    NoActiveWorkSession,
    NotFoundError,
    ValidationError,
)
from ..tasks.repository import TaskRepository, WorkSessionRepository
from .model import TaskBreak
from .repository import BreakRepository

logger = logging.getLogger(__name__)

_LEGACY_REASONS = {"MEAL": BreakReason.DINNER}


def _coerce_reason(value) -> Optional[BreakReason]:
    text = str(value or "").strip().upper()
    if not text:
        return None
    if text in _LEGACY_REASONS:
        return _LEGACY_REASONS[text]
    try:
        return BreakReason(text)
    except ValueError:
        return None


def normalize_break_reasons(value) -> Tuple[BreakReason, ...]:
    """Coerce input to a de-duplicated tuple of reasons (MEAL becomes DINNER).

    Accepts a single tag or an iterable of tags; unknown tags are dropped.
    Raises ValidationError when nothing valid remains.
    """
    if isinstance(value, (str, BreakReason)) or value is None:
        source = [value] if value else []
    else:
        source = list(value)

    reasons: list[BreakReason] = []
    for entry in source:
        reason = _coerce_reason(entry)
        if reason and reason not in reasons:
            reasons.append(reason)

    if not reasons:
        allowed = ", ".join(r.value for r in BreakReason)
        raise ValidationError(f"Break reason is required ({allowed}).")
    return tuple(reasons)


def break_seconds_within(breaks: Iterable[TaskBreak], start: datetime, end: datetime, *, now: Optional[datetime] = None) -> int:
    """Seconds of the given breaks that fall inside [start, end).

    Open breaks run until `now` (or `end` when now is not given).
    """
    total = 0
    for brk in breaks:
        brk_end = brk.ended_at or now or end
        lo = max(brk.started_at, start)
        hi = min(brk_end, end)
        if hi > lo:
            total += elapsed_seconds(lo, hi)
    return total


class BreakLedger:
    """Use case: pause and resume a task's work clock."""

    def __init__(self, breaks: BreakRepository, tasks: TaskRepository, sessions: WorkSessionRepository):
        self._breaks = breaks
        self._tasks = tasks
        self._sessions = sessions

    def _owned_task(self, actor: Actor, task_id: int):
        task = self._tasks.get_by_id(int(task_id))
        if not task:
            raise NotFoundError("Task not found.")
        if task.owner_id != actor.user_id:
            raise AuthorizationError("You do not have permission to manage breaks.")
        return task

    def start_break(
        self,
        actor: Actor,
        task_id: int,
        reasons,
        note: Optional[str] = None,
        *,
        now: datetime,
    ) -> TaskBreak:
        task = self._owned_task(actor, task_id)
        if not task.status.is_active_work:
            raise InvalidTaskStatus("Breaks are only allowed during active work.")

        normalized = normalize_break_reasons(reasons)

        if self._breaks.get_open_for_task(task.task_id):
            raise BreakAlreadyOpen("A break is already in progress for this task.")

        session = self._sessions.get_open_for_task(task.task_id, actor.user_id)
        if not session:
            raise NoActiveWorkSession("No active work session found for this task.")

        break_id = self._breaks.create(
            task_id=task.task_id,
            user_id=actor.user_id,
            reasons=normalized,
            started_at=now,
            note=optional_text(note),
        )

        running_since = max(task.last_started_at or session.started_at, session.started_at)
        try:
            self._tasks.record_time_spent(
                task_id=task.task_id,
                add_seconds=elapsed_seconds(running_since, now),
                last_started_at=None,
            )
        except Exception:
            # Without the flush the clock is still running; drop the break.
            self._breaks.delete(break_id)
            logger.warning("break %s on task %s rolled back: counter flush failed", break_id, task.task_id)
            raise
        logger.info("break %s started on task %s by user %s", break_id, task.task_id, actor.user_id)

        return TaskBreak(
            break_id=break_id,
            task_id=task.task_id,
            user_id=actor.user_id,
            reasons=normalized,
            started_at=now,
            note=optional_text(note),
        )

    def end_break(self, actor: Actor, task_id: int, *, now: datetime) -> TaskBreak:
        task = self._owned_task(actor, task_id)

        active = self._breaks.get_open_for_task(task.task_id)
        if not active:
            raise NoActiveBreak("No active break found for this task.")

        duration = elapsed_seconds(active.started_at, now)
        if not self._breaks.close(
            break_id=active.break_id,
            ended_at=now,
            duration_seconds=duration,
            ended_by=EndedBy.USER,
        ):
            raise NoActiveBreak("The break was already ended.")

        if self._sessions.get_open_for_task(task.task_id, actor.user_id):
            self._tasks.set_last_started_at(task_id=task.task_id, last_started_at=now)
        logger.info("break %s ended on task %s after %ss", active.break_id, task.task_id, duration)

        return replace(active, ended_at=now, duration_seconds=duration, ended_by=EndedBy.USER)
