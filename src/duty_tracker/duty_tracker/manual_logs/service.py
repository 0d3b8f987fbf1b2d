from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from functools import partial
from typing import List, Optional, Tuple

from ..common.access import Actor, ensure_can_view_user
from ..common.datetime_utils import elapsed_seconds
from ..common.duty_calendar import DutyCalendar
from ..common.validators import require_non_empty
from ..core.enums import ManualLogCategory
from ..core.exceptions import NotFoundError, ValidationError
from .conflicts import ManualLogConflictDetector, check_write
from .model import ManualActivityLog
from .repository import ManualLogRepository

logger = logging.getLogger(__name__)


def normalize_categories(value) -> Tuple[ManualLogCategory, ...]:
    """Upper-case, de-duplicate and validate category tags; all must be known."""
    if isinstance(value, (str, ManualLogCategory)):
        value = [value]
    if not value:
        value = []

    categories: List[ManualLogCategory] = []
    for entry in value:
        text = str(getattr(entry, "value", entry) or "").strip().upper()
        if not text:
            continue
        try:
            category = ManualLogCategory(text)
        except ValueError:
            categories = []
            break
        if category not in categories:
            categories.append(category)

    if not categories:
        allowed = ", ".join(c.value.lower() for c in ManualLogCategory)
        raise ValidationError(f"Categories must include at least one of: {allowed}.")
    return tuple(categories)


class ManualLogService:
    """Use cases around manual activity logs.

    Wall-clock inputs are interpreted on the log's duty date in the
    reference time zone.
    """

    def __init__(self, logs: ManualLogRepository, detector: ManualLogConflictDetector, calendar: DutyCalendar):
        self._logs = logs
        self._detector = detector
        self._calendar = calendar

    def _owned_log(self, actor: Actor, log_id: int) -> ManualActivityLog:
        log = self._logs.get_by_id(int(log_id))
        if not log or log.user_id != actor.user_id:
            raise NotFoundError("Activity log not found.")
        return log

    def _times(self, duty_date: str, start_time, end_time, now: datetime):
        if not start_time:
            raise ValidationError("Start time is required.")
        start_at = self._calendar.combine(duty_date, start_time)
        end_at = self._calendar.combine(duty_date, end_time) if end_time else None

        if duty_date > self._calendar.today(now) or start_at > now or (end_at and end_at > now):
            raise ValidationError("Manual logs cannot be in the future.")
        if end_at is not None and end_at <= start_at:
            raise ValidationError("End time must be after start time.")

        duration = elapsed_seconds(start_at, end_at) if end_at else None
        return start_at, end_at, duration

    def create(
        self,
        actor: Actor,
        *,
        description: str,
        categories,
        start_time,
        end_time=None,
        duty_date: Optional[str] = None,
        now: datetime,
    ) -> ManualActivityLog:
        description = require_non_empty(description, "Description")
        duty_date = duty_date or self._calendar.today(now)
        self._calendar.parse(duty_date)
        self._detector.ensure_date_allowed(duty_date, now)
        normalized = normalize_categories(categories)
        start_at, end_at, duration = self._times(duty_date, start_time, end_time, now)

        log_id = self._logs.create(
            user_id=actor.user_id,
            description=description,
            duty_date=duty_date,
            categories=normalized,
            start_at=start_at,
            end_at=end_at,
            duration_seconds=duration,
            guard=partial(check_write, start_at=start_at, end_at=end_at),
        )
        logger.info("manual log %s created for user %s on %s", log_id, actor.user_id, duty_date)

        return ManualActivityLog(
            log_id=log_id,
            user_id=actor.user_id,
            description=description,
            duty_date=duty_date,
            categories=normalized,
            start_at=start_at,
            end_at=end_at,
            duration_seconds=duration,
        )

    def update(
        self,
        actor: Actor,
        log_id: int,
        *,
        description: Optional[str] = None,
        categories=None,
        duty_date: Optional[str] = None,
        start_time=None,
        end_time=None,
        now: datetime,
    ) -> ManualActivityLog:
        """Apply a partial update. Changing the date or times needs both times."""
        log = self._owned_log(actor, log_id)
        self._detector.ensure_date_allowed(log.duty_date, now)

        if not any(v is not None for v in (description, categories, duty_date, start_time, end_time)):
            raise ValidationError("No valid updates provided.")

        updated = log
        if description is not None:
            updated = replace(updated, description=require_non_empty(description, "Description"))
        if categories is not None:
            updated = replace(updated, categories=normalize_categories(categories))

        if duty_date or start_time or end_time:
            target_date = duty_date or log.duty_date
            self._calendar.parse(target_date)
            self._detector.ensure_date_allowed(target_date, now)
            if not start_time or not end_time:
                raise ValidationError("Start and end time are required.")
            start_at, end_at, duration = self._times(target_date, start_time, end_time, now)
            updated = replace(
                updated,
                duty_date=target_date,
                start_at=start_at,
                end_at=end_at,
                duration_seconds=duration,
            )

        self._logs.update(
            log_id=log.log_id,
            description=updated.description,
            duty_date=updated.duty_date,
            categories=updated.categories,
            start_at=updated.start_at,
            end_at=updated.end_at,
            duration_seconds=updated.duration_seconds,
            guard=partial(check_write, start_at=updated.start_at, end_at=updated.end_at, exclude_id=log.log_id),
        )
        logger.info("manual log %s updated by user %s", log.log_id, actor.user_id)
        return updated

    def stop(self, actor: Actor, log_id: int, *, now: datetime) -> ManualActivityLog:
        log = self._owned_log(actor, log_id)
        if not log.is_running:
            raise ValidationError("Manual log has already ended.")

        end_at = max(now, log.start_at)
        duration = elapsed_seconds(log.start_at, end_at)
        if not self._logs.close(log_id=log.log_id, end_at=end_at, duration_seconds=duration):
            raise ValidationError("Manual log has already ended.")
        logger.info("manual log %s stopped after %ss", log.log_id, duration)
        return replace(log, end_at=end_at, duration_seconds=duration)

    def delete(self, actor: Actor, log_id: int, *, now: datetime) -> None:
        log = self._owned_log(actor, log_id)
        self._detector.ensure_date_allowed(log.duty_date, now)
        self._logs.delete(log.log_id)
        logger.info("manual log %s deleted by user %s", log.log_id, actor.user_id)

    def list_for_date(
        self,
        viewer: Actor,
        duty_date: str,
        user_id: Optional[int] = None,
    ) -> List[ManualActivityLog]:
        target = int(user_id) if user_id is not None else viewer.user_id
        ensure_can_view_user(viewer, target)
        self._calendar.parse(duty_date)
        logs = self._logs.list_for_user_and_date(target, duty_date)
        return sorted(logs, key=lambda log: log.start_at)
