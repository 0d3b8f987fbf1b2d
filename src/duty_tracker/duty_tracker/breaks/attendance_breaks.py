from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from ..attendance.auto_off import AutoOffNormalizer
from ..attendance.model import AttendanceRecord
from ..attendance.repository import AttendanceRepository
from ..common.access import Actor, ensure_can_view_user
from ..common.duty_calendar import DutyCalendar
from ..common.validators import optional_text
from ..core.exceptions import AuthorizationError, BreakOutsideDutyWindow, NotFoundError, ValidationError
from .model import AttendanceBreak
from .repository import AttendanceBreakRepository
from .service import normalize_break_reasons

logger = logging.getLogger(__name__)


def _positive_minutes(value) -> int:
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Duration must be a positive number of minutes.")
    if minutes <= 0:
        raise ValidationError("Duration must be a positive number of minutes.")
    return minutes


class AttendanceBreakService:
    """Breaks entered against the attendance record itself rather than a task.

    Management may edit any record. Everyone else may only touch their own
    record while it is open and `now` is inside its duty window.
    """

    def __init__(
        self,
        breaks: AttendanceBreakRepository,
        attendance: AttendanceRepository,
        *,
        calendar: DutyCalendar,
        auto_off: AutoOffNormalizer,
    ):
        self._breaks = breaks
        self._attendance = attendance
        self._calendar = calendar
        self._auto_off = auto_off

    def duty_window(self, record: AttendanceRecord) -> Optional[Tuple[datetime, datetime]]:
        """[in_time, out_time], or up to the auto-off cap while the record is open."""
        end = record.out_time or self._auto_off.closing_time(record)
        if end is None or end <= record.in_time:
            return None
        return record.in_time, end

    def _ensure_can_manage(self, actor: Actor, record: AttendanceRecord, now: datetime, action: str) -> None:
        if actor.role.is_management:
            return
        window = self.duty_window(record)
        allowed = (
            record.user_id == actor.user_id
            and record.is_open
            and window is not None
            and window[0] <= now <= window[1]
        )
        if not allowed:
            raise AuthorizationError(f"You do not have permission to {action} this break.")

    def _record(self, attendance_id: int) -> AttendanceRecord:
        record = self._attendance.get_by_id(int(attendance_id))
        if record is None:
            raise NotFoundError("Attendance record not found.")
        return record

    def _placed(self, record: AttendanceRecord, started_at: datetime, minutes: int) -> datetime:
        ended_at = started_at + timedelta(minutes=minutes)
        window = self.duty_window(record)
        if window is None:
            raise ValidationError("Attendance window is invalid.")
        if started_at < window[0] or ended_at > window[1]:
            raise BreakOutsideDutyWindow("Break must fall within the duty window.")
        return ended_at

    def list_for_attendance(self, viewer: Actor, attendance_id: int) -> List[AttendanceBreak]:
        record = self._record(attendance_id)
        ensure_can_view_user(viewer, record.user_id)
        return list(self._breaks.list_for_attendance(record.attendance_id))

    def add_break(
        self,
        actor: Actor,
        attendance_id: int,
        *,
        reasons,
        start_time,
        duration_minutes,
        note: Optional[str] = None,
        now: datetime,
    ) -> AttendanceBreak:
        record = self._record(attendance_id)
        self._ensure_can_manage(actor, record, now, "add")

        normalized = normalize_break_reasons(reasons)
        minutes = _positive_minutes(duration_minutes)
        if not start_time:
            raise ValidationError("Break start time is required.")
        started_at = self._calendar.combine(record.duty_date, start_time)
        ended_at = self._placed(record, started_at, minutes)

        break_id = self._breaks.create(
            attendance_id=record.attendance_id,
            reasons=normalized,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=minutes,
            note=optional_text(note),
            created_by=actor.user_id,
        )
        logger.info("attendance break %s added to record %s by user %s", break_id, record.attendance_id, actor.user_id)
        return AttendanceBreak(
            break_id=break_id,
            attendance_id=record.attendance_id,
            reasons=normalized,
            started_at=started_at,
            ended_at=ended_at,
            duration_minutes=minutes,
            note=optional_text(note),
            created_by=actor.user_id,
        )

    def update_break(
        self,
        actor: Actor,
        break_id: int,
        *,
        reasons=None,
        start_time=None,
        duration_minutes=None,
        note: Optional[str] = None,
        now: datetime,
    ) -> AttendanceBreak:
        """Partial update; a None field keeps its stored value, an empty note clears it."""
        existing = self._breaks.get_by_id(int(break_id))
        if existing is None:
            raise NotFoundError("Break not found.")
        record = self._record(existing.attendance_id)
        self._ensure_can_manage(actor, record, now, "edit")

        updated = existing
        if reasons is not None:
            updated = replace(updated, reasons=normalize_break_reasons(reasons))
        if note is not None:
            updated = replace(updated, note=optional_text(note))
        if duration_minutes is not None:
            updated = replace(updated, duration_minutes=_positive_minutes(duration_minutes))
        if start_time:
            updated = replace(updated, started_at=self._calendar.combine(record.duty_date, start_time))
        updated = replace(updated, ended_at=self._placed(record, updated.started_at, updated.duration_minutes))

        self._breaks.update(
            break_id=updated.break_id,
            reasons=updated.reasons,
            started_at=updated.started_at,
            ended_at=updated.ended_at,
            duration_minutes=updated.duration_minutes,
            note=updated.note,
        )
        logger.info("attendance break %s updated by user %s", updated.break_id, actor.user_id)
        return updated

    def delete_break(self, actor: Actor, break_id: int, *, now: datetime) -> None:
        existing = self._breaks.get_by_id(int(break_id))
        if existing is None:
            raise NotFoundError("Break not found.")
        record = self._record(existing.attendance_id)
        self._ensure_can_manage(actor, record, now, "delete")

        self._breaks.delete(existing.break_id)
        logger.info("attendance break %s deleted by user %s", existing.break_id, actor.user_id)
