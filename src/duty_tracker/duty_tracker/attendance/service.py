from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta

from ..common.access import Actor
from ..common.duty_calendar import DutyCalendar
from ..common.validators import optional_text
from ..core.enums import EndedBy
from ..core.exceptions import (
    AttendanceClosed,
    AuthorizationError,
    ConflictError,
    NoActiveWfh,
    NotFoundError,
    ValidationError,
    WfhAlreadyRunning,
)
from ..tasks.session_closer import WorkSessionCloser
from .auto_off import AutoOffNormalizer
from .model import AttendanceRecord, AttendanceStatusView, WfhInterval
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        calendar: DutyCalendar,
        auto_off: AutoOffNormalizer,
        session_closer: WorkSessionCloser,
    ):
        self._attendance = attendance
        self._calendar = calendar
        self._auto_off = auto_off
        self._session_closer = session_closer

    def clock_in(self, actor: Actor, *, now: datetime, note: str | None = None) -> AttendanceRecord:
        self._auto_off.normalize_for_user(actor.user_id, now)
        today = self._calendar.today(now)

        existing = self._attendance.get_for_user_and_date(actor.user_id, today)
        if existing:
            if not existing.is_open:
                raise AttendanceClosed("Today's attendance is already closed.")
            raise ConflictError("You have already clocked in today.")

        attendance_id = self._attendance.create_clock_in(
            user_id=actor.user_id,
            duty_date=today,
            in_time=now,
            note=optional_text(note),
        )
        logger.info("user %s clocked in for %s", actor.user_id, today)
        return AttendanceRecord(
            attendance_id=attendance_id,
            user_id=actor.user_id,
            duty_date=today,
            in_time=now,
            note=optional_text(note),
        )

    def ensure_on_duty(self, user_id: int, now: datetime) -> AttendanceRecord:
        """Today's record, created by this call if absent; must still be open."""
        self._auto_off.normalize_for_user(user_id, now)
        today = self._calendar.today(now)

        record = self._attendance.ensure_for_user_and_date(user_id=user_id, duty_date=today, in_time=now)
        if not record.is_open:
            raise AttendanceClosed("Today's attendance is already closed.")
        return record

    def open_record(self, user_id: int, now: datetime) -> AttendanceRecord | None:
        """Latest open record, including one that started before midnight."""
        candidates = [r for r in self._attendance.list_open_started_before(user_id, now) if r.is_open]
        return max(candidates, key=lambda r: r.in_time, default=None)

    def clock_out(self, actor: Actor, *, now: datetime) -> AttendanceRecord:
        self._auto_off.normalize_for_user(actor.user_id, now)

        record = self.open_record(actor.user_id, now)
        if record is None:
            today = self._attendance.get_for_user_and_date(actor.user_id, self._calendar.today(now))
            if today is not None:
                raise AttendanceClosed("Today's attendance is already closed.")
            raise ValidationError("You have not clocked in today.")

        self._session_closer.end_sessions_started_before(actor.user_id, now, ended_by=EndedBy.USER)

        if not self._attendance.close(attendance_id=record.attendance_id, out_time=now):
            raise AttendanceClosed("Attendance was already closed.")
        logger.info("user %s clocked out of %s", actor.user_id, record.duty_date)
        return replace(record, out_time=now)

    def current_status(self, user_id: int, *, now: datetime) -> AttendanceStatusView:
        self._auto_off.normalize_for_user(user_id, now)
        today = self._calendar.today(now)

        record = self._attendance.get_for_user_and_date(user_id, today)
        if record is None:
            return AttendanceStatusView(
                on_duty=False,
                state=None,
                auto_off=False,
                duty_date=today,
                duty_start_at=None,
                duty_end_at=None,
            )

        resolved = self._auto_off.resolve_out_time(record, now)
        elapsed = resolved is not None and now > resolved
        on_duty = record.is_open and not elapsed
        return AttendanceStatusView(
            on_duty=on_duty,
            state=record.state,
            auto_off=record.auto_off,
            duty_date=today,
            duty_start_at=record.in_time,
            duty_end_at=None if on_duty else resolved,
        )

    def start_wfh(self, actor: Actor, *, now: datetime) -> WfhInterval:
        """Open a running WFH interval on today's record once office time is over."""
        self._auto_off.normalize_for_user(actor.user_id, now)
        if self._attendance.get_open_wfh_for_user(actor.user_id) is not None:
            raise WfhAlreadyRunning("A WFH interval is already running.")

        record = self._attendance.get_for_user_and_date(actor.user_id, self._calendar.today(now))
        if record is None or record.is_open:
            raise ValidationError("Start WFH only after office in and out times are recorded.")

        interval_id = self._attendance.create_wfh_interval(attendance_id=record.attendance_id, start_at=now)
        logger.info("user %s started WFH on record %s", actor.user_id, record.attendance_id)
        return WfhInterval(interval_id=interval_id, attendance_id=record.attendance_id, start_at=now)

    def end_wfh(self, actor: Actor, *, now: datetime) -> WfhInterval:
        interval = self._attendance.get_open_wfh_for_user(actor.user_id)
        if interval is None:
            raise NoActiveWfh("No running WFH interval found.")

        end_at = max(now, interval.start_at)
        if not self._attendance.close_wfh_interval(interval_id=interval.interval_id, end_at=end_at):
            raise NoActiveWfh("The WFH interval was already ended.")
        logger.info("user %s ended WFH interval %s", actor.user_id, interval.interval_id)
        return replace(interval, end_at=end_at)

    def add_wfh_interval(
        self,
        actor: Actor,
        attendance_id: int,
        *,
        start_time,
        end_time,
        now: datetime,
    ) -> WfhInterval:
        """Record a finished WFH stretch for today, after office time is closed.

        Times are wall-clock on the record's duty date; an end at or before
        the start rolls over to the next day.
        """
        record = self._attendance.get_by_id(int(attendance_id))
        if record is None:
            raise NotFoundError("Attendance record not found.")
        if record.user_id != actor.user_id and not actor.role.is_management:
            raise AuthorizationError("You do not have permission to update this record.")
        if record.is_open:
            raise ValidationError("Add WFH time only after in time and out time are recorded.")
        if record.duty_date != self._calendar.today(now):
            raise ValidationError("WFH intervals can only be added for today.")
        if not start_time or not end_time:
            raise ValidationError("WFH start and end times are required.")

        start_at = self._calendar.combine(record.duty_date, start_time)
        end_at = self._calendar.combine(record.duty_date, end_time)
        if end_at == start_at:
            raise ValidationError("WFH end time must be after start time.")
        if end_at < start_at:
            end_at += timedelta(days=1)

        if start_at < record.out_time and end_at > record.in_time:
            raise ValidationError("WFH overlaps office time.")
        for existing in self._attendance.list_wfh_intervals(record.attendance_id):
            # a running interval extends without bound
            if (existing.end_at is None or start_at < existing.end_at) and end_at > existing.start_at:
                raise ValidationError("WFH interval overlaps another interval.")

        interval_id = self._attendance.create_wfh_interval(
            attendance_id=record.attendance_id, start_at=start_at, end_at=end_at
        )
        logger.info("WFH interval %s added to record %s by user %s", interval_id, record.attendance_id, actor.user_id)
        return WfhInterval(interval_id=interval_id, attendance_id=record.attendance_id, start_at=start_at, end_at=end_at)
