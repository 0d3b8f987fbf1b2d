from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from ..common.duty_calendar import DutyCalendar
from ..core.constants import MANUAL_LOG_EDIT_DAYS
from ..core.exceptions import ManualLogAlreadyRunning, ManualLogDateNotAllowed, OverlappingManualLog
from .model import ManualActivityLog
from .repository import ManualLogRepository


def overlaps(log: ManualActivityLog, start_at: datetime, end_at: Optional[datetime]) -> bool:
    """Half-open interval test; a missing end means the interval never closes."""
    if end_at is not None and log.start_at >= end_at:
        return False
    return log.end_at is None or log.end_at > start_at


def first_conflict(
    logs: Iterable[ManualActivityLog],
    start_at: datetime,
    end_at: Optional[datetime] = None,
    exclude_id: Optional[int] = None,
) -> Optional[ManualActivityLog]:
    for log in logs:
        if exclude_id is not None and log.log_id == exclude_id:
            continue
        if overlaps(log, start_at, end_at):
            return log
    return None


def first_running(logs: Iterable[ManualActivityLog], exclude_id: Optional[int] = None) -> Optional[ManualActivityLog]:
    running = [
        log for log in logs
        if log.is_running and (exclude_id is None or log.log_id != exclude_id)
    ]
    return max(running, key=lambda log: log.start_at, default=None)


def check_write(
    logs: Iterable[ManualActivityLog],
    *,
    start_at: datetime,
    end_at: Optional[datetime],
    exclude_id: Optional[int] = None,
) -> None:
    """Raise if a log spanning [start_at, end_at) cannot be written next to `logs`."""
    logs = list(logs)
    if end_at is None and first_running(logs, exclude_id):
        raise ManualLogAlreadyRunning("Another manual log is already running.")
    clash = first_conflict(logs, start_at, end_at, exclude_id)
    if clash:
        raise OverlappingManualLog(f"Overlaps with manual log {clash.log_id}.")


class ManualLogConflictDetector:
    """Queries and rules that keep one user's manual logs disjoint."""

    def __init__(self, logs: ManualLogRepository, calendar: DutyCalendar, edit_days: int = MANUAL_LOG_EDIT_DAYS):
        self._logs = logs
        self._calendar = calendar
        self.edit_days = int(edit_days)

    def find_conflict(
        self,
        user_id: int,
        start_at: datetime,
        end_at: Optional[datetime] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[ManualActivityLog]:
        return first_conflict(self._logs.list_for_user(user_id), start_at, end_at, exclude_id)

    def find_open_log(self, user_id: int, exclude_id: Optional[int] = None) -> Optional[ManualActivityLog]:
        return first_running(self._logs.list_for_user(user_id), exclude_id)

    def date_bounds(self, now: datetime):
        today = self._calendar.today(now)
        return self._calendar.shift(today, -self.edit_days), today

    def ensure_date_allowed(self, duty_date: str, now: datetime) -> None:
        min_key, max_key = self.date_bounds(now)
        if not self._calendar.is_in_range(duty_date, min_key, max_key):
            raise ManualLogDateNotAllowed(
                f"Manual logs can only be added or edited for today or the last {self.edit_days} days."
            )
