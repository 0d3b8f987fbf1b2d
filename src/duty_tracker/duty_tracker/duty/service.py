from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from ..attendance.auto_off import AutoOffNormalizer
from ..attendance.repository import AttendanceRepository
from ..common.duty_calendar import DutyCalendar
from ..core.enums import DutySource, Presence
from .model import DutyWindow


def merge_windows(windows: Iterable[DutyWindow]) -> List[DutyWindow]:
    """Sort, drop empty windows and fold overlaps into the earlier window.

    Windows that only touch at a boundary stay separate.
    """
    ordered = sorted((w for w in windows if w.end > w.start), key=lambda w: (w.start, w.end))
    merged: List[DutyWindow] = []
    for window in ordered:
        if merged and window.start < merged[-1].end:
            last = merged[-1]
            if window.end > last.end:
                merged[-1] = replace(last, end=window.end)
            continue
        merged.append(window)
    return merged


def find_window_for(
    windows: Sequence[DutyWindow],
    instant: datetime,
    *,
    inclusive_end: bool = False,
) -> Optional[DutyWindow]:
    """Window containing `instant`. With inclusive_end a window ending exactly
    at the instant also matches, which is how a still-open window reads at `now`.
    """
    for window in windows:
        if window.contains(instant) or (inclusive_end and window.end == instant):
            return window
    return None


class DutyWindowResolver:
    """Derives a user's duty windows for one duty date.

    The attendance record supplies the base window; its end is the effective
    out time, so an open record reads as on duty up to `now` (capped by the
    auto-off policy). WFH intervals are layered on top.
    """

    def __init__(self, attendance: AttendanceRepository, auto_off: AutoOffNormalizer, calendar: DutyCalendar):
        self._attendance = attendance
        self._auto_off = auto_off
        self._calendar = calendar

    def _raw_windows(self, user_id: int, duty_date: str, now: datetime) -> List[DutyWindow]:
        record = self._attendance.get_for_user_and_date(user_id, duty_date)
        if record is None:
            return []

        windows: List[DutyWindow] = []
        out_time = self._auto_off.resolve_out_time(record, now)
        if out_time is not None:
            windows.append(
                DutyWindow(start=record.in_time, end=out_time, source=DutySource.ATTENDANCE, ref_id=record.attendance_id)
            )

        for interval in self._attendance.list_wfh_intervals(record.attendance_id):
            end = interval.end_at or now
            windows.append(DutyWindow(start=interval.start_at, end=end, source=DutySource.WFH, ref_id=interval.interval_id))
        return [w for w in windows if w.end > w.start]

    def resolve(self, user_id: int, duty_date: str, now: datetime) -> List[DutyWindow]:
        self._calendar.parse(duty_date)
        return merge_windows(self._raw_windows(user_id, duty_date, now))

    def presence(self, user_id: int, now: datetime) -> Presence:
        """Where the user is working at `now`; a WFH interval beats office attendance."""
        self._auto_off.normalize_for_user(user_id, now)
        today = self._calendar.today(now)

        for duty_date in (today, self._calendar.shift(today, -1)):
            record = self._attendance.get_for_user_and_date(user_id, duty_date)
            if record is None:
                continue
            for interval in self._attendance.list_wfh_intervals(record.attendance_id):
                if interval.start_at <= now and (interval.end_at is None or now < interval.end_at):
                    return Presence.WFH
            if record.is_open and record.in_time <= now:
                return Presence.IN_OFFICE
        return Presence.OFF_DUTY
