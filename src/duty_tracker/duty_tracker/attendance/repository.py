from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord, WfhInterval


class AttendanceRepository(Protocol):
    """Storage contract for attendance records.

    Implementations must keep (user_id, duty_date) unique and make the
    closing updates conditional on the record still being open.
    """

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, duty_date: str) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create_clock_in(
        self,
        *,
        user_id: int,
        duty_date: str,
        in_time: datetime,
        note: Optional[str] = None,
    ) -> int:
        """Insert a new record; raises ConflictError if one exists for the date."""

        raise NotImplementedError

    def ensure_for_user_and_date(self, *, user_id: int, duty_date: str, in_time: datetime) -> AttendanceRecord:
        """Insert-if-absent, returning whichever record wins."""

        raise NotImplementedError

    def close(self, *, attendance_id: int, out_time: datetime) -> bool:
        raise NotImplementedError

    def mark_auto_off(self, *, attendance_id: int, out_time: datetime, reason: str) -> bool:
        raise NotImplementedError

    def list_wfh_intervals(self, attendance_id: int) -> Sequence[WfhInterval]:
        raise NotImplementedError

    def get_open_wfh_for_user(self, user_id: int) -> Optional[WfhInterval]:
        raise NotImplementedError

    def create_wfh_interval(
        self,
        *,
        attendance_id: int,
        start_at: datetime,
        end_at: Optional[datetime] = None,
    ) -> int:
        """Insert an interval; raises WfhAlreadyRunning for a second open one on the record."""

        raise NotImplementedError

    def close_wfh_interval(self, *, interval_id: int, end_at: datetime) -> bool:
        raise NotImplementedError
