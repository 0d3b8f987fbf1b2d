from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import AttendanceState


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per (user, duty date)."""

    attendance_id: int
    user_id: int
    duty_date: str
    in_time: datetime
    out_time: Optional[datetime] = None
    auto_off: bool = False
    auto_off_reason: Optional[str] = None
    note: Optional[str] = None

    @property
    def state(self) -> AttendanceState:
        if self.auto_off:
            return AttendanceState.AUTO_CLOSED
        if self.out_time is not None:
            return AttendanceState.CLOSED
        return AttendanceState.OPEN

    @property
    def is_open(self) -> bool:
        return self.state is AttendanceState.OPEN


@dataclass(frozen=True)
class WfhInterval:
    """Work-from-home interval attached to an attendance record."""

    interval_id: int
    attendance_id: int
    start_at: datetime
    end_at: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceStatusView:
    """Read-model for the current-status endpoint."""

    on_duty: bool
    state: Optional[AttendanceState]
    auto_off: bool
    duty_date: str
    duty_start_at: Optional[datetime]
    duty_end_at: Optional[datetime]
