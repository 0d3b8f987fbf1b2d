from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from ...core.constants import ATTENDANCE_AUTO_OFF_HOURS
from ..model import AttendanceRecord
from .base import AutoOffStrategy


class FixedCapAutoOffStrategy(AutoOffStrategy):
    """Close an open attendance a fixed number of hours after clock-in."""

    def __init__(self, hours: int = ATTENDANCE_AUTO_OFF_HOURS):
        self.hours = int(hours)
        self.reason = f"AUTO_OFF_{self.hours}H"

    @property
    def max_duration(self) -> timedelta:
        return timedelta(hours=self.hours)

    def closing_time(self, record: AttendanceRecord) -> Optional[datetime]:
        return record.in_time + self.max_duration
