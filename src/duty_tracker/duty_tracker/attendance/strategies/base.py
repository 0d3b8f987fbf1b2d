from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from ..model import AttendanceRecord


class AutoOffStrategy(ABC):
    """Strategy Pattern: encapsulate when an open attendance gets closed automatically."""

    reason: str = "AUTO_OFF"

    @abstractmethod
    def closing_time(self, record: AttendanceRecord) -> Optional[datetime]:
        """Latest instant the record may stay open; None means no cap."""

        raise NotImplementedError

    def should_close(self, record: AttendanceRecord, now: datetime) -> bool:
        if not record.is_open:
            return False
        cap = self.closing_time(record)
        return cap is not None and now > cap
