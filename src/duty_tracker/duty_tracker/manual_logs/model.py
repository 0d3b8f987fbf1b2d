from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..core.enums import ManualLogCategory


@dataclass(frozen=True)
class ManualActivityLog:
    """Domain entity: a user-entered interval not tied to any task."""

    log_id: int
    user_id: int
    description: str
    duty_date: str
    categories: Tuple[ManualLogCategory, ...]
    start_at: datetime
    end_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self.end_at is None

    @property
    def status(self) -> str:
        return "RUNNING" if self.is_running else "COMPLETED"
