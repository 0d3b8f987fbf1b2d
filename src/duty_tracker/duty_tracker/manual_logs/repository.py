from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, Protocol, Sequence

from ..core.enums import ManualLogCategory
from .model import ManualActivityLog

# Called with the user's logs while they are locked; raises to abort the write.
WriteGuard = Callable[[Sequence[ManualActivityLog]], None]


class ManualLogRepository(Protocol):
    """Storage contract for manual activity logs.

    `create` and `update` run the guard and the write in one transaction
    that holds a lock on the user's log rows.
    """

    def get_by_id(self, log_id: int) -> Optional[ManualActivityLog]:
        raise NotImplementedError

    def list_for_user(self, user_id: int) -> Sequence[ManualActivityLog]:
        raise NotImplementedError

    def list_for_user_and_date(self, user_id: int, duty_date: str) -> Sequence[ManualActivityLog]:
        raise NotImplementedError

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[ManualActivityLog]:
        raise NotImplementedError

    def create(
        self,
        *,
        user_id: int,
        description: str,
        duty_date: str,
        categories: Sequence[ManualLogCategory],
        start_at: datetime,
        end_at: Optional[datetime],
        duration_seconds: Optional[int],
        guard: Optional[WriteGuard] = None,
    ) -> int:
        raise NotImplementedError

    def update(
        self,
        *,
        log_id: int,
        description: str,
        duty_date: str,
        categories: Sequence[ManualLogCategory],
        start_at: datetime,
        end_at: Optional[datetime],
        duration_seconds: Optional[int],
        guard: Optional[WriteGuard] = None,
    ) -> bool:
        raise NotImplementedError

    def close(self, *, log_id: int, end_at: datetime, duration_seconds: int) -> bool:
        """Set end_at on a running log; no-op (False) if it already ended."""

        raise NotImplementedError

    def delete(self, log_id: int) -> bool:
        raise NotImplementedError
