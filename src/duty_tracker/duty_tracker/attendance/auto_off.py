from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import elapsed_seconds
from ..core.enums import EndedBy
from ..manual_logs.repository import ManualLogRepository
from ..tasks.session_closer import WorkSessionCloser
from .model import AttendanceRecord
from .repository import AttendanceRepository
from .strategies.base import AutoOffStrategy
from .strategies.fixed_cap_strategy import FixedCapAutoOffStrategy

logger = logging.getLogger(__name__)


def resolve_attendance_out_time(
    record: AttendanceRecord,
    now: datetime,
    strategy: Optional[AutoOffStrategy] = None,
) -> Optional[datetime]:
    """Effective end of duty for a record, without touching storage.

    A stored out_time wins. An auto-closed record without one ends at the
    policy cap. An open record ends at min(now, cap), or has no end yet
    while now <= in_time. The result never decreases as `now` grows.
    """
    strategy = strategy or FixedCapAutoOffStrategy()
    if record.out_time is not None:
        return record.out_time
    cap = strategy.closing_time(record)
    if record.auto_off:
        return cap
    if now <= record.in_time:
        return None
    if cap is None:
        return now
    return min(now, cap)


class AutoOffNormalizer:
    """Closes attendance records that stayed open past the policy cap.

    The transition is lazy: it runs whenever a read path touches the user's
    duty state, and repeated runs are harmless because every close is a
    conditional update.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        strategy: AutoOffStrategy,
        session_closer: WorkSessionCloser,
        manual_logs: ManualLogRepository,
    ):
        self._attendance = attendance
        self._strategy = strategy
        self._session_closer = session_closer
        self._manual_logs = manual_logs

    @property
    def strategy(self) -> AutoOffStrategy:
        return self._strategy

    def closing_time(self, record: AttendanceRecord) -> Optional[datetime]:
        return self._strategy.closing_time(record)

    def should_auto_off(self, record: AttendanceRecord, now: datetime) -> bool:
        return self._strategy.should_close(record, now)

    def resolve_out_time(self, record: AttendanceRecord, now: datetime) -> Optional[datetime]:
        return resolve_attendance_out_time(record, now, self._strategy)

    def normalize(self, record: AttendanceRecord, now: datetime) -> Optional[AttendanceRecord]:
        """Auto-close one record if its cap has passed; None when nothing changed."""
        if not self.should_auto_off(record, now):
            return None

        closing = self.closing_time(record)
        # The record turns terminal last: a pass that fails midway leaves it
        # OPEN, so the next pass redoes the whole close-out.
        self._close_dangling_work(record.user_id, closing)
        changed = self._attendance.mark_auto_off(
            attendance_id=record.attendance_id,
            out_time=closing,
            reason=self._strategy.reason,
        )
        if not changed:
            return None

        logger.info(
            "attendance %s of user %s auto-closed at %s",
            record.attendance_id,
            record.user_id,
            closing.isoformat(),
        )
        return replace(record, out_time=closing, auto_off=True, auto_off_reason=self._strategy.reason)

    def normalize_for_user(self, user_id: int, now: datetime) -> int:
        closed = 0
        for record in self._attendance.list_open_started_before(user_id, now):
            if self.normalize(record, now) is not None:
                closed += 1
        return closed

    def _close_dangling_work(self, user_id: int, closing: datetime) -> None:
        self._session_closer.end_sessions_started_before(user_id, closing, ended_by=EndedBy.AUTO_OFF)

        for log in self._manual_logs.list_open_started_before(user_id, closing):
            self._manual_logs.close(
                log_id=log.log_id,
                end_at=closing,
                duration_seconds=elapsed_seconds(log.start_at, closing),
            )
            logger.info("manual log %s closed by auto-off", log.log_id)
