from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence

from ..core.enums import ManualLogCategory
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    join_tags,
    split_tags,
    to_date_key,
    to_db_datetime,
)
from .model import ManualActivityLog
from .repository import ManualLogRepository, WriteGuard

_COLUMNS = "log_id, user_id, description, duty_date, categories, start_at, end_at, duration_seconds"


def _to_log(r: dict) -> ManualActivityLog:
    return ManualActivityLog(
        log_id=int(r["log_id"]),
        user_id=int(r["user_id"]),
        description=r["description"],
        duty_date=to_date_key(r["duty_date"]),
        categories=tuple(ManualLogCategory(tag) for tag in split_tags(r.get("categories"))),
        start_at=from_db_datetime(r["start_at"]),
        end_at=from_db_datetime(r.get("end_at")),
        duration_seconds=r.get("duration_seconds"),
    )


def _lock_user_logs(cur, user_id: int) -> List[ManualActivityLog]:
    """Serialize writers per user: lock the user row, then the user's logs."""
    cur.execute("SELECT user_id FROM users WHERE user_id=%s FOR UPDATE", (int(user_id),))
    fetchall(cur)
    cur.execute(f"SELECT {_COLUMNS} FROM manual_activity_logs WHERE user_id=%s FOR UPDATE", (int(user_id),))
    return [_to_log(r) for r in fetchall(cur)]


class MySQLManualLogRepository(ManualLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, log_id: int) -> Optional[ManualActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM manual_activity_logs WHERE log_id=%s", (int(log_id),))
            r = fetchone(cur)
            return _to_log(r) if r else None

    def list_for_user(self, user_id: int) -> Sequence[ManualActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM manual_activity_logs WHERE user_id=%s ORDER BY start_at ASC",
                (int(user_id),),
            )
            return [_to_log(r) for r in fetchall(cur)]

    def list_for_user_and_date(self, user_id: int, duty_date: str) -> Sequence[ManualActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM manual_activity_logs
                WHERE user_id=%s AND duty_date=%s
                ORDER BY start_at ASC
                """,
                (int(user_id), duty_date),
            )
            return [_to_log(r) for r in fetchall(cur)]

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[ManualActivityLog]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM manual_activity_logs
                WHERE user_id=%s AND end_at IS NULL AND start_at < %s
                """,
                (int(user_id), to_db_datetime(before)),
            )
            return [_to_log(r) for r in fetchall(cur)]

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
        with db_cursor(self._conn_factory) as (_, cur):
            existing = _lock_user_logs(cur, user_id)
            if guard is not None:
                guard(existing)
            cur.execute(
                """
                INSERT INTO manual_activity_logs
                    (user_id, description, duty_date, categories, start_at, end_at, duration_seconds)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(user_id),
                    description,
                    duty_date,
                    join_tags(categories),
                    to_db_datetime(start_at),
                    to_db_datetime(end_at),
                    duration_seconds,
                ),
            )
            return int(cur.lastrowid)

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
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM manual_activity_logs WHERE log_id=%s", (int(log_id),))
            owner = fetchone(cur)
            if not owner:
                return False
            existing = _lock_user_logs(cur, int(owner["user_id"]))
            if guard is not None:
                guard(existing)
            cur.execute(
                """
                UPDATE manual_activity_logs
                SET description=%s, duty_date=%s, categories=%s, start_at=%s, end_at=%s, duration_seconds=%s
                WHERE log_id=%s
                """,
                (
                    description,
                    duty_date,
                    join_tags(categories),
                    to_db_datetime(start_at),
                    to_db_datetime(end_at),
                    duration_seconds,
                    int(log_id),
                ),
            )
            return cur.rowcount > 0

    def close(self, *, log_id: int, end_at: datetime, duration_seconds: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE manual_activity_logs
                SET end_at=%s, duration_seconds=%s
                WHERE log_id=%s AND end_at IS NULL
                """,
                (to_db_datetime(end_at), int(duration_seconds), int(log_id)),
            )
            return cur.rowcount > 0

    def delete(self, log_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM manual_activity_logs WHERE log_id=%s", (int(log_id),))
            return cur.rowcount > 0
