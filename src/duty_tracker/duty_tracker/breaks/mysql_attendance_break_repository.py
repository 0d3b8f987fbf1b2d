from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import BreakReason
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    join_tags,
    split_tags,
    to_db_datetime,
)
from .model import AttendanceBreak
from .repository import AttendanceBreakRepository

_COLUMNS = "b.break_id, b.attendance_id, b.reasons, b.note, b.started_at, b.ended_at, b.duration_minutes, b.created_by"


def _to_break(r: dict) -> AttendanceBreak:
    return AttendanceBreak(
        break_id=int(r["break_id"]),
        attendance_id=int(r["attendance_id"]),
        reasons=tuple(BreakReason(tag) for tag in split_tags(r.get("reasons"))),
        started_at=from_db_datetime(r["started_at"]),
        ended_at=from_db_datetime(r["ended_at"]),
        duration_minutes=int(r["duration_minutes"]),
        note=r.get("note"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLAttendanceBreakRepository(AttendanceBreakRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, break_id: int) -> Optional[AttendanceBreak]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_breaks b WHERE b.break_id=%s", (int(break_id),))
            r = fetchone(cur)
            return _to_break(r) if r else None

    def list_for_attendance(self, attendance_id: int) -> Sequence[AttendanceBreak]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_breaks b WHERE b.attendance_id=%s ORDER BY b.started_at ASC",
                (int(attendance_id),),
            )
            return [_to_break(r) for r in fetchall(cur)]

    def list_for_user_and_date(self, user_id: int, duty_date: str) -> Sequence[AttendanceBreak]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_breaks b
                JOIN attendance_records a ON a.attendance_id = b.attendance_id
                WHERE a.user_id=%s AND a.duty_date=%s
                ORDER BY b.started_at ASC
                """,
                (int(user_id), duty_date),
            )
            return [_to_break(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        attendance_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        ended_at: datetime,
        duration_minutes: int,
        note: Optional[str],
        created_by: int,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_breaks(attendance_id, reasons, note, started_at, ended_at, duration_minutes, created_by)
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(attendance_id),
                    join_tags(reasons),
                    note,
                    to_db_datetime(started_at),
                    to_db_datetime(ended_at),
                    int(duration_minutes),
                    int(created_by),
                ),
            )
            return int(cur.lastrowid)

    def update(
        self,
        *,
        break_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        ended_at: datetime,
        duration_minutes: int,
        note: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_breaks
                SET reasons=%s, note=%s, started_at=%s, ended_at=%s, duration_minutes=%s
                WHERE break_id=%s
                """,
                (
                    join_tags(reasons),
                    note,
                    to_db_datetime(started_at),
                    to_db_datetime(ended_at),
                    int(duration_minutes),
                    int(break_id),
                ),
            )
            return cur.rowcount > 0

    def delete(self, break_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM attendance_breaks WHERE break_id=%s", (int(break_id),))
            return cur.rowcount > 0
