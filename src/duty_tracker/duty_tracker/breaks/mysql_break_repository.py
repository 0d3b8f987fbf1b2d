from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import BreakReason, EndedBy
from ..core.exceptions import BreakAlreadyOpen
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    is_duplicate_key,
    join_tags,
    split_tags,
    to_db_datetime,
)
from .model import TaskBreak
from .repository import BreakRepository

_COLUMNS = "break_id, task_id, user_id, reasons, note, started_at, ended_at, duration_seconds, ended_by"


def _to_break(r: dict) -> TaskBreak:
    return TaskBreak(
        break_id=int(r["break_id"]),
        task_id=int(r["task_id"]),
        user_id=int(r["user_id"]),
        reasons=tuple(BreakReason(tag) for tag in split_tags(r.get("reasons"))),
        started_at=from_db_datetime(r["started_at"]),
        ended_at=from_db_datetime(r.get("ended_at")),
        duration_seconds=r.get("duration_seconds"),
        note=r.get("note"),
        ended_by=EndedBy(r["ended_by"]) if r.get("ended_by") else None,
    )


class MySQLBreakRepository(BreakRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_open_for_task(self, task_id: int, user_id: Optional[int] = None) -> Optional[TaskBreak]:
        clauses = ["task_id=%s", "ended_at IS NULL"]
        params: list[object] = [int(task_id)]
        if user_id is not None:
            clauses.append("user_id=%s")
            params.append(int(user_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM task_breaks WHERE {' AND '.join(clauses)}", tuple(params))
            r = fetchone(cur)
            return _to_break(r) if r else None

    def list_for_task_between(self, task_id: int, start: datetime, end: datetime) -> Sequence[TaskBreak]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_breaks
                WHERE task_id=%s AND started_at < %s AND (ended_at IS NULL OR ended_at > %s)
                ORDER BY started_at ASC
                """,
                (int(task_id), to_db_datetime(end), to_db_datetime(start)),
            )
            return [_to_break(r) for r in fetchall(cur)]

    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TaskBreak]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM task_breaks
                WHERE user_id=%s AND started_at < %s AND (ended_at IS NULL OR ended_at > %s)
                ORDER BY started_at ASC
                """,
                (int(user_id), to_db_datetime(end), to_db_datetime(start)),
            )
            return [_to_break(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        task_id: int,
        user_id: int,
        reasons: Sequence[BreakReason],
        started_at: datetime,
        note: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO task_breaks(task_id, user_id, reasons, note, started_at)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (int(task_id), int(user_id), join_tags(reasons), note, to_db_datetime(started_at)),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise BreakAlreadyOpen("A break is already in progress for this task.") from err
            raise

    def close(self, *, break_id: int, ended_at: datetime, duration_seconds: int, ended_by: EndedBy) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE task_breaks
                SET ended_at=%s, duration_seconds=%s, ended_by=%s
                WHERE break_id=%s AND ended_at IS NULL
                """,
                (to_db_datetime(ended_at), int(duration_seconds), ended_by.value, int(break_id)),
            )
            return cur.rowcount > 0

    def delete(self, break_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM task_breaks WHERE break_id=%s", (int(break_id),))
            return cur.rowcount > 0
