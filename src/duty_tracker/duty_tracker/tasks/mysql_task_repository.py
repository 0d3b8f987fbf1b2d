from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import EndedBy, TaskStatus
from ..core.exceptions import WorkSessionAlreadyRunning
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, is_duplicate_key, to_db_datetime
from .model import Task, TaskWorkSession
from .repository import TaskRepository, WorkSessionRepository

_SESSION_COLUMNS = "session_id, task_id, user_id, started_at, ended_at, duration_seconds, ended_by"


def _to_session(r: dict) -> TaskWorkSession:
    return TaskWorkSession(
        session_id=int(r["session_id"]),
        task_id=int(r["task_id"]),
        user_id=int(r["user_id"]),
        started_at=from_db_datetime(r["started_at"]),
        ended_at=from_db_datetime(r.get("ended_at")),
        duration_seconds=r.get("duration_seconds"),
        ended_by=EndedBy(r["ended_by"]) if r.get("ended_by") else None,
    )


class MySQLTaskRepository(TaskRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, task_id: int) -> Optional[Task]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT task_id, owner_id, title, status, estimated_hours, total_time_spent, last_started_at
                FROM tasks
                WHERE task_id=%s
                """,
                (int(task_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return Task(
                task_id=int(r["task_id"]),
                owner_id=int(r["owner_id"]),
                title=r["title"],
                status=TaskStatus(r["status"]),
                estimated_hours=float(r["estimated_hours"]) if r.get("estimated_hours") is not None else None,
                total_time_spent=r.get("total_time_spent"),
                last_started_at=from_db_datetime(r.get("last_started_at")),
            )

    def record_time_spent(self, *, task_id: int, add_seconds: int, last_started_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE tasks
                SET total_time_spent=COALESCE(total_time_spent, 0) + %s, last_started_at=%s
                WHERE task_id=%s
                """,
                (max(0, int(add_seconds)), to_db_datetime(last_started_at), int(task_id)),
            )
            return cur.rowcount > 0

    def set_last_started_at(self, *, task_id: int, last_started_at: Optional[datetime]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE tasks SET last_started_at=%s WHERE task_id=%s",
                (to_db_datetime(last_started_at), int(task_id)),
            )
            return cur.rowcount > 0


class MySQLWorkSessionRepository(WorkSessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_open_for_user(self, user_id: int) -> Optional[TaskWorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_SESSION_COLUMNS} FROM task_work_sessions WHERE user_id=%s AND ended_at IS NULL",
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_open_for_task(self, task_id: int, user_id: int) -> Optional[TaskWorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM task_work_sessions
                WHERE task_id=%s AND user_id=%s AND ended_at IS NULL
                """,
                (int(task_id), int(user_id)),
            )
            r = fetchone(cur)
            return _to_session(r) if r else None

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[TaskWorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM task_work_sessions
                WHERE user_id=%s AND ended_at IS NULL AND started_at < %s
                """,
                (int(user_id), to_db_datetime(before)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_for_user_between(self, user_id: int, start: datetime, end: datetime) -> Sequence[TaskWorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM task_work_sessions
                WHERE user_id=%s AND started_at < %s AND (ended_at IS NULL OR ended_at > %s)
                ORDER BY started_at ASC
                """,
                (int(user_id), to_db_datetime(end), to_db_datetime(start)),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def list_closed_for_task(self, task_id: int) -> Sequence[TaskWorkSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SESSION_COLUMNS}
                FROM task_work_sessions
                WHERE task_id=%s AND ended_at IS NOT NULL
                ORDER BY started_at ASC
                """,
                (int(task_id),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def create(self, *, task_id: int, user_id: int, started_at: datetime) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO task_work_sessions(task_id, user_id, started_at) VALUES(%s,%s,%s)",
                    (int(task_id), int(user_id), to_db_datetime(started_at)),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise WorkSessionAlreadyRunning("A work session is already running.") from err
            raise

    def close(self, *, session_id: int, ended_at: datetime, duration_seconds: int, ended_by: EndedBy) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE task_work_sessions
                SET ended_at=%s, duration_seconds=%s, ended_by=%s
                WHERE session_id=%s AND ended_at IS NULL
                """,
                (to_db_datetime(ended_at), int(duration_seconds), ended_by.value, int(session_id)),
            )
            return cur.rowcount > 0
