from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.exceptions import ConflictError, WfhAlreadyRunning
from ..database.connection import DatabaseConnection
from ..database.mysql_base import (
    db_cursor,
    fetchall,
    fetchone,
    from_db_datetime,
    is_duplicate_key,
    to_date_key,
    to_db_datetime,
)
from .model import AttendanceRecord, WfhInterval
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, user_id, duty_date, in_time, out_time, auto_off, auto_off_reason, note"
_WFH_COLUMNS = "w.interval_id, w.attendance_id, w.start_at, w.end_at"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        duty_date=to_date_key(r["duty_date"]),
        in_time=from_db_datetime(r["in_time"]),
        out_time=from_db_datetime(r.get("out_time")),
        auto_off=bool(r.get("auto_off")),
        auto_off_reason=r.get("auto_off_reason"),
        note=r.get("note"),
    )


def _to_wfh(r: dict) -> WfhInterval:
    return WfhInterval(
        interval_id=int(r["interval_id"]),
        attendance_id=int(r["attendance_id"]),
        start_at=from_db_datetime(r["start_at"]),
        end_at=from_db_datetime(r.get("end_at")),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, duty_date: str) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND duty_date=%s",
                (int(user_id), duty_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_open_started_before(self, user_id: int, before: datetime) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE user_id=%s AND out_time IS NULL AND auto_off=0 AND in_time < %s
                ORDER BY in_time ASC
                """,
                (int(user_id), to_db_datetime(before)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def create_clock_in(
        self,
        *,
        user_id: int,
        duty_date: str,
        in_time: datetime,
        note: Optional[str] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO attendance_records(user_id, duty_date, in_time, note)
                    VALUES(%s,%s,%s,%s)
                    """,
                    (int(user_id), duty_date, to_db_datetime(in_time), note),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise ConflictError("Attendance already exists for this date.") from err
            raise

    def ensure_for_user_and_date(self, *, user_id: int, duty_date: str, in_time: datetime) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            # No-op update on conflict: the first writer's in_time stays.
            cur.execute(
                """
                INSERT INTO attendance_records(user_id, duty_date, in_time)
                VALUES(%s,%s,%s)
                ON DUPLICATE KEY UPDATE attendance_id=attendance_id
                """,
                (int(user_id), duty_date, to_db_datetime(in_time)),
            )
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND duty_date=%s",
                (int(user_id), duty_date),
            )
            return _to_record(fetchone(cur))

    def close(self, *, attendance_id: int, out_time: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET out_time=%s
                WHERE attendance_id=%s AND out_time IS NULL AND auto_off=0
                """,
                (to_db_datetime(out_time), int(attendance_id)),
            )
            return cur.rowcount > 0

    def mark_auto_off(self, *, attendance_id: int, out_time: datetime, reason: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET out_time=%s, auto_off=1, auto_off_reason=%s
                WHERE attendance_id=%s AND out_time IS NULL AND auto_off=0
                """,
                (to_db_datetime(out_time), reason, int(attendance_id)),
            )
            return cur.rowcount > 0

    def list_wfh_intervals(self, attendance_id: int) -> Sequence[WfhInterval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_WFH_COLUMNS}
                FROM wfh_intervals w
                WHERE w.attendance_id=%s
                ORDER BY w.start_at ASC
                """,
                (int(attendance_id),),
            )
            return [_to_wfh(r) for r in fetchall(cur)]

    def get_open_wfh_for_user(self, user_id: int) -> Optional[WfhInterval]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_WFH_COLUMNS}
                FROM wfh_intervals w
                JOIN attendance_records a ON a.attendance_id = w.attendance_id
                WHERE a.user_id=%s AND w.end_at IS NULL
                ORDER BY w.start_at DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _to_wfh(r) if r else None

    def create_wfh_interval(
        self,
        *,
        attendance_id: int,
        start_at: datetime,
        end_at: Optional[datetime] = None,
    ) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    "INSERT INTO wfh_intervals(attendance_id, start_at, end_at) VALUES(%s,%s,%s)",
                    (int(attendance_id), to_db_datetime(start_at), to_db_datetime(end_at)),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as err:
            if is_duplicate_key(err):
                raise WfhAlreadyRunning("A WFH interval is already running.") from err
            raise

    def close_wfh_interval(self, *, interval_id: int, end_at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE wfh_intervals SET end_at=%s WHERE interval_id=%s AND end_at IS NULL",
                (to_db_datetime(end_at), int(interval_id)),
            )
            return cur.rowcount > 0
