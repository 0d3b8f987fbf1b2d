from __future__ import annotations

from datetime import timedelta

import pytest

from src.duty_tracker.duty_tracker.attendance.auto_off import resolve_attendance_out_time
from src.duty_tracker.duty_tracker.attendance.model import AttendanceRecord
from src.duty_tracker.duty_tracker.attendance.strategies.fixed_cap_strategy import FixedCapAutoOffStrategy
from src.duty_tracker.duty_tracker.common.access import Actor
from src.duty_tracker.duty_tracker.core.enums import AttendanceState, EndedBy, ManualLogCategory

from tests.fakes import build_engine, pkt

DEV = Actor.of(7, "developer")


def _open_record(in_time):
    return AttendanceRecord(attendance_id=1, user_id=7, duty_date="2026-03-10", in_time=in_time)


def test_out_time_of_open_record_is_capped_and_monotonic():
    record = _open_record(pkt(2026, 3, 10, 9, 0))
    assert resolve_attendance_out_time(record, pkt(2026, 3, 10, 8, 0)) is None
    assert resolve_attendance_out_time(record, pkt(2026, 3, 10, 9, 0)) is None
    assert resolve_attendance_out_time(record, pkt(2026, 3, 10, 12, 0)) == pkt(2026, 3, 10, 12, 0)
    assert resolve_attendance_out_time(record, pkt(2026, 3, 10, 23, 0)) == pkt(2026, 3, 10, 19, 0)

    previous = None
    for hour in range(9, 24):
        resolved = resolve_attendance_out_time(record, pkt(2026, 3, 10, hour, 30))
        if previous is not None:
            assert resolved >= previous
        previous = resolved


def test_out_time_prefers_stored_value():
    record = AttendanceRecord(
        attendance_id=1,
        user_id=7,
        duty_date="2026-03-10",
        in_time=pkt(2026, 3, 10, 9, 0),
        out_time=pkt(2026, 3, 10, 17, 0),
    )
    assert resolve_attendance_out_time(record, pkt(2026, 3, 11, 9, 0)) == pkt(2026, 3, 10, 17, 0)


def test_auto_closed_record_without_out_time_ends_at_cap():
    record = AttendanceRecord(
        attendance_id=1,
        user_id=7,
        duty_date="2026-03-10",
        in_time=pkt(2026, 3, 10, 9, 0),
        auto_off=True,
    )
    assert resolve_attendance_out_time(record, pkt(2026, 3, 10, 12, 0)) == pkt(2026, 3, 10, 19, 0)


def test_strategy_cap_is_configurable():
    strategy = FixedCapAutoOffStrategy(hours=8)
    record = _open_record(pkt(2026, 3, 10, 9, 0))
    assert strategy.reason == "AUTO_OFF_8H"
    assert strategy.closing_time(record) == pkt(2026, 3, 10, 17, 0)
    assert not strategy.should_close(record, pkt(2026, 3, 10, 17, 0))
    assert strategy.should_close(record, pkt(2026, 3, 10, 17, 0) + timedelta(seconds=1))


def test_normalize_closes_once_at_cap():
    engine = build_engine()
    record = engine.attendance_repo.add(user_id=7, duty_date="2026-03-10", in_time=pkt(2026, 3, 10, 9, 0))

    assert engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 18, 59)) == 0
    assert engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 23, 0)) == 1
    assert engine.auto_off.normalize_for_user(7, pkt(2026, 3, 11, 1, 0)) == 0

    closed = engine.attendance_repo.get_by_id(record.attendance_id)
    assert closed.state is AttendanceState.AUTO_CLOSED
    assert closed.out_time == pkt(2026, 3, 10, 19, 0)
    assert closed.auto_off_reason == "AUTO_OFF_10H"


def test_normalize_leaves_closed_records_alone():
    engine = build_engine()
    record = engine.attendance_repo.add(
        user_id=7,
        duty_date="2026-03-10",
        in_time=pkt(2026, 3, 10, 9, 0),
        out_time=pkt(2026, 3, 10, 12, 0),
    )
    assert engine.auto_off.normalize(record, pkt(2026, 3, 11, 9, 0)) is None
    assert engine.attendance_repo.get_by_id(record.attendance_id).state is AttendanceState.CLOSED


def test_auto_off_ends_running_session_and_manual_log_at_cap():
    engine = build_engine()
    engine.tasks_repo.add(1, owner_id=7)
    session = engine.work_sessions.start_session(DEV, 1, now=pkt(2026, 3, 10, 9, 0))
    log_id = engine.manual_logs_repo.create(
        user_id=7,
        description="Reading",
        duty_date="2026-03-10",
        categories=(ManualLogCategory.LEARNING,),
        start_at=pkt(2026, 3, 10, 17, 0),
        end_at=None,
        duration_seconds=None,
    )

    assert engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 23, 0)) == 1

    ended = engine.sessions_repo.get(session.session_id)
    assert ended.ended_at == pkt(2026, 3, 10, 19, 0)
    assert ended.ended_by is EndedBy.AUTO_OFF
    assert ended.duration_seconds == 10 * 3600

    task = engine.tasks_repo.get_by_id(1)
    assert task.total_time_spent == 10 * 3600
    assert task.last_started_at is None

    log = engine.manual_logs_repo.get_by_id(log_id)
    assert log.end_at == pkt(2026, 3, 10, 19, 0)
    assert log.duration_seconds == 2 * 3600


def test_auto_off_closes_open_break_at_cap():
    engine = build_engine()
    engine.tasks_repo.add(1, owner_id=7)
    engine.work_sessions.start_session(DEV, 1, now=pkt(2026, 3, 10, 9, 0))
    brk = engine.breaks.start_break(DEV, 1, ["LUNCH"], now=pkt(2026, 3, 10, 18, 0))

    engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 23, 0))

    closed = engine.breaks_repo.get(brk.break_id)
    assert closed.ended_at == pkt(2026, 3, 10, 19, 0)
    assert closed.duration_seconds == 3600
    assert closed.ended_by is EndedBy.AUTO_OFF
    # 09:00-18:00 worked, the final hour was a break
    assert engine.tasks_repo.get_by_id(1).total_time_spent == 9 * 3600


def test_failed_close_out_is_redone_on_next_pass(monkeypatch):
    engine = build_engine()
    engine.tasks_repo.add(1, owner_id=7)
    session = engine.work_sessions.start_session(DEV, 1, now=pkt(2026, 3, 10, 9, 0))
    record = engine.attendance_repo.get_for_user_and_date(7, "2026-03-10")

    real_close = engine.sessions_repo.close
    calls = []

    def flaky_close(**kwargs):
        calls.append(kwargs["session_id"])
        if len(calls) == 1:
            raise RuntimeError("connection lost")
        return real_close(**kwargs)

    monkeypatch.setattr(engine.sessions_repo, "close", flaky_close)

    with pytest.raises(RuntimeError):
        engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 23, 0))
    assert engine.attendance_repo.get_by_id(record.attendance_id).state is AttendanceState.OPEN

    assert engine.auto_off.normalize_for_user(7, pkt(2026, 3, 10, 23, 30)) == 1

    closed = engine.attendance_repo.get_by_id(record.attendance_id)
    assert closed.state is AttendanceState.AUTO_CLOSED
    assert closed.out_time == pkt(2026, 3, 10, 19, 0)
    assert engine.sessions_repo.get_open_for_user(7) is None
    assert engine.sessions_repo.get(session.session_id).ended_at == pkt(2026, 3, 10, 19, 0)
    assert engine.tasks_repo.get_by_id(1).total_time_spent == 10 * 3600
