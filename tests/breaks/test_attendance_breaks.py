from __future__ import annotations

import pytest

from src.duty_tracker.duty_tracker.common.access import Actor
from src.duty_tracker.duty_tracker.core.enums import BreakReason
from src.duty_tracker.duty_tracker.core.exceptions import (
    AuthorizationError,
    BreakOutsideDutyWindow,
    NotFoundError,
    ValidationError,
)

from tests.fakes import build_engine, pkt

DEV = Actor.of(7, "developer")
OTHER = Actor.of(8, "developer")
CTO = Actor.of(1, "cto")


def _on_duty():
    engine = build_engine()
    record = engine.attendance.clock_in(DEV, now=pkt(2026, 3, 10, 9, 0))
    return engine, record


def test_add_break_inside_duty_window():
    engine, record = _on_duty()

    brk = engine.attendance_breaks.add_break(
        DEV,
        record.attendance_id,
        reasons=["lunch", "namaz"],
        start_time="13:00",
        duration_minutes="30",
        note=" canteen ",
        now=pkt(2026, 3, 10, 14, 0),
    )

    assert brk.reasons == (BreakReason.LUNCH, BreakReason.NAMAZ)
    assert (brk.started_at, brk.ended_at) == (pkt(2026, 3, 10, 13, 0), pkt(2026, 3, 10, 13, 30))
    assert brk.duration_minutes == 30
    assert brk.note == "canteen"
    assert brk.created_by == 7
    assert engine.attendance_breaks.list_for_attendance(DEV, record.attendance_id) == [brk]


@pytest.mark.parametrize(
    "start_time, minutes",
    [
        ("08:30", 15),  # before clock-in
        ("18:45", 30),  # runs past the auto-off cap
    ],
)
def test_break_must_fit_the_duty_window(start_time, minutes):
    engine, record = _on_duty()
    with pytest.raises(BreakOutsideDutyWindow):
        engine.attendance_breaks.add_break(
            DEV,
            record.attendance_id,
            reasons="refreshment",
            start_time=start_time,
            duration_minutes=minutes,
            now=pkt(2026, 3, 10, 12, 0),
        )


@pytest.mark.parametrize("minutes", [0, -5, "abc", None])
def test_duration_must_be_positive(minutes):
    engine, record = _on_duty()
    with pytest.raises(ValidationError):
        engine.attendance_breaks.add_break(
            DEV,
            record.attendance_id,
            reasons="refreshment",
            start_time="11:00",
            duration_minutes=minutes,
            now=pkt(2026, 3, 10, 12, 0),
        )


def test_other_users_cannot_touch_the_record():
    engine, record = _on_duty()

    with pytest.raises(AuthorizationError):
        engine.attendance_breaks.add_break(
            OTHER, record.attendance_id, reasons="refreshment", start_time="11:00", duration_minutes=10, now=pkt(2026, 3, 10, 12, 0)
        )
    with pytest.raises(AuthorizationError):
        engine.attendance_breaks.list_for_attendance(OTHER, record.attendance_id)
    with pytest.raises(NotFoundError):
        engine.attendance_breaks.add_break(
            DEV, 999, reasons="refreshment", start_time="11:00", duration_minutes=10, now=pkt(2026, 3, 10, 12, 0)
        )


def test_closed_record_is_management_only():
    engine, record = _on_duty()
    engine.attendance.clock_out(DEV, now=pkt(2026, 3, 10, 17, 0))

    with pytest.raises(AuthorizationError):
        engine.attendance_breaks.add_break(
            DEV, record.attendance_id, reasons="refreshment", start_time="12:00", duration_minutes=15, now=pkt(2026, 3, 10, 17, 30)
        )

    brk = engine.attendance_breaks.add_break(
        CTO, record.attendance_id, reasons="refreshment", start_time="12:00", duration_minutes=15, now=pkt(2026, 3, 10, 17, 30)
    )
    assert brk.created_by == 1
    with pytest.raises(BreakOutsideDutyWindow):
        engine.attendance_breaks.add_break(
            CTO, record.attendance_id, reasons="refreshment", start_time="16:50", duration_minutes=15, now=pkt(2026, 3, 10, 17, 30)
        )


def test_update_break_shifts_and_resizes():
    engine, record = _on_duty()
    brk = engine.attendance_breaks.add_break(
        DEV,
        record.attendance_id,
        reasons="lunch",
        start_time="13:00",
        duration_minutes=30,
        note="canteen",
        now=pkt(2026, 3, 10, 14, 0),
    )

    updated = engine.attendance_breaks.update_break(
        DEV, brk.break_id, start_time="15:00", duration_minutes=45, note="", now=pkt(2026, 3, 10, 16, 0)
    )

    assert updated.reasons == (BreakReason.LUNCH,)
    assert (updated.started_at, updated.ended_at) == (pkt(2026, 3, 10, 15, 0), pkt(2026, 3, 10, 15, 45))
    assert updated.note is None
    assert engine.attendance_breaks_repo.get_by_id(brk.break_id) == updated

    with pytest.raises(BreakOutsideDutyWindow):
        engine.attendance_breaks.update_break(DEV, brk.break_id, start_time="18:30", now=pkt(2026, 3, 10, 16, 0))
    with pytest.raises(NotFoundError):
        engine.attendance_breaks.update_break(DEV, 999, duration_minutes=10, now=pkt(2026, 3, 10, 16, 0))


def test_delete_break():
    engine, record = _on_duty()
    brk = engine.attendance_breaks.add_break(
        DEV, record.attendance_id, reasons="refreshment", start_time="11:00", duration_minutes=10, now=pkt(2026, 3, 10, 12, 0)
    )

    with pytest.raises(AuthorizationError):
        engine.attendance_breaks.delete_break(OTHER, brk.break_id, now=pkt(2026, 3, 10, 12, 5))

    engine.attendance_breaks.delete_break(DEV, brk.break_id, now=pkt(2026, 3, 10, 12, 5))

    assert engine.attendance_breaks.list_for_attendance(DEV, record.attendance_id) == []
    with pytest.raises(NotFoundError):
        engine.attendance_breaks.delete_break(DEV, brk.break_id, now=pkt(2026, 3, 10, 12, 10))
