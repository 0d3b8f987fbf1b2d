from __future__ import annotations

import pytest

from src.duty_tracker.duty_tracker.common.access import Actor
from src.duty_tracker.duty_tracker.core.enums import BreakSource, DutySource, ManualLogCategory, SegmentKind
from src.duty_tracker.duty_tracker.core.exceptions import AuthorizationError
from src.duty_tracker.duty_tracker.duty.model import DutyWindow
from src.duty_tracker.duty_tracker.timeline.service import compose_segments, summarize

from tests.fakes import build_engine, pkt

DEV = Actor.of(7, "developer")
OTHER_DEV = Actor.of(8, "developer")
CTO = Actor.of(1, "cto")

WINDOW = DutyWindow(start=pkt(2026, 3, 10, 9), end=pkt(2026, 3, 10, 17), source=DutySource.ATTENDANCE, ref_id=5)


def _shape(segments):
    return [(s.start, s.end, s.kind, s.ref_id) for s in segments]


def test_break_splits_untracked_duty():
    segments = compose_segments([WINDOW], [], [(pkt(2026, 3, 10, 13, 0), pkt(2026, 3, 10, 13, 10), 4)], [])
    assert _shape(segments) == [
        (pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 13), SegmentKind.DUTY, 5),
        (pkt(2026, 3, 10, 13), pkt(2026, 3, 10, 13, 10), SegmentKind.BREAK, 4),
        (pkt(2026, 3, 10, 13, 10), pkt(2026, 3, 10, 17), SegmentKind.DUTY, 5),
    ]


def test_duty_outside_sessions_is_idle():
    segments = compose_segments([WINDOW], [(pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 12), 11)], [], [])
    assert [s.kind for s in segments] == [SegmentKind.IDLE, SegmentKind.DUTY, SegmentKind.IDLE]
    assert segments[1].ref_id == 11
    assert segments[0].ref_id == segments[2].ref_id == 5


def test_break_wins_inside_a_session():
    segments = compose_segments(
        [WINDOW],
        [(pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 17), 11)],
        [(pkt(2026, 3, 10, 12), pkt(2026, 3, 10, 12, 30), 4)],
        [],
    )
    assert [s.kind for s in segments] == [SegmentKind.DUTY, SegmentKind.BREAK, SegmentKind.DUTY]


def test_manual_log_fills_idle_duty_time():
    segments = compose_segments(
        [WINDOW],
        [(pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 10), 11)],
        [(pkt(2026, 3, 10, 11, 30), pkt(2026, 3, 10, 11, 45), 4)],
        [(pkt(2026, 3, 10, 9, 30), pkt(2026, 3, 10, 12), 21), (pkt(2026, 3, 10, 16), pkt(2026, 3, 10, 18), 22)],
    )
    assert _shape(segments) == [
        (pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 10), SegmentKind.DUTY, 11),
        (pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 11, 30), SegmentKind.MANUAL_LOG, 21),
        (pkt(2026, 3, 10, 11, 30), pkt(2026, 3, 10, 11, 45), SegmentKind.BREAK, 4),
        (pkt(2026, 3, 10, 11, 45), pkt(2026, 3, 10, 12), SegmentKind.MANUAL_LOG, 21),
        (pkt(2026, 3, 10, 12), pkt(2026, 3, 10, 16), SegmentKind.IDLE, 5),
        (pkt(2026, 3, 10, 16), pkt(2026, 3, 10, 18), SegmentKind.MANUAL_LOG, 22),
    ]

    totals = summarize([WINDOW], segments)
    assert totals.work_seconds == 3600
    assert totals.manual_seconds == (90 + 15 + 120) * 60
    assert totals.manual_on_duty_seconds == (90 + 15 + 60) * 60
    assert totals.idle_seconds == 4 * 3600
    assert totals.utilization_percent == round((3600 + 165 * 60) * 100.0 / (8 * 3600), 1)


def test_attendance_break_is_a_break_segment():
    segments = compose_segments(
        [WINDOW],
        [],
        [],
        [],
        attendance_breaks=[(pkt(2026, 3, 10, 13), pkt(2026, 3, 10, 13, 30), 31)],
    )
    assert _shape(segments) == [
        (pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 13), SegmentKind.DUTY, 5),
        (pkt(2026, 3, 10, 13), pkt(2026, 3, 10, 13, 30), SegmentKind.BREAK, 31),
        (pkt(2026, 3, 10, 13, 30), pkt(2026, 3, 10, 17), SegmentKind.DUTY, 5),
    ]
    assert segments[1].break_source is BreakSource.ATTENDANCE


def test_task_break_outranks_attendance_break_with_same_id():
    segments = compose_segments(
        [WINDOW],
        [],
        [(pkt(2026, 3, 10, 13), pkt(2026, 3, 10, 13, 15), 4)],
        [],
        attendance_breaks=[(pkt(2026, 3, 10, 13, 15), pkt(2026, 3, 10, 13, 30), 4)],
    )
    breaks = [s for s in segments if s.kind is SegmentKind.BREAK]
    assert [(s.break_source, s.ref_id) for s in breaks] == [(BreakSource.TASK, 4), (BreakSource.ATTENDANCE, 4)]


def test_segments_are_ordered_and_disjoint():
    segments = compose_segments(
        [WINDOW],
        [(pkt(2026, 3, 10, 9, 30), pkt(2026, 3, 10, 11), 11), (pkt(2026, 3, 10, 11), pkt(2026, 3, 10, 16), 12)],
        [(pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 10, 15), 4), (pkt(2026, 3, 10, 15), pkt(2026, 3, 10, 15, 20), 6)],
        [(pkt(2026, 3, 10, 7), pkt(2026, 3, 10, 8), 21)],
    )
    for left, right in zip(segments, segments[1:]):
        assert left.end <= right.start
        assert not (left.end == right.start and left.kind is right.kind and left.ref_id == right.ref_id)
    assert all(s.end > s.start for s in segments)


def test_totals_and_utilization():
    segments = compose_segments([WINDOW], [(pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 15), 11)], [], [])
    totals = summarize([WINDOW], segments)
    assert totals.duty_seconds == 8 * 3600
    assert totals.work_seconds == 6 * 3600
    assert totals.idle_seconds == 2 * 3600
    assert totals.utilization_percent == 75.0


def test_viewer_must_be_self_or_management():
    engine = build_engine()
    now = pkt(2026, 3, 10, 12)
    with pytest.raises(AuthorizationError):
        engine.timeline.build(7, "2026-03-10", viewer=OTHER_DEV, now=now)
    assert engine.timeline.build(7, "2026-03-10", viewer=CTO, now=now).segments == []
    assert engine.timeline.build(7, "2026-03-10", viewer=DEV, now=now).segments == []


def test_build_collects_every_source():
    engine = build_engine()
    engine.tasks_repo.add(1, owner_id=7)
    engine.work_sessions.start_session(DEV, 1, now=pkt(2026, 3, 10, 9))
    engine.work_sessions.stop_session(DEV, 1, now=pkt(2026, 3, 10, 11))
    engine.attendance.clock_out(DEV, now=pkt(2026, 3, 10, 12))
    engine.manual_logs.create(
        DEV,
        description="Course",
        categories=[ManualLogCategory.LEARNING],
        start_time="20:00",
        end_time="21:00",
        now=pkt(2026, 3, 10, 22),
    )

    timeline = engine.timeline.build(7, "2026-03-10", viewer=DEV, now=pkt(2026, 3, 10, 22))

    assert [s.kind for s in timeline.segments] == [SegmentKind.DUTY, SegmentKind.IDLE, SegmentKind.MANUAL_LOG]
    assert timeline.totals.duty_seconds == 3 * 3600
    assert timeline.totals.work_seconds == 2 * 3600
    assert timeline.totals.idle_seconds == 3600
    assert timeline.totals.manual_seconds == 3600


def test_manual_log_during_duty_is_kept_and_counted():
    engine = build_engine()
    engine.tasks_repo.add(1, owner_id=7)
    engine.work_sessions.start_session(DEV, 1, now=pkt(2026, 3, 10, 9))
    engine.work_sessions.stop_session(DEV, 1, now=pkt(2026, 3, 10, 10))
    log = engine.manual_logs.create(
        DEV,
        description="Read the storage docs",
        categories=[ManualLogCategory.RESEARCH],
        start_time="11:00",
        end_time="12:00",
        now=pkt(2026, 3, 10, 12, 30),
    )
    engine.attendance.clock_out(DEV, now=pkt(2026, 3, 10, 13))

    timeline = engine.timeline.build(7, "2026-03-10", viewer=DEV, now=pkt(2026, 3, 10, 14))

    assert _shape(timeline.segments) == [
        (pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 10), SegmentKind.DUTY, 1),
        (pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 11), SegmentKind.IDLE, 1),
        (pkt(2026, 3, 10, 11), pkt(2026, 3, 10, 12), SegmentKind.MANUAL_LOG, log.log_id),
        (pkt(2026, 3, 10, 12), pkt(2026, 3, 10, 13), SegmentKind.IDLE, 1),
    ]
    assert timeline.totals.manual_seconds == 3600
    assert timeline.totals.idle_seconds == 2 * 3600
    assert timeline.totals.utilization_percent == 50.0


def test_build_includes_attendance_breaks():
    engine = build_engine()
    engine.attendance.clock_in(DEV, now=pkt(2026, 3, 10, 9))
    engine.attendance_breaks.add_break(
        DEV,
        1,
        reasons=["lunch"],
        start_time="13:00",
        duration_minutes=30,
        now=pkt(2026, 3, 10, 14),
    )
    engine.attendance.clock_out(DEV, now=pkt(2026, 3, 10, 17))

    timeline = engine.timeline.build(7, "2026-03-10", viewer=DEV, now=pkt(2026, 3, 10, 18))

    breaks = [s for s in timeline.segments if s.kind is SegmentKind.BREAK]
    assert [(b.start, b.end, b.break_source) for b in breaks] == [
        (pkt(2026, 3, 10, 13), pkt(2026, 3, 10, 13, 30), BreakSource.ATTENDANCE)
    ]
    assert timeline.totals.break_seconds == 1800
    assert timeline.totals.work_seconds == 8 * 3600 - 1800
