from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from ..attendance.auto_off import AutoOffNormalizer
from ..breaks.repository import AttendanceBreakRepository, BreakRepository
from ..common.access import Actor, ensure_can_view_user
from ..common.duty_calendar import DutyCalendar
from ..core.enums import BreakSource, SegmentKind
from ..duty.model import DutyWindow
from ..duty.service import DutyWindowResolver
from ..manual_logs.repository import ManualLogRepository
from ..tasks.repository import WorkSessionRepository
from .model import DailyTimeline, TimelineSegment, TimelineTotals

# (start, end, ref_id) with open intervals already clipped to `now`
Span = Tuple[datetime, datetime, int]


def _clip(start: datetime, end: Optional[datetime], now: datetime) -> Optional[Tuple[datetime, datetime]]:
    end = end or now
    if end <= start:
        return None
    return start, end


def _covering(spans: Sequence[Span], lo: datetime, hi: datetime) -> Optional[Span]:
    for span in spans:
        if span[0] <= lo and span[1] >= hi:
            return span
    return None


def _overlaps_any(span: Span, others: Iterable[Span]) -> bool:
    return any(span[0] < other[1] and other[0] < span[1] for other in others)


def compose_segments(
    windows: Sequence[DutyWindow],
    sessions: Sequence[Span],
    breaks: Sequence[Span],
    manual_logs: Sequence[Span],
    attendance_breaks: Sequence[Span] = (),
) -> List[TimelineSegment]:
    """Sweep every elementary interval between boundaries and label it.

    Inside a duty window the order is: a task break, an attendance break, a
    covering work session (DUTY), a manual log, otherwise IDLE. A day with no
    work sessions at all reads its remaining duty time as plain DUTY. Outside
    windows only manual logs produce segments.
    """
    window_spans = [(w.start, w.end, w.ref_id) for w in windows]
    sources = (*window_spans, *sessions, *breaks, *attendance_breaks, *manual_logs)
    points = sorted({p for span in sources for p in span[:2]})
    untracked = not any(_overlaps_any(s, window_spans) for s in sessions)

    segments: List[TimelineSegment] = []
    for lo, hi in zip(points, points[1:]):
        window = _covering(window_spans, lo, hi)
        log = _covering(manual_logs, lo, hi)
        break_source = None
        if window:
            task_break = _covering(breaks, lo, hi)
            attendance_break = _covering(attendance_breaks, lo, hi)
            session = _covering(sessions, lo, hi)
            if task_break:
                kind, ref, break_source = SegmentKind.BREAK, task_break[2], BreakSource.TASK
            elif attendance_break:
                kind, ref, break_source = SegmentKind.BREAK, attendance_break[2], BreakSource.ATTENDANCE
            elif session:
                kind, ref = SegmentKind.DUTY, session[2]
            elif log:
                kind, ref = SegmentKind.MANUAL_LOG, log[2]
            elif untracked:
                kind, ref = SegmentKind.DUTY, window[2]
            else:
                kind, ref = SegmentKind.IDLE, window[2]
        elif log:
            kind, ref = SegmentKind.MANUAL_LOG, log[2]
        else:
            continue

        last = segments[-1] if segments else None
        if (
            last
            and last.kind is kind
            and last.ref_id == ref
            and last.break_source is break_source
            and last.end == lo
        ):
            segments[-1] = replace(last, end=hi)
        else:
            segments.append(TimelineSegment(start=lo, end=hi, kind=kind, ref_id=ref, break_source=break_source))
    return segments


def _seconds_inside(segment: TimelineSegment, windows: Sequence[DutyWindow]) -> int:
    total = 0
    for window in windows:
        lo, hi = max(segment.start, window.start), min(segment.end, window.end)
        if hi > lo:
            total += int((hi - lo).total_seconds())
    return total


def summarize(windows: Sequence[DutyWindow], segments: Sequence[TimelineSegment]) -> TimelineTotals:
    by_kind = {kind: 0 for kind in SegmentKind}
    manual_on_duty = 0
    for segment in segments:
        by_kind[segment.kind] += segment.seconds
        if segment.kind is SegmentKind.MANUAL_LOG:
            manual_on_duty += _seconds_inside(segment, windows)
    return TimelineTotals(
        duty_seconds=sum(w.seconds for w in windows),
        work_seconds=by_kind[SegmentKind.DUTY],
        break_seconds=by_kind[SegmentKind.BREAK],
        idle_seconds=by_kind[SegmentKind.IDLE],
        manual_seconds=by_kind[SegmentKind.MANUAL_LOG],
        manual_on_duty_seconds=manual_on_duty,
    )


class DailyTimelineBuilder:
    """Builds one user's timeline for one duty date from every interval source."""

    def __init__(
        self,
        *,
        windows: DutyWindowResolver,
        auto_off: AutoOffNormalizer,
        sessions: WorkSessionRepository,
        breaks: BreakRepository,
        attendance_breaks: AttendanceBreakRepository,
        manual_logs: ManualLogRepository,
        calendar: DutyCalendar,
    ):
        self._windows = windows
        self._auto_off = auto_off
        self._sessions = sessions
        self._breaks = breaks
        self._attendance_breaks = attendance_breaks
        self._manual_logs = manual_logs
        self._calendar = calendar

    def build(self, user_id: int, duty_date: str, *, viewer: Actor, now: datetime) -> DailyTimeline:
        user_id = int(user_id)
        ensure_can_view_user(viewer, user_id)
        self._calendar.parse(duty_date)

        self._auto_off.normalize_for_user(user_id, now)
        windows = self._windows.resolve(user_id, duty_date, now)

        sessions: List[Span] = []
        breaks: List[Span] = []
        if windows:
            span_start, span_end = windows[0].start, windows[-1].end
            for s in self._sessions.list_for_user_between(user_id, span_start, span_end):
                clipped = _clip(s.started_at, s.ended_at, now)
                if clipped:
                    sessions.append((*clipped, s.session_id))
            for b in self._breaks.list_for_user_between(user_id, span_start, span_end):
                clipped = _clip(b.started_at, b.ended_at, now)
                if clipped:
                    breaks.append((*clipped, b.break_id))

        attendance_breaks: List[Span] = []
        for b in self._attendance_breaks.list_for_user_and_date(user_id, duty_date):
            clipped = _clip(b.started_at, b.ended_at, now)
            if clipped:
                attendance_breaks.append((*clipped, b.break_id))

        logs: List[Span] = []
        for log in self._manual_logs.list_for_user_and_date(user_id, duty_date):
            clipped = _clip(log.start_at, log.end_at, now)
            if clipped:
                logs.append((*clipped, log.log_id))

        segments = compose_segments(windows, sessions, breaks, logs, attendance_breaks)
        return DailyTimeline(
            user_id=user_id,
            duty_date=duty_date,
            windows=windows,
            segments=segments,
            totals=summarize(windows, segments),
        )
