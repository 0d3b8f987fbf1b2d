from __future__ import annotations

from dataclasses import dataclass

from .attendance.auto_off import AutoOffNormalizer
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .attendance.strategies.fixed_cap_strategy import FixedCapAutoOffStrategy
from .breaks.attendance_breaks import AttendanceBreakService
from .breaks.mysql_attendance_break_repository import MySQLAttendanceBreakRepository
from .breaks.mysql_break_repository import MySQLBreakRepository
from .breaks.service import BreakLedger
from .common.duty_calendar import DutyCalendar
from .core.constants import ATTENDANCE_AUTO_OFF_HOURS, DUTY_TIME_ZONE, MANUAL_LOG_EDIT_DAYS
from .database.connection import DatabaseConnection
from .duty.service import DutyWindowResolver
from .manual_logs.conflicts import ManualLogConflictDetector
from .manual_logs.mysql_manual_log_repository import MySQLManualLogRepository
from .manual_logs.service import ManualLogService
from .tasks.active_session import ActiveSessionTracker
from .tasks.mysql_task_repository import MySQLTaskRepository, MySQLWorkSessionRepository
from .tasks.service import WorkSessionService
from .tasks.session_closer import WorkSessionCloser
from .timeline.service import DailyTimelineBuilder


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection
    calendar: DutyCalendar

    attendance_repo: MySQLAttendanceRepository
    tasks_repo: MySQLTaskRepository
    sessions_repo: MySQLWorkSessionRepository
    breaks_repo: MySQLBreakRepository
    attendance_breaks_repo: MySQLAttendanceBreakRepository
    manual_logs_repo: MySQLManualLogRepository

    auto_off_normalizer: AutoOffNormalizer
    session_closer: WorkSessionCloser
    attendance_service: AttendanceService
    duty_window_resolver: DutyWindowResolver
    work_session_service: WorkSessionService
    active_session_tracker: ActiveSessionTracker
    break_ledger: BreakLedger
    attendance_break_service: AttendanceBreakService
    manual_log_service: ManualLogService
    timeline_builder: DailyTimelineBuilder


def build_container(
    *,
    db_config: dict,
    time_zone: str = DUTY_TIME_ZONE,
    auto_off_hours: int = ATTENDANCE_AUTO_OFF_HOURS,
    manual_log_edit_days: int = MANUAL_LOG_EDIT_DAYS,
) -> Container:
    conn = DatabaseConnection.from_settings(db_config)
    calendar = DutyCalendar(time_zone)

    attendance_repo = MySQLAttendanceRepository(conn)
    tasks_repo = MySQLTaskRepository(conn)
    sessions_repo = MySQLWorkSessionRepository(conn)
    breaks_repo = MySQLBreakRepository(conn)
    attendance_breaks_repo = MySQLAttendanceBreakRepository(conn)
    manual_logs_repo = MySQLManualLogRepository(conn)

    session_closer = WorkSessionCloser(tasks_repo, sessions_repo, breaks_repo)
    auto_off_normalizer = AutoOffNormalizer(
        attendance_repo,
        strategy=FixedCapAutoOffStrategy(hours=auto_off_hours),
        session_closer=session_closer,
        manual_logs=manual_logs_repo,
    )
    attendance_service = AttendanceService(
        attendance_repo,
        calendar=calendar,
        auto_off=auto_off_normalizer,
        session_closer=session_closer,
    )
    duty_window_resolver = DutyWindowResolver(attendance_repo, auto_off_normalizer, calendar)
    work_session_service = WorkSessionService(
        tasks_repo,
        sessions_repo,
        closer=session_closer,
        attendance=attendance_service,
    )
    active_session_tracker = ActiveSessionTracker(
        tasks_repo,
        sessions_repo,
        breaks_repo,
        auto_off=auto_off_normalizer,
        windows=duty_window_resolver,
        calendar=calendar,
    )
    break_ledger = BreakLedger(breaks_repo, tasks_repo, sessions_repo)
    attendance_break_service = AttendanceBreakService(
        attendance_breaks_repo,
        attendance_repo,
        calendar=calendar,
        auto_off=auto_off_normalizer,
    )
    detector = ManualLogConflictDetector(manual_logs_repo, calendar, edit_days=manual_log_edit_days)
    manual_log_service = ManualLogService(manual_logs_repo, detector, calendar)
    timeline_builder = DailyTimelineBuilder(
        windows=duty_window_resolver,
        auto_off=auto_off_normalizer,
        sessions=sessions_repo,
        breaks=breaks_repo,
        attendance_breaks=attendance_breaks_repo,
        manual_logs=manual_logs_repo,
        calendar=calendar,
    )

    return Container(
        conn=conn,
        calendar=calendar,
        attendance_repo=attendance_repo,
        tasks_repo=tasks_repo,
        sessions_repo=sessions_repo,
        breaks_repo=breaks_repo,
        attendance_breaks_repo=attendance_breaks_repo,
        manual_logs_repo=manual_logs_repo,
        auto_off_normalizer=auto_off_normalizer,
        session_closer=session_closer,
        attendance_service=attendance_service,
        duty_window_resolver=duty_window_resolver,
        work_session_service=work_session_service,
        active_session_tracker=active_session_tracker,
        break_ledger=break_ledger,
        attendance_break_service=attendance_break_service,
        manual_log_service=manual_log_service,
        timeline_builder=timeline_builder,
    )
