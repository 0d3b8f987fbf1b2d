from __future__ import annotations

import pytest

from src.duty_tracker.duty_tracker.common.duty_calendar import DutyCalendar
from src.duty_tracker.duty_tracker.core.enums import ManualLogCategory
from src.duty_tracker.duty_tracker.core.exceptions import (
    ManualLogAlreadyRunning,
    ManualLogDateNotAllowed,
    OverlappingManualLog,
)
from src.duty_tracker.duty_tracker.manual_logs.conflicts import (
    ManualLogConflictDetector,
    check_write,
    first_conflict,
    first_running,
)
from src.duty_tracker.duty_tracker.manual_logs.model import ManualActivityLog

from tests.fakes import InMemoryManualLogRepo, pkt


def _log(log_id, start_hour, end_hour=None):
    return ManualActivityLog(
        log_id=log_id,
        user_id=7,
        description="log",
        duty_date="2026-03-10",
        categories=(ManualLogCategory.OTHER,),
        start_at=pkt(2026, 3, 10, start_hour),
        end_at=pkt(2026, 3, 10, end_hour) if end_hour is not None else None,
    )


def test_touching_intervals_do_not_conflict():
    logs = [_log(1, 10, 11)]
    assert first_conflict(logs, pkt(2026, 3, 10, 11), pkt(2026, 3, 10, 12)) is None
    assert first_conflict(logs, pkt(2026, 3, 10, 9), pkt(2026, 3, 10, 10)) is None
    assert first_conflict(logs, pkt(2026, 3, 10, 10, 30), pkt(2026, 3, 10, 11, 30)).log_id == 1


def test_open_log_extends_without_bound():
    logs = [_log(1, 10)]
    assert first_conflict(logs, pkt(2026, 3, 10, 15), pkt(2026, 3, 10, 16)).log_id == 1
    assert first_conflict(logs, pkt(2026, 3, 10, 8), pkt(2026, 3, 10, 9)) is None


def test_new_open_log_is_checked_to_infinity():
    logs = [_log(1, 10, 11), _log(2, 13, 14)]
    assert first_conflict(logs, pkt(2026, 3, 10, 12)).log_id == 2
    assert first_conflict(logs, pkt(2026, 3, 10, 14)) is None


def test_excluded_log_is_ignored():
    logs = [_log(1, 10, 11)]
    assert first_conflict(logs, pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 11), exclude_id=1) is None


def test_latest_running_log_wins():
    logs = [_log(1, 8), _log(2, 10), _log(3, 11, 12)]
    assert first_running(logs).log_id == 2
    assert first_running(logs, exclude_id=2).log_id == 1


def test_check_write_reports_running_before_overlap():
    with pytest.raises(ManualLogAlreadyRunning):
        check_write([_log(1, 10)], start_at=pkt(2026, 3, 10, 9), end_at=None)
    with pytest.raises(OverlappingManualLog):
        check_write([_log(1, 10, 11)], start_at=pkt(2026, 3, 10, 10, 30), end_at=pkt(2026, 3, 10, 12))
    check_write([_log(1, 10, 11)], start_at=pkt(2026, 3, 10, 11), end_at=pkt(2026, 3, 10, 12))


def test_detector_queries_the_users_logs():
    repo = InMemoryManualLogRepo()
    repo.create(
        user_id=7,
        description="deep dive",
        duty_date="2026-03-10",
        categories=(ManualLogCategory.RESEARCH,),
        start_at=pkt(2026, 3, 10, 10),
        end_at=None,
        duration_seconds=None,
    )
    detector = ManualLogConflictDetector(repo, DutyCalendar("Asia/Karachi"))

    assert detector.find_open_log(7).description == "deep dive"
    assert detector.find_open_log(8) is None
    assert detector.find_conflict(7, pkt(2026, 3, 10, 12), pkt(2026, 3, 10, 13)) is not None
    assert detector.find_conflict(8, pkt(2026, 3, 10, 12), pkt(2026, 3, 10, 13)) is None


def test_date_window_is_today_and_two_previous_days():
    detector = ManualLogConflictDetector(InMemoryManualLogRepo(), DutyCalendar("Asia/Karachi"), edit_days=2)
    now = pkt(2026, 3, 10, 12)

    for allowed in ("2026-03-10", "2026-03-09", "2026-03-08"):
        detector.ensure_date_allowed(allowed, now)
    for rejected in ("2026-03-07", "2026-03-11"):
        with pytest.raises(ManualLogDateNotAllowed):
            detector.ensure_date_allowed(rejected, now)


def test_date_window_follows_reference_zone_midnight():
    detector = ManualLogConflictDetector(InMemoryManualLogRepo(), DutyCalendar("Asia/Karachi"))
    # Still 2026-03-10 in UTC, already 2026-03-11 in Karachi
    now = pkt(2026, 3, 11, 0, 30)
    detector.ensure_date_allowed("2026-03-09", now)
    with pytest.raises(ManualLogDateNotAllowed):
        detector.ensure_date_allowed("2026-03-08", now)
