from __future__ import annotations

import pytest

from src.duty_tracker.duty_tracker.common.access import Actor
from src.duty_tracker.duty_tracker.core.enums import ManualLogCategory
from src.duty_tracker.duty_tracker.core.exceptions import (
    AuthorizationError,
    ManualLogAlreadyRunning,
    ManualLogDateNotAllowed,
    NotFoundError,
    OverlappingManualLog,
    ValidationError,
)
from src.duty_tracker.duty_tracker.manual_logs.service import normalize_categories

from tests.fakes import build_engine, pkt

DEV = Actor.of(7, "developer")
OTHER_DEV = Actor.of(8, "senior developer")
PM = Actor.of(2, "pm")
NOW = pkt(2026, 3, 10, 18, 0)


def _create(engine, start, end=None, *, actor=DEV, duty_date="2026-03-10", now=NOW):
    return engine.manual_logs.create(
        actor,
        description="Reading docs",
        categories=["learning"],
        start_time=start,
        end_time=end,
        duty_date=duty_date,
        now=now,
    )


def test_categories_are_normalized():
    assert normalize_categories(["learning", "RESEARCH", "Learning"]) == (
        ManualLogCategory.LEARNING,
        ManualLogCategory.RESEARCH,
    )
    for bad in (None, [], ["learning", "gaming"]):
        with pytest.raises(ValidationError):
            normalize_categories(bad)


def test_create_completed_log():
    engine = build_engine()
    log = _create(engine, "10:00", "11:30")
    assert log.start_at == pkt(2026, 3, 10, 10, 0)
    assert log.end_at == pkt(2026, 3, 10, 11, 30)
    assert log.duration_seconds == 5400
    assert log.status == "COMPLETED"


def test_overlap_is_rejected_but_touching_is_fine():
    engine = build_engine()
    _create(engine, "10:00", "11:00")
    with pytest.raises(OverlappingManualLog):
        _create(engine, "10:30", "11:30")
    _create(engine, "11:00", "12:00")


def test_other_users_logs_do_not_conflict():
    engine = build_engine()
    _create(engine, "10:00", "11:00")
    _create(engine, "10:00", "11:00", actor=OTHER_DEV)


def test_only_one_running_log():
    engine = build_engine()
    running = _create(engine, "16:00")
    assert running.status == "RUNNING"
    with pytest.raises(ManualLogAlreadyRunning):
        _create(engine, "17:00")
    with pytest.raises(OverlappingManualLog):
        _create(engine, "17:00", "17:30")


def test_future_and_inverted_intervals_are_rejected():
    engine = build_engine()
    with pytest.raises(ValidationError):
        _create(engine, "17:00", "19:00")
    with pytest.raises(ValidationError):
        _create(engine, "11:00", "10:00")
    with pytest.raises(ValidationError):
        _create(engine, "11:00", "11:00")


def test_date_outside_edit_window():
    engine = build_engine()
    with pytest.raises(ManualLogDateNotAllowed):
        _create(engine, "10:00", "11:00", duty_date="2026-03-07")
    _create(engine, "10:00", "11:00", duty_date="2026-03-08")


def test_description_is_required():
    engine = build_engine()
    with pytest.raises(ValidationError):
        engine.manual_logs.create(
            DEV, description="  ", categories=["other"], start_time="10:00", end_time="11:00", now=NOW
        )


def test_stop_running_log():
    engine = build_engine()
    running = _create(engine, "16:00")
    stopped = engine.manual_logs.stop(DEV, running.log_id, now=NOW)
    assert stopped.end_at == NOW
    assert stopped.duration_seconds == 2 * 3600
    with pytest.raises(ValidationError):
        engine.manual_logs.stop(DEV, running.log_id, now=NOW)


def test_update_needs_both_times():
    engine = build_engine()
    log = _create(engine, "10:00", "11:00")
    with pytest.raises(ValidationError):
        engine.manual_logs.update(DEV, log.log_id, start_time="10:15", now=NOW)

    updated = engine.manual_logs.update(
        DEV, log.log_id, description="Paper review", start_time="10:15", end_time="11:15", now=NOW
    )
    assert updated.description == "Paper review"
    assert updated.duration_seconds == 3600


def test_update_checks_overlap_against_other_logs_only():
    engine = build_engine()
    first = _create(engine, "10:00", "11:00")
    _create(engine, "12:00", "13:00")
    engine.manual_logs.update(DEV, first.log_id, start_time="10:30", end_time="11:30", now=NOW)
    with pytest.raises(OverlappingManualLog):
        engine.manual_logs.update(DEV, first.log_id, start_time="11:30", end_time="12:30", now=NOW)


def test_foreign_logs_look_missing():
    engine = build_engine()
    log = _create(engine, "10:00", "11:00")
    with pytest.raises(NotFoundError):
        engine.manual_logs.update(OTHER_DEV, log.log_id, description="mine now", now=NOW)
    with pytest.raises(NotFoundError):
        engine.manual_logs.delete(OTHER_DEV, log.log_id, now=NOW)
    engine.manual_logs.delete(DEV, log.log_id, now=NOW)
    assert engine.manual_logs_repo.get_by_id(log.log_id) is None


def test_listing_other_users_needs_management_role():
    engine = build_engine()
    _create(engine, "12:00", "13:00")
    _create(engine, "10:00", "11:00")
    with pytest.raises(AuthorizationError):
        engine.manual_logs.list_for_date(OTHER_DEV, "2026-03-10", user_id=7)
    logs = engine.manual_logs.list_for_date(PM, "2026-03-10", user_id=7)
    assert [log.start_at for log in logs] == [pkt(2026, 3, 10, 10), pkt(2026, 3, 10, 12)]
