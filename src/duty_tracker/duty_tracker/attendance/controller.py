from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_utc
from ..common.web import api_view, current_actor, json_body, json_ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="attendance_clock_in")
    @api_view
    def clock_in():
        body = json_body()
        record = container.attendance_service.clock_in(current_actor(), now=now_utc(), note=body.get("note"))
        return json_ok("Clocked in.", 201, attendance=record, state=record.state)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="attendance_clock_out")
    @api_view
    def clock_out():
        record = container.attendance_service.clock_out(current_actor(), now=now_utc())
        return json_ok("Clocked out.", attendance=record, state=record.state)

    @app.route("/api/attendance/current-status", methods=["GET"], endpoint="attendance_current_status")
    @api_view
    def current_status():
        actor = current_actor()
        now = now_utc()
        status = container.attendance_service.current_status(actor.user_id, now=now)
        presence = container.duty_window_resolver.presence(actor.user_id, now)
        return json_ok("Attendance status loaded.", status=status, presence=presence)

    @app.route("/api/attendance/wfh/start", methods=["POST"], endpoint="attendance_wfh_start")
    @api_view
    def start_wfh():
        interval = container.attendance_service.start_wfh(current_actor(), now=now_utc())
        return json_ok("WFH started.", 201, interval=interval)

    @app.route("/api/attendance/wfh/end", methods=["POST"], endpoint="attendance_wfh_end")
    @api_view
    def end_wfh():
        interval = container.attendance_service.end_wfh(current_actor(), now=now_utc())
        return json_ok("WFH ended.", interval=interval)

    @app.route("/api/attendance/<int:attendance_id>/wfh-interval", methods=["POST"], endpoint="attendance_wfh_interval")
    @api_view
    def add_wfh_interval(attendance_id: int):
        body = json_body()
        interval = container.attendance_service.add_wfh_interval(
            current_actor(),
            attendance_id,
            start_time=body.get("startAt") or body.get("startTime"),
            end_time=body.get("endAt") or body.get("endTime"),
            now=now_utc(),
        )
        return json_ok("WFH interval added.", 201, interval=interval)
