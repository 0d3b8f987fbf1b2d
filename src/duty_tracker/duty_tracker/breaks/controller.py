from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_utc
from ..common.web import api_view, current_actor, json_body, json_ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tasks/<int:task_id>/breaks/start", methods=["POST"], endpoint="task_break_start")
    @api_view
    def start_break(task_id: int):
        body = json_body()
        brk = container.break_ledger.start_break(
            current_actor(),
            task_id,
            body.get("reasons") or body.get("reason"),
            body.get("note"),
            now=now_utc(),
        )
        return json_ok("Break started.", 201, task_break=brk, label=brk.label)

    @app.route("/api/tasks/<int:task_id>/breaks/end", methods=["POST"], endpoint="task_break_end")
    @api_view
    def end_break(task_id: int):
        brk = container.break_ledger.end_break(current_actor(), task_id, now=now_utc())
        return json_ok("Break ended.", task_break=brk, label=brk.label)

    @app.route("/api/attendance/<int:attendance_id>/breaks", methods=["GET"], endpoint="attendance_break_list")
    @api_view
    def list_attendance_breaks(attendance_id: int):
        breaks = container.attendance_break_service.list_for_attendance(current_actor(), attendance_id)
        return json_ok("Breaks loaded.", breaks=breaks)

    @app.route("/api/attendance/<int:attendance_id>/breaks", methods=["POST"], endpoint="attendance_break_add")
    @api_view
    def add_attendance_break(attendance_id: int):
        body = json_body()
        brk = container.attendance_break_service.add_break(
            current_actor(),
            attendance_id,
            reasons=body.get("types") or body.get("type"),
            start_time=body.get("startTime"),
            duration_minutes=body.get("durationMinutes"),
            note=body.get("notes"),
            now=now_utc(),
        )
        return json_ok("Break added.", 201, attendance_break=brk, label=brk.label)

    @app.route("/api/attendance/breaks/<int:break_id>", methods=["PATCH"], endpoint="attendance_break_update")
    @api_view
    def update_attendance_break(break_id: int):
        body = json_body()
        brk = container.attendance_break_service.update_break(
            current_actor(),
            break_id,
            reasons=body.get("types") or body.get("type"),
            start_time=body.get("startTime"),
            duration_minutes=body.get("durationMinutes"),
            note=body.get("notes"),
            now=now_utc(),
        )
        return json_ok("Break updated.", attendance_break=brk, label=brk.label)

    @app.route("/api/attendance/breaks/<int:break_id>", methods=["DELETE"], endpoint="attendance_break_delete")
    @api_view
    def delete_attendance_break(break_id: int):
        container.attendance_break_service.delete_break(current_actor(), break_id, now=now_utc())
        return json_ok("Break deleted.")
