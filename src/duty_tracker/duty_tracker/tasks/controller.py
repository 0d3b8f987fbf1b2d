from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import now_utc
from ..common.web import api_view, current_actor, json_ok, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/tasks/<int:task_id>/sessions/start", methods=["POST"], endpoint="task_session_start")
    @api_view
    def start_session(task_id: int):
        session_ = container.work_session_service.start_session(current_actor(), task_id, now=now_utc())
        return json_ok("Work session started.", 201, session=session_)

    @app.route("/api/tasks/<int:task_id>/sessions/stop", methods=["POST"], endpoint="task_session_stop")
    @api_view
    def stop_session(task_id: int):
        session_ = container.work_session_service.stop_session(current_actor(), task_id, now=now_utc())
        return json_ok("Work session stopped.", session=session_)

    @app.route("/api/tasks/active-session", methods=["GET"], endpoint="task_active_session")
    @api_view
    def active_session():
        view = container.active_session_tracker.active_session(current_actor(), now_utc())
        if view is None:
            return json_ok("No active session.", active_session=None)
        payload = to_json(view)
        payload["is_paused"] = view.is_paused
        return json_ok("Active session loaded.", active_session=payload)

