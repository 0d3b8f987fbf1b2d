from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_utc
from ..common.web import api_view, current_actor, json_body, json_ok, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.manual_log_service

    @app.route("/api/activity/manual", methods=["GET"], endpoint="manual_logs_list")
    @api_view
    def list_logs():
        actor = current_actor()
        duty_date = request.args.get("date") or container.calendar.today(now_utc())
        logs = service.list_for_date(actor, duty_date, request.args.get("userId"))
        return json_ok(
            "Manual logs loaded.",
            duty_date=duty_date,
            logs=[_log_payload(log) for log in logs],
        )

    @app.route("/api/activity/manual", methods=["POST"], endpoint="manual_logs_create")
    @api_view
    def create_log():
        body = json_body()
        log = service.create(
            current_actor(),
            description=body.get("description"),
            categories=body.get("categories"),
            start_time=body.get("startTime"),
            end_time=body.get("endTime"),
            duty_date=body.get("date"),
            now=now_utc(),
        )
        return json_ok("Activity log created.", 201, activity_log=_log_payload(log))

    @app.route("/api/activity/manual/<int:log_id>", methods=["PATCH"], endpoint="manual_logs_update")
    @api_view
    def update_log(log_id: int):
        body = json_body()
        log = service.update(
            current_actor(),
            log_id,
            description=body.get("description"),
            categories=body.get("categories"),
            duty_date=body.get("date"),
            start_time=body.get("startTime"),
            end_time=body.get("endTime"),
            now=now_utc(),
        )
        return json_ok("Activity log updated.", activity_log=_log_payload(log))

    @app.route("/api/activity/manual/<int:log_id>/stop", methods=["POST"], endpoint="manual_logs_stop")
    @api_view
    def stop_log(log_id: int):
        log = service.stop(current_actor(), log_id, now=now_utc())
        return json_ok("Activity log stopped.", activity_log=_log_payload(log))

    @app.route("/api/activity/manual/<int:log_id>", methods=["DELETE"], endpoint="manual_logs_delete")
    @api_view
    def delete_log(log_id: int):
        service.delete(current_actor(), log_id, now=now_utc())
        return json_ok("Activity log deleted.")


def _log_payload(log) -> dict:
    return {**to_json(log), "status": log.status}
