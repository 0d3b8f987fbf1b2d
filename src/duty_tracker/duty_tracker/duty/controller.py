from __future__ import annotations

from flask import Flask, request

from ..common.access import ensure_can_view_user
from ..common.datetime_utils import now_utc
from ..common.validators import require_positive_id
from ..common.web import api_view, current_actor, json_ok
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/duty-windows", methods=["GET"], endpoint="duty_windows")
    @api_view
    def duty_windows():
        actor = current_actor()
        now = now_utc()
        user_id = require_positive_id(request.args.get("userId") or actor.user_id, "User id")
        ensure_can_view_user(actor, user_id)
        duty_date = request.args.get("date") or container.calendar.today(now)

        container.auto_off_normalizer.normalize_for_user(user_id, now)
        windows = container.duty_window_resolver.resolve(user_id, duty_date, now)
        return json_ok("Duty windows loaded.", duty_date=duty_date, windows=windows)
