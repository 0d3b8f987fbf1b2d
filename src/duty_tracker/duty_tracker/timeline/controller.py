from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import now_utc
from ..common.validators import require_positive_id
from ..common.web import api_view, current_actor, json_ok, to_json
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/api/analytics/daily-timeline", methods=["GET"], endpoint="daily_timeline")
    @api_view
    def daily_timeline():
        actor = current_actor()
        now = now_utc()
        user_id = require_positive_id(request.args.get("userId") or actor.user_id, "User id")
        duty_date = request.args.get("date") or container.calendar.today(now)

        timeline = container.timeline_builder.build(user_id, duty_date, viewer=actor, now=now)
        totals = {**to_json(timeline.totals), "utilization_percent": timeline.totals.utilization_percent}
        return json_ok(
            "Daily timeline loaded.",
            user_id=timeline.user_id,
            duty_date=timeline.duty_date,
            windows=timeline.windows,
            segments=timeline.segments,
            totals=totals,
        )
