from __future__ import annotations

import importlib
import logging
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .breaks.controller import register as register_breaks
from .container import build_container
from .core.constants import ATTENDANCE_AUTO_OFF_HOURS, DUTY_TIME_ZONE, MANUAL_LOG_EDIT_DAYS
from .database.bootstrap import apply_schema, list_tables
from .database.connection import DBConfig
from .duty.controller import register as register_duty
from .manual_logs.controller import register as register_manual_logs
from .tasks.controller import register as register_tasks
from .timeline.controller import register as register_timeline

logger = logging.getLogger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logger.info("settings=%s db=%s", settings_module, DBConfig.from_settings(db_config).describe())

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("schema ready (tables=%d)", len(list_tables(db_config)))

    container = build_container(
        db_config=db_config,
        time_zone=getattr(settings, "DUTY_TIME_ZONE", DUTY_TIME_ZONE),
        auto_off_hours=int(getattr(settings, "ATTENDANCE_AUTO_OFF_HOURS", ATTENDANCE_AUTO_OFF_HOURS)),
        manual_log_edit_days=int(getattr(settings, "MANUAL_LOG_EDIT_DAYS", MANUAL_LOG_EDIT_DAYS)),
    )

    register_attendance(app, container)
    register_duty(app, container)
    register_tasks(app, container)
    register_breaks(app, container)
    register_manual_logs(app, container)
    register_timeline(app, container)

    return app
