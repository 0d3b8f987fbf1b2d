import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "duty_tracker"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

# Organization-wide duty day boundaries
DUTY_TIME_ZONE = os.getenv("DUTY_TIME_ZONE", "Asia/Karachi")
ATTENDANCE_AUTO_OFF_HOURS = int(os.getenv("ATTENDANCE_AUTO_OFF_HOURS", "10"))
MANUAL_LOG_EDIT_DAYS = int(os.getenv("MANUAL_LOG_EDIT_DAYS", "2"))
