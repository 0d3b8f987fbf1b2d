"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DUTY_TIME_ZONE = "Asia/Karachi"

ATTENDANCE_AUTO_OFF_HOURS = 10

MANUAL_LOG_EDIT_DAYS = 2

DATE_KEY_FORMAT = "%Y-%m-%d"
