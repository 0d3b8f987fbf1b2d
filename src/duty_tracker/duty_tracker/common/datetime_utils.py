from __future__ import annotations

import re
from datetime import datetime, time, timedelta, timezone
from typing import Optional

from ..core.exceptions import ValidationError

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([aApP])\.?\s*[mM]\.?$")


def now_utc() -> datetime:
    """Current instant (timezone-aware, UTC).

    Note: Only controllers call this; services always receive `now`.
    """
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC instants."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_iso_datetime(value, field_name: str = "Time") -> datetime:
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = str(value or "").strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(f"{field_name} must be a valid ISO timestamp.")


def parse_time_input(value) -> time:
    """Parse wall-clock input: HH:MM, HH:MM:SS or h:MM AM/PM."""
    if isinstance(value, time):
        return value
    text = str(value or "").strip()

    match = _TIME_12H.match(text)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if not 1 <= hours <= 12 or minutes > 59:
            raise ValidationError(f"Invalid time: {value!r}")
        hours = hours % 12 + (12 if match.group(3).upper() == "P" else 0)
        return time(hours, minutes)

    match = _TIME_24H.match(text)
    if not match:
        raise ValidationError(f"Invalid time: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        raise ValidationError(f"Invalid time: {value!r}")
    return time(hours, minutes, seconds)


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, floored and clamped at zero."""
    return max(0, (end - start) // timedelta(seconds=1))


def to_iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return ensure_aware(value).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
