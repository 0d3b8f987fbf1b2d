from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

from ..core.constants import DATE_KEY_FORMAT, DUTY_TIME_ZONE
from ..core.exceptions import InvalidDateKey
from .datetime_utils import ensure_aware, parse_time_input

_DATE_KEY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DutyCalendar:
    """Organizational day boundaries in one fixed reference time zone.

    Every user shares the same duty date for a given instant, regardless of
    personal locale or device clock. Date keys are ``YYYY-MM-DD`` strings, so
    lexical comparison is chronological comparison.
    """

    time_zone: str = DUTY_TIME_ZONE

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.time_zone)

    def duty_date_of(self, instant: datetime) -> str:
        local = ensure_aware(instant).astimezone(self.zone)
        return local.date().strftime(DATE_KEY_FORMAT)

    def today(self, now: datetime) -> str:
        return self.duty_date_of(now)

    @staticmethod
    def parse(date_key: str) -> date:
        text = date_key.strip() if isinstance(date_key, str) else ""
        if not _DATE_KEY.match(text):
            raise InvalidDateKey(f"Date must be YYYY-MM-DD, got {date_key!r}")
        try:
            return datetime.strptime(text, DATE_KEY_FORMAT).date()
        except ValueError:
            raise InvalidDateKey(f"Date does not exist: {date_key!r}")

    @staticmethod
    def key_of(value: date) -> str:
        return value.strftime(DATE_KEY_FORMAT)

    def shift(self, date_key: str, delta_days: int) -> str:
        return self.key_of(self.parse(date_key) + timedelta(days=int(delta_days)))

    @staticmethod
    def compare(a: str, b: str) -> int:
        if a == b:
            return 0
        return 1 if a > b else -1

    def is_in_range(self, date_key: str, min_key: str, max_key: str) -> bool:
        return self.compare(date_key, min_key) >= 0 and self.compare(date_key, max_key) <= 0

    def day_bounds(self, date_key: str) -> Tuple[datetime, datetime]:
        """UTC instants of local midnight on the date and on the next date."""
        day = self.parse(date_key)
        start = datetime.combine(day, time.min, tzinfo=self.zone)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.zone)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)

    def combine(self, date_key: str, wall_time) -> datetime:
        """Wall-clock time on a duty date in the reference zone, as a UTC instant."""
        day = self.parse(date_key)
        local = datetime.combine(day, parse_time_input(wall_time), tzinfo=self.zone)
        return local.astimezone(timezone.utc)
