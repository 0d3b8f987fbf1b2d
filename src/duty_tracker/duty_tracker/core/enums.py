from __future__ import annotations

from enum import Enum

from .exceptions import ValidationError


class Role(str, Enum):
    """Closed set of user roles; raw strings go through `normalize_role`."""

    CEO = "ceo"
    PM = "pm"
    CTO = "cto"
    SENIOR_DEV = "senior-developer"
    DEV = "developer"

    @property
    def is_management(self) -> bool:
        return self in MANAGEMENT_ROLES


MANAGEMENT_ROLES = frozenset({Role.CEO, Role.PM, Role.CTO})

_ROLE_ALIASES = {
    "CEO": Role.CEO,
    "PM": Role.PM,
    "CTO": Role.CTO,
    "SENIOR_DEV": Role.SENIOR_DEV,
    "SENIOR_DEVELOPER": Role.SENIOR_DEV,
    "DEV": Role.DEV,
    "DEVELOPER": Role.DEV,
}


def normalize_role(value) -> Role:
    """Map any historical role spelling to a canonical `Role`."""
    if isinstance(value, Role):
        return value
    key = str(value or "").strip().replace("-", "_").replace(" ", "_").upper()
    role = _ROLE_ALIASES.get(key)
    if role is None:
        raise ValidationError(f"Unknown role: {value!r}")
    return role


class TaskStatus(str, Enum):
    BACKLOG = "BACKLOG"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    DEV_TEST = "DEV_TEST"
    TESTING = "TESTING"
    DONE = "DONE"
    REJECTED = "REJECTED"

    @property
    def is_active_work(self) -> bool:
        return self in ACTIVE_WORK_STATUSES


ACTIVE_WORK_STATUSES = frozenset({TaskStatus.IN_PROGRESS, TaskStatus.DEV_TEST})


class BreakReason(str, Enum):
    NAMAZ = "NAMAZ"
    LUNCH = "LUNCH"
    DINNER = "DINNER"
    REFRESHMENT = "REFRESHMENT"
    OTHER = "OTHER"


class ManualLogCategory(str, Enum):
    LEARNING = "LEARNING"
    RESEARCH = "RESEARCH"
    OTHER = "OTHER"


class AttendanceState(str, Enum):
    """Lifecycle of an attendance record. AUTO_CLOSED and CLOSED are terminal."""

    OPEN = "OPEN"
    AUTO_CLOSED = "AUTO_CLOSED"
    CLOSED = "CLOSED"


class BreakSource(str, Enum):
    """Which ledger a break came from."""

    TASK = "TASK"
    ATTENDANCE = "ATTENDANCE"


class DutySource(str, Enum):
    ATTENDANCE = "ATTENDANCE"
    WFH = "WFH"


class Presence(str, Enum):
    IN_OFFICE = "IN_OFFICE"
    WFH = "WFH"
    OFF_DUTY = "OFF_DUTY"


class EndedBy(str, Enum):
    USER = "USER"
    AUTO_OFF = "AUTO_OFF"


class SegmentKind(str, Enum):
    DUTY = "DUTY"
    BREAK = "BREAK"
    MANUAL_LOG = "MANUAL_LOG"
    IDLE = "IDLE"
