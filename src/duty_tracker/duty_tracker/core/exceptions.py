class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidDateKey(ValidationError):
    """Raised when a date key is not a valid YYYY-MM-DD calendar date."""


class InvalidTaskStatus(ValidationError):
    """Raised when a task is not in a status that allows the action."""


class ManualLogDateNotAllowed(ValidationError):
    """Raised when a manual log falls outside the editable duty dates."""


class BreakOutsideDutyWindow(ValidationError):
    """Raised when an attendance break does not fit inside the duty window."""

    status_code = 422


class ConflictError(DomainError):
    """Raised when the request collides with existing state."""

    status_code = 409


class BreakAlreadyOpen(ConflictError):
    pass


class NoActiveBreak(ConflictError):
    pass


class NoActiveWorkSession(ConflictError):
    pass


class WorkSessionAlreadyRunning(ConflictError):
    pass


class AttendanceClosed(ConflictError):
    """Raised when today's attendance has already been clocked out or auto-closed."""


class OverlappingManualLog(ConflictError):
    pass


class ManualLogAlreadyRunning(ConflictError):
    pass


class WfhAlreadyRunning(ConflictError):
    pass


class NoActiveWfh(ConflictError):
    pass


class NotFoundError(DomainError):
    status_code = 404


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403
