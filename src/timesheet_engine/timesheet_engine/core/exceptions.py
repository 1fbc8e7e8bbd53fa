class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class AuthorizationError(DomainError):
    """Raised when a caller lacks permission for an action."""

    code = "forbidden"


class AlreadyClockedIn(DomainError):
    """Clock-in attempted while already clocked in or on break."""

    code = "already_clocked_in"


class NoActiveSession(DomainError):
    """Break, resume or clock-out attempted without a compatible prior state."""

    code = "no_active_session"


class InvalidInterval(ValidationError):
    """An interval whose end is not after its start."""

    code = "invalid_interval"


class NotFound(DomainError):
    """Referenced entry or break does not exist."""

    code = "not_found"


class ConcurrentUpdate(DomainError):
    """Another transition for the same employee and date won the race."""

    code = "concurrent_update"


class StoreUnavailable(DomainError):
    """The time entry store failed; the caller decides whether to retry."""

    code = "store_unavailable"
