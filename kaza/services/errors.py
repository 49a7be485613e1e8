"""Domain errors raised by the service layer and mapped to HTTP in kaza.main."""


class CommissionError(Exception):
    """Base class for service errors."""


class TierValidationError(CommissionError):
    """Tier data rejected before any write (bad bounds, percentage, missing field)."""


class TierConflictError(TierValidationError):
    """A tier with the same key already exists."""


class NotFoundError(CommissionError):
    """Referenced row does not exist."""


class PermissionDeniedError(CommissionError):
    """The acting profile may not perform this operation."""


class InvalidPeriodError(CommissionError):
    """Month or year outside the calendar."""
