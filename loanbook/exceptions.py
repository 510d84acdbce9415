"""Exception hierarchy for the lending engine."""


class LoanbookError(Exception):
    """Base exception for all loanbook errors."""


class ValidationError(LoanbookError, ValueError):
    """Raised when a required field is missing or invalid, before any store call."""


class NotFoundError(LoanbookError, LookupError):
    """Raised when a client, loan or installment number does not exist."""


class PermissionDenied(LoanbookError, PermissionError):
    """Raised by a store that rejects a write."""


class ConflictError(LoanbookError):
    """Raised when an operation would contradict the loan's current state."""
