class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when an input payload is malformed (bad dates, bad numbers, missing keys)."""


class StorageError(DomainError):
    """Raised when a grid store lookup, insert or update fails."""


class DuplicationConflictError(DomainError):
    """Raised by callers that prefer exceptions over a blocked SaveResult."""

    def __init__(self, result):
        super().__init__(result.message or "A timesheet already exists for this period")
        self.result = result


class SaveStateError(DomainError):
    """Raised on an illegal save state machine transition."""


class CancellationNotAllowedError(SaveStateError):
    """Raised when a save is cancelled after it has started touching storage."""
