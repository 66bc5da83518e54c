"""Domain errors.

Every error carries a stable ``code`` discriminant and the HTTP status the
API layer answers with. Services raise these; the app factory registers a
single handler that renders them as ``{"error": ..., "code": ...}``.
"""


class PuzzleRaceError(Exception):
    code = 'INTERNAL_ERROR'
    status_code = 500

    def __init__(self, message=None, **details):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    def to_dict(self):
        payload = {'error': self.message, 'code': self.code}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(PuzzleRaceError):
    code = 'VALIDATION_ERROR'
    status_code = 400


class NotFound(PuzzleRaceError):
    code = 'NOT_FOUND'
    status_code = 404


class Conflict(PuzzleRaceError):
    code = 'CONFLICT'
    status_code = 409


class CodeAllocationExhausted(Conflict):
    code = 'CODE_ALLOCATION_EXHAUSTED'


class PreconditionFailed(PuzzleRaceError):
    code = 'PRECONDITION_FAILED'
    status_code = 400


class HostRequired(PreconditionFailed):
    code = 'HOST_REQUIRED'
    status_code = 403


class InsufficientCoins(PreconditionFailed):
    code = 'INSUFFICIENT_COINS'


class InvariantViolation(PuzzleRaceError):
    """Stored data contradicts an invariant. Never retried."""
    code = 'INVARIANT_VIOLATION'
    status_code = 500


class StorageUnavailable(PuzzleRaceError):
    """Transient storage failure (lost connection, deadlock). Callers may retry."""
    code = 'STORAGE_UNAVAILABLE'
    status_code = 503
