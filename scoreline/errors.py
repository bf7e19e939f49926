"""Domain errors raised by the scoreline services.

Every error here is a local, recoverable condition. The HTTP layer maps each
family to a status code through ``http_status``.
"""


class ScorelineError(Exception):
    """Base class for domain errors."""
    http_status = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(ScorelineError):
    """Malformed or missing input."""
    http_status = 400


class JokerLimitError(ValidationError):
    """A batch would push a player past the round's joker quota."""


class StateConflictError(ScorelineError):
    """The operation is not allowed in the current round state."""
    http_status = 409


class RoundLockedError(StateConflictError):
    """The round no longer accepts predictions."""


class NotFoundError(ScorelineError):
    http_status = 404


class PermissionDeniedError(ScorelineError):
    http_status = 403
