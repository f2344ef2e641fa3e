"""
Domain errors raised by the bracket engine.

Each error carries the HTTP status the route layer should answer with. The
set is closed: services raise one of the four subclasses, never BracketError
itself.
"""


class BracketError(Exception):
    """Base class for bracket engine failures"""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class ValidationError(BracketError):
    """Input is well-formed but violates a match rule (winner/score mismatch, ties, negatives)"""

    status_code = 400


class ForbiddenError(BracketError):
    """Tournament belongs to another organizer"""

    status_code = 403


class NotFoundError(BracketError):
    """Tournament, match or player does not exist in this tournament"""

    status_code = 404


class ConflictError(BracketError):
    """Operation is not legal in the current bracket state"""

    status_code = 409
