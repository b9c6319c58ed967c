"""Session domain errors.

Store errors (SQLAlchemyError) are never wrapped: they propagate to the API
layer unchanged.
"""


class SessionNotFoundError(LookupError):
    """Raised by write paths when the session does not exist for the user."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionStateError(ValueError):
    """Raised when a lifecycle transition is not allowed (e.g. completing a completed session)."""


class NumberingInvariantError(RuntimeError):
    """Raised when a computed numbering is not a dense 1..N permutation.

    Attributes:
        user_id: Owner of the sessions being renumbered
        details: Human-readable description of the violation
    """

    def __init__(self, user_id: str, details: str):
        self.user_id = user_id
        self.details = details
        super().__init__(f"Numbering invariant violated for user {user_id}: {details}")
