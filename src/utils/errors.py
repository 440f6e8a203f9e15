"""Custom exception types for consistent error handling."""


class FirestoreUnavailableError(Exception):
    """Raised when Firestore queries fail or are unavailable."""


class InvalidInputError(Exception):
    """Raised when request input validation fails."""


class InvalidPreferencesError(InvalidInputError):
    """Raised when a preference record, candidate or filter set is malformed.

    ``errors`` holds the pydantic error list so callers can report which
    field was wrong (e.g. ``courses`` not being a list).
    """

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []


class GraphExecutionError(Exception):
    """Raised when a graph fails to compile or execute."""
