"""
Exceptions raised by the storage layer.

Absent rows and conflicting writes are reported through return values
(``None`` or ``False``); only infrastructural and programming failures are
raised.
"""


class StoreError(Exception):
    """Base exception for storage errors."""

    pass


class StoreUnavailableError(StoreError):
    """Raised when a connection cannot be acquired or a statement fails."""

    def __init__(self, message: str = 'The store is unavailable'):
        super().__init__(message)


class SerializationFailureError(StoreError):
    """Raised when a transaction aborts because of a concurrent conflicting write.

    The operation never partially applies, so callers may retry it with the
    same inputs.
    """

    def __init__(
        self, message: str = 'Transaction aborted by a concurrent conflicting write'
    ):
        super().__init__(message)


class MalformedRowError(StoreError):
    """Raised when a row read from the store does not match its record type."""

    def __init__(self, message: str = 'Row does not match the expected shape'):
        super().__init__(message)


class InvariantViolationError(StoreError):
    """Raised when a transaction observes state that should be impossible."""

    def __init__(self, message: str = 'Store invariant violated'):
        super().__init__(message)
