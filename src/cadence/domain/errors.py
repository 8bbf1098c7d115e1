"""
Domain error taxonomy.

Every failure is scoped to a single operation; there is no fatal error class.
"""


class CadenceError(Exception):
    """Base class for all errors raised by the scheduling core."""


class ValidationError(CadenceError):
    """Input rejected before any state was read or written. Never retried."""


class NotFoundError(CadenceError):
    """The referenced item does not exist in the item catalog."""

    def __init__(self, item_id: str):
        super().__init__(f"Item not found: {item_id}")
        self.item_id = item_id


class ConflictError(CadenceError):
    """
    A concurrent write was detected on a versioned record.

    Raised by stores when the stored version does not match the expected one.
    The submission service retries these; when retries run out it re-raises
    with ``attempts`` set so callers can treat it as a transient failure.
    """

    def __init__(self, message: str, attempts: int | None = None):
        super().__init__(message)
        self.attempts = attempts


class StorageError(CadenceError):
    """The underlying store is unavailable or failed. No partial state is visible."""


class OperationTimeoutError(StorageError):
    """The operation exceeded its deadline and was aborted before commit."""
