"""Error taxonomy shared by every GigFlow service.

Each error carries a stable machine-readable ``kind`` plus a human message.
Business-rule errors (validation, conflict, forbidden, invalid state,
not found) are expected outcomes the caller must decide on. Storage errors
are infrastructure failures and are never retried automatically.
"""


class GigflowError(Exception):
    """Base exception for GigFlow operations."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(GigflowError):
    """Raised when input is malformed or out of range."""

    kind = "validation_error"


class ConflictError(GigflowError):
    """Raised on a uniqueness violation, e.g. a duplicate bid."""

    kind = "conflict"


class ForbiddenError(GigflowError):
    """Raised when the caller does not own the resource."""

    kind = "forbidden"


class InvalidStateError(GigflowError):
    """Raised when the lifecycle state does not permit the operation."""

    kind = "invalid_state"


class NotFoundError(GigflowError):
    """Raised when a gig, bid, notification or user does not exist."""

    kind = "not_found"


class StorageError(GigflowError):
    """Raised when the store fails. The transaction, if any, was rolled back."""

    kind = "storage_error"


class TransactionTimeoutError(StorageError):
    """Raised when a transaction could not acquire the store within its timeout."""

    kind = "timeout"


class AuthenticationError(GigflowError):
    """Raised when a credential is missing or invalid."""

    kind = "unauthenticated"
