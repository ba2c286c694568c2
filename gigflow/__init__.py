"""
GigFlow - a freelance marketplace core.

Gigs, bids, the atomic hire, and real-time notification delivery.
"""

from .config import MarketplaceConfig
from .errors import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    GigflowError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    TransactionTimeoutError,
    ValidationError,
)

try:
    from importlib.metadata import version

    __version__ = version("gigflow")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "MarketplaceConfig",
    "GigflowError",
    "ValidationError",
    "ConflictError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "StorageError",
    "TransactionTimeoutError",
    "AuthenticationError",
]
