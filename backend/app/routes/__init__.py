"""API routes."""

from .auth import router as auth_router
from .gigs import router as gigs_router
from .realtime import router as realtime_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "gigs_router",
    "users_router",
    "realtime_router",
]
