"""Storage and service wiring for the GigFlow backend.

One SQLiteStorage and one TopicRouter are shared by the whole process. The
services are thin and stateless, built on demand around them.
"""

import threading
from typing import Annotated

from fastapi import Depends

from gigflow.accounts import AccountService
from gigflow.marketplace import BidService, GigService, HiringService
from gigflow.notifications import NotificationDispatcher
from gigflow.realtime import TopicRouter
from gigflow.storage import SQLiteStorage

from .config import Settings, get_settings

_lock = threading.Lock()
_storage: SQLiteStorage | None = None
_topic_router: TopicRouter | None = None


def _verify_token(token: str) -> str:
    # Import here to avoid circular imports
    from .auth import user_id_from_token

    return user_id_from_token(token)


def get_storage_instance(settings: Settings | None = None) -> SQLiteStorage:
    """Get the cached storage, opening the database on first use."""
    global _storage
    with _lock:
        if _storage is None:
            if settings is None:
                settings = get_settings()
            _storage = SQLiteStorage(settings.database_path, config=settings.marketplace_config())
        return _storage


def get_topic_router() -> TopicRouter:
    """Get the process-wide realtime topic router."""
    global _topic_router
    with _lock:
        if _topic_router is None:
            _topic_router = TopicRouter(verify_token=_verify_token)
        return _topic_router


def reset_state() -> None:
    """Forget the cached storage and router. Used by tests."""
    global _storage, _topic_router
    with _lock:
        _storage = None
        _topic_router = None


def get_db(settings: Annotated[Settings, Depends(get_settings)]) -> SQLiteStorage:
    """FastAPI dependency for the storage backend."""
    return get_storage_instance(settings)


Database = Annotated[SQLiteStorage, Depends(get_db)]
Realtime = Annotated[TopicRouter, Depends(get_topic_router)]


def get_dispatcher(
    db: Database,
    realtime: Realtime,
    settings: Annotated[Settings, Depends(get_settings)],
) -> NotificationDispatcher:
    return NotificationDispatcher(db, publisher=realtime, config=settings.marketplace_config())


Notifications = Annotated[NotificationDispatcher, Depends(get_dispatcher)]


def get_accounts(db: Database) -> AccountService:
    return AccountService(db)


def get_gig_service(
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
) -> GigService:
    return GigService(db, config=settings.marketplace_config())


def get_bid_service(db: Database, dispatcher: Notifications, realtime: Realtime) -> BidService:
    return BidService(db, dispatcher=dispatcher, publisher=realtime)


def get_hiring_service(db: Database, dispatcher: Notifications, realtime: Realtime) -> HiringService:
    return HiringService(db, dispatcher=dispatcher, publisher=realtime)


# Type aliases for dependency injection
Accounts = Annotated[AccountService, Depends(get_accounts)]
Gigs = Annotated[GigService, Depends(get_gig_service)]
Bids = Annotated[BidService, Depends(get_bid_service)]
Hiring = Annotated[HiringService, Depends(get_hiring_service)]
