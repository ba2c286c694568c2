"""
Pytest fixtures for GigFlow core tests.

Every test gets a fresh SQLite database under tmp_path.
"""

from datetime import timedelta
from typing import Any, Dict, List, Tuple

import pytest

from gigflow.accounts import AccountService, User
from gigflow.config import MarketplaceConfig
from gigflow.marketplace import BidService, Gig, GigService, HiringService
from gigflow.notifications import NotificationDispatcher
from gigflow.storage import SQLiteStorage
from gigflow.utils import utc_now


class RecordingPublisher:
    """EventPublisher that records every publish."""

    def __init__(self):
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []

    def publish(self, topic: str, event: str, data: Dict[str, Any]) -> int:
        self.events.append((topic, event, data))
        return 1

    def on(self, topic: str, event: str) -> List[Dict[str, Any]]:
        return [d for t, e, d in self.events if t == topic and e == event]


@pytest.fixture
def config():
    return MarketplaceConfig(transaction_timeout=5.0)


@pytest.fixture
def storage(tmp_path, config):
    """Fresh SQLite storage."""
    return SQLiteStorage(tmp_path / "gigflow.db", config=config)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def dispatcher(storage, publisher, config):
    return NotificationDispatcher(storage, publisher=publisher, config=config)


@pytest.fixture
def accounts(storage):
    return AccountService(storage)


@pytest.fixture
def gig_service(storage, config):
    return GigService(storage, config=config)


@pytest.fixture
def bid_service(storage, dispatcher, publisher):
    return BidService(storage, dispatcher=dispatcher, publisher=publisher)


@pytest.fixture
def hiring_service(storage, dispatcher, publisher):
    return HiringService(storage, dispatcher=dispatcher, publisher=publisher)


@pytest.fixture
def make_user(accounts):
    """Factory registering users with unique emails."""
    counter = {"n": 0}

    def _make(name: str = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        return accounts.register(name or f"User {n}", f"user{n}@example.com", "not-a-real-hash")

    return _make


@pytest.fixture
def owner(make_user):
    return make_user("Olivia Owner")


@pytest.fixture
def make_gig(gig_service, owner):
    """Factory posting a valid open gig."""

    def _make(owner_id: str = None, **overrides) -> Gig:
        fields = {
            "title": "Build a landing page",
            "description": "Need a responsive landing page for a product launch.",
            "budget": 500,
            "deadline": utc_now() + timedelta(days=30),
            "skills_required": ["React"],
            "category": "web-development",
        }
        fields.update(overrides)
        return gig_service.create_gig(owner_id or owner.id, **fields)

    return _make


@pytest.fixture
def gig(make_gig):
    return make_gig()
