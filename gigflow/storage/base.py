"""
Storage protocol for the marketplace.

Services depend on this interface rather than a concrete backend. A backend
must provide multi-row transactions through ``transaction()``: the reads and
writes made through the yielded handle commit together or not at all.
"""

from contextlib import AbstractContextManager
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from ..accounts import User
from ..marketplace.models import Bid, Gig
from ..notifications.models import Notification


class Transaction(Protocol):
    """Handle for one open write transaction."""

    def get_gig(self, gig_id: str) -> Optional[Gig]: ...

    def get_bid(self, bid_id: str) -> Optional[Bid]: ...

    def insert_bid(self, bid: Bid) -> None: ...

    def update_gig(self, gig: Gig) -> bool: ...

    def set_gig_status(self, gig_id: str, expected_status: str, new_status: str) -> bool: ...

    def hire(self, gig_id: str, freelancer_id: str, bid_id: str) -> bool: ...

    def set_bid_status(self, bid_id: str, expected_status: str, new_status: str) -> bool: ...

    def reject_pending_bids(self, gig_id: str, except_bid_id: str) -> List[str]: ...

    def delete_bids_for_gig(self, gig_id: str) -> int: ...

    def delete_gig(self, gig_id: str) -> bool: ...


class MarketplaceStorage(Protocol):
    """Protocol for marketplace persistence backends."""

    def transaction(self, action: str = "transaction") -> AbstractContextManager[Transaction]:
        """Open a write transaction yielding a Transaction handle."""
        ...

    # Users
    def save_user(self, user: User) -> str: ...

    def get_user(self, user_id: str) -> Optional[User]: ...

    def get_user_by_email(self, email: str) -> Optional[User]: ...

    def get_users(self, user_ids: Iterable[str]) -> Dict[str, User]: ...

    # Gigs
    def save_gig(self, gig: Gig) -> str: ...

    def get_gig(self, gig_id: str) -> Optional[Gig]: ...

    def get_gigs(self, gig_ids: Iterable[str]) -> Dict[str, Gig]: ...

    def list_gigs(
        self,
        status: Optional[str] = None,
        category: Optional[str] = None,
        owner_id: Optional[str] = None,
        min_budget: Optional[float] = None,
        max_budget: Optional[float] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[Gig], int]:
        """List gigs newest first. Returns (page, total matching)."""
        ...

    def count_bids(self, gig_id: str) -> int: ...

    # Bids
    def get_bid(self, bid_id: str) -> Optional[Bid]: ...

    def list_bids(
        self,
        gig_id: Optional[str] = None,
        bidder_id: Optional[str] = None,
        status: Optional[str] = None,
        ids: Optional[Iterable[str]] = None,
    ) -> List[Bid]:
        """List bids newest first."""
        ...

    # Notifications
    def save_notification(self, notification: Notification) -> str: ...

    def get_notification(self, notification_id: str) -> Optional[Notification]: ...

    def list_notifications(self, user_id: str, limit: int = 50) -> List[Notification]: ...

    def count_unread_notifications(self, user_id: str) -> int: ...

    def mark_notification_read(self, notification_id: str, user_id: str) -> Optional[Notification]: ...

    def mark_all_notifications_read(self, user_id: str) -> int: ...
