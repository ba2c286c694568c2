"""
Bid ledger.

A bidder may hold at most one bid per gig. The gig checks and the insert run
in one store transaction; the store's unique (gig, bidder) index turns a
duplicate into ConflictError. Bid status is only changed by the hiring
service.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from ..errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..notifications.models import NotificationType
from ..realtime.topics import NEW_BID_EVENT, EventPublisher, gig_topic
from ..utils import new_id, utc_now
from .models import Bid, BidStatus, Gig

if TYPE_CHECKING:
    from gigflow.storage import MarketplaceStorage

logger = logging.getLogger(__name__)


@dataclass
class BidWithGig:
    """A bid paired with the gig it was placed on."""

    bid: Bid
    gig: Optional[Gig]


class BidService:
    """Service for placing and listing bids."""

    def __init__(
        self,
        storage: "MarketplaceStorage",
        dispatcher=None,
        publisher: Optional[EventPublisher] = None,
    ):
        """
        Args:
            storage: Marketplace storage backend
            dispatcher: NotificationDispatcher used to tell gig owners about new bids
            publisher: Realtime publisher for gig topic events
        """
        self.storage = storage
        self.dispatcher = dispatcher
        self.publisher = publisher

    def place_bid(
        self,
        gig_id: str,
        bidder_id: str,
        amount: float,
        proposal: str,
        delivery_time: int,
    ) -> Bid:
        """Submit a bid on an open gig.

        Raises:
            NotFoundError: If the gig does not exist
            InvalidStateError: If the gig is not open
            ForbiddenError: If the bidder owns the gig
            ValidationError: If amount, proposal or delivery time are out of range
            ConflictError: If the bidder already has a bid on this gig
        """
        now = utc_now()
        with self.storage.transaction("place_bid") as tx:
            gig = tx.get_gig(gig_id)
            if gig is None:
                raise NotFoundError("Gig not found")
            if not gig.is_open:
                raise InvalidStateError("Gig is not accepting bids")
            if gig.owner_id == bidder_id:
                raise ForbiddenError("Cannot bid on your own gig")
            try:
                bid = Bid(
                    id=new_id(),
                    gig_id=gig_id,
                    bidder_id=bidder_id,
                    amount=amount,
                    proposal=proposal,
                    delivery_time=delivery_time,
                    status=BidStatus.PENDING.value,
                    created_at=now,
                    updated_at=now,
                )
            except ValueError as e:
                raise ValidationError(str(e)) from e
            tx.insert_bid(bid)

        logger.info(f"Bid {bid.id} placed on gig {gig_id} by {bidder_id} (${amount})")
        self._announce(gig, bid)
        return bid

    def _announce(self, gig: Gig, bid: Bid) -> None:
        """Tell the owner and the gig's watchers about a new bid. Best-effort."""
        if self.dispatcher is not None:
            try:
                self.dispatcher.notify(
                    gig.owner_id,
                    NotificationType.NEW_BID,
                    f'New bid of ${bid.amount:g} on your gig "{gig.title}"',
                    {"gigId": gig.id, "bidId": bid.id, "userId": bid.bidder_id},
                )
            except Exception as e:
                logger.warning(f"Failed to notify owner of bid {bid.id}: {e}")

        if self.publisher is not None:
            try:
                bidder = self.storage.get_user(bid.bidder_id)
                self.publisher.publish(
                    gig_topic(gig.id),
                    NEW_BID_EVENT,
                    {
                        "bidId": bid.id,
                        "gigId": gig.id,
                        "amount": bid.amount,
                        "bidder": {"name": bidder.name if bidder else None},
                    },
                )
            except Exception as e:
                logger.warning(f"Failed to publish new bid {bid.id}: {e}")

    def get_bid(self, bid_id: str) -> Bid:
        bid = self.storage.get_bid(bid_id)
        if bid is None:
            raise NotFoundError("Bid not found")
        return bid

    def list_bids(self, gig_id: str) -> List[Bid]:
        """Bids for a gig, newest first. Empty for an unknown gig."""
        return self.storage.list_bids(gig_id=gig_id)

    def list_bids_for_bidder(self, bidder_id: str) -> List[BidWithGig]:
        """A user's own bids, newest first, each with its gig."""
        bids = self.storage.list_bids(bidder_id=bidder_id)
        gigs = self.storage.get_gigs(b.gig_id for b in bids)
        return [BidWithGig(bid=b, gig=gigs.get(b.gig_id)) for b in bids]
