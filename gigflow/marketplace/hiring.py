"""
Accept-bid orchestration.

Accepting a bid hires its bidder. Inside a single store transaction, with the
write lock already held, the service:

1. Re-reads the gig and the bid
2. Checks ownership and that both are still open / pending
3. Accepts the bid, rejects every other pending bid of the gig, and moves the
   gig to in-progress with the hired freelancer and accepted bid recorded

The transaction commits all of these writes or none of them. Two concurrent
accepts on the same gig serialize on the lock; the second one sees the gig
in progress and fails with InvalidStateError.

Notifications and realtime broadcasts happen after commit and are
best-effort. A failure there is logged and never undoes the hire.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional

from ..accounts import User
from ..errors import ForbiddenError, InvalidStateError, NotFoundError
from ..notifications.models import NotificationType
from ..realtime.topics import GIG_HIRED_EVENT, EventPublisher, gig_topic
from .models import Bid, BidStatus, Gig, GigStatus, can_transition

if TYPE_CHECKING:
    from gigflow.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

ACCEPTED_MESSAGE = "Bid accepted successfully"


@dataclass
class HireResult:
    """Outcome of a successful accept."""

    gig: Gig
    accepted_bid: Bid
    owner: Optional[User] = None
    freelancer: Optional[User] = None
    rejected_bids: List[Bid] = field(default_factory=list)
    message: str = ACCEPTED_MESSAGE


class HiringService:
    """Accepts bids and fans out the result."""

    def __init__(
        self,
        storage: "MarketplaceStorage",
        dispatcher=None,
        publisher: Optional[EventPublisher] = None,
    ):
        self.storage = storage
        self.dispatcher = dispatcher
        self.publisher = publisher

    def accept_bid(self, gig_id: str, bid_id: str, caller_id: str) -> HireResult:
        """Accept a pending bid on one of the caller's open gigs.

        Raises:
            NotFoundError: If the gig, or a bid belonging to it, does not exist
            ForbiddenError: If the caller does not own the gig
            InvalidStateError: If the gig is not open or the bid is not pending
            TransactionTimeoutError: If the store lock was not acquired in time
            StorageError: If the transaction failed; nothing was written
        """
        with self.storage.transaction("accept_bid") as tx:
            gig = tx.get_gig(gig_id)
            if gig is None:
                raise NotFoundError("Gig not found")
            if gig.owner_id != caller_id:
                raise ForbiddenError("Not authorized to accept bids on this gig")
            if not gig.is_open or not can_transition(gig.status, GigStatus.IN_PROGRESS.value):
                raise InvalidStateError("Gig is not open for hiring")

            bid = tx.get_bid(bid_id)
            if bid is None or bid.gig_id != gig_id:
                raise NotFoundError("Bid not found")
            if not bid.is_pending:
                raise InvalidStateError("Bid is not in pending status")

            if not tx.set_bid_status(bid_id, BidStatus.PENDING.value, BidStatus.ACCEPTED.value):
                raise InvalidStateError("Bid is not in pending status")
            rejected_ids = tx.reject_pending_bids(gig_id, except_bid_id=bid_id)
            if not tx.hire(gig_id, bid.bidder_id, bid_id):
                raise InvalidStateError("Gig is not open for hiring")

            hired_gig = tx.get_gig(gig_id)
            accepted = tx.get_bid(bid_id)

        logger.info(
            f"Hired {accepted.bidder_id} on gig {gig_id} via bid {bid_id}; "
            f"rejected {len(rejected_ids)} bids"
        )

        users = self._load_users(hired_gig)
        result = HireResult(
            gig=hired_gig,
            accepted_bid=accepted,
            owner=users.get(hired_gig.owner_id),
            freelancer=users.get(accepted.bidder_id),
        )
        result.rejected_bids = self._notify_outcome(result, rejected_ids)
        self._broadcast_hire(result)
        return result

    def _load_users(self, gig: Gig) -> dict:
        try:
            return self.storage.get_users([gig.owner_id, gig.hired_freelancer_id])
        except Exception as e:
            logger.warning(f"Could not load users for gig {gig.id}: {e}")
            return {}

    def _notify_outcome(self, result: HireResult, rejected_ids: List[str]) -> List[Bid]:
        """Notify the winner and every bidder rejected by this hire.

        Rejected bids are re-read after commit, so the list reflects the
        committed state at read time, not an in-transaction snapshot.
        """
        gig = result.gig
        winner = result.accepted_bid

        if self.dispatcher is not None:
            try:
                self.dispatcher.notify(
                    winner.bidder_id,
                    NotificationType.BID_ACCEPTED,
                    f'Congratulations! Your bid on "{gig.title}" has been accepted!',
                    {"gigId": gig.id, "bidId": winner.id},
                )
            except Exception as e:
                logger.warning(f"Failed to notify winner {winner.bidder_id} on gig {gig.id}: {e}")

        try:
            rejected = self.storage.list_bids(
                gig_id=gig.id, status=BidStatus.REJECTED.value, ids=rejected_ids
            )
        except Exception as e:
            logger.warning(f"Could not re-read rejected bids for gig {gig.id}: {e}")
            return []

        if self.dispatcher is not None:
            for bid in rejected:
                if bid.bidder_id == winner.bidder_id:
                    continue
                try:
                    self.dispatcher.notify(
                        bid.bidder_id,
                        NotificationType.BID_REJECTED,
                        f'Your bid on "{gig.title}" was not selected.',
                        {"gigId": gig.id, "bidId": bid.id},
                    )
                except Exception as e:
                    logger.warning(f"Failed to notify rejected bidder {bid.bidder_id}: {e}")
        return rejected

    def _broadcast_hire(self, result: HireResult) -> None:
        if self.publisher is None:
            return
        try:
            self.publisher.publish(
                gig_topic(result.gig.id),
                GIG_HIRED_EVENT,
                {
                    "gigId": result.gig.id,
                    "freelancerId": result.accepted_bid.bidder_id,
                    "freelancerName": result.freelancer.name if result.freelancer else None,
                },
            )
        except Exception as e:
            logger.warning(f"Failed to broadcast hire on gig {result.gig.id}: {e}")
