"""Gig marketplace subsystem for GigFlow.

Models:
- Gig: A posted job listing
- Bid: A freelancer's proposal against a gig
- GigStatus / BidStatus / GigCategory: Lifecycle and category enums

Services:
- GigService: Create, edit, cancel, delete and list gigs
- BidService: Place and list bids
- HiringService: Accept a bid, hiring its bidder atomically
"""

from gigflow.marketplace.bids import BidService, BidWithGig
from gigflow.marketplace.gigs import (
    GigDetails,
    GigPage,
    GigSearchFilters,
    GigService,
)
from gigflow.marketplace.hiring import HireResult, HiringService
from gigflow.marketplace.models import (
    VALID_GIG_TRANSITIONS,
    Bid,
    BidStatus,
    Gig,
    GigCategory,
    GigStatus,
    can_transition,
)

__all__ = [
    # Models
    "Gig",
    "Bid",
    "GigStatus",
    "BidStatus",
    "GigCategory",
    "VALID_GIG_TRANSITIONS",
    "can_transition",
    # Services
    "GigService",
    "GigDetails",
    "GigPage",
    "GigSearchFilters",
    "BidService",
    "BidWithGig",
    "HiringService",
    "HireResult",
]
