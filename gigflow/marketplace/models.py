"""
Marketplace data models.

Gigs are job listings posted by an owner; bids are proposals from other
users against an open gig. Status fields hold the string value of their
enum so records round-trip through storage unchanged.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Set

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 100
DESCRIPTION_MIN_LENGTH = 20
DESCRIPTION_MAX_LENGTH = 2000
MIN_BUDGET = 1
MAX_SKILLS = 10
PROPOSAL_MIN_LENGTH = 20
PROPOSAL_MAX_LENGTH = 1000
MIN_BID_AMOUNT = 1
MIN_DELIVERY_DAYS = 1


class GigStatus(str, Enum):
    """Gig lifecycle status."""

    OPEN = "open"  # Accepting bids
    IN_PROGRESS = "in-progress"  # A bid was accepted, freelancer hired
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BidStatus(str, Enum):
    """Bid lifecycle status."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class GigCategory(str, Enum):
    """Fixed set of gig categories."""

    WEB_DEVELOPMENT = "web-development"
    MOBILE_DEVELOPMENT = "mobile-development"
    DESIGN = "design"
    WRITING = "writing"
    MARKETING = "marketing"
    DATA_SCIENCE = "data-science"
    OTHER = "other"


VALID_GIG_TRANSITIONS: Dict[str, Set[str]] = {
    GigStatus.OPEN.value: {GigStatus.IN_PROGRESS.value, GigStatus.CANCELLED.value},
    GigStatus.IN_PROGRESS.value: {GigStatus.COMPLETED.value},
    GigStatus.COMPLETED.value: set(),
    GigStatus.CANCELLED.value: set(),
}


def can_transition(from_status: str, to_status: str) -> bool:
    """Check if a gig status transition is valid."""
    return to_status in VALID_GIG_TRANSITIONS.get(from_status, set())


def normalize_skills(skills: List[str]) -> List[str]:
    """Strip skill names and drop blanks, keeping the caller's order."""
    return [s.strip() for s in skills if s and s.strip()]


def validate_gig_fields(
    title: str,
    description: str,
    budget: float,
    skills_required: List[str],
    category: str,
) -> None:
    """Validate the editable gig fields.

    Raises:
        ValueError: With a human-readable reason for the first failing field.
    """
    if not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
        raise ValueError(
            f"Title must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
        )
    if not DESCRIPTION_MIN_LENGTH <= len(description) <= DESCRIPTION_MAX_LENGTH:
        raise ValueError(
            f"Description must be between {DESCRIPTION_MIN_LENGTH} and "
            f"{DESCRIPTION_MAX_LENGTH} characters"
        )
    if isinstance(budget, bool) or not math.isfinite(budget) or budget < MIN_BUDGET:
        raise ValueError(f"Budget must be at least ${MIN_BUDGET}")
    if not 1 <= len(skills_required) <= MAX_SKILLS:
        raise ValueError(f"Skills must be between 1 and {MAX_SKILLS}")
    if len(set(skills_required)) != len(skills_required):
        raise ValueError("Skills must be unique")
    valid_categories = [c.value for c in GigCategory]
    if category not in valid_categories:
        raise ValueError(f"Invalid category: {category}. Must be one of {valid_categories}")


@dataclass
class Gig:
    """A posted job listing.

    ``hired_freelancer_id`` and ``accepted_bid_id`` are set together, and
    only when the gig moves from open to in-progress.
    """

    id: str
    owner_id: str
    title: str
    description: str
    budget: float
    deadline: datetime
    skills_required: List[str] = field(default_factory=list)
    category: str = GigCategory.OTHER.value
    status: str = GigStatus.OPEN.value
    hired_freelancer_id: Optional[str] = None
    accepted_bid_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.title = self.title.strip()
        self.skills_required = normalize_skills(self.skills_required)
        validate_gig_fields(
            self.title,
            self.description,
            self.budget,
            self.skills_required,
            self.category,
        )
        valid_statuses = [s.value for s in GigStatus]
        if self.status not in valid_statuses:
            raise ValueError(f"Invalid status: {self.status}. Must be one of {valid_statuses}")
        if (self.hired_freelancer_id is None) != (self.accepted_bid_id is None):
            raise ValueError("hired_freelancer_id and accepted_bid_id must be set together")

    @property
    def is_open(self) -> bool:
        return self.status == GigStatus.OPEN.value

    @property
    def is_hired(self) -> bool:
        return self.hired_freelancer_id is not None


@dataclass
class Bid:
    """A freelancer's proposal against a gig."""

    id: str
    gig_id: str
    bidder_id: str
    amount: float
    proposal: str
    delivery_time: int
    status: str = BidStatus.PENDING.value
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if (
            isinstance(self.amount, bool)
            or not math.isfinite(self.amount)
            or self.amount < MIN_BID_AMOUNT
        ):
            raise ValueError(f"Bid amount must be at least ${MIN_BID_AMOUNT}")
        if not PROPOSAL_MIN_LENGTH <= len(self.proposal) <= PROPOSAL_MAX_LENGTH:
            raise ValueError(
                f"Proposal must be between {PROPOSAL_MIN_LENGTH} and "
                f"{PROPOSAL_MAX_LENGTH} characters"
            )
        if (
            isinstance(self.delivery_time, bool)
            or not isinstance(self.delivery_time, int)
            or self.delivery_time < MIN_DELIVERY_DAYS
        ):
            raise ValueError(f"Delivery time must be at least {MIN_DELIVERY_DAYS} day")
        valid_statuses = [s.value for s in BidStatus]
        if self.status not in valid_statuses:
            raise ValueError(f"Invalid status: {self.status}. Must be one of {valid_statuses}")

    @property
    def is_pending(self) -> bool:
        return self.status == BidStatus.PENDING.value
