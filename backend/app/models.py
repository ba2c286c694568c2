"""Pydantic models for API requests and responses.

Fields are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gigflow.accounts import User
from gigflow.marketplace import Bid, Gig
from gigflow.notifications import Notification

GigStatus = Literal["open", "in-progress", "completed", "cancelled"]
BidStatus = Literal["pending", "accepted", "rejected"]
GigCategory = Literal[
    "web-development",
    "mobile-development",
    "design",
    "writing",
    "marketing",
    "data-science",
    "other",
]


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Auth Models
# =============================================================================


class RegisterRequest(CamelModel):
    """Request to create an account."""

    name: str = Field(..., min_length=2, max_length=50)
    email: str = Field(..., max_length=254)
    password: str = Field(..., min_length=6, max_length=128)


class LoginRequest(CamelModel):
    """Request for an access token."""

    email: str
    password: str


class UserInfo(CamelModel):
    """Public user fields."""

    id: str
    name: str
    email: str


class AuthResponse(CamelModel):
    """Token plus the user it was issued for."""

    user: UserInfo
    access_token: str
    token_type: str = "bearer"


class UserResponse(CamelModel):
    user: UserInfo


# =============================================================================
# Gig Models
# =============================================================================


class GigCreate(CamelModel):
    """Request to post a gig."""

    title: str
    description: str
    budget: float = Field(..., ge=1, allow_inf_nan=False)
    deadline: datetime
    skills_required: list[str] = Field(default_factory=list)
    category: GigCategory = "other"

    @field_validator("skills_required")
    @classmethod
    def strip_skills(cls, v: list[str]) -> list[str]:
        return [s.strip() for s in v if s.strip()]


class GigUpdate(CamelModel):
    """Partial update of an open gig. Omitted fields are left unchanged."""

    title: str | None = None
    description: str | None = None
    budget: float | None = Field(default=None, ge=1, allow_inf_nan=False)
    deadline: datetime | None = None
    skills_required: list[str] | None = None
    category: GigCategory | None = None


class GigInfo(CamelModel):
    """Gig details response."""

    id: str
    title: str
    description: str
    budget: float
    deadline: datetime
    skills_required: list[str]
    category: str
    status: GigStatus
    owner_id: str
    owner: UserInfo | None = None
    hired_freelancer_id: str | None = None
    hired_freelancer: UserInfo | None = None
    accepted_bid_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class GigResponse(CamelModel):
    gig: GigInfo


class GigDetailResponse(CamelModel):
    gig: GigInfo
    bids_count: int


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class GigListResponse(CamelModel):
    """Paginated list of gigs."""

    gigs: list[GigInfo]
    pagination: Pagination


class GigsResponse(CamelModel):
    gigs: list[GigInfo]


# =============================================================================
# Bid Models
# =============================================================================


class BidCreate(CamelModel):
    """Request to bid on a gig."""

    amount: float = Field(..., ge=1, allow_inf_nan=False)
    proposal: str
    delivery_time: int


class BidInfo(CamelModel):
    """Bid details response."""

    id: str
    gig_id: str
    bidder_id: str
    bidder: UserInfo | None = None
    gig: GigInfo | None = None
    amount: float
    proposal: str
    delivery_time: int
    status: BidStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None


class BidResponse(CamelModel):
    bid: BidInfo


class BidListResponse(CamelModel):
    bids: list[BidInfo]


class AcceptBidResponse(CamelModel):
    message: str
    gig: GigInfo


# =============================================================================
# Notification Models
# =============================================================================


class NotificationInfo(CamelModel):
    id: str
    user_id: str
    type: Literal["new-bid", "bid-accepted", "bid-rejected", "gig-hired"]
    message: str
    # Keys are already camelCase (gigId, bidId, userId)
    data: dict[str, str] = Field(default_factory=dict)
    read: bool
    created_at: datetime | None = None


class NotificationResponse(CamelModel):
    notification: NotificationInfo


class InboxResponse(CamelModel):
    notifications: list[NotificationInfo]
    unread_count: int


class MessageResponse(CamelModel):
    message: str


# =============================================================================
# Conversions
# =============================================================================


def to_user_info(user: User | None) -> UserInfo | None:
    if user is None:
        return None
    return UserInfo(id=user.id, name=user.name, email=user.email)


def to_gig_info(gig: Gig, owner: User | None = None, freelancer: User | None = None) -> GigInfo:
    return GigInfo(
        id=gig.id,
        title=gig.title,
        description=gig.description,
        budget=gig.budget,
        deadline=gig.deadline,
        skills_required=list(gig.skills_required),
        category=gig.category,
        status=gig.status,
        owner_id=gig.owner_id,
        owner=to_user_info(owner),
        hired_freelancer_id=gig.hired_freelancer_id,
        hired_freelancer=to_user_info(freelancer),
        accepted_bid_id=gig.accepted_bid_id,
        created_at=gig.created_at,
        updated_at=gig.updated_at,
    )


def to_bid_info(bid: Bid, bidder: User | None = None, gig: GigInfo | None = None) -> BidInfo:
    return BidInfo(
        id=bid.id,
        gig_id=bid.gig_id,
        bidder_id=bid.bidder_id,
        bidder=to_user_info(bidder),
        gig=gig,
        amount=bid.amount,
        proposal=bid.proposal,
        delivery_time=bid.delivery_time,
        status=bid.status,
        created_at=bid.created_at,
        updated_at=bid.updated_at,
    )


def to_notification_info(notification: Notification) -> NotificationInfo:
    return NotificationInfo(
        id=notification.id,
        user_id=notification.user_id,
        type=notification.type,
        message=notification.message,
        data=dict(notification.data),
        read=notification.read,
        created_at=notification.created_at,
    )
