"""Routes scoped to the authenticated user: own gigs, own bids and the inbox."""

from fastapi import APIRouter, Query

from ..auth import CurrentUser
from ..database import Bids, Gigs, Notifications
from ..logging_config import get_logger
from ..models import (
    BidListResponse,
    GigsResponse,
    InboxResponse,
    MessageResponse,
    NotificationResponse,
    to_bid_info,
    to_gig_info,
    to_notification_info,
)

logger = get_logger("gigflow.users")
router = APIRouter(prefix="/users/me", tags=["users"])


@router.get("/gigs", response_model=GigsResponse)
def my_gigs(user: CurrentUser, gigs: Gigs):
    """Gigs the caller posted, in any status."""
    logger.info(f"GET /users/me/gigs | user={user.id}")
    items = gigs.list_gigs_for_owner(user.id)
    return GigsResponse(gigs=[to_gig_info(d.gig, d.owner, d.freelancer) for d in items])


@router.get("/bids", response_model=BidListResponse)
def my_bids(user: CurrentUser, bids: Bids):
    """Bids the caller placed, each with its gig."""
    logger.info(f"GET /users/me/bids | user={user.id}")
    items = bids.list_bids_for_bidder(user.id)
    return BidListResponse(
        bids=[
            to_bid_info(item.bid, bidder=user, gig=to_gig_info(item.gig) if item.gig else None)
            for item in items
        ]
    )


# =============================================================================
# Notifications
# =============================================================================


@router.get("/notifications", response_model=InboxResponse)
def list_notifications(
    user: CurrentUser,
    notifications: Notifications,
    limit: int | None = Query(None, ge=1),
):
    """Most recent notifications plus the total unread count."""
    logger.info(f"GET /users/me/notifications | user={user.id} | limit={limit}")
    inbox = notifications.list_inbox(user.id, limit=limit)
    return InboxResponse(
        notifications=[to_notification_info(n) for n in inbox.notifications],
        unread_count=inbox.unread_count,
    )


@router.patch("/notifications/read-all", response_model=MessageResponse)
def mark_all_read(user: CurrentUser, notifications: Notifications):
    """Mark every unread notification as read."""
    logger.info(f"PATCH /users/me/notifications/read-all | user={user.id}")
    count = notifications.mark_all_read(user.id)
    logger.info(f"Notifications marked read | user={user.id} | count={count}")
    return MessageResponse(message="All notifications marked as read")


@router.patch("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_read(notification_id: str, user: CurrentUser, notifications: Notifications):
    """Mark one of the caller's notifications as read."""
    logger.info(f"PATCH /users/me/notifications/{notification_id}/read | user={user.id}")
    notification = notifications.mark_read(notification_id, user.id)
    return NotificationResponse(notification=to_notification_info(notification))
