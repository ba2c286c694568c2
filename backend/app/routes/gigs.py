"""Gig and bid routes.

Handlers are plain functions: the services do blocking store I/O, so
FastAPI runs them in its worker threadpool.
"""

from typing import Literal

from fastapi import APIRouter, Query, Request, status

from gigflow.marketplace import GigSearchFilters

from ..auth import CurrentUser
from ..database import Bids, Database, Gigs, Hiring
from ..logging_config import get_logger
from ..models import (
    AcceptBidResponse,
    BidCreate,
    BidListResponse,
    BidResponse,
    GigCategory,
    GigCreate,
    GigDetailResponse,
    GigListResponse,
    GigResponse,
    GigUpdate,
    MessageResponse,
    Pagination,
    to_bid_info,
    to_gig_info,
)
from ..rate_limit import limiter

logger = get_logger("gigflow.gigs")
router = APIRouter(prefix="/gigs", tags=["gigs"])

StatusFilter = Literal["open", "in-progress", "completed", "cancelled", "all"]


# =============================================================================
# Gigs
# =============================================================================


@router.get("", response_model=GigListResponse)
def list_gigs(
    gigs: Gigs,
    category: GigCategory | None = None,
    min_budget: float | None = Query(None, alias="minBudget", ge=0),
    max_budget: float | None = Query(None, alias="maxBudget", ge=0),
    status_filter: StatusFilter = Query("open", alias="status"),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """List gigs, newest first. Open gigs only unless a status is given."""
    logger.info(f"GET /gigs | status={status_filter} | category={category} | page={page}")
    filters = GigSearchFilters(
        status=None if status_filter == "all" else status_filter,
        category=category,
        min_budget=min_budget,
        max_budget=max_budget,
        search=search or None,
    )
    result = gigs.list_gigs(filters, page=page, limit=limit)
    return GigListResponse(
        gigs=[to_gig_info(d.gig, d.owner, d.freelancer) for d in result.gigs],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            pages=result.pages,
        ),
    )


@router.get("/{gig_id}", response_model=GigDetailResponse)
def get_gig(gig_id: str, gigs: Gigs):
    """Get a gig with its owner, hired freelancer and bid count."""
    logger.info(f"GET /gigs/{gig_id}")
    details = gigs.get_gig(gig_id)
    return GigDetailResponse(
        gig=to_gig_info(details.gig, details.owner, details.freelancer),
        bids_count=details.bids_count,
    )


@router.post("", response_model=GigResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_gig(request: Request, body: GigCreate, user: CurrentUser, gigs: Gigs):
    """Post a new gig."""
    logger.info(f"POST /gigs | owner={user.id} | title={body.title[:50]}")
    gig = gigs.create_gig(
        owner_id=user.id,
        title=body.title,
        description=body.description,
        budget=body.budget,
        deadline=body.deadline,
        skills_required=body.skills_required,
        category=body.category,
    )
    logger.info(f"Gig created | id={gig.id} | owner={user.id}")
    return GigResponse(gig=to_gig_info(gig, owner=user))


@router.put("/{gig_id}", response_model=GigResponse)
def update_gig(gig_id: str, body: GigUpdate, user: CurrentUser, gigs: Gigs):
    """Edit an open gig. Owner only."""
    logger.info(f"PUT /gigs/{gig_id} | user={user.id}")
    gig = gigs.update_gig(gig_id, user.id, body.model_dump(exclude_unset=True))
    return GigResponse(gig=to_gig_info(gig, owner=user))


@router.delete("/{gig_id}", response_model=MessageResponse)
def delete_gig(gig_id: str, user: CurrentUser, gigs: Gigs):
    """Delete a gig and its bids. Not allowed once a freelancer is hired."""
    logger.info(f"DELETE /gigs/{gig_id} | user={user.id}")
    removed = gigs.delete_gig(gig_id, user.id)
    logger.info(f"Gig deleted | id={gig_id} | bids={removed}")
    return MessageResponse(message="Gig deleted successfully")


@router.post("/{gig_id}/cancel", response_model=GigResponse)
def cancel_gig(gig_id: str, user: CurrentUser, gigs: Gigs):
    """Close an open gig to further bids. Owner only."""
    logger.info(f"POST /gigs/{gig_id}/cancel | user={user.id}")
    gig = gigs.cancel_gig(gig_id, user.id)
    return GigResponse(gig=to_gig_info(gig, owner=user))


# =============================================================================
# Bids
# =============================================================================


@router.post("/{gig_id}/bids", response_model=BidResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def place_bid(request: Request, gig_id: str, body: BidCreate, user: CurrentUser, bids: Bids):
    """Bid on an open gig. One bid per user per gig."""
    logger.info(f"POST /gigs/{gig_id}/bids | bidder={user.id} | amount={body.amount}")
    bid = bids.place_bid(
        gig_id=gig_id,
        bidder_id=user.id,
        amount=body.amount,
        proposal=body.proposal,
        delivery_time=body.delivery_time,
    )
    logger.info(f"Bid created | id={bid.id} | gig={gig_id} | bidder={user.id}")
    return BidResponse(bid=to_bid_info(bid, bidder=user))


@router.get("/{gig_id}/bids", response_model=BidListResponse)
def list_bids(gig_id: str, bids: Bids, db: Database):
    """Bids on a gig, newest first."""
    logger.info(f"GET /gigs/{gig_id}/bids")
    items = bids.list_bids(gig_id)
    bidders = db.get_users(b.bidder_id for b in items)
    return BidListResponse(bids=[to_bid_info(b, bidder=bidders.get(b.bidder_id)) for b in items])


@router.post("/{gig_id}/bids/{bid_id}/accept", response_model=AcceptBidResponse)
def accept_bid(gig_id: str, bid_id: str, user: CurrentUser, hiring: Hiring):
    """Hire the bidder: accept this bid and reject every other pending bid."""
    logger.info(f"POST /gigs/{gig_id}/bids/{bid_id}/accept | owner={user.id}")
    result = hiring.accept_bid(gig_id, bid_id, user.id)
    logger.info(
        f"Bid accepted | gig={gig_id} | bid={bid_id} | "
        f"freelancer={result.accepted_bid.bidder_id} | rejected={len(result.rejected_bids)}"
    )
    return AcceptBidResponse(
        message=result.message,
        gig=to_gig_info(result.gig, result.owner, result.freelancer),
    )
