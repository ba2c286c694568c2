"""
Gig lifecycle service.

Owners create, edit, cancel and delete their gigs. Edits are only allowed
while a gig is open; deleting an in-progress gig is refused so an active
engagement is never orphaned.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..accounts import User
from ..config import MarketplaceConfig
from ..errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from ..utils import ensure_aware, new_id, utc_now
from .models import Gig, GigCategory, GigStatus, can_transition

if TYPE_CHECKING:
    from gigflow.storage import MarketplaceStorage

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "budget", "deadline", "skills_required", "category")


@dataclass
class GigDetails:
    """A gig with the display records a detail view needs."""

    gig: Gig
    owner: Optional[User] = None
    freelancer: Optional[User] = None
    bids_count: int = 0


@dataclass
class GigPage:
    """One page of a gig listing."""

    gigs: List[GigDetails]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.total else 0


@dataclass
class GigSearchFilters:
    """Filters for gig listings."""

    status: Optional[str] = GigStatus.OPEN.value
    category: Optional[str] = None
    min_budget: Optional[float] = None
    max_budget: Optional[float] = None
    search: Optional[str] = None


def _require_future(deadline: datetime) -> datetime:
    deadline = ensure_aware(deadline)
    if deadline <= utc_now():
        raise ValidationError("Deadline must be in the future")
    return deadline


class GigService:
    """Service for gig lifecycle operations."""

    def __init__(self, storage: "MarketplaceStorage", config: Optional[MarketplaceConfig] = None):
        self.storage = storage
        self.config = config or MarketplaceConfig()

    def create_gig(
        self,
        owner_id: str,
        title: str,
        description: str,
        budget: float,
        deadline: datetime,
        skills_required: List[str],
        category: str = GigCategory.OTHER.value,
    ) -> Gig:
        """Post a new gig in status open.

        Raises:
            ValidationError: If any field is out of range or the deadline is not in the future
        """
        deadline = _require_future(deadline)
        now = utc_now()
        try:
            gig = Gig(
                id=new_id(),
                owner_id=owner_id,
                title=title,
                description=description,
                budget=budget,
                deadline=deadline,
                skills_required=list(skills_required or []),
                category=category,
                status=GigStatus.OPEN.value,
                created_at=now,
                updated_at=now,
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        self.storage.save_gig(gig)
        logger.info(f"Created gig {gig.id} by {owner_id}: {gig.title}")
        return gig

    def _get_owned(self, tx, gig_id: str, caller_id: str) -> Gig:
        gig = tx.get_gig(gig_id)
        if gig is None:
            raise NotFoundError("Gig not found")
        if gig.owner_id != caller_id:
            raise ForbiddenError("Not authorized to modify this gig")
        return gig

    def update_gig(self, gig_id: str, caller_id: str, fields: Dict[str, Any]) -> Gig:
        """Apply a partial update to an open gig.

        Fields not listed in ``EDITABLE_FIELDS`` are rejected.

        Raises:
            NotFoundError: If the gig does not exist
            ForbiddenError: If the caller is not the owner
            InvalidStateError: If the gig is not open
            ValidationError: If the resulting gig is invalid
        """
        unknown = set(fields) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot update fields: {sorted(unknown)}")
        changes = {k: v for k, v in fields.items() if v is not None}
        if "deadline" in changes:
            changes["deadline"] = _require_future(changes["deadline"])

        with self.storage.transaction("update_gig") as tx:
            gig = self._get_owned(tx, gig_id, caller_id)
            if not gig.is_open:
                raise InvalidStateError("Only open gigs can be edited")
            try:
                updated = replace(gig, **changes)
            except ValueError as e:
                raise ValidationError(str(e)) from e
            tx.update_gig(updated)
            result = tx.get_gig(gig_id)

        logger.info(f"Updated gig {gig_id}: {sorted(changes)}")
        return result

    def delete_gig(self, gig_id: str, caller_id: str) -> int:
        """Delete a gig and all of its bids.

        Returns:
            Number of bids removed with the gig.

        Raises:
            NotFoundError: If the gig does not exist
            ForbiddenError: If the caller is not the owner
            InvalidStateError: If the gig is in progress
        """
        with self.storage.transaction("delete_gig") as tx:
            gig = self._get_owned(tx, gig_id, caller_id)
            if gig.status == GigStatus.IN_PROGRESS.value:
                raise InvalidStateError("Cannot delete a gig that is in progress")
            removed = tx.delete_bids_for_gig(gig_id)
            tx.delete_gig(gig_id)

        logger.info(f"Deleted gig {gig_id} with {removed} bids")
        return removed

    def cancel_gig(self, gig_id: str, caller_id: str) -> Gig:
        """Close an open gig to further bids.

        Raises:
            NotFoundError: If the gig does not exist
            ForbiddenError: If the caller is not the owner
            InvalidStateError: If the gig is not open
        """
        with self.storage.transaction("cancel_gig") as tx:
            gig = self._get_owned(tx, gig_id, caller_id)
            if not can_transition(gig.status, GigStatus.CANCELLED.value):
                raise InvalidStateError(f"Cannot cancel a gig in status {gig.status}")
            if not tx.set_gig_status(gig_id, gig.status, GigStatus.CANCELLED.value):
                raise InvalidStateError("Gig changed while cancelling")
            result = tx.get_gig(gig_id)

        logger.info(f"Cancelled gig {gig_id}")
        return result

    def get_gig(self, gig_id: str) -> GigDetails:
        """Get a gig with its owner, hired freelancer and bid count.

        Raises:
            NotFoundError: If the gig does not exist
        """
        gig = self.storage.get_gig(gig_id)
        if gig is None:
            raise NotFoundError("Gig not found")
        users = self.storage.get_users([gig.owner_id, gig.hired_freelancer_id])
        return GigDetails(
            gig=gig,
            owner=users.get(gig.owner_id),
            freelancer=users.get(gig.hired_freelancer_id) if gig.hired_freelancer_id else None,
            bids_count=self.storage.count_bids(gig_id),
        )

    def list_gigs(
        self,
        filters: Optional[GigSearchFilters] = None,
        page: int = 1,
        limit: Optional[int] = None,
    ) -> GigPage:
        """List gigs newest first, filtered and paginated."""
        filters = filters or GigSearchFilters()
        if limit is None:
            limit = self.config.page_size
        limit = max(1, min(limit, self.config.max_page_size))
        page = max(1, page)

        gigs, total = self.storage.list_gigs(
            status=filters.status,
            category=filters.category,
            min_budget=filters.min_budget,
            max_budget=filters.max_budget,
            search=filters.search,
            limit=limit,
            offset=(page - 1) * limit,
        )
        return GigPage(gigs=self._with_owners(gigs), total=total, page=page, limit=limit)

    def list_gigs_for_owner(self, owner_id: str) -> List[GigDetails]:
        """All of an owner's gigs in any status, newest first."""
        gigs, _ = self.storage.list_gigs(owner_id=owner_id, limit=-1)
        return self._with_owners(gigs)

    def _with_owners(self, gigs: List[Gig]) -> List[GigDetails]:
        users = self.storage.get_users(
            [g.owner_id for g in gigs] + [g.hired_freelancer_id for g in gigs if g.hired_freelancer_id]
        )
        return [
            GigDetails(
                gig=g,
                owner=users.get(g.owner_id),
                freelancer=users.get(g.hired_freelancer_id) if g.hired_freelancer_id else None,
            )
            for g in gigs
        ]
