"""Tests for gig and bid models."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from gigflow.marketplace.models import (
    VALID_GIG_TRANSITIONS,
    Bid,
    BidStatus,
    Gig,
    GigCategory,
    GigStatus,
    can_transition,
)


def make_gig(**overrides) -> Gig:
    fields = dict(
        id="gig-1",
        owner_id="usr_owner",
        title="Build a landing page",
        description="Need a responsive landing page for a product launch.",
        budget=500,
        deadline=datetime.now(timezone.utc) + timedelta(days=30),
        skills_required=["React"],
        category="web-development",
    )
    fields.update(overrides)
    return Gig(**fields)


def make_bid(**overrides) -> Bid:
    fields = dict(
        id="bid-1",
        gig_id="gig-1",
        bidder_id="usr_bidder",
        amount=400,
        proposal="x" * 20,
        delivery_time=7,
    )
    fields.update(overrides)
    return Bid(**fields)


class TestGigStatus:
    def test_values(self):
        assert GigStatus.OPEN.value == "open"
        assert GigStatus.IN_PROGRESS.value == "in-progress"
        assert GigStatus.COMPLETED.value == "completed"
        assert GigStatus.CANCELLED.value == "cancelled"

    def test_categories(self):
        assert {c.value for c in GigCategory} == {
            "web-development",
            "mobile-development",
            "design",
            "writing",
            "marketing",
            "data-science",
            "other",
        }


class TestTransitions:
    def test_open_can_be_hired_or_cancelled(self):
        assert can_transition("open", "in-progress")
        assert can_transition("open", "cancelled")
        assert not can_transition("open", "completed")

    def test_in_progress_only_completes(self):
        assert VALID_GIG_TRANSITIONS["in-progress"] == {"completed"}
        assert not can_transition("in-progress", "open")
        assert not can_transition("in-progress", "cancelled")

    def test_terminal_states(self):
        for status in ("completed", "cancelled"):
            for target in GigStatus:
                assert not can_transition(status, target.value)

    def test_unknown_status(self):
        assert not can_transition("archived", "open")


class TestGig:
    def test_defaults(self):
        gig = make_gig()
        assert gig.status == "open"
        assert gig.is_open
        assert not gig.is_hired
        assert gig.hired_freelancer_id is None
        assert gig.accepted_bid_id is None

    def test_title_is_stripped(self):
        gig = make_gig(title="   Build a landing page   ")
        assert gig.title == "Build a landing page"

    @pytest.mark.parametrize("title", ["abcd", "x" * 101, "   ab   "])
    def test_title_length(self, title):
        with pytest.raises(ValueError, match="Title must be between 5 and 100"):
            make_gig(title=title)

    @pytest.mark.parametrize("description", ["too short", "x" * 2001])
    def test_description_length(self, description):
        with pytest.raises(ValueError, match="Description must be between 20 and 2000"):
            make_gig(description=description)

    @pytest.mark.parametrize("budget", [0, 0.5, -10])
    def test_budget_minimum(self, budget):
        with pytest.raises(ValueError, match="Budget must be at least"):
            make_gig(budget=budget)

    def test_skills_required(self):
        with pytest.raises(ValueError, match="Skills must be between 1 and 10"):
            make_gig(skills_required=[])
        with pytest.raises(ValueError, match="Skills must be between 1 and 10"):
            make_gig(skills_required=[f"skill-{i}" for i in range(11)])

    def test_skills_unique(self):
        with pytest.raises(ValueError, match="Skills must be unique"):
            make_gig(skills_required=["React", "React "])

    def test_blank_skills_dropped(self):
        gig = make_gig(skills_required=[" React ", "", "  ", "Node"])
        assert gig.skills_required == ["React", "Node"]

    def test_invalid_category(self):
        with pytest.raises(ValueError, match="Invalid category"):
            make_gig(category="gardening")

    def test_invalid_status(self):
        with pytest.raises(ValueError, match="Invalid status"):
            make_gig(status="archived")

    def test_hire_fields_set_together(self):
        with pytest.raises(ValueError, match="set together"):
            make_gig(status="in-progress", hired_freelancer_id="usr_x")
        with pytest.raises(ValueError, match="set together"):
            make_gig(status="in-progress", accepted_bid_id="bid-1")

        gig = make_gig(status="in-progress", hired_freelancer_id="usr_x", accepted_bid_id="bid-1")
        assert gig.is_hired

    @pytest.mark.parametrize("budget", [math.nan, math.inf])
    def test_budget_must_be_finite(self, budget):
        with pytest.raises(ValueError, match="Budget must be at least"):
            make_gig(budget=budget)


class TestBid:
    def test_defaults(self):
        bid = make_bid()
        assert bid.status == BidStatus.PENDING.value
        assert bid.is_pending

    @pytest.mark.parametrize("amount", [0, 0.99, -1])
    def test_amount_minimum(self, amount):
        with pytest.raises(ValueError, match="Bid amount must be at least"):
            make_bid(amount=amount)

    @pytest.mark.parametrize("amount", [math.nan, math.inf, -math.inf])
    def test_amount_must_be_finite(self, amount):
        with pytest.raises(ValueError, match="Bid amount must be at least"):
            make_bid(amount=amount)

    def test_proposal_bounds(self):
        make_bid(proposal="x" * 20)
        make_bid(proposal="x" * 1000)
        with pytest.raises(ValueError, match="Proposal must be between 20 and 1000"):
            make_bid(proposal="x" * 19)
        with pytest.raises(ValueError, match="Proposal must be between 20 and 1000"):
            make_bid(proposal="x" * 1001)

    @pytest.mark.parametrize("delivery_time", [0, -3, 1.5, True])
    def test_delivery_time(self, delivery_time):
        with pytest.raises(ValueError, match="Delivery time"):
            make_bid(delivery_time=delivery_time)

    def test_invalid_status(self):
        with pytest.raises(ValueError, match="Invalid status"):
            make_bid(status="withdrawn")
