"""
Tests for accepting a bid.

Covers the ordered precondition checks, the all-or-nothing effects, the
post-commit fan-out and concurrent accepts on the same gig.
"""

import concurrent.futures
import threading
from unittest.mock import MagicMock

import pytest

from gigflow import MarketplaceConfig
from gigflow.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    TransactionTimeoutError,
)
from gigflow.marketplace import HiringService
from gigflow.notifications import NotificationDispatcher
from gigflow.realtime import gig_topic
from gigflow.storage import SQLiteStorage

PROPOSAL = "x" * 20


def accepted_bids(storage, gig_id):
    return storage.list_bids(gig_id=gig_id, status="accepted")


class TestScenarios:
    def test_accept_hires_bidder(self, make_gig, bid_service, hiring_service, storage, owner, make_user):
        gig = make_gig(budget=500, skills_required=["React"])
        bidder = make_user("Bea Bidder")
        bid = bid_service.place_bid(gig.id, bidder.id, 400, PROPOSAL, 7)

        result = hiring_service.accept_bid(gig.id, bid.id, owner.id)

        assert result.message == "Bid accepted successfully"
        assert result.gig.status == "in-progress"
        assert result.gig.hired_freelancer_id == bidder.id
        assert result.gig.accepted_bid_id == bid.id
        assert result.accepted_bid.status == "accepted"
        assert result.owner.id == owner.id
        assert result.freelancer.name == "Bea Bidder"

        stored = storage.get_gig(gig.id)
        assert stored.status == "in-progress"
        assert stored.hired_freelancer_id == bidder.id
        assert storage.get_bid(bid.id).status == "accepted"

    def test_competing_bids_rejected_and_notified(
        self, gig, bid_service, hiring_service, storage, owner, make_user
    ):
        b1_user, b2_user = make_user(), make_user()
        b1 = bid_service.place_bid(gig.id, b1_user.id, 100, PROPOSAL, 3)
        b2 = bid_service.place_bid(gig.id, b2_user.id, 200, PROPOSAL, 3)

        result = hiring_service.accept_bid(gig.id, b1.id, owner.id)

        assert storage.get_bid(b2.id).status == "rejected"
        assert [b.id for b in result.rejected_bids] == [b2.id]

        winner_inbox = storage.list_notifications(b1_user.id)
        assert [n.type for n in winner_inbox] == ["bid-accepted"]
        assert winner_inbox[0].message == f'Congratulations! Your bid on "{gig.title}" has been accepted!'
        assert winner_inbox[0].data == {"gigId": gig.id, "bidId": b1.id}

        loser_inbox = storage.list_notifications(b2_user.id)
        assert [n.type for n in loser_inbox] == ["bid-rejected"]
        assert loser_inbox[0].message == f'Your bid on "{gig.title}" was not selected.'

    def test_single_bid_has_no_rejections(self, gig, bid_service, hiring_service, storage, owner, make_user):
        bidder = make_user()
        bid = bid_service.place_bid(gig.id, bidder.id, 100, PROPOSAL, 3)

        result = hiring_service.accept_bid(gig.id, bid.id, owner.id)

        assert result.rejected_bids == []
        assert [n.type for n in storage.list_notifications(bidder.id)] == ["bid-accepted"]

    def test_gig_hired_broadcast(self, gig, bid_service, hiring_service, publisher, owner, make_user):
        bidder = make_user("Fay Freelancer")
        bid = bid_service.place_bid(gig.id, bidder.id, 100, PROPOSAL, 3)

        hiring_service.accept_bid(gig.id, bid.id, owner.id)

        assert publisher.on(gig_topic(gig.id), "gig-hired") == [
            {"gigId": gig.id, "freelancerId": bidder.id, "freelancerName": "Fay Freelancer"}
        ]


class TestPreconditions:
    def test_missing_gig(self, hiring_service, owner):
        with pytest.raises(NotFoundError, match="Gig not found"):
            hiring_service.accept_bid("missing", "bid", owner.id)

    def test_not_owner(self, gig, bid_service, hiring_service, storage, make_user):
        bidder = make_user()
        bid = bid_service.place_bid(gig.id, bidder.id, 100, PROPOSAL, 3)

        with pytest.raises(ForbiddenError):
            hiring_service.accept_bid(gig.id, bid.id, bidder.id)
        assert storage.get_gig(gig.id).status == "open"

    def test_forbidden_checked_before_bid(self, gig, hiring_service, make_user):
        with pytest.raises(ForbiddenError):
            hiring_service.accept_bid(gig.id, "missing", make_user().id)

    def test_gig_not_open(self, gig, gig_service, bid_service, hiring_service, owner, make_user):
        bid = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        gig_service.cancel_gig(gig.id, owner.id)

        with pytest.raises(InvalidStateError, match="not open for hiring"):
            hiring_service.accept_bid(gig.id, bid.id, owner.id)

    def test_missing_bid(self, gig, hiring_service, owner):
        with pytest.raises(NotFoundError, match="Bid not found"):
            hiring_service.accept_bid(gig.id, "missing", owner.id)

    def test_bid_from_other_gig(self, make_gig, bid_service, hiring_service, storage, owner, make_user):
        gig_a, gig_b = make_gig(), make_gig()
        bid_b = bid_service.place_bid(gig_b.id, make_user().id, 100, PROPOSAL, 3)

        with pytest.raises(NotFoundError):
            hiring_service.accept_bid(gig_a.id, bid_b.id, owner.id)
        assert storage.get_gig(gig_a.id).status == "open"
        assert storage.get_bid(bid_b.id).status == "pending"

    def test_second_accept_fails(self, gig, bid_service, hiring_service, owner, make_user):
        b1 = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        b2 = bid_service.place_bid(gig.id, make_user().id, 200, PROPOSAL, 3)
        hiring_service.accept_bid(gig.id, b1.id, owner.id)

        with pytest.raises(InvalidStateError):
            hiring_service.accept_bid(gig.id, b2.id, owner.id)
        with pytest.raises(InvalidStateError):
            hiring_service.accept_bid(gig.id, b1.id, owner.id)


class TestAtomicity:
    def test_failure_mid_transaction_rolls_back(self, gig, bid_service, storage, owner, make_user, monkeypatch):
        b1 = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        b2 = bid_service.place_bid(gig.id, make_user().id, 200, PROPOSAL, 3)

        from gigflow.storage.sqlite import StoreTransaction

        def broken_hire(self, gig_id, freelancer_id, bid_id):
            raise StorageError("simulated failure")

        monkeypatch.setattr(StoreTransaction, "hire", broken_hire)
        service = HiringService(storage)

        with pytest.raises(StorageError):
            service.accept_bid(gig.id, b1.id, owner.id)

        # Nothing from the failed transaction is visible
        assert storage.get_gig(gig.id).status == "open"
        assert storage.get_gig(gig.id).hired_freelancer_id is None
        assert storage.get_bid(b1.id).status == "pending"
        assert storage.get_bid(b2.id).status == "pending"

    def test_fan_out_failure_does_not_undo_hire(self, gig, bid_service, storage, owner, make_user):
        bid = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        dispatcher = MagicMock()
        dispatcher.notify.side_effect = RuntimeError("notify down")
        publisher = MagicMock()
        publisher.publish.side_effect = RuntimeError("transport down")
        service = HiringService(storage, dispatcher=dispatcher, publisher=publisher)

        result = service.accept_bid(gig.id, bid.id, owner.id)

        assert result.gig.status == "in-progress"
        assert storage.get_bid(bid.id).status == "accepted"

    def test_publish_failure_still_records_notifications(self, gig, bid_service, storage, owner, make_user):
        bidder = make_user()
        bid = bid_service.place_bid(gig.id, bidder.id, 100, PROPOSAL, 3)
        publisher = MagicMock()
        publisher.publish.side_effect = ConnectionError("socket closed")
        dispatcher = NotificationDispatcher(storage, publisher=publisher)
        service = HiringService(storage, dispatcher=dispatcher, publisher=publisher)

        service.accept_bid(gig.id, bid.id, owner.id)

        assert [n.type for n in storage.list_notifications(bidder.id)] == ["bid-accepted"]

    def test_timeout_when_store_locked(self, tmp_path, make_user, gig, bid_service, owner):
        bid = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        # Same database file, short lock wait
        impatient = SQLiteStorage(
            bid_service.storage.db_path, config=MarketplaceConfig(transaction_timeout=0.1)
        )
        service = HiringService(impatient)

        locked = threading.Event()
        release = threading.Event()

        def hold_lock():
            with bid_service.storage.transaction("hold"):
                locked.set()
                release.wait(5)

        holder = threading.Thread(target=hold_lock)
        holder.start()
        try:
            assert locked.wait(5)
            with pytest.raises(TransactionTimeoutError):
                service.accept_bid(gig.id, bid.id, owner.id)
        finally:
            release.set()
            holder.join()

        assert impatient.get_gig(gig.id).status == "open"
        assert impatient.get_bid(bid.id).status == "pending"


class TestConcurrency:
    def test_concurrent_accepts_one_winner(self, gig, bid_service, hiring_service, storage, owner, make_user):
        b1 = bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3)
        b2 = bid_service.place_bid(gig.id, make_user().id, 200, PROPOSAL, 3)

        results, errors = [], []
        start = threading.Barrier(2)

        def accept(bid_id):
            start.wait()
            try:
                results.append(hiring_service.accept_bid(gig.id, bid_id, owner.id))
            except InvalidStateError as e:
                errors.append(e)

        with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
            futures = [executor.submit(accept, b1.id), executor.submit(accept, b2.id)]
            concurrent.futures.wait(futures)

        assert len(results) == 1, f"Both accepted: {results}"
        assert len(errors) == 1

        winner = results[0].accepted_bid
        stored = storage.get_gig(gig.id)
        assert stored.status == "in-progress"
        assert stored.accepted_bid_id == winner.id
        assert stored.hired_freelancer_id == winner.bidder_id
        statuses = {b.id: b.status for b in storage.list_bids(gig_id=gig.id)}
        assert sorted(statuses.values()) == ["accepted", "rejected"]

    def test_many_concurrent_accepts(self, gig, bid_service, hiring_service, storage, owner, make_user):
        bids = [bid_service.place_bid(gig.id, make_user().id, 100 + i, PROPOSAL, 3) for i in range(6)]
        outcomes = []
        lock = threading.Lock()

        def accept(bid_id):
            try:
                hiring_service.accept_bid(gig.id, bid_id, owner.id)
                outcome = "ok"
            except InvalidStateError:
                outcome = "invalid_state"
            with lock:
                outcomes.append(outcome)

        with concurrent.futures.ThreadPoolExecutor(max_workers=6) as executor:
            list(executor.map(accept, [b.id for b in bids]))

        assert outcomes.count("ok") == 1
        assert outcomes.count("invalid_state") == 5
        assert len(accepted_bids(storage, gig.id)) == 1
        assert len(storage.list_bids(gig_id=gig.id, status="rejected")) == 5


class TestHiredInvariants:
    def test_at_most_one_accepted_and_fields_consistent(
        self, make_gig, bid_service, hiring_service, storage, owner, make_user
    ):
        for _ in range(3):
            gig = make_gig()
            bids = [bid_service.place_bid(gig.id, make_user().id, 100, PROPOSAL, 3) for _ in range(3)]
            hiring_service.accept_bid(gig.id, bids[1].id, owner.id)

            accepted = accepted_bids(storage, gig.id)
            stored = storage.get_gig(gig.id)
            assert len(accepted) == 1
            assert stored.status == "in-progress"
            assert stored.hired_freelancer_id == accepted[0].bidder_id
            assert stored.accepted_bid_id == accepted[0].id
