# tests/unit/test_offer_service.py
"""Unit tests for OfferApplicationService using mock repositories."""
import dataclasses
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mp_common.enums import NotificationEvent, OfferStatus, PartyRole
from src.mp_common.errors import (
    InvalidOfferAmountError,
    ListingUnavailableError,
    NotListingSellerError,
    NotOfferParticipantError,
    OfferBelowMinimumError,
    OfferNotPendingError,
    SelfOfferError,
)
from src.mp_fees.domain.models import PlatformSettings
from src.mp_listing.domain.models import Listing
from src.mp_offer.application.schemas import CounterOfferRequest, CreateOfferRequest
from src.mp_offer.application.service import OfferApplicationService
from src.mp_offer.domain.models import Offer
from src.mp_transaction.domain.models import Transaction


def _future() -> datetime:
    return datetime.now(UTC) + timedelta(hours=24)


def _listing(**kwargs) -> Listing:
    defaults = dict(
        id="lst-1", seller_id="seller", title="Road bike", asking_price=1_000_000,
        shipping_cost=15_000, status="ACTIVE",
    )
    defaults.update(kwargs)
    return Listing(**defaults)


def _offer(**kwargs) -> Offer:
    defaults = dict(
        id="off-1", listing_id="lst-1", buyer_id="buyer", amount=200_000,
        status="PENDING", expires_at=_future(), created_at=datetime.now(UTC),
    )
    defaults.update(kwargs)
    return Offer(**defaults)


def _transaction(**kwargs) -> Transaction:
    defaults = dict(
        id="tx-1", transaction_type="OFFER", listing_id="lst-1", seller_id="seller",
        buyer_id="buyer", offer_id="off-1", item_price=200_000, shipping_cost=15_000,
        total_amount=215_000, platform_fee=11_000, seller_payout=189_000,
        fee_rate_bps=550, settings_version=1, escrow_release_days=2,
    )
    defaults.update(kwargs)
    return Transaction(**defaults)


async def _insert(db, offer: Offer) -> Offer:
    return dataclasses.replace(offer, id="off-new", created_at=datetime.now(UTC))


@pytest.fixture
def db():
    return AsyncMock()


@pytest.fixture
def offer_repo():
    repo = MagicMock()
    repo.insert = AsyncMock(side_effect=_insert)
    return repo


@pytest.fixture
def listing_repo():
    return MagicMock()


@pytest.fixture
def settings_repo():
    repo = MagicMock()
    repo.get_or_create = AsyncMock(return_value=PlatformSettings())
    return repo


@pytest.fixture
def transactions():
    svc = MagicMock()
    svc.create_from_offer = AsyncMock(return_value=_transaction())
    svc.get_for_offer = AsyncMock(return_value=_transaction())
    return svc


@pytest.fixture
def publisher():
    pub = MagicMock()
    pub.notify = AsyncMock(return_value=True)
    return pub


@pytest.fixture
def svc(offer_repo, listing_repo, settings_repo, transactions, publisher):
    return OfferApplicationService(
        repo=offer_repo,
        listing_repo=listing_repo,
        settings_repo=settings_repo,
        transactions=transactions,
        publisher=publisher,
    )


class TestCreateOffer:
    async def test_exactly_half_of_asking_is_accepted(self, svc, db, listing_repo, publisher):
        listing_repo.get_for_share = AsyncMock(return_value=_listing(asking_price=1_000_000))

        resp = await svc.create_offer(
            db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=500_000)
        )

        assert resp.status == "PENDING"
        assert resp.amount_cents == 500_000
        assert resp.amount_display == "R5,000.00"
        db.commit.assert_awaited_once()
        publisher.notify.assert_awaited_once()
        assert publisher.notify.await_args.args[0] == NotificationEvent.OFFER_RECEIVED

    async def test_free_listing_takes_any_positive_offer(self, svc, db, listing_repo):
        listing_repo.get_for_share = AsyncMock(return_value=_listing(asking_price=0))

        resp = await svc.create_offer(
            db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=100)
        )

        assert resp.amount_cents == 100

    async def test_below_half_rejected(self, svc, db, listing_repo, offer_repo):
        listing_repo.get_for_share = AsyncMock(return_value=_listing(asking_price=1_000_000))

        with pytest.raises(OfferBelowMinimumError) as exc_info:
            await svc.create_offer(
                db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=499_999)
            )

        assert exc_info.value.http_status == 400
        assert exc_info.value.details["minimum_cents"] == 500_000
        offer_repo.insert.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_offer_expires_in_48_hours(self, svc, db, listing_repo, offer_repo):
        listing_repo.get_for_share = AsyncMock(return_value=_listing())
        before = datetime.now(UTC)

        await svc.create_offer(
            db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=600_000)
        )

        inserted: Offer = offer_repo.insert.await_args.args[1]
        assert inserted.expires_at - before >= timedelta(hours=48)
        assert inserted.expires_at - before < timedelta(hours=48, minutes=1)

    async def test_own_listing_rejected(self, svc, db, listing_repo):
        listing_repo.get_for_share = AsyncMock(return_value=_listing(seller_id="buyer"))
        with pytest.raises(SelfOfferError):
            await svc.create_offer(
                db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=600_000)
            )

    async def test_sold_listing_rejected(self, svc, db, listing_repo, offer_repo):
        listing_repo.get_for_share = AsyncMock(return_value=_listing(status="SOLD"))
        with pytest.raises(ListingUnavailableError):
            await svc.create_offer(
                db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=600_000)
            )
        offer_repo.insert.assert_not_awaited()

    @pytest.mark.parametrize("amount", [0, -100])
    async def test_non_positive_amount_rejected(self, svc, db, listing_repo, amount):
        listing_repo.get_for_share = AsyncMock()
        with pytest.raises(InvalidOfferAmountError):
            await svc.create_offer(
                db, "buyer", CreateOfferRequest(listing_id="lst-1", amount_cents=amount)
            )
        listing_repo.get_for_share.assert_not_awaited()


class TestAcceptOffer:
    def _arrange(self, offer_repo, listing_repo, offer: Offer | None = None):
        offer = offer or _offer()
        offer_repo.get_by_id = AsyncMock(return_value=offer)
        offer_repo.mark_accepted = AsyncMock(
            return_value=dataclasses.replace(offer, status="ACCEPTED")
        )
        offer_repo.expire_pending_for_listing = AsyncMock(
            return_value=[_offer(id="off-2", status="EXPIRED")]
        )
        listing_repo.get_by_id = AsyncMock(return_value=_listing())
        listing_repo.mark_sold = AsyncMock(return_value=_listing(status="SOLD"))

    async def test_accept_opens_transaction(
        self, svc, db, offer_repo, listing_repo, transactions, publisher
    ):
        self._arrange(offer_repo, listing_repo)

        resp = await svc.accept_offer(db, "off-1", "seller")

        assert resp.offer.status == "ACCEPTED"
        assert resp.transaction.id == "tx-1"
        assert resp.transaction.platform_fee_cents == 11_000
        assert resp.transaction.seller_payout_cents == 189_000
        listing_repo.mark_sold.assert_awaited_once_with(db, "lst-1")
        offer_repo.expire_pending_for_listing.assert_awaited_once()
        assert offer_repo.expire_pending_for_listing.await_args.kwargs["except_offer_id"] == "off-1"
        transactions.create_from_offer.assert_awaited_once()
        db.commit.assert_awaited_once()
        events = [c.args[0] for c in publisher.notify.await_args_list]
        assert events == [NotificationEvent.OFFER_ACCEPTED, NotificationEvent.ITEM_SOLD]

    async def test_already_accepted_is_replay(
        self, svc, db, offer_repo, listing_repo, transactions, publisher
    ):
        self._arrange(offer_repo, listing_repo, _offer(status="ACCEPTED"))

        resp = await svc.accept_offer(db, "off-1", "seller")

        assert resp.offer.status == "ACCEPTED"
        assert resp.transaction.id == "tx-1"
        listing_repo.mark_sold.assert_not_awaited()
        transactions.create_from_offer.assert_not_awaited()
        publisher.notify.assert_not_awaited()

    async def test_listing_already_sold_conflicts(
        self, svc, db, offer_repo, listing_repo, transactions
    ):
        self._arrange(offer_repo, listing_repo)
        listing_repo.mark_sold = AsyncMock(return_value=None)
        listing_repo.get_by_id = AsyncMock(
            side_effect=[_listing(), _listing(status="SOLD")]
        )
        offer_repo.get_by_id = AsyncMock(side_effect=[_offer(), _offer(status="EXPIRED")])

        with pytest.raises(ListingUnavailableError) as exc_info:
            await svc.accept_offer(db, "off-1", "seller")

        assert exc_info.value.http_status == 409
        offer_repo.mark_accepted.assert_not_awaited()
        transactions.create_from_offer.assert_not_awaited()
        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_concurrent_accept_of_same_offer_replays(
        self, svc, db, offer_repo, listing_repo, transactions, publisher
    ):
        self._arrange(offer_repo, listing_repo)
        listing_repo.mark_sold = AsyncMock(return_value=None)
        listing_repo.get_by_id = AsyncMock(
            side_effect=[_listing(), _listing(status="SOLD")]
        )
        offer_repo.get_by_id = AsyncMock(side_effect=[_offer(), _offer(status="ACCEPTED")])

        resp = await svc.accept_offer(db, "off-1", "seller")

        assert resp.transaction.id == "tx-1"
        transactions.get_for_offer.assert_awaited_once_with(db, "off-1")
        transactions.create_from_offer.assert_not_awaited()
        publisher.notify.assert_not_awaited()

    async def test_expired_offer_cannot_be_accepted(self, svc, db, offer_repo, listing_repo):
        past = datetime.now(UTC) - timedelta(minutes=1)
        self._arrange(offer_repo, listing_repo, _offer(expires_at=past))

        with pytest.raises(OfferNotPendingError) as exc_info:
            await svc.accept_offer(db, "off-1", "seller")

        assert exc_info.value.details["status"] == "EXPIRED"
        listing_repo.mark_sold.assert_not_awaited()

    async def test_only_seller_may_accept(self, svc, db, offer_repo, listing_repo):
        self._arrange(offer_repo, listing_repo)
        with pytest.raises(NotListingSellerError):
            await svc.accept_offer(db, "off-1", "someone-else")
        listing_repo.mark_sold.assert_not_awaited()


class TestRejectAndCounter:
    async def test_reject_pending(self, svc, db, offer_repo, listing_repo, publisher):
        offer_repo.get_by_id = AsyncMock(return_value=_offer())
        offer_repo.mark_rejected = AsyncMock(return_value=_offer(status="REJECTED"))
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.reject_offer(db, "off-1", "seller")

        assert resp.status == "REJECTED"
        assert publisher.notify.await_args.args[0] == NotificationEvent.OFFER_REJECTED

    async def test_reject_twice_is_replay(self, svc, db, offer_repo, listing_repo, publisher):
        offer_repo.get_by_id = AsyncMock(return_value=_offer(status="REJECTED"))
        offer_repo.mark_rejected = AsyncMock()
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.reject_offer(db, "off-1", "seller")

        assert resp.status == "REJECTED"
        offer_repo.mark_rejected.assert_not_awaited()
        publisher.notify.assert_not_awaited()

    async def test_reject_accepted_conflicts(self, svc, db, offer_repo, listing_repo):
        offer_repo.get_by_id = AsyncMock(return_value=_offer(status="ACCEPTED"))
        listing_repo.get_by_id = AsyncMock(return_value=_listing())
        with pytest.raises(OfferNotPendingError):
            await svc.reject_offer(db, "off-1", "seller")

    async def test_counter_rejects_original_and_opens_new_offer(
        self, svc, db, offer_repo, listing_repo, publisher
    ):
        offer_repo.get_by_id = AsyncMock(return_value=_offer())
        offer_repo.mark_rejected = AsyncMock(return_value=_offer(status="REJECTED"))
        listing_repo.get_by_id = AsyncMock(return_value=_listing())
        listing_repo.get_for_share = AsyncMock(return_value=_listing())

        resp = await svc.counter_offer(
            db, "off-1", "seller", CounterOfferRequest(counter_amount_cents=350_000)
        )

        assert resp.id == "off-new"
        assert resp.status == "PENDING"
        assert resp.parent_offer_id == "off-1"
        assert resp.buyer_id == "buyer"
        assert resp.message == "Counter-offer: R3,500.00"
        offer_repo.mark_rejected.assert_awaited_once()
        assert publisher.notify.await_args.args[0] == NotificationEvent.OFFER_COUNTERED

    async def test_counter_replay_returns_existing_counter(
        self, svc, db, offer_repo, listing_repo, publisher
    ):
        counter = _offer(id="off-2", amount=350_000, parent_offer_id="off-1")
        offer_repo.get_by_id = AsyncMock(return_value=_offer(status="REJECTED"))
        offer_repo.get_counter_of = AsyncMock(return_value=counter)
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.counter_offer(
            db, "off-1", "seller", CounterOfferRequest(counter_amount_cents=350_000)
        )

        assert resp.id == "off-2"
        offer_repo.insert.assert_not_awaited()
        publisher.notify.assert_not_awaited()

    async def test_counter_on_rejected_with_other_amount_conflicts(
        self, svc, db, offer_repo, listing_repo
    ):
        offer_repo.get_by_id = AsyncMock(return_value=_offer(status="REJECTED"))
        offer_repo.get_counter_of = AsyncMock(return_value=None)
        listing_repo.get_by_id = AsyncMock(return_value=_listing())
        with pytest.raises(OfferNotPendingError):
            await svc.counter_offer(
                db, "off-1", "seller", CounterOfferRequest(counter_amount_cents=350_000)
            )

    async def test_counter_amount_must_be_positive(self, svc, db, offer_repo):
        offer_repo.get_by_id = AsyncMock()
        with pytest.raises(InvalidOfferAmountError):
            await svc.counter_offer(
                db, "off-1", "seller", CounterOfferRequest(counter_amount_cents=0)
            )
        offer_repo.get_by_id.assert_not_awaited()


class TestReads:
    async def test_seller_sees_fee_preview(self, svc, db, offer_repo, listing_repo):
        offer_repo.get_by_id = AsyncMock(return_value=_offer(amount=200_000))
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.get_offer(db, "off-1", "seller")

        assert resp.fee_preview is not None
        assert resp.fee_preview.platform_fee_cents == 11_000
        assert resp.fee_preview.seller_receives_cents == 189_000

    async def test_buyer_sees_no_fee_preview(self, svc, db, offer_repo, listing_repo):
        offer_repo.get_by_id = AsyncMock(return_value=_offer())
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.get_offer(db, "off-1", "buyer")

        assert resp.fee_preview is None

    async def test_stranger_cannot_view(self, svc, db, offer_repo, listing_repo):
        offer_repo.get_by_id = AsyncMock(return_value=_offer())
        listing_repo.get_by_id = AsyncMock(return_value=_listing())
        with pytest.raises(NotOfferParticipantError):
            await svc.get_offer(db, "off-1", "stranger")

    async def test_overdue_pending_reads_as_expired(self, svc, db, offer_repo, listing_repo):
        past = datetime.now(UTC) - timedelta(seconds=1)
        offer_repo.get_by_id = AsyncMock(return_value=_offer(expires_at=past))
        listing_repo.get_by_id = AsyncMock(return_value=_listing())

        resp = await svc.get_offer(db, "off-1", "buyer")

        assert resp.status == "EXPIRED"

    async def test_expire_offers_commits_and_counts(self, svc, db, offer_repo):
        offer_repo.expire_due = AsyncMock(return_value=[_offer(status="EXPIRED")] * 3)

        assert await svc.expire_offers(db) == 3
        db.commit.assert_awaited_once()


class TestUserOffers:
    async def test_received_offers_carry_fee_preview(self, svc, db, offer_repo, settings_repo):
        offer_repo.list_for_user = AsyncMock(return_value=[_offer()])
        offer_repo.count_for_user = AsyncMock(return_value=1)

        page = await svc.list_for_user(db, "seller", PartyRole.SELLER, OfferStatus.PENDING, 1, 20)

        kwargs = offer_repo.list_for_user.await_args.kwargs
        assert kwargs == {"seller_id": "seller", "status": "PENDING"}
        assert offer_repo.list_for_user.await_args.args[2:] == (20, 0)
        assert page.items[0].fee_preview.platform_fee_cents == 11_000
        assert page.pagination.total == 1

    async def test_made_offers_have_no_preview(self, svc, db, offer_repo, settings_repo):
        offer_repo.list_for_user = AsyncMock(return_value=[_offer()])
        offer_repo.count_for_user = AsyncMock(return_value=1)

        page = await svc.list_for_user(db, "buyer", PartyRole.BUYER, None, 1, 20)

        assert offer_repo.count_for_user.await_args.kwargs == {"buyer_id": "buyer", "status": None}
        assert page.items[0].fee_preview is None
        settings_repo.get_or_create.assert_not_awaited()

    async def test_lazily_expired_offer_reads_expired(self, svc, db, offer_repo):
        stale = _offer(expires_at=datetime.now(UTC) - timedelta(minutes=1))
        offer_repo.list_for_user = AsyncMock(return_value=[stale])
        offer_repo.count_for_user = AsyncMock(return_value=1)

        page = await svc.list_for_user(db, "buyer", PartyRole.BUYER, OfferStatus.EXPIRED, 1, 20)

        assert page.items[0].status == "EXPIRED"
