"""OfferApplicationService - Offer Negotiation.

Acceptance is one DB transaction, in this order:
  1. claim the listing through the availability gate (ACTIVE -> SOLD)
  2. accept the offer (PENDING and unexpired -> ACCEPTED)
  3. expire every other PENDING offer on the listing
  4. open the transaction and its PENDING platform-fee ledger entry
Claiming the listing first means concurrent accepts on one listing queue on
the same row lock; the loser sees SOLD and fails with 409 after the winner has
already expired its offer.

Offer creation and counter-offers share-lock the listing, so an offer can never
be inserted next to a concurrent claim without being expired by it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings as app_settings
from src.mp_common.cents import cents_to_display
from src.mp_common.datetime_utils import hours_from, utc_now
from src.mp_common.enums import NotificationEvent, OfferStatus, PartyRole
from src.mp_common.errors import (
    InvalidOfferAmountError,
    ListingNotFoundError,
    ListingUnavailableError,
    NotListingSellerError,
    NotOfferParticipantError,
    OfferBelowMinimumError,
    OfferNotFoundError,
    OfferNotPendingError,
    SelfOfferError,
)
from src.mp_common.response import PaginationMeta
from src.mp_fees.domain.policy import compute_marketplace_fees
from src.mp_fees.domain.repository import SettingsRepositoryProtocol
from src.mp_fees.infrastructure.persistence import SettingsRepository
from src.mp_listing.domain.gate import ListingAvailabilityGate
from src.mp_listing.domain.models import Listing
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository
from src.mp_notify.publisher import EventPublisher
from src.mp_offer.application.schemas import (
    AcceptOfferResponse,
    CounterOfferRequest,
    CreateOfferRequest,
    OfferListResponse,
    OfferPageResponse,
    OfferResponse,
)
from src.mp_offer.domain.models import Offer
from src.mp_offer.domain.repository import OfferRepositoryProtocol
from src.mp_offer.infrastructure.persistence import OfferRepository
from src.mp_transaction.application.schemas import TransactionResponse
from src.mp_transaction.application.service import TransactionApplicationService
from src.mp_transaction.domain.models import Transaction

logger = logging.getLogger(__name__)


@dataclass
class _AcceptOutcome:
    offer: Offer
    transaction: Transaction
    listing: Listing
    expired_siblings: int
    created: bool


class OfferApplicationService:
    def __init__(
        self,
        repo: OfferRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        settings_repo: SettingsRepositoryProtocol | None = None,
        transactions: TransactionApplicationService | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._repo: OfferRepositoryProtocol = repo or OfferRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._settings: SettingsRepositoryProtocol = settings_repo or SettingsRepository()
        self._publisher = publisher or EventPublisher()
        self._transactions = transactions or TransactionApplicationService(
            listing_repo=self._listings,
            offer_repo=self._repo,
            settings_repo=self._settings,
            publisher=self._publisher,
        )
        self._gate = ListingAvailabilityGate(self._listings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load_offer(self, db: AsyncSession, offer_id: str) -> Offer:
        offer = await self._repo.get_by_id(db, offer_id)
        if offer is None:
            raise OfferNotFoundError(offer_id)
        return offer

    async def _load_listing(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._listings.get_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def _load_for_seller(
        self, db: AsyncSession, offer_id: str, seller_id: str
    ) -> tuple[Offer, Listing]:
        offer = await self._load_offer(db, offer_id)
        listing = await self._load_listing(db, offer.listing_id)
        if listing.seller_id != seller_id:
            raise NotListingSellerError()
        return offer, listing

    def _ensure_open(self, offer: Offer, now: datetime) -> None:
        if not offer.is_open(now):
            raise OfferNotPendingError(offer.id, offer.effective_status(now))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_offer(
        self, db: AsyncSession, buyer_id: str, req: CreateOfferRequest
    ) -> OfferResponse:
        if req.amount_cents <= 0:
            raise InvalidOfferAmountError(req.amount_cents)
        now = utc_now()
        try:
            listing = await self._gate.lock_listing_for_offer(db, req.listing_id)
            if listing.seller_id == buyer_id:
                raise SelfOfferError()
            # Floor is inclusive: exactly half the asking price is acceptable.
            if req.amount_cents * 2 < listing.asking_price:
                raise OfferBelowMinimumError(req.amount_cents, listing.minimum_offer)
            offer = await self._repo.insert(
                db,
                Offer(
                    id="",
                    listing_id=listing.id,
                    buyer_id=buyer_id,
                    amount=req.amount_cents,
                    status=OfferStatus.PENDING.value,
                    expires_at=hours_from(now, app_settings.OFFER_TTL_HOURS),
                    message=req.message,
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Offer %s created on listing %s for %d cents", offer.id, listing.id, offer.amount
        )
        await self._publisher.notify(
            NotificationEvent.OFFER_RECEIVED,
            {
                "offer_id": offer.id,
                "listing_id": listing.id,
                "listing_title": listing.title,
                "amount_cents": offer.amount,
                "buyer_id": buyer_id,
                "recipient_id": listing.seller_id,
            },
        )
        return OfferResponse.from_domain(offer, now)

    # ------------------------------------------------------------------
    # Accept
    # ------------------------------------------------------------------

    async def _accepted_replay(
        self, db: AsyncSession, offer: Offer, listing: Listing
    ) -> _AcceptOutcome:
        tx = await self._transactions.get_for_offer(db, offer.id)
        if tx is None:
            raise OfferNotPendingError(offer.id, offer.status)
        return _AcceptOutcome(offer, tx, listing, 0, created=False)

    async def _accept(self, db: AsyncSession, offer_id: str, seller_id: str) -> _AcceptOutcome:
        now = utc_now()
        offer, listing = await self._load_for_seller(db, offer_id, seller_id)
        if offer.status == OfferStatus.ACCEPTED:
            return await self._accepted_replay(db, offer, listing)
        self._ensure_open(offer, now)

        snapshot = await self._settings.get_or_create(db)
        try:
            claimed = await self._gate.claim_listing(db, listing.id)
        except ListingUnavailableError:
            # A concurrent accept of this same offer may be the one that won.
            current = await self._load_offer(db, offer_id)
            if current.status == OfferStatus.ACCEPTED:
                return await self._accepted_replay(db, current, listing)
            raise

        accepted = await self._repo.mark_accepted(db, offer_id, now)
        if accepted is None:
            current = await self._load_offer(db, offer_id)
            raise OfferNotPendingError(offer_id, current.effective_status(now))

        expired = await self._repo.expire_pending_for_listing(
            db, listing.id, now, except_offer_id=offer_id
        )
        tx = await self._transactions.create_from_offer(db, accepted, claimed, snapshot)
        return _AcceptOutcome(accepted, tx, claimed, len(expired), created=True)

    async def accept_offer(
        self, db: AsyncSession, offer_id: str, seller_id: str
    ) -> AcceptOfferResponse:
        try:
            outcome = await self._accept(db, offer_id, seller_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        tx = outcome.transaction
        if outcome.created:
            logger.info(
                "Offer %s accepted: transaction %s opened, %d sibling offer(s) expired",
                offer_id,
                tx.id,
                outcome.expired_siblings,
            )
            await self._publisher.notify(
                NotificationEvent.OFFER_ACCEPTED,
                {
                    "offer_id": offer_id,
                    "transaction_id": tx.id,
                    "listing_id": tx.listing_id,
                    "listing_title": outcome.listing.title,
                    "amount_cents": tx.item_price,
                    "total_amount_cents": tx.total_amount,
                    "recipient_id": tx.buyer_id,
                },
            )
            await self._publisher.notify(
                NotificationEvent.ITEM_SOLD,
                {
                    "offer_id": offer_id,
                    "transaction_id": tx.id,
                    "listing_id": tx.listing_id,
                    "listing_title": outcome.listing.title,
                    "seller_payout_cents": tx.seller_payout,
                    "recipient_id": tx.seller_id,
                },
            )
        return AcceptOfferResponse(
            offer=OfferResponse.from_domain(outcome.offer, utc_now()),
            transaction=TransactionResponse.from_domain(tx),
        )

    # ------------------------------------------------------------------
    # Reject / counter
    # ------------------------------------------------------------------

    async def reject_offer(
        self, db: AsyncSession, offer_id: str, seller_id: str
    ) -> OfferResponse:
        now = utc_now()
        try:
            offer, _ = await self._load_for_seller(db, offer_id, seller_id)
            changed = False
            if offer.status != OfferStatus.REJECTED:
                self._ensure_open(offer, now)
                rejected = await self._repo.mark_rejected(db, offer_id, now)
                if rejected is None:
                    offer = await self._load_offer(db, offer_id)
                    if offer.status != OfferStatus.REJECTED:
                        raise OfferNotPendingError(offer_id, offer.effective_status(now))
                else:
                    offer, changed = rejected, True
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if changed:
            logger.info("Offer %s rejected", offer_id)
            await self._publisher.notify(
                NotificationEvent.OFFER_REJECTED,
                {
                    "offer_id": offer_id,
                    "listing_id": offer.listing_id,
                    "amount_cents": offer.amount,
                    "recipient_id": offer.buyer_id,
                },
            )
        return OfferResponse.from_domain(offer, now)

    async def _counter_replay(self, db: AsyncSession, offer: Offer, amount: int) -> Offer:
        existing = await self._repo.get_counter_of(db, offer.id)
        if existing is not None and existing.amount == amount:
            return existing
        raise OfferNotPendingError(offer.id, offer.status)

    async def counter_offer(
        self, db: AsyncSession, offer_id: str, seller_id: str, req: CounterOfferRequest
    ) -> OfferResponse:
        """Reject the original and open a new PENDING offer for the same buyer."""
        amount = req.counter_amount_cents
        if amount <= 0:
            raise InvalidOfferAmountError(amount)
        now = utc_now()
        try:
            original, listing = await self._load_for_seller(db, offer_id, seller_id)
            changed = False
            if original.status == OfferStatus.REJECTED:
                counter = await self._counter_replay(db, original, amount)
            else:
                self._ensure_open(original, now)
                await self._gate.lock_listing_for_offer(db, listing.id)
                rejected = await self._repo.mark_rejected(db, offer_id, now)
                if rejected is None:
                    current = await self._load_offer(db, offer_id)
                    if current.status != OfferStatus.REJECTED:
                        raise OfferNotPendingError(offer_id, current.effective_status(now))
                    counter = await self._counter_replay(db, current, amount)
                else:
                    counter = await self._repo.insert(
                        db,
                        Offer(
                            id="",
                            listing_id=original.listing_id,
                            buyer_id=original.buyer_id,
                            amount=amount,
                            status=OfferStatus.PENDING.value,
                            expires_at=hours_from(now, app_settings.OFFER_TTL_HOURS),
                            message=req.message or f"Counter-offer: {cents_to_display(amount)}",
                            parent_offer_id=original.id,
                        ),
                    )
                    changed = True
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        if changed:
            logger.info("Offer %s countered with %s at %d cents", offer_id, counter.id, amount)
            await self._publisher.notify(
                NotificationEvent.OFFER_COUNTERED,
                {
                    "offer_id": counter.id,
                    "original_offer_id": offer_id,
                    "listing_id": counter.listing_id,
                    "listing_title": listing.title,
                    "amount_cents": amount,
                    "recipient_id": counter.buyer_id,
                },
            )
        return OfferResponse.from_domain(counter, now)

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    async def expire_offers(self, db: AsyncSession) -> int:
        """Persist EXPIRED on every PENDING offer past its expiry. Idempotent."""
        try:
            expired = await self._repo.expire_due(db, utc_now())
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if expired:
            logger.info("Expired %d offer(s)", len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_offer(self, db: AsyncSession, offer_id: str, user_id: str) -> OfferResponse:
        now = utc_now()
        offer = await self._load_offer(db, offer_id)
        listing = await self._load_listing(db, offer.listing_id)
        if user_id == listing.seller_id:
            snapshot = await self._settings.get_or_create(db)
            return OfferResponse.from_domain(
                offer, now, compute_marketplace_fees(offer.amount, snapshot)
            )
        if user_id != offer.buyer_id:
            raise NotOfferParticipantError()
        return OfferResponse.from_domain(offer, now)

    async def list_for_listing(
        self, db: AsyncSession, listing_id: str, seller_id: str
    ) -> OfferListResponse:
        now = utc_now()
        listing = await self._load_listing(db, listing_id)
        if listing.seller_id != seller_id:
            raise NotListingSellerError()
        snapshot = await self._settings.get_or_create(db)
        offers = await self._repo.list_for_listing(db, listing_id)
        return OfferListResponse(
            items=[
                OfferResponse.from_domain(o, now, compute_marketplace_fees(o.amount, snapshot))
                for o in offers
            ]
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: PartyRole,
        status: OfferStatus | None,
        page: int,
        limit: int,
    ) -> OfferPageResponse:
        """Offers received on the user's listings (seller) or made by the user (buyer).

        Received offers carry the seller's fee preview.
        """
        now = utc_now()
        scope = {"seller_id": user_id} if role == PartyRole.SELLER else {"buyer_id": user_id}
        status_value = status.value if status else None
        offers = await self._repo.list_for_user(
            db, now, limit, (page - 1) * limit, status=status_value, **scope
        )
        total = await self._repo.count_for_user(db, now, status=status_value, **scope)
        snapshot = await self._settings.get_or_create(db) if role == PartyRole.SELLER else None
        items = [
            OfferResponse.from_domain(
                o, now, compute_marketplace_fees(o.amount, snapshot) if snapshot else None
            )
            for o in offers
        ]
        return OfferPageResponse(items=items, pagination=PaginationMeta.of(page, limit, total))
