"""TransactionApplicationService - the Transaction Lifecycle.

Every public mutation follows the same shape:
  1. load the row, authorize the actor
  2. state guard (domain/state.py): replay → return current state, no writes
  3. conditional UPDATE; 0 rows → re-read and re-run the guard
     (replay if a concurrent caller reached the same target, else 409)
  4. dependent writes (ledger, user stats, listing release) in the same DB transaction
  5. commit; on any error roll back everything
  6. after commit, fire-and-forget events (only when state actually changed)

``create_from_offer`` is the exception: it runs inside the offer acceptance
transaction and leaves commit to the caller.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.cents import cents_to_display
from src.mp_common.datetime_utils import days_from, utc_now
from src.mp_common.enums import (
    LedgerEntryStatus,
    LedgerEntryType,
    NotificationEvent,
    PartyRole,
    PaymentMethod,
    PaymentStatus,
    TransactionStatus,
    TransactionType,
)
from src.mp_common.errors import (
    InvalidCorrectionError,
    ListingNotFoundError,
    ListingUnavailableError,
    NotTransactionBuyerError,
    NotTransactionParticipantError,
    NotTransactionSellerError,
    SelfPurchaseError,
    TransactionConflictError,
    TransactionNotFoundError,
    UnpricedListingError,
)
from src.mp_common.response import PaginationMeta
from src.mp_fees.domain.models import PlatformSettings
from src.mp_fees.domain.policy import compute_card_surcharge, compute_marketplace_fees
from src.mp_fees.domain.repository import SettingsRepositoryProtocol
from src.mp_fees.infrastructure.persistence import SettingsRepository
from src.mp_gateway.user.stats import record_completed_sale
from src.mp_ledger.application.service import LedgerService
from src.mp_ledger.domain.models import NewLedgerEntry
from src.mp_listing.domain.gate import ListingAvailabilityGate
from src.mp_listing.domain.models import Listing
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository
from src.mp_notify.publisher import EventPublisher
from src.mp_offer.domain.models import Offer
from src.mp_offer.domain.repository import OfferRepositoryProtocol
from src.mp_offer.infrastructure.persistence import OfferRepository
from src.mp_transaction.application.schemas import (
    CorrectTransactionRequest,
    RecordPaymentRequest,
    ResolveDisputeRequest,
    ShipRequest,
    TransactionPageResponse,
    TransactionResponse,
    UserStatsResponse,
)
from src.mp_transaction.domain import state
from src.mp_transaction.domain.models import (
    Transaction,
    TransactionCorrection,
    TransactionFilter,
)
from src.mp_transaction.domain.repository import TransactionRepositoryProtocol
from src.mp_transaction.infrastructure.persistence import TransactionRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

Guard = Callable[[Transaction], bool]


class TransactionApplicationService:
    def __init__(
        self,
        repo: TransactionRepositoryProtocol | None = None,
        listing_repo: ListingRepositoryProtocol | None = None,
        offer_repo: OfferRepositoryProtocol | None = None,
        settings_repo: SettingsRepositoryProtocol | None = None,
        ledger: LedgerService | None = None,
        publisher: EventPublisher | None = None,
    ) -> None:
        self._repo: TransactionRepositoryProtocol = repo or TransactionRepository()
        self._listings: ListingRepositoryProtocol = listing_repo or ListingRepository()
        self._offers: OfferRepositoryProtocol = offer_repo or OfferRepository()
        self._settings: SettingsRepositoryProtocol = settings_repo or SettingsRepository()
        self._ledger = ledger or LedgerService()
        self._publisher = publisher or EventPublisher()
        self._gate = ListingAvailabilityGate(self._listings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _in_transaction(self, db: AsyncSession, work: Callable[[], Awaitable[T]]) -> T:
        try:
            result = await work()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return result

    async def _load(self, db: AsyncSession, transaction_id: str) -> Transaction:
        tx = await self._repo.get_by_id(db, transaction_id)
        if tx is None:
            raise TransactionNotFoundError(transaction_id)
        return tx

    async def _reclassify(self, db: AsyncSession, transaction_id: str, guard: Guard) -> Transaction:
        """Conditional write matched nothing: decide replay vs conflict on the fresh row."""
        current = await self._load(db, transaction_id)
        if guard(current):
            return current
        raise TransactionConflictError(transaction_id, current.status)

    async def _open_sale(
        self,
        db: AsyncSession,
        listing: Listing,
        buyer_id: str,
        item_price: int,
        offer_id: str | None,
        transaction_type: TransactionType,
        settings: PlatformSettings,
    ) -> Transaction:
        fees = compute_marketplace_fees(item_price, settings)
        shipping = listing.shipping_cost or 0
        tx = await self._repo.insert(
            db,
            Transaction(
                id="",
                transaction_type=transaction_type.value,
                listing_id=listing.id,
                seller_id=listing.seller_id,
                buyer_id=buyer_id,
                offer_id=offer_id,
                item_price=item_price,
                shipping_cost=shipping,
                total_amount=item_price + shipping,
                platform_fee=fees.platform_fee,
                seller_payout=fees.seller_receives,
                fee_rate_bps=fees.fee_rate_bps,
                settings_version=settings.version,
                escrow_release_days=settings.escrow_release_days,
            ),
        )
        await self._ledger.record(
            db,
            NewLedgerEntry(
                entry_type=LedgerEntryType.PLATFORM_FEE.value,
                amount=fees.platform_fee,
                platform_revenue=fees.platform_fee,
                from_user_id=listing.seller_id,
                transaction_id=tx.id,
                description=f"Platform fee on '{listing.title}'",
            ),
        )
        return tx

    async def _complete(
        self,
        db: AsyncSession,
        tx: Transaction,
        from_status: str,
        note: str | None = None,
    ) -> Transaction | None:
        now = utc_now()
        release_at = days_from(now, tx.escrow_release_days)
        completed = await self._repo.mark_completed(db, tx.id, from_status, now, release_at, note)
        if completed is None:
            return None
        await record_completed_sale(db, completed.seller_id, completed.buyer_id)
        await self._ledger.transition_status(
            db, completed.id, LedgerEntryType.PLATFORM_FEE.value, LedgerEntryStatus.COMPLETED
        )
        await self._ledger.record(
            db,
            NewLedgerEntry(
                entry_type=LedgerEntryType.SELLER_PAYOUT.value,
                amount=completed.seller_payout,
                to_user_id=completed.seller_id,
                transaction_id=completed.id,
                description=f"Seller payout, release at {release_at.isoformat()}",
            ),
        )
        return completed

    async def _cancel(
        self,
        db: AsyncSession,
        tx: Transaction,
        from_status: str,
        note: str | None = None,
    ) -> Transaction | None:
        cancelled = await self._repo.mark_cancelled(db, tx.id, from_status, utc_now(), note)
        if cancelled is None:
            return None
        await self._ledger.transition_status(
            db, cancelled.id, LedgerEntryType.PLATFORM_FEE.value, LedgerEntryStatus.FAILED
        )
        if cancelled.payment_cleared:
            await self._ledger.record(
                db,
                NewLedgerEntry(
                    entry_type=LedgerEntryType.REFUND.value,
                    amount=cancelled.total_amount,
                    to_user_id=cancelled.buyer_id,
                    transaction_id=cancelled.id,
                    description="Refund after cancelled dispute",
                ),
            )
        await self._gate.release_listing(db, cancelled.listing_id)
        return cancelled

    async def _announce_completion(self, tx: Transaction) -> None:
        await self._publisher.notify(
            NotificationEvent.PAYMENT_RELEASED,
            {
                "transaction_id": tx.id,
                "recipient_id": tx.seller_id,
                "seller_payout_cents": tx.seller_payout,
                "payout_release_at": tx.payout_release_at,
            },
        )
        await self._publisher.schedule_payout(
            {
                "transaction_id": tx.id,
                "seller_id": tx.seller_id,
                "amount_cents": tx.seller_payout,
                "release_at": tx.payout_release_at,
            }
        )

    async def _notify(
        self, event: NotificationEvent, tx: Transaction, recipient_id: str, **extra: Any
    ) -> None:
        payload: dict[str, Any] = {
            "transaction_id": tx.id,
            "listing_id": tx.listing_id,
            "recipient_id": recipient_id,
            "status": tx.status,
        }
        payload.update(extra)
        await self._publisher.notify(event, payload)

    # ------------------------------------------------------------------
    # Sale creation
    # ------------------------------------------------------------------

    async def create_from_offer(
        self,
        db: AsyncSession,
        offer: Offer,
        listing: Listing,
        settings: PlatformSettings,
    ) -> Transaction:
        """Open the sale for an accepted offer. Caller holds the listing claim and commits."""
        return await self._open_sale(
            db, listing, offer.buyer_id, offer.amount, offer.id, TransactionType.OFFER, settings
        )

    async def get_for_offer(self, db: AsyncSession, offer_id: str) -> Transaction | None:
        return await self._repo.get_by_offer_id(db, offer_id)

    async def _existing_purchase(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> Transaction | None:
        existing = await self._repo.get_live_for_listing(db, listing_id)
        if (
            existing is not None
            and existing.buyer_id == buyer_id
            and existing.transaction_type == TransactionType.MARKETPLACE
        ):
            return existing
        return None

    async def buy_now(
        self, db: AsyncSession, listing_id: str, buyer_id: str
    ) -> tuple[TransactionResponse, bool]:
        """Buy a listing at its asking price. Returns (transaction, created)."""

        async def work() -> tuple[Transaction, bool]:
            listing = await self._listings.get_by_id(db, listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if listing.seller_id == buyer_id:
                raise SelfPurchaseError()
            if listing.asking_price <= 0:
                raise UnpricedListingError(listing_id)
            settings = await self._settings.get_or_create(db)
            try:
                claimed = await self._gate.claim_listing(db, listing_id)
            except ListingUnavailableError:
                existing = await self._existing_purchase(db, listing_id, buyer_id)
                if existing is not None:
                    return existing, False
                raise
            await self._offers.expire_pending_for_listing(db, listing_id, utc_now())
            tx = await self._open_sale(
                db,
                claimed,
                buyer_id,
                claimed.asking_price,
                None,
                TransactionType.MARKETPLACE,
                settings,
            )
            return tx, True

        tx, created = await self._in_transaction(db, work)
        if created:
            logger.info("Listing %s bought at asking price: transaction %s", listing_id, tx.id)
            await self._notify(
                NotificationEvent.ITEM_SOLD, tx, tx.seller_id, amount_cents=tx.item_price
            )
        return TransactionResponse.from_domain(tx), created

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_transaction(
        self, db: AsyncSession, transaction_id: str, user_id: str, is_admin: bool = False
    ) -> TransactionResponse:
        tx = await self._load(db, transaction_id)
        if not is_admin and not tx.is_participant(user_id):
            raise NotTransactionParticipantError()
        return TransactionResponse.from_domain(tx)

    async def list_transactions(
        self, db: AsyncSession, f: TransactionFilter, page: int, limit: int
    ) -> TransactionPageResponse:
        offset = (page - 1) * limit
        items = await self._repo.list_transactions(db, f, limit, offset)
        total = await self._repo.count_transactions(db, f)
        return TransactionPageResponse(
            items=[TransactionResponse.from_domain(tx) for tx in items],
            pagination=PaginationMeta.of(page, limit, total),
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: PartyRole | None,
        status: str | None,
        page: int,
        limit: int,
    ) -> TransactionPageResponse:
        """The user's sales, purchases, or both when ``role`` is None."""
        f = TransactionFilter(
            status=status,
            seller_id=user_id if role == PartyRole.SELLER else None,
            buyer_id=user_id if role == PartyRole.BUYER else None,
            participant_id=user_id if role is None else None,
        )
        return await self.list_transactions(db, f, page, limit)

    async def get_user_stats(self, db: AsyncSession, user_id: str) -> UserStatsResponse:
        return UserStatsResponse.from_domain(await self._repo.user_stats(db, user_id))

    # ------------------------------------------------------------------
    # Lifecycle transitions
    # ------------------------------------------------------------------

    async def record_payment(
        self, db: AsyncSession, transaction_id: str, req: RecordPaymentRequest
    ) -> TransactionResponse:
        """Payment verification signal from the payment gateway / an administrator."""
        guard = state.check_record_payment

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if guard(tx):
                return tx, False
            payment_status = (
                PaymentStatus.HELD_ESCROW if req.hold_in_escrow else PaymentStatus.VERIFIED
            )
            card_fee = (
                compute_card_surcharge(tx.total_amount)
                if req.payment_method == PaymentMethod.CARD
                else 0
            )
            paid = await self._repo.mark_paid(
                db,
                transaction_id,
                payment_status.value,
                req.payment_method.value,
                req.payment_ref,
                card_fee,
                utc_now(),
            )
            if paid is None:
                return await self._reclassify(db, transaction_id, guard), False
            await self._ledger.record(
                db,
                NewLedgerEntry(
                    entry_type=LedgerEntryType.PAYMENT_RECEIVED.value,
                    status=LedgerEntryStatus.COMPLETED.value,
                    amount=paid.total_amount,
                    from_user_id=paid.buyer_id,
                    transaction_id=paid.id,
                    description=f"{req.payment_method.value} payment {req.payment_ref or ''}".strip(),
                ),
            )
            if card_fee:
                await self._ledger.record(
                    db,
                    NewLedgerEntry(
                        entry_type=LedgerEntryType.CARD_FEE.value,
                        status=LedgerEntryStatus.COMPLETED.value,
                        amount=card_fee,
                        platform_revenue=-card_fee,
                        transaction_id=paid.id,
                        description="Card processing fee absorbed by platform",
                    ),
                )
            return paid, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.info(
                "Transaction %s payment %s via %s", tx.id, tx.payment_status, tx.payment_method
            )
            await self._notify(NotificationEvent.PAYMENT_VERIFIED, tx, tx.seller_id)
        return TransactionResponse.from_domain(tx)

    async def record_shipment(
        self, db: AsyncSession, transaction_id: str, seller_id: str, req: ShipRequest
    ) -> TransactionResponse:
        guard = state.check_record_shipment

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if tx.seller_id != seller_id:
                raise NotTransactionSellerError()
            if guard(tx):
                return tx, False
            shipped = await self._repo.mark_shipped(
                db, transaction_id, req.tracking_number, req.courier_name, utc_now()
            )
            if shipped is None:
                return await self._reclassify(db, transaction_id, guard), False
            return shipped, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.info("Transaction %s shipped (tracking=%s)", tx.id, tx.tracking_number)
            await self._notify(
                NotificationEvent.ITEM_SHIPPED,
                tx,
                tx.buyer_id,
                tracking_number=tx.tracking_number,
                courier_name=tx.courier_name,
            )
        return TransactionResponse.from_domain(tx)

    async def record_delivery(self, db: AsyncSession, transaction_id: str) -> TransactionResponse:
        """Carrier/tracking delivered signal. Status stays SHIPPED until the buyer confirms."""
        guard = state.check_record_delivery

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if guard(tx):
                return tx, False
            delivered = await self._repo.mark_delivered(db, transaction_id, utc_now())
            if delivered is None:
                return await self._reclassify(db, transaction_id, guard), False
            return delivered, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.info("Transaction %s delivered by courier", tx.id)
            await self._notify(NotificationEvent.ITEM_DELIVERED, tx, tx.buyer_id)
        return TransactionResponse.from_domain(tx)

    async def confirm_delivery(
        self, db: AsyncSession, transaction_id: str, buyer_id: str
    ) -> TransactionResponse:
        guard = state.check_confirm_delivery

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if tx.buyer_id != buyer_id:
                raise NotTransactionBuyerError()
            if guard(tx):
                return tx, False
            completed = await self._complete(db, tx, TransactionStatus.SHIPPED.value)
            if completed is None:
                return await self._reclassify(db, transaction_id, guard), False
            return completed, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.info(
                "Transaction %s completed; payout of %d cents releases at %s",
                tx.id,
                tx.seller_payout,
                tx.payout_release_at,
            )
            await self._announce_completion(tx)
        return TransactionResponse.from_domain(tx)

    async def file_dispute(
        self, db: AsyncSession, transaction_id: str, user_id: str, reason: str
    ) -> TransactionResponse:
        guard = state.check_file_dispute

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if not tx.is_participant(user_id):
                raise NotTransactionParticipantError()
            if guard(tx):
                return tx, False
            disputed = await self._repo.mark_disputed(db, transaction_id, reason, utc_now())
            if disputed is None:
                return await self._reclassify(db, transaction_id, guard), False
            return disputed, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.warning("Transaction %s disputed by %s", tx.id, user_id)
            other = tx.seller_id if user_id == tx.buyer_id else tx.buyer_id
            await self._notify(
                NotificationEvent.DISPUTE_FILED, tx, other, reason=tx.dispute_reason
            )
        return TransactionResponse.from_domain(tx)

    async def cancel_transaction(
        self, db: AsyncSession, transaction_id: str, user_id: str
    ) -> TransactionResponse:
        guard = state.check_cancel

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if not tx.is_participant(user_id):
                raise NotTransactionParticipantError()
            if guard(tx):
                return tx, False
            cancelled = await self._cancel(db, tx, TransactionStatus.PAYMENT_PENDING.value)
            if cancelled is None:
                return await self._reclassify(db, transaction_id, guard), False
            return cancelled, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.info("Transaction %s cancelled by %s; listing released", tx.id, user_id)
            other = tx.seller_id if user_id == tx.buyer_id else tx.buyer_id
            await self._notify(NotificationEvent.TRANSACTION_CANCELLED, tx, other)
        return TransactionResponse.from_domain(tx)

    async def resolve_dispute(
        self, db: AsyncSession, transaction_id: str, req: ResolveDisputeRequest
    ) -> TransactionResponse:
        """Administrative override: force a DISPUTED transaction to COMPLETED or CANCELLED."""

        def guard(tx: Transaction) -> bool:
            return state.check_resolve_dispute(tx, req.outcome)

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if guard(tx):
                return tx, False
            from_status = TransactionStatus.DISPUTED.value
            if req.outcome == TransactionStatus.COMPLETED:
                resolved = await self._complete(db, tx, from_status, req.note)
            else:
                resolved = await self._cancel(db, tx, from_status, req.note)
            if resolved is None:
                return await self._reclassify(db, transaction_id, guard), False
            return resolved, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.warning("Transaction %s dispute resolved as %s", tx.id, tx.status)
            for recipient in (tx.buyer_id, tx.seller_id):
                await self._notify(
                    NotificationEvent.DISPUTE_RESOLVED, tx, recipient, note=tx.resolution_note
                )
            if tx.status == TransactionStatus.COMPLETED:
                await self._announce_completion(tx)
        return TransactionResponse.from_domain(tx)

    async def correct_transaction(
        self, db: AsyncSession, transaction_id: str, req: CorrectTransactionRequest, admin_id: str
    ) -> TransactionResponse:
        """Administrative correction of recorded fields, with a mandatory note.

        A fee change keeps the ledger append-only: the PENDING fee entry is
        marked FAILED and a new PENDING entry carries the corrected amount.
        """
        correction = TransactionCorrection(
            note=req.note,
            platform_fee=req.platform_fee_cents,
            tracking_number=req.tracking_number,
            courier_name=req.courier_name,
            payment_ref=req.payment_ref,
        )
        if correction.is_empty:
            raise InvalidCorrectionError("Nothing to correct: supply at least one field")

        def guard(tx: Transaction) -> bool:
            return state.check_correction(tx, correction)

        async def work() -> tuple[Transaction, bool]:
            tx = await self._load(db, transaction_id)
            if correction.platform_fee is not None and correction.platform_fee > tx.item_price:
                raise InvalidCorrectionError(
                    f"Platform fee cannot exceed the item price ({tx.item_price} cents)"
                )
            if guard(tx):
                return tx, False
            corrected = await self._repo.apply_correction(db, tx, correction, utc_now())
            if corrected is None:
                return await self._reclassify(db, transaction_id, guard), False
            if correction.changes_fee(tx):
                await self._ledger.transition_status(
                    db, tx.id, LedgerEntryType.PLATFORM_FEE.value, LedgerEntryStatus.FAILED
                )
                description = (
                    f"Fee corrected {cents_to_display(tx.platform_fee)} -> "
                    f"{cents_to_display(corrected.platform_fee)}: {req.note}"
                )
                await self._ledger.record(
                    db,
                    NewLedgerEntry(
                        entry_type=LedgerEntryType.PLATFORM_FEE.value,
                        amount=corrected.platform_fee,
                        platform_revenue=corrected.platform_fee,
                        from_user_id=corrected.seller_id,
                        transaction_id=corrected.id,
                        description=description[:500],
                    ),
                )
            return corrected, True

        tx, changed = await self._in_transaction(db, work)
        if changed:
            logger.warning(
                "Transaction %s corrected by admin %s: fee=%d payout=%d",
                tx.id,
                admin_id,
                tx.platform_fee,
                tx.seller_payout,
            )
            for recipient in (tx.buyer_id, tx.seller_id):
                await self._notify(NotificationEvent.TRANSACTION_CORRECTED, tx, recipient)
        return TransactionResponse.from_domain(tx)
