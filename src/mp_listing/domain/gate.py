"""Listing Availability Gate.

Every path that sells a listing (offer acceptance, buy-now) calls
``claim_listing`` inside its own DB transaction before writing anything else.
The claim is a single conditional UPDATE (ACTIVE -> SOLD), so of any number
of concurrent claimants exactly one gets a row back; the others block on the
row lock, re-evaluate the WHERE clause after the winner commits, and get
nothing. Nothing here commits: the caller owns the transaction boundary.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import ListingNotFoundError, ListingUnavailableError
from src.mp_listing.domain.models import Listing
from src.mp_listing.domain.repository import ListingRepositoryProtocol

logger = logging.getLogger(__name__)


class ListingAvailabilityGate:
    def __init__(self, repo: ListingRepositoryProtocol) -> None:
        self._repo = repo

    async def claim_listing(self, db: AsyncSession, listing_id: str) -> Listing:
        """Atomically move the listing ACTIVE -> SOLD.

        Raises:
            ListingNotFoundError: no such listing.
            ListingUnavailableError: listing is not ACTIVE (already sold, draft, removed).
        """
        claimed = await self._repo.mark_sold(db, listing_id)
        if claimed is not None:
            return claimed
        current = await self._repo.get_by_id(db, listing_id)
        if current is None:
            raise ListingNotFoundError(listing_id)
        logger.info("Listing %s claim lost (status=%s)", listing_id, current.status)
        raise ListingUnavailableError(listing_id, current.status)

    async def lock_listing_for_offer(self, db: AsyncSession, listing_id: str) -> Listing:
        """Share-lock an ACTIVE listing for the rest of the caller's transaction.

        Offer inserts made under this lock cannot interleave with a claim: the
        claimant's UPDATE waits for the lock, and its sibling-expiry sweep then
        sees the new offer.
        """
        listing = await self._repo.get_for_share(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        if not listing.is_available:
            raise ListingUnavailableError(listing_id, listing.status)
        return listing

    async def release_listing(self, db: AsyncSession, listing_id: str) -> Listing | None:
        """SOLD -> ACTIVE after a sale is cancelled. No-op if the listing is not SOLD."""
        released = await self._repo.mark_active(db, listing_id)
        if released is None:
            logger.warning("Listing %s was not SOLD on release", listing_id)
        return released
