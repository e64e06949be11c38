"""ListingApplicationService - read-only; status changes go through the gate."""

from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.errors import ListingNotFoundError
from src.mp_listing.application.schemas import ListingResponse
from src.mp_listing.domain.repository import ListingRepositoryProtocol
from src.mp_listing.infrastructure.persistence import ListingRepository


class ListingApplicationService:
    def __init__(self, repo: ListingRepositoryProtocol | None = None) -> None:
        self._repo: ListingRepositoryProtocol = repo or ListingRepository()

    async def get_listing(self, db: AsyncSession, listing_id: str) -> ListingResponse:
        listing = await self._repo.get_by_id(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return ListingResponse.from_domain(listing)
