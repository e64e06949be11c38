"""mp_listing REST endpoints.

GET /listings/{listing_id}   - listing detail with minimum acceptable offer
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.db_models import UserModel
from src.mp_listing.application.service import ListingApplicationService

router = APIRouter(prefix="/listings", tags=["listings"])

_service = ListingApplicationService()


@router.get("/{listing_id}")
async def get_listing(
    listing_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_listing(db, listing_id)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
