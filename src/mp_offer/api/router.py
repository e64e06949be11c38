"""mp_offer REST endpoints.

POST /offers                        - buyer makes an offer (201)
GET  /offers/{offer_id}             - buyer or listing seller
POST /offers/{offer_id}/accept      - seller; returns offer + transaction
POST /offers/{offer_id}/reject      - seller
POST /offers/{offer_id}/counter     - seller; returns the new PENDING offer
GET  /listings/{listing_id}/offers  - seller; offers with fee previews
GET  /users/me/offers               - offers received (?role=seller) or made (?role=buyer)
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.enums import OfferStatus, PartyRole
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.db_models import UserModel
from src.mp_offer.application.schemas import CounterOfferRequest, CreateOfferRequest
from src.mp_offer.application.service import OfferApplicationService

router = APIRouter(tags=["offers"])

_service = OfferApplicationService()


def _wrap(request: Request, data: dict[str, Any]) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("/offers", status_code=201)
async def create_offer(
    body: CreateOfferRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.create_offer(db, str(current_user.id), body)
    return _wrap(request, result.model_dump())


@router.get("/offers/{offer_id}")
async def get_offer(
    offer_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_offer(db, offer_id, str(current_user.id))
    return _wrap(request, result.model_dump())


@router.post("/offers/{offer_id}/accept")
async def accept_offer(
    offer_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.accept_offer(db, offer_id, str(current_user.id))
    return _wrap(request, result.model_dump())


@router.post("/offers/{offer_id}/reject")
async def reject_offer(
    offer_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.reject_offer(db, offer_id, str(current_user.id))
    return _wrap(request, result.model_dump())


@router.post("/offers/{offer_id}/counter")
async def counter_offer(
    offer_id: str,
    body: CounterOfferRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.counter_offer(db, offer_id, str(current_user.id), body)
    return _wrap(request, result.model_dump())


@router.get("/listings/{listing_id}/offers")
async def list_listing_offers(
    listing_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.list_for_listing(db, listing_id, str(current_user.id))
    return _wrap(request, result.model_dump())


@router.get("/users/me/offers")
async def list_my_offers(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    role: PartyRole = Query(PartyRole.BUYER),
    status: OfferStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_for_user(
        db, str(current_user.id), role, status, page, limit
    )
    return _wrap(request, result.model_dump())
