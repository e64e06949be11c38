"""mp_transaction REST endpoints.

POST /transactions                              - buy now at asking price (201; 200 on replay)
GET  /transactions/{id}                         - participants (or admin)
POST /transactions/{id}/payment                 - admin / payment callback
POST /transactions/{id}/ship                    - seller
POST /transactions/{id}/delivered               - admin / courier callback
POST /transactions/{id}/confirm-delivery        - buyer
POST /transactions/{id}/dispute                 - buyer or seller
POST /transactions/{id}/cancel                  - buyer or seller, before payment
"""

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user, require_admin
from src.mp_gateway.user.db_models import UserModel
from src.mp_transaction.application.schemas import (
    BuyNowRequest,
    DisputeRequest,
    RecordPaymentRequest,
    ShipRequest,
)
from src.mp_transaction.application.service import TransactionApplicationService

router = APIRouter(prefix="/transactions", tags=["transactions"])

_service = TransactionApplicationService()


def _wrap(request: Request, data: dict[str, Any]) -> ApiResponse:
    resp = success_response(data)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.post("", status_code=201)
async def buy_now(
    body: BuyNowRequest,
    request: Request,
    response: Response,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result, created = await _service.buy_now(db, body.listing_id, str(current_user.id))
    if not created:
        response.status_code = 200
    return _wrap(request, result.model_dump())


@router.get("/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_transaction(
        db, transaction_id, str(current_user.id), current_user.is_admin
    )
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/payment")
async def record_payment(
    transaction_id: str,
    body: RecordPaymentRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.record_payment(db, transaction_id, body)
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/ship")
async def record_shipment(
    transaction_id: str,
    body: ShipRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.record_shipment(db, transaction_id, str(current_user.id), body)
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/delivered")
async def record_delivery(
    transaction_id: str,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.record_delivery(db, transaction_id)
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/confirm-delivery")
async def confirm_delivery(
    transaction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.confirm_delivery(db, transaction_id, str(current_user.id))
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/dispute")
async def file_dispute(
    transaction_id: str,
    body: DisputeRequest,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.file_dispute(db, transaction_id, str(current_user.id), body.reason)
    return _wrap(request, result.model_dump())


@router.post("/{transaction_id}/cancel")
async def cancel_transaction(
    transaction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.cancel_transaction(db, transaction_id, str(current_user.id))
    return _wrap(request, result.model_dump())
