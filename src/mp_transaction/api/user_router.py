"""Current-user views over transactions.

GET /users/me/transactions         - sales and/or purchases (?role=seller|buyer)
GET /users/me/transactions/{id}    - one of the user's transactions
GET /users/me/stats                - listing, offer and sale counts with earnings
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.enums import PartyRole, TransactionStatus
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import get_current_user
from src.mp_gateway.user.db_models import UserModel
from src.mp_transaction.application.service import TransactionApplicationService

router = APIRouter(prefix="/users/me", tags=["users"])

_service = TransactionApplicationService()


@router.get("/transactions")
async def list_my_transactions(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    role: PartyRole | None = Query(None, description="Omit for both sides"),
    status: TransactionStatus | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> ApiResponse:
    result = await _service.list_for_user(
        db, str(current_user.id), role, status.value if status else None, page, limit
    )
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/transactions/{transaction_id}")
async def get_my_transaction(
    transaction_id: str,
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    # Admins get no bypass here; this is the user's own view
    result = await _service.get_transaction(db, transaction_id, str(current_user.id), False)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/stats")
async def get_my_stats(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_user_stats(db, str(current_user.id))
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
