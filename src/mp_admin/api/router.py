# src/mp_admin/api/router.py
"""Admin REST API. Every route requires an administrator."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_admin.application.service import AdminService
from src.mp_common.database import get_db_session
from src.mp_common.enums import PaymentStatus, TransactionStatus, TransactionType
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import require_admin
from src.mp_gateway.user.db_models import UserModel
from src.mp_transaction.application.schemas import (
    CorrectTransactionRequest,
    ResolveDisputeRequest,
)
from src.mp_transaction.domain.models import TransactionFilter

router = APIRouter(prefix="/admin", tags=["admin"])
_service = AdminService()


@router.get("/transactions")
async def list_transactions(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    status: TransactionStatus | None = Query(None),
    payment_status: PaymentStatus | None = Query(None),
    transaction_type: TransactionType | None = Query(None),
    seller_id: str | None = Query(None),
    buyer_id: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
) -> ApiResponse:
    f = TransactionFilter(
        status=status.value if status else None,
        payment_status=payment_status.value if payment_status else None,
        transaction_type=transaction_type.value if transaction_type else None,
        seller_id=seller_id,
        buyer_id=buyer_id,
    )
    result = await _service.list_transactions(f, page, limit, db)
    return success_response(result.model_dump(), getattr(request.state, "request_id", None))


@router.get("/transactions/{transaction_id}")
async def get_transaction(
    transaction_id: str,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_transaction(transaction_id, db)
    return success_response(result.model_dump(), getattr(request.state, "request_id", None))


@router.patch("/transactions/{transaction_id}")
async def correct_transaction(
    transaction_id: str,
    body: CorrectTransactionRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.correct_transaction(transaction_id, body, str(admin.id), db)
    return success_response(result.model_dump(), getattr(request.state, "request_id", None))


@router.post("/transactions/{transaction_id}/resolve")
async def resolve_dispute(
    transaction_id: str,
    body: ResolveDisputeRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.resolve_dispute(transaction_id, body, db)
    return success_response(result.model_dump(), getattr(request.state, "request_id", None))


@router.post("/offers/expire")
async def expire_offers(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.expire_offers(db)
    return success_response(result, getattr(request.state, "request_id", None))


@router.get("/stats")
async def get_stats(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_stats(db)
    return success_response(result, getattr(request.state, "request_id", None))


@router.get("/invariants")
async def verify_invariants(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.verify_all_invariants(db)
    return success_response(result, getattr(request.state, "request_id", None))
