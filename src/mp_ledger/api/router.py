"""mp_ledger REST endpoints.

GET /ledger   - admin: filtered, paginated entries + COMPLETED totals
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.enums import LedgerEntryStatus, LedgerEntryType
from src.mp_common.response import ApiResponse, success_response
from src.mp_gateway.auth.dependencies import require_admin
from src.mp_gateway.user.db_models import UserModel
from src.mp_ledger.application.service import LedgerService
from src.mp_ledger.domain.models import LedgerFilter

router = APIRouter(prefix="/ledger", tags=["ledger"])

_service = LedgerService()


@router.get("")
async def list_ledger(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    type: LedgerEntryType | None = Query(None, description="Entry type"),
    status: LedgerEntryStatus | None = Query(None),
    from_user_id: str | None = Query(None),
    to_user_id: str | None = Query(None),
    transaction_id: str | None = Query(None),
    start_date: datetime | None = Query(None, description="Inclusive, ISO-8601"),
    end_date: datetime | None = Query(None, description="Inclusive, ISO-8601"),
    page: int = Query(1, ge=1),
    limit: int = Query(100, ge=1, le=500),
) -> ApiResponse:
    f = LedgerFilter(
        entry_type=type.value if type else None,
        status=status.value if status else None,
        from_user_id=from_user_id,
        to_user_id=to_user_id,
        transaction_id=transaction_id,
        start_date=start_date,
        end_date=end_date,
    )
    result = await _service.list_ledger(db, f, page, limit)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
