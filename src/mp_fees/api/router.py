"""mp_fees REST endpoints.

GET   /admin/settings     - current platform settings (admin)
PATCH /admin/settings     - partial update, bumps version (admin)
GET   /fees/preview       - fee split for an item price under current settings
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.response import ApiResponse, success_response
from src.mp_fees.application.schemas import UpdateSettingsRequest
from src.mp_fees.application.service import FeeApplicationService
from src.mp_gateway.auth.dependencies import get_current_user, require_admin
from src.mp_gateway.user.db_models import UserModel

router = APIRouter(tags=["fees"])

_service = FeeApplicationService()


@router.get("/admin/settings")
async def get_settings(
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.get_settings(db)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.patch("/admin/settings")
async def update_settings(
    body: UpdateSettingsRequest,
    request: Request,
    admin: Annotated[UserModel, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> ApiResponse:
    result = await _service.update_settings(db, body)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp


@router.get("/fees/preview")
async def preview_fees(
    request: Request,
    current_user: Annotated[UserModel, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    item_price_cents: int = Query(..., ge=0),
) -> ApiResponse:
    result = await _service.preview(db, item_price_cents)
    resp = success_response(result.model_dump())
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return resp
