"""FastAPI dependencies: get_current_user, require_admin.

Usage in any protected router:
    from src.mp_gateway.auth.dependencies import get_current_user

    @router.post("/offers")
    async def create(user: UserModel = Depends(get_current_user)):
        ...
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.mp_common.database import get_db_session
from src.mp_common.errors import AccountDisabledError, AdminRequiredError, InvalidCredentialsError
from src.mp_gateway.auth.jwt_handler import decode_token
from src.mp_gateway.user.db_models import UserModel

# Tokens are issued by the identity service; tokenUrl only feeds the Swagger "Authorize" button
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

# Reusable 401 exception with WWW-Authenticate header (OAuth2 standard)
_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises HTTP 403 (AccountDisabledError) if the user account is disabled.
    """
    try:
        payload = decode_token(token)
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION
    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise _CREDENTIALS_EXCEPTION from None

    result = await db.execute(select(UserModel).where(UserModel.id == user_uuid))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    """Verify the caller is a platform administrator.

    Protects settings changes, payment/delivery signals, dispute resolution and the ledger.
    """
    if not current_user.is_admin:
        raise AdminRequiredError()
    return current_user
