from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from libs.auth.models import ADMIN_ROLE, OPERATOR_ROLES, AuthUser
from libs.auth.tokens import decode_access_token
from libs.common.logging import get_logger
from libs.db.session import get_async_db

logger = get_logger(__name__)

security = HTTPBearer(auto_error=False)


async def _code_grant_is_live(db: AsyncSession, user: AuthUser) -> bool:
    from services.access_service.services.gate import code_grant_is_live

    code_id = user.access_code_id
    if code_id is None:
        return False
    return await code_grant_is_live(db, code_id)


async def get_current_user(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Annotated[AsyncSession, Depends(get_async_db)],
) -> AuthUser:
    """
    Validate the bearer token and return the authenticated principal.

    Access-code grants are re-checked against their code, so deactivating or
    deleting a code revokes the tokens it issued.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if token is None or not token.credentials:
        raise credentials_exception

    try:
        payload = decode_access_token(token.credentials)
        user = AuthUser(**payload)
    except (JWTError, ValidationError):
        raise credentials_exception

    if user.kind == "code" and not await _code_grant_is_live(db, user):
        logger.warning(
            "Revoked or expired access-code token rejected",
            extra={"extra_fields": {"security_event": True, "sub": user.user_id}},
        )
        raise credentials_exception

    request.state.user = user
    return user


def require_roles(*roles: str) -> Callable:
    """Build a dependency that admits principals holding any of ``roles``."""

    async def _require(
        current_user: Annotated[AuthUser, Depends(get_current_user)],
    ) -> AuthUser:
        if not current_user.has_role(*roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient privileges",
            )
        return current_user

    return _require


require_admin = require_roles(ADMIN_ROLE)
require_operator = require_roles(*OPERATOR_ROLES)
