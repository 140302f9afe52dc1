"""Shared helpers for members routers."""

import uuid

from fastapi import HTTPException, status
from libs.auth.models import AuthUser
from services.members_service.models import User
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


def account_id(current_user: AuthUser) -> uuid.UUID:
    """Return the user id behind a token; access-code grants have no account."""
    if current_user.kind != "user":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="A registered account is required",
        )
    try:
        return uuid.UUID(current_user.user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        )


async def get_user_or_404(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
