"""Admin user management: list, create, delete and role assignment."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.auth.passwords import hash_password
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.members_service.models import Address, User
from services.members_service.routers._helpers import get_user_or_404
from services.members_service.schemas import AdminUserCreate, RoleRequest, UserResponse
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/users", tags=["admin-users"])
logger = get_logger(__name__)


@router.get("", response_model=list[UserResponse])
async def list_users(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(User).order_by(User.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: AdminUserCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        roles=[],
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info("User %s created by %s", user.id, current_user.user_id)
    return user


@router.post("/{user_id}/roles", response_model=UserResponse)
async def add_role(
    user_id: uuid.UUID,
    payload: RoleRequest,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    if payload.role not in (user.roles or []):
        # Reassign so the JSON column is flagged dirty.
        user.roles = [*(user.roles or []), payload.role]
        await db.commit()
        await db.refresh(user)
        logger.info(
            "Role %s granted to %s by %s", payload.role, user.id, current_user.user_id
        )
    return user


@router.delete("/{user_id}/roles/{role}", response_model=UserResponse)
async def remove_role(
    user_id: uuid.UUID,
    role: str,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    if role in (user.roles or []):
        user.roles = [r for r in user.roles if r != role]
        await db.commit()
        await db.refresh(user)
        logger.info(
            "Role %s revoked from %s by %s", role, user.id, current_user.user_id
        )
    return user


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    user = await get_user_or_404(db, user_id)
    await db.execute(delete(Address).where(Address.user_id == user.id))
    await db.delete(user)
    await db.commit()
    logger.info("User %s deleted by %s", user_id, current_user.user_id)
    return {"success": True}
