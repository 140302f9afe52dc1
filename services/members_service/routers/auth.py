"""Registration, login and current-user endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import ADMIN_ROLE, AuthUser
from libs.auth.passwords import hash_password, verify_password
from libs.auth.tokens import create_access_token
from libs.common.config import get_settings
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.members_service.models import User
from services.members_service.routers._helpers import account_id, get_user_or_404
from services.members_service.schemas import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])
logger = get_logger(__name__)
settings = get_settings()


def _issue_token(user: User) -> str:
    token, _ = create_access_token(
        subject=str(user.id), roles=user.roles or [], email=user.email
    )
    return token


@router.post("/register", response_model=AuthResponse)
@auth_limit
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Create an account and return a token for it."""
    email = payload.email.lower()
    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User already exists")

    roles = []
    if settings.ADMIN_EMAIL and email == settings.ADMIN_EMAIL.lower():
        roles.append(ADMIN_ROLE)

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        name=payload.name,
        phone=payload.phone,
        roles=roles,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("Registered user %s", user.id)
    return AuthResponse(
        token=_issue_token(user), user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=AuthResponse)
@auth_limit
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(select(User).where(User.email == payload.email.lower()))
    user = result.scalar_one_or_none()
    if not user or not verify_password(payload.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )
    return AuthResponse(
        token=_issue_token(user), user=UserResponse.model_validate(user)
    )


@router.get("/me", response_model=UserResponse)
async def me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await get_user_or_404(db, account_id(current_user))
