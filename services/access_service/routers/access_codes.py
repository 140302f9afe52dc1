"""Access-code verification and admin management of codes."""

import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.auth.dependencies import require_admin
from libs.auth.models import (
    ACCESS_CODE_SUBJECT_PREFIX,
    ADMIN_ROLE,
    SELLER_ROLE,
    AuthUser,
)
from libs.auth.tokens import create_access_token
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.access_service.models import AccessCode
from services.access_service.schemas import (
    AccessCodeCreate,
    AccessCodeResponse,
    AccessCodeUpdate,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from services.access_service.services.gate import MASTER, verify_code
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["access"])


def _to_response(access_code: AccessCode) -> AccessCodeResponse:
    response = AccessCodeResponse.model_validate(access_code)
    response.expires_at = ensure_utc(access_code.expires_at)
    response.is_expired = response.expires_at <= utc_now()
    return response


async def _get_code_or_404(db: AsyncSession, code_id: uuid.UUID) -> AccessCode:
    result = await db.execute(select(AccessCode).where(AccessCode.id == code_id))
    access_code = result.scalar_one_or_none()
    if not access_code:
        raise HTTPException(status_code=404, detail="Access code not found")
    return access_code


@router.post("/verify-code", response_model=VerifyCodeResponse)
@auth_limit
async def verify_access_code(
    request: Request,
    payload: VerifyCodeRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Exchange the master password or an access code for a short-lived token."""
    now = utc_now()
    grant = await verify_code(db, payload.code, now)
    if not grant.granted:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="invalid or expired code",
        )

    ttl = timedelta(minutes=get_settings().ACCESS_CODE_TOKEN_TTL_MINUTES)
    if grant.kind == MASTER:
        subject, roles = "master", [ADMIN_ROLE]
    else:
        subject = f"{ACCESS_CODE_SUBJECT_PREFIX}{grant.access_code.id}"
        roles = [SELLER_ROLE]
        # A token never outlives the code that issued it
        ttl = min(ttl, ensure_utc(grant.access_code.expires_at) - now)

    token, expires_at = create_access_token(
        subject, roles, kind=grant.kind, expires_delta=ttl
    )
    logger.info(
        "Access code granted",
        extra={"extra_fields": {"kind": grant.kind, "subject": subject}},
    )
    return VerifyCodeResponse(
        granted=True, kind=grant.kind, token=token, expires_at=expires_at
    )


@router.get("/access-codes", response_model=list[AccessCodeResponse])
async def list_access_codes(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all codes, expired ones included."""
    result = await db.execute(select(AccessCode).order_by(AccessCode.created_at.desc()))
    return [_to_response(code) for code in result.scalars().all()]


@router.post(
    "/access-codes",
    response_model=AccessCodeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_access_code(
    payload: AccessCodeCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    existing = await db.execute(
        select(AccessCode.id).where(AccessCode.code == payload.code)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Access code already exists"
        )

    if payload.hours is not None:
        expires_at = utc_now() + timedelta(hours=payload.hours)
    else:
        expires_at = ensure_utc(payload.expires_at)

    access_code = AccessCode(
        label=payload.label,
        code=payload.code,
        expires_at=expires_at,
        is_active=True,
    )
    db.add(access_code)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="Access code already exists"
        )
    await db.refresh(access_code)

    logger.info(
        "Access code created",
        extra={
            "extra_fields": {
                "access_code_id": str(access_code.id),
                "label": access_code.label,
                "performed_by": current_user.user_id,
            }
        },
    )
    return _to_response(access_code)


@router.api_route(
    "/access-codes/{code_id}",
    methods=["PUT", "PATCH"],
    response_model=AccessCodeResponse,
)
async def update_access_code(
    code_id: uuid.UUID,
    payload: AccessCodeUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Rename, toggle, or extend a code (``hours`` counts from now)."""
    access_code = await _get_code_or_404(db, code_id)

    update_data = payload.model_dump(exclude_unset=True)
    hours = update_data.pop("hours", None)
    for field, value in update_data.items():
        if value is not None:
            setattr(access_code, field, value)
    if hours is not None:
        access_code.expires_at = utc_now() + timedelta(hours=hours)

    await db.commit()
    await db.refresh(access_code)
    return _to_response(access_code)


@router.delete("/access-codes/{code_id}")
async def delete_access_code(
    code_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    access_code = await _get_code_or_404(db, code_id)
    await db.delete(access_code)
    await db.commit()

    logger.info(
        "Access code deleted",
        extra={
            "extra_fields": {
                "access_code_id": str(code_id),
                "performed_by": current_user.user_id,
            }
        },
    )
    return {"success": True}
