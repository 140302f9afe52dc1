"""Saved delivery addresses for the signed-in user."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.members_service.routers._helpers import account_id
from services.members_service.schemas import (
    AddressCreate,
    AddressResponse,
    AddressUpdate,
)
from services.members_service.services import address_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.get("", response_model=list[AddressResponse])
async def list_my_addresses(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.list_addresses(db, account_id(current_user))


@router.post("", response_model=AddressResponse, status_code=status.HTTP_201_CREATED)
async def create_address(
    payload: AddressCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.add_address(
        db, account_id(current_user), **payload.model_dump()
    )


@router.put("/{address_id}", response_model=AddressResponse)
async def update_address(
    address_id: uuid.UUID,
    payload: AddressUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.update_address(
        db,
        account_id(current_user),
        address_id,
        payload.model_dump(exclude_unset=True),
    )


@router.put("/{address_id}/default", response_model=AddressResponse)
async def make_default_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await address_ops.set_default_address(
        db, account_id(current_user), address_id
    )


@router.delete("/{address_id}")
async def remove_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await address_ops.delete_address(db, account_id(current_user), address_id)
    return {"success": True}
