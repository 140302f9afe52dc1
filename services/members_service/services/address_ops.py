"""Address book operations.

Calls that may change the default first lock the owner's ``users`` row, so
they run one at a time per owner. The flag itself is switched with a single
UPDATE scoped to the owner.
"""

import uuid
from typing import Optional

from fastapi import HTTPException, status
from libs.common.logging import get_logger
from services.members_service.models import Address, User
from sqlalchemy import case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def list_addresses(db: AsyncSession, user_id: uuid.UUID) -> list[Address]:
    result = await db.execute(
        select(Address)
        .where(Address.user_id == user_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_address(
    db: AsyncSession, user_id: uuid.UUID, address_id: uuid.UUID
) -> Address:
    """Fetch one of the owner's addresses; other owners' rows look missing."""
    result = await db.execute(
        select(Address).where(Address.id == address_id, Address.user_id == user_id)
    )
    address = result.scalar_one_or_none()
    if not address:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Address not found"
        )
    return address


async def _lock_owner(db: AsyncSession, user_id: uuid.UUID) -> None:
    owner = await db.scalar(
        select(User.id).where(User.id == user_id).with_for_update()
    )
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
        )


async def _switch_default(
    db: AsyncSession, user_id: uuid.UUID, address_id: uuid.UUID
) -> None:
    await db.execute(
        update(Address)
        .where(Address.user_id == user_id)
        .values(is_default=case((Address.id == address_id, True), else_=False))
        .execution_options(synchronize_session=False)
    )


async def add_address(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    label: str,
    address_line: str,
    city: str,
    pincode: str,
    state: Optional[str] = None,
    is_default: bool = False,
) -> Address:
    """Save an address. A user's first address always becomes the default."""
    await _lock_owner(db, user_id)
    existing_count = await db.scalar(
        select(func.count()).select_from(Address).where(Address.user_id == user_id)
    )
    make_default = is_default or not existing_count

    address = Address(
        user_id=user_id,
        label=label,
        address_line=address_line,
        city=city,
        state=state,
        pincode=pincode,
        is_default=False,
    )
    db.add(address)
    await db.flush()

    if make_default:
        await _switch_default(db, user_id, address.id)

    await db.commit()
    await db.refresh(address)
    return address


async def update_address(
    db: AsyncSession, user_id: uuid.UUID, address_id: uuid.UUID, changes: dict
) -> Address:
    address = await get_address(db, user_id, address_id)
    for field, value in changes.items():
        setattr(address, field, value)
    await db.commit()
    await db.refresh(address)
    return address


async def set_default_address(
    db: AsyncSession, user_id: uuid.UUID, address_id: uuid.UUID
) -> Address:
    await _lock_owner(db, user_id)
    address = await get_address(db, user_id, address_id)
    await _switch_default(db, user_id, address.id)
    await db.commit()
    await db.refresh(address)
    return address


async def delete_address(
    db: AsyncSession, user_id: uuid.UUID, address_id: uuid.UUID
) -> None:
    """Delete an address; the newest remaining one inherits the default."""
    await _lock_owner(db, user_id)
    address = await get_address(db, user_id, address_id)
    was_default = address.is_default
    await db.delete(address)
    await db.flush()

    if was_default:
        newest = await db.scalar(
            select(Address.id)
            .where(Address.user_id == user_id)
            .order_by(Address.created_at.desc())
            .limit(1)
        )
        if newest is not None:
            await _switch_default(db, user_id, newest)
            logger.info("Promoted address %s to default for %s", newest, user_id)

    await db.commit()
