"""Unit tests for address book default handling."""

import random
import uuid

import pytest
from fastapi import HTTPException
from services.members_service.models import Address
from services.members_service.services import address_ops
from sqlalchemy import func, select
from tests.factories import UserFactory


async def _user(db):
    user = UserFactory.create()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def _add(db, user_id, is_default=False, line="12 MG Road"):
    return await address_ops.add_address(
        db,
        user_id,
        label="Home",
        address_line=line,
        city="Bengaluru",
        pincode="560001",
        is_default=is_default,
    )


async def _default_count(db, user_id) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True))
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_first_address_becomes_default(db_session):
    user = await _user(db_session)

    address = await _add(db_session, user.id)

    assert address.is_default is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_new_explicit_default_flips_previous(db_session):
    user = await _user(db_session)
    first = await _add(db_session, user.id)

    second = await _add(db_session, user.id, is_default=True, line="7 Park Street")

    await db_session.refresh(first)
    assert first.is_default is False
    assert second.is_default is True


@pytest.mark.asyncio
@pytest.mark.unit
async def test_non_default_address_keeps_existing_default(db_session):
    user = await _user(db_session)
    first = await _add(db_session, user.id)

    second = await _add(db_session, user.id, line="7 Park Street")

    await db_session.refresh(first)
    assert first.is_default is True
    assert second.is_default is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_at_most_one_default_after_any_sequence(db_session):
    user = await _user(db_session)
    rng = random.Random(7)
    addresses = []

    for step in range(12):
        if addresses and rng.random() < 0.5:
            target = rng.choice(addresses)
            await address_ops.set_default_address(db_session, user.id, target.id)
        else:
            addresses.append(
                await _add(
                    db_session,
                    user.id,
                    is_default=rng.random() < 0.5,
                    line=f"{step} Brigade Road",
                )
            )
        assert await _default_count(db_session, user.id) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_default_switch_does_not_touch_other_users(db_session):
    alice = await _user(db_session)
    bob = await _user(db_session)
    bobs = await _add(db_session, bob.id)
    await _add(db_session, alice.id)
    alices_second = await _add(db_session, alice.id)

    await address_ops.set_default_address(db_session, alice.id, alices_second.id)

    await db_session.refresh(bobs)
    assert bobs.is_default is True
    assert await _default_count(db_session, alice.id) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_set_default_on_someone_elses_address_is_not_found(db_session):
    alice = await _user(db_session)
    bob = await _user(db_session)
    bobs = await _add(db_session, bob.id)

    with pytest.raises(HTTPException) as exc_info:
        await address_ops.set_default_address(db_session, alice.id, bobs.id)

    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
@pytest.mark.unit
async def test_deleting_default_promotes_newest_remaining(db_session):
    user = await _user(db_session)
    first = await _add(db_session, user.id)
    await _add(db_session, user.id, line="7 Park Street")
    newest = await _add(db_session, user.id, line="9 Residency Road")

    await address_ops.delete_address(db_session, user.id, first.id)

    await db_session.refresh(newest)
    assert newest.is_default is True
    assert await _default_count(db_session, user.id) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_default_changes_lock_the_owner_first(db_session, monkeypatch):
    user = await _user(db_session)
    locked = []
    lock_owner = address_ops._lock_owner

    async def recording_lock(db, user_id):
        locked.append(user_id)
        await lock_owner(db, user_id)

    monkeypatch.setattr(address_ops, "_lock_owner", recording_lock)

    first = await _add(db_session, user.id)
    second = await _add(db_session, user.id, line="7 Park Street")
    await address_ops.set_default_address(db_session, user.id, second.id)
    await address_ops.delete_address(db_session, user.id, first.id)

    assert locked == [user.id] * 4


@pytest.mark.asyncio
@pytest.mark.unit
async def test_address_for_unknown_owner_is_rejected(db_session):
    with pytest.raises(HTTPException) as exc_info:
        await _add(db_session, uuid.uuid4())

    assert exc_info.value.status_code == 404
