"""Unit tests for the access-code gate."""

from datetime import timedelta

import pytest
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from services.access_service.services.gate import (
    CODE,
    MASTER,
    code_grant_is_live,
    verify_code,
)
from tests.factories import AccessCodeFactory


async def _add(db, **overrides):
    code = AccessCodeFactory.create(**overrides)
    db.add(code)
    await db.commit()
    return code


@pytest.mark.asyncio
@pytest.mark.unit
async def test_master_password_is_granted(db_session):
    grant = await verify_code(db_session, "master-pass-123")

    assert grant.granted is True
    assert grant.kind == MASTER


@pytest.mark.asyncio
@pytest.mark.unit
async def test_active_unexpired_code_is_granted(db_session):
    await _add(db_session, code="rahul123")

    grant = await verify_code(db_session, "rahul123")

    assert grant.granted is True
    assert grant.kind == CODE
    assert grant.access_code.code == "rahul123"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_expired_code_is_rejected_even_when_active(db_session):
    await _add(
        db_session,
        code="rahul123",
        is_active=True,
        expires_at=utc_now() - timedelta(hours=1),
    )

    grant = await verify_code(db_session, "rahul123")

    assert grant.granted is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_inactive_code_is_rejected(db_session):
    await _add(db_session, code="rahul123", is_active=False)

    grant = await verify_code(db_session, "rahul123")

    assert grant.granted is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_code_checked_against_supplied_time(db_session):
    await _add(
        db_session, code="rahul123", expires_at=utc_now() + timedelta(hours=1)
    )

    later = await verify_code(
        db_session, "rahul123", now=utc_now() + timedelta(hours=2)
    )

    assert later.granted is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_code_is_rejected(db_session):
    grant = await verify_code(db_session, "nope")

    assert grant.granted is False
    assert grant.kind is None


@pytest.mark.asyncio
@pytest.mark.unit
async def test_code_grant_liveness_follows_the_code(db_session):
    live = await _add(db_session, code="live-code")
    paused = await _add(db_session, code="paused-code", is_active=False)
    expired = await _add(
        db_session, code="old-code", expires_at=utc_now() - timedelta(minutes=1)
    )

    assert await code_grant_is_live(db_session, live.id) is True
    assert await code_grant_is_live(db_session, paused.id) is False
    assert await code_grant_is_live(db_session, expired.id) is False

    await db_session.delete(live)
    await db_session.commit()
    assert await code_grant_is_live(db_session, live.id) is False


def test_access_code_id_is_read_from_code_subjects():
    code_user = AuthUser(
        sub="access-code:3f2b8c1e-0000-4000-8000-000000000001", kind="code"
    )
    master = AuthUser(sub="master", kind="master")
    malformed = AuthUser(sub="access-code:not-a-uuid", kind="code")

    assert str(code_user.access_code_id) == "3f2b8c1e-0000-4000-8000-000000000001"
    assert master.access_code_id is None
    assert malformed.access_code_id is None
