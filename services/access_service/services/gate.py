"""Access-code gate.

A code grants operator access either as the configured master password or as
an active, unexpired ``AccessCode``.
"""

import hmac
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.access_service.models import AccessCode
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

MASTER = "master"
CODE = "code"


@dataclass
class AccessGrant:
    granted: bool
    kind: Optional[str] = None
    access_code: Optional[AccessCode] = None


def _is_master(code: str) -> bool:
    master = get_settings().ADMIN_MASTER_PASSWORD
    if not master:
        return False
    return hmac.compare_digest(code.encode("utf-8"), master.encode("utf-8"))


async def verify_code(
    db: AsyncSession, code: str, now: Optional[datetime] = None
) -> AccessGrant:
    """Check ``code`` against the master password, then stored codes."""
    if not code:
        return AccessGrant(granted=False)

    if _is_master(code):
        return AccessGrant(granted=True, kind=MASTER)

    now = now or utc_now()
    result = await db.execute(
        select(AccessCode).where(
            AccessCode.code == code,
            AccessCode.is_active.is_(True),
            AccessCode.expires_at > now,
        )
    )
    access_code = result.scalar_one_or_none()
    if access_code is None:
        logger.warning(
            "Access code rejected",
            extra={"extra_fields": {"security_event": True}},
        )
        return AccessGrant(granted=False)

    return AccessGrant(granted=True, kind=CODE, access_code=access_code)


async def code_grant_is_live(
    db: AsyncSession, code_id: uuid.UUID, now: Optional[datetime] = None
) -> bool:
    """Whether a token issued for ``code_id`` may still be used."""
    now = now or utc_now()
    found = await db.scalar(
        select(AccessCode.id).where(
            AccessCode.id == code_id,
            AccessCode.is_active.is_(True),
            AccessCode.expires_at > now,
        )
    )
    return found is not None
