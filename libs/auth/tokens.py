"""Signed bearer tokens for users and access-code grants."""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from jose import jwt

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now


def create_access_token(
    subject: str,
    roles: Iterable[str],
    kind: str = "user",
    email: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """Encode a token. Returns ``(token, expires_at)``."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(days=settings.ACCESS_TOKEN_TTL_DAYS)
    expires_at = utc_now() + expires_delta

    claims = {
        "sub": subject,
        "roles": sorted(set(roles)),
        "kind": kind,
        "exp": expires_at,
    }
    if email:
        claims["email"] = email

    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str) -> dict:
    """Decode and verify a token. Raises ``jose.JWTError`` when invalid."""
    settings = get_settings()
    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
