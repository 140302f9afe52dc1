"""Pydantic schemas for access service."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VerifyCodeRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=200)


class VerifyCodeResponse(BaseModel):
    granted: bool
    kind: Literal["master", "code"]
    token: str
    expires_at: datetime


class AccessCodeCreate(BaseModel):
    label: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=4, max_length=100)
    hours: Optional[int] = Field(None, ge=1, le=24 * 365)
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def require_expiry(self):
        if self.hours is None and self.expires_at is None:
            raise ValueError("either hours or expires_at is required")
        return self


class AccessCodeUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=1, max_length=100)
    is_active: Optional[bool] = None
    hours: Optional[int] = Field(None, ge=1, le=24 * 365)


class AccessCodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    label: str
    code: str
    expires_at: datetime
    is_active: bool
    is_expired: bool = False
    created_at: datetime
