"""Pydantic schemas for members service."""

import uuid
from datetime import datetime
from typing import Optional

from libs.auth.models import KNOWN_ROLES
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    roles: list[str] = []
    created_at: datetime


class AuthResponse(BaseModel):
    token: str
    user: UserResponse


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)


# ============================================================================
# USER MANAGEMENT SCHEMAS
# ============================================================================


class AdminUserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    name: Optional[str] = Field(None, max_length=255)


class RoleRequest(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def known_role(cls, v: str) -> str:
        if v not in KNOWN_ROLES:
            raise ValueError(f"role must be one of {', '.join(KNOWN_ROLES)}")
        return v


# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class AddressBase(BaseModel):
    label: str = Field("Home", max_length=50)
    address_line: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: str = Field(..., min_length=1, max_length=20)


class AddressCreate(AddressBase):
    is_default: bool = False


class AddressUpdate(BaseModel):
    label: Optional[str] = Field(None, max_length=50)
    address_line: Optional[str] = Field(None, min_length=1, max_length=500)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    pincode: Optional[str] = Field(None, min_length=1, max_length=20)


class AddressResponse(AddressBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    is_default: bool
    created_at: datetime
