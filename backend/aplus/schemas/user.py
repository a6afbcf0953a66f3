"""
A+ Marketplace Backend — User & Auth Schemas
==============================================
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from aplus.schemas.common import PageMeta


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=2, max_length=120)
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    university: Optional[str] = Field(default=None, max_length=255)

    @field_validator("full_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        stripped = v.strip()
        if len(stripped) < 2:
            raise ValueError("full_name must contain at least 2 characters")
        return stripped


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class UpdateUserRequest(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=120)
    university: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)


class UserResponse(BaseModel):
    """The caller's own account, including ledger fields."""

    id: uuid.UUID
    full_name: str
    email: str
    role: str
    university: Optional[str] = None
    avatar: Optional[str] = None
    balance: Decimal
    number_of_sales: int
    withdrawal_times: int
    created_at: datetime

    model_config = {"from_attributes": True}


class PublicProfileResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    university: Optional[str] = None
    avatar: Optional[str] = None
    number_of_sales: int
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Token lifetime in seconds")
    user: UserResponse


class UserListResponse(BaseModel):
    users: List[UserResponse]
    pagination: PageMeta
