"""
A+ Marketplace Backend — Withdrawal Schemas
=============================================
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from aplus.schemas.common import PageMeta, UserSummary


class WithdrawalCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    account_name: str = Field(min_length=1, max_length=255)
    bank_name: str = Field(min_length=1, max_length=255)
    iban: str = Field(min_length=15, max_length=34)


class WithdrawalUpdate(BaseModel):
    """Bank details the owner may correct while the request is pending."""

    account_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    bank_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    iban: Optional[str] = Field(default=None, min_length=15, max_length=34)


class AdminNoteRequest(BaseModel):
    admin_notes: str = Field(min_length=1, max_length=2000)


class CompleteWithdrawalRequest(BaseModel):
    routing_number: str = Field(min_length=1, max_length=255)
    routing_date: datetime


class WithdrawalResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    amount: Decimal
    status: str
    admin_notes: Optional[str] = None
    account_name: str
    bank_name: str
    iban: str
    routing_number: Optional[str] = None
    routing_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WithdrawalDetailResponse(WithdrawalResponse):
    user: Optional[UserSummary] = None


class WithdrawalListResponse(BaseModel):
    withdrawals: List[WithdrawalResponse]
    pagination: PageMeta
