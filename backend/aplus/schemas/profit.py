"""A+ Marketplace Backend — Profit Report Schemas"""

import uuid
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from aplus.schemas.common import PageMeta


class UserProfit(BaseModel):
    user_id: uuid.UUID
    full_name: str
    email: str
    balance: Decimal
    profit: Decimal
    total: Decimal


class ProfitStatistics(BaseModel):
    users_count: int
    total_balance: Decimal
    total_profit: Decimal
    total_amount: Decimal


class ProfitReportResponse(BaseModel):
    users: List[UserProfit]
    statistics: ProfitStatistics
    pagination: PageMeta
