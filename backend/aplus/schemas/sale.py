"""A+ Marketplace Backend — Sale Schemas"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel

from aplus.schemas.common import PageMeta, UserSummary


class SaleResponse(BaseModel):
    id: uuid.UUID
    seller_id: uuid.UUID
    buyer_id: uuid.UUID
    note_id: uuid.UUID
    note_title: str
    amount: Decimal
    commission: Decimal
    price: Decimal
    invoice_id: str
    status: str
    payment_method: str
    message: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SaleDetailResponse(SaleResponse):
    buyer: Optional[UserSummary] = None
    seller: Optional[UserSummary] = None


class SaleListResponse(BaseModel):
    sales: List[SaleResponse]
    pagination: PageMeta


class SellerSummaryResponse(BaseModel):
    sales_count: int
    total_amount: Decimal
    total_commission: Decimal
