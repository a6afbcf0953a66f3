"""A+ Marketplace Backend — Customer Rating Schemas"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CustomerRatingCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=2000)


class CustomerRatingUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, min_length=1, max_length=2000)


class CustomerRatingResponse(BaseModel):
    id: uuid.UUID
    customer_id: uuid.UUID
    full_name: str
    rating: int
    comment: str
    is_publish: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class HasRatedResponse(BaseModel):
    has_rated: bool
