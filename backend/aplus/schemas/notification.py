"""A+ Marketplace Backend — Notification Schemas"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from aplus.models.notification import NOTIFICATION_TYPES


class NotificationCreate(BaseModel):
    user_id: uuid.UUID
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1, max_length=5000)
    type: str = "info"

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in NOTIFICATION_TYPES:
            raise ValueError(f"Invalid type '{v}'. Must be one of: {list(NOTIFICATION_TYPES)}")
        return v


class NotificationResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    message: str
    type: str
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int


class UnreadCountResponse(BaseModel):
    unread_count: int


class BulkUpdateResponse(BaseModel):
    updated: int
