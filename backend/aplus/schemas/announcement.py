"""A+ Marketplace Backend — Announcement Schemas"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from aplus.models.announcement import TYPE_ANNOUNCEMENT, TYPE_QUESTION


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=10000)
    type: str = TYPE_ANNOUNCEMENT
    options: List[str] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        if v not in (TYPE_ANNOUNCEMENT, TYPE_QUESTION):
            raise ValueError("type must be 'announcement' or 'question'")
        return v


class RespondRequest(BaseModel):
    answer: str = Field(min_length=1, max_length=500)


class AnnouncementResponseItem(BaseModel):
    student_id: uuid.UUID
    answer: str
    responded_at: datetime

    model_config = {"from_attributes": True}


class AnnouncementOut(BaseModel):
    id: uuid.UUID
    course_id: uuid.UUID
    creator_id: uuid.UUID
    title: str
    content: str
    type: str
    options: List[str]
    responses: List[AnnouncementResponseItem] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}
