"""A+ Marketplace Backend — Course Schemas"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from aplus.schemas.common import PageMeta

COURSE_SORT_FIELDS = {"price", "title", "rating", "created_at"}


class CourseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=10000)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    category: str = Field(default="general", max_length=120)
    owner_phone: str = Field(default="", max_length=50)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    category: Optional[str] = Field(default=None, max_length=120)
    owner_phone: Optional[str] = Field(default=None, max_length=50)


class ModuleCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)


class CourseListParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    title: Optional[str] = Field(default=None, max_length=255)
    min_price: Optional[Decimal] = Field(default=None, ge=0)
    max_price: Optional[Decimal] = Field(default=None, ge=0)
    sort_by: str = "created_at"
    sort_order: str = "desc"

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v not in COURSE_SORT_FIELDS:
            raise ValueError(f"Invalid sort_by '{v}'. Must be one of: {sorted(COURSE_SORT_FIELDS)}")
        return v

    @field_validator("sort_order")
    @classmethod
    def validate_sort_order(cls, v: str) -> str:
        lowered = v.lower()
        if lowered not in {"asc", "desc"}:
            raise ValueError("sort_order must be 'asc' or 'desc'")
        return lowered


class LessonResponse(BaseModel):
    id: uuid.UUID
    title: str
    url: str
    queue_number: int
    status: str

    model_config = {"from_attributes": True}


class ModuleResponse(BaseModel):
    id: uuid.UUID
    title: str
    queue_number: int
    lessons: List[LessonResponse] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class CourseListItem(BaseModel):
    id: uuid.UUID
    title: str
    thumbnail: str
    price: Decimal
    category: str
    owner_id: uuid.UUID
    owner_name: str
    rating: float
    created_at: datetime

    model_config = {"from_attributes": True}


class CourseResponse(CourseListItem):
    description: str
    owner_email: str
    owner_phone: str
    updated_at: datetime
    modules: List[ModuleResponse] = Field(default_factory=list)


class CourseListResponse(BaseModel):
    courses: List[CourseListItem]
    pagination: PageMeta
