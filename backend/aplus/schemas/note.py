"""
A+ Marketplace Backend — Note Schemas
=======================================

What:  Request/response models for the notes catalog, reviews, likes and
       the purchase endpoints.
How:   Note creation arrives as multipart form data (document + cover), so
       its fields are declared as Form parameters in routes/notes.py and
       collected into `NoteCreate` there.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from aplus.schemas.common import PageMeta, UserSummary

SORT_FIELDS = {"price", "year", "title", "created_at"}


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    subject: str = Field(min_length=1, max_length=255)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    pages_number: int = Field(ge=1)
    year: int = Field(ge=1900, le=2100)
    college: str = Field(min_length=1, max_length=255)
    university: str = Field(min_length=1, max_length=255)
    contact_method: Optional[str] = Field(default=None, max_length=255)
    terms_accepted: bool = True


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=12, decimal_places=2)
    pages_number: Optional[int] = Field(default=None, ge=1)
    year: Optional[int] = Field(default=None, ge=1900, le=2100)
    college: Optional[str] = Field(default=None, min_length=1, max_length=255)
    university: Optional[str] = Field(default=None, min_length=1, max_length=255)
    contact_method: Optional[str] = Field(default=None, max_length=255)


class NoteListParams(BaseModel):
    """
    Query parameters for the public catalog.

    `max_downloads`, `max_price` and `min_price` put downloads / price first
    in the ordering; `sort_by` then breaks ties.
    """
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    title: Optional[str] = Field(default=None, max_length=255)
    university: Optional[str] = None
    college: Optional[str] = None
    year: Optional[int] = None
    sort_by: str = Field(default="created_at")
    sort_order: str = Field(default="desc")
    max_downloads: bool = False
    max_price: bool = False
    min_price: bool = False

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v not in SORT_FIELDS:
            raise ValueError(f"Invalid sort_by '{v}'. Must be one of: {sorted(SORT_FIELDS)}")
        return v

    @field_validator("sort_order")
    @classmethod
    def validate_sort_order(cls, v: str) -> str:
        lowered = v.lower()
        if lowered not in {"asc", "desc"}:
            raise ValueError("sort_order must be 'asc' or 'desc'")
        return lowered


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str = Field(min_length=1, max_length=2000)


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, min_length=1, max_length=2000)


class PurchaseNoteRequest(BaseModel):
    """Body of POST /api/v1/notes/{note_id}/purchase (buyer is the caller)."""

    invoice_id: str = Field(min_length=1, max_length=255)
    status: Optional[str] = Field(default=None, max_length=50)


class PurchaseRequest(BaseModel):
    """Body of POST /api/v1/purchase."""

    note_id: uuid.UUID
    buyer_id: Optional[uuid.UUID] = None
    invoice_id: str = Field(min_length=1, max_length=255)
    status: Optional[str] = Field(default=None, max_length=50)


class PaymentLinkRequest(BaseModel):
    note_id: uuid.UUID


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class ReviewResponse(BaseModel):
    id: uuid.UUID
    note_id: uuid.UUID
    user_id: uuid.UUID
    user_name: str
    user_avatar: Optional[str] = None
    rating: int
    comment: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteResponse(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    subject: str
    price: Decimal
    file_path: str
    cover_url: Optional[str] = None
    contact_method: Optional[str] = None
    pages_number: int
    year: int
    college: str
    university: str
    downloads: int
    is_publish: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NoteListItem(BaseModel):
    """Catalog card; the document URL is withheld until purchase."""

    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    subject: str
    price: Decimal
    cover_url: Optional[str] = None
    pages_number: int
    year: int
    college: str
    university: str
    downloads: int
    created_at: datetime

    model_config = {"from_attributes": True}


class NoteDetailResponse(NoteListItem):
    description: str
    contact_method: Optional[str] = None
    is_publish: bool
    owner: Optional[UserSummary] = None
    reviews: List[ReviewResponse] = Field(default_factory=list)
    average_rating: Optional[float] = None
    likes_count: int = 0
    purchased_by: List[uuid.UUID] = Field(default_factory=list, description="Buyer ids, first purchase first")


class NoteListResponse(BaseModel):
    notes: List[NoteListItem]
    pagination: PageMeta


class PurchasedNoteResponse(BaseModel):
    """Snapshot of a note in the buyer's library."""

    note_id: uuid.UUID
    sale_id: uuid.UUID
    title: str
    price: Decimal
    cover_url: Optional[str] = None
    file_path: str
    purchased_at: datetime

    model_config = {"from_attributes": True}


class LikeStatusResponse(BaseModel):
    note_id: uuid.UUID
    liked: bool


class PaymentLinkResponse(BaseModel):
    invoice_id: str
    url: str
    amount: Decimal
    currency: str
