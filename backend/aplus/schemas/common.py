"""
A+ Marketplace Backend — Shared Pydantic Schemas
==================================================

What:  Response shapes reused across resources: pagination metadata, plain
       messages, user summaries, the error envelope and the health report.
"""

import math
import uuid
from typing import Optional

from pydantic import BaseModel, Field


class PageMeta(BaseModel):
    """Offset pagination metadata returned next to every paginated list."""

    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Items per page")
    total: int = Field(description="Total number of matching items")
    total_pages: int = Field(description="Number of pages for this limit")
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PageMeta":
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class MessageResponse(BaseModel):
    message: str


class UserSummary(BaseModel):
    """Public projection of a user embedded in other resources."""

    id: uuid.UUID
    full_name: str
    email: str
    university: Optional[str] = None

    model_config = {"from_attributes": True}


class ErrorResponse(BaseModel):
    """
    Standardized error envelope for all API errors.

    Example:
        {
            "error": "invalid_state",
            "message": "You have already purchased this note",
            "details": {"code": "note.already_purchased"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error type")
    message: str = Field(description="Human-readable, localized description")
    details: Optional[dict] = Field(default=None, description="Message code and parameters")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    payment_gateway: str = Field(description="Gateway circuit: available, circuit_open, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
