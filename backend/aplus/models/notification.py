"""
A+ Marketplace Backend — Notification SQLAlchemy Model
========================================================

What:  An in-app message addressed to one user.
Who:   NotificationService.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, Uuid, false, func
from sqlalchemy.orm import Mapped, mapped_column

from aplus.database import Base
from aplus.models.user import utcnow

NOTIFICATION_TYPES = (
    "info",
    "success",
    "warning",
    "error",
    "withdrawal",
    "sales",
    "purchase",
    "auth",
    "notes",
    "reviews",
)


class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="info")
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", created_at.desc()),
    )
