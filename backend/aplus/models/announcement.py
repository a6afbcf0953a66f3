"""
A+ Marketplace Backend — Announcement SQLAlchemy Models
=========================================================

What:  Course announcements and multiple-choice questions, plus students'
       responses (one per student per announcement).
Who:   AnnouncementService.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, UniqueConstraint, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aplus.database import Base
from aplus.models.user import utcnow

TYPE_ANNOUNCEMENT = "announcement"
TYPE_QUESTION = "question"


class Announcement(Base):
    __tablename__ = "announcements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TYPE_ANNOUNCEMENT, server_default=text("'announcement'")
    )
    options: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    responses: Mapped[List["AnnouncementResponse"]] = relationship(
        back_populates="announcement",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_announcements_course_created", "course_id", created_at.desc()),
    )


class AnnouncementResponse(Base):
    __tablename__ = "announcement_responses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    announcement_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("announcements.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    answer: Mapped[str] = mapped_column(String(500), nullable=False)
    responded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    announcement: Mapped[Announcement] = relationship(back_populates="responses")

    __table_args__ = (
        UniqueConstraint("announcement_id", "student_id", name="uq_announcement_responses_student"),
    )
