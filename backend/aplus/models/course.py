"""
A+ Marketplace Backend — Course SQLAlchemy Models
===================================================

What:  Courses with ordered modules, each holding ordered video lessons.
Who:   CourseService; AnnouncementService checks course ownership.

Ordering: `queue_number` is unique within the parent and assigned as
max + 1 when a child is appended.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List

from sqlalchemy import (
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aplus.database import Base
from aplus.models.user import utcnow

LESSON_PUBLISHED = "published"
LESSON_UNPUBLISHED = "unpublished"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    thumbnail: Mapped[str] = mapped_column(String(512), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(120), nullable=False, default="general")

    # ── Owner snapshot ────────────────────────────────────────────────────
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    owner_name: Mapped[str] = mapped_column(String(120), nullable=False)
    owner_email: Mapped[str] = mapped_column(String(255), nullable=False)
    owner_phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0, server_default=text("0"))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        server_default=func.now(),
    )

    modules: Mapped[List["CourseModule"]] = relationship(
        back_populates="course",
        cascade="all, delete-orphan",
        order_by="CourseModule.queue_number",
        lazy="selectin",
    )


class CourseModule(Base):
    __tablename__ = "course_modules"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    course_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    queue_number: Mapped[int] = mapped_column(Integer, nullable=False)

    course: Mapped[Course] = relationship(back_populates="modules")
    lessons: Mapped[List["CourseLesson"]] = relationship(
        back_populates="module",
        cascade="all, delete-orphan",
        order_by="CourseLesson.queue_number",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("course_id", "queue_number", name="uq_course_modules_queue"),
    )


class CourseLesson(Base):
    __tablename__ = "course_lessons"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    module_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("course_modules.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(String(512), nullable=False)
    queue_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LESSON_UNPUBLISHED, server_default=text("'unpublished'")
    )

    module: Mapped[CourseModule] = relationship(back_populates="lessons")

    __table_args__ = (
        UniqueConstraint("module_id", "queue_number", name="uq_course_lessons_queue"),
    )
