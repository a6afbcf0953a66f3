"""
A+ Marketplace Backend — Announcement Service
===============================================

What:  Course announcements and multiple-choice questions posted by the
       course owner, and student answers to those questions.
Who:   routes/announcements.py.
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import flush_or_conflict
from aplus.exceptions import InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
from aplus.models.announcement import TYPE_QUESTION, Announcement, AnnouncementResponse
from aplus.models.user import User
from aplus.schemas.announcement import AnnouncementCreate
from aplus.services.course_service import course_service

logger = logging.getLogger(__name__)


class AnnouncementService:

    async def _get(self, db: AsyncSession, announcement_id: UUID) -> Announcement:
        announcement = await db.get(Announcement, announcement_id)
        if announcement is None:
            raise NotFoundError(resource="announcement", resource_id=announcement_id)
        return announcement

    async def create(
        self, db: AsyncSession, course_id: UUID, creator: User, data: AnnouncementCreate
    ) -> Announcement:
        course = await course_service.get_course(db, course_id)
        if course.owner_id != creator.id:
            raise PermissionDeniedError(code="course.not_owner")

        options = [o.strip() for o in data.options if o.strip()]
        if data.type == TYPE_QUESTION and len(options) < 2:
            raise ValidationError(field="options", code="announcement.question_options")

        announcement = Announcement(
            course_id=course.id,
            creator_id=creator.id,
            title=data.title,
            content=data.content,
            type=data.type,
            options=options if data.type == TYPE_QUESTION else [],
            responses=[],
        )
        db.add(announcement)
        await db.flush()
        logger.info("Announcement created: id=%s course=%s type=%s", announcement.id, course.id, data.type)
        return announcement

    async def list_for_course(self, db: AsyncSession, course_id: UUID) -> List[Announcement]:
        await course_service.get_course(db, course_id)
        result = await db.execute(
            select(Announcement)
            .where(Announcement.course_id == course_id)
            .order_by(Announcement.created_at.desc())
        )
        return list(result.scalars().all())

    async def respond(self, db: AsyncSession, announcement_id: UUID, student: User, answer: str) -> Announcement:
        """
        Record a student's answer to a question.

        Raises:
            InvalidStateError: not a question, or the student already answered
            ValidationError: answer is not one of the options
        """
        announcement = await self._get(db, announcement_id)
        if announcement.type != TYPE_QUESTION:
            raise InvalidStateError(code="announcement.not_question")
        if answer not in announcement.options:
            raise ValidationError(field="answer", code="announcement.invalid_answer")
        if any(r.student_id == student.id for r in announcement.responses):
            raise InvalidStateError(code="announcement.already_responded")

        db.add(AnnouncementResponse(announcement_id=announcement.id, student_id=student.id, answer=answer))
        await flush_or_conflict(db, code="announcement.already_responded")
        await db.refresh(announcement, attribute_names=["responses"])
        return announcement

    async def delete(self, db: AsyncSession, announcement_id: UUID, user: User) -> None:
        announcement = await self._get(db, announcement_id)
        if announcement.creator_id != user.id:
            raise PermissionDeniedError(code="announcement.not_creator")
        await db.delete(announcement)
        await db.flush()


# ── Singleton Instance ────────────────────────────────────────────────────
announcement_service = AnnouncementService()
