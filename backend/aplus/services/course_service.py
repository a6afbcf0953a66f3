"""
A+ Marketplace Backend — Course Service
=========================================

What:  Course catalog: listing with filters, detail with ordered modules and
       lessons, creation with a thumbnail upload, owner edits, and appending
       modules and video lessons.
How:   Queue numbers are assigned as max + 1 within the parent; the unique
       (parent, queue_number) constraint turns a concurrent append into a
       409 instead of a duplicate position.
Who:   routes/courses.py; AnnouncementService uses `get_course`.
"""

import logging
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import and_, asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import flush_or_conflict
from aplus.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from aplus.models.course import LESSON_UNPUBLISHED, Course, CourseLesson, CourseModule
from aplus.models.user import User
from aplus.schemas.course import CourseCreate, CourseListParams, CourseUpdate, ModuleCreate
from aplus.services.file_service import IMAGE, VIDEO, file_service

logger = logging.getLogger(__name__)

UploadedFile = Tuple[str, bytes]


class CourseService:

    async def get_course(self, db: AsyncSession, course_id: UUID) -> Course:
        course = await db.get(Course, course_id)
        if course is None:
            raise NotFoundError(resource="course", resource_id=course_id)
        return course

    def _ensure_owner(self, course: Course, user: User) -> None:
        if course.owner_id != user.id:
            raise PermissionDeniedError(code="course.not_owner")

    async def list_courses(self, db: AsyncSession, params: CourseListParams) -> Tuple[List[Course], int]:
        conditions = []
        if params.title:
            conditions.append(func.lower(Course.title).contains(params.title.lower()))
        if params.min_price is not None:
            conditions.append(Course.price >= params.min_price)
        if params.max_price is not None:
            conditions.append(Course.price <= params.max_price)

        count_query = select(func.count(Course.id))
        query = select(Course)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        direction = asc if params.sort_order == "asc" else desc
        total = (await db.execute(count_query)).scalar() or 0
        result = await db.execute(
            query.order_by(direction(getattr(Course, params.sort_by)))
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
        )
        return list(result.scalars().all()), total

    async def create_course(
        self,
        db: AsyncSession,
        owner: User,
        data: CourseCreate,
        thumbnail: Optional[UploadedFile],
    ) -> Course:
        if thumbnail is None or not thumbnail[1]:
            raise ValidationError(field="thumbnail", code="file.empty")

        stored = await file_service.upload(thumbnail[0], thumbnail[1], IMAGE)
        try:
            course = Course(
                title=data.title,
                description=data.description,
                thumbnail=stored.url,
                price=data.price,
                category=data.category,
                owner_id=owner.id,
                owner_name=owner.full_name,
                owner_email=owner.email,
                owner_phone=data.owner_phone,
                modules=[],
            )
            db.add(course)
            await db.flush()
        except Exception:
            await file_service.cleanup_file(stored.absolute_path)
            raise

        logger.info("Course created: id=%s owner=%s", course.id, owner.id)
        return course

    async def update_course(self, db: AsyncSession, course_id: UUID, user: User, data: CourseUpdate) -> Course:
        course = await self.get_course(db, course_id)
        self._ensure_owner(course, user)
        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(course, field, value)
        await db.flush()
        return course

    # ── Modules & lessons ─────────────────────────────────────────────────

    async def add_module(self, db: AsyncSession, course_id: UUID, user: User, data: ModuleCreate) -> CourseModule:
        course = await self.get_course(db, course_id)
        self._ensure_owner(course, user)

        last = (
            await db.execute(
                select(func.coalesce(func.max(CourseModule.queue_number), 0)).where(
                    CourseModule.course_id == course.id
                )
            )
        ).scalar()
        module = CourseModule(course_id=course.id, title=data.title, queue_number=last + 1, lessons=[])
        db.add(module)
        await flush_or_conflict(db)
        return module

    async def add_lesson(
        self,
        db: AsyncSession,
        course_id: UUID,
        module_id: UUID,
        user: User,
        title: str,
        video: Optional[UploadedFile],
    ) -> CourseLesson:
        """Upload the lesson video and append it to the module, unpublished."""
        course = await self.get_course(db, course_id)
        self._ensure_owner(course, user)

        module = await db.get(CourseModule, module_id)
        if module is None or module.course_id != course.id:
            raise NotFoundError(resource="module", resource_id=module_id)
        if video is None or not video[1]:
            raise ValidationError(field="video", code="file.empty")

        stored = await file_service.upload(video[0], video[1], VIDEO)
        try:
            last = (
                await db.execute(
                    select(func.coalesce(func.max(CourseLesson.queue_number), 0)).where(
                        CourseLesson.module_id == module.id
                    )
                )
            ).scalar()
            lesson = CourseLesson(
                module_id=module.id,
                title=title,
                url=stored.url,
                queue_number=last + 1,
                status=LESSON_UNPUBLISHED,
            )
            db.add(lesson)
            await flush_or_conflict(db)
        except Exception:
            await file_service.cleanup_file(stored.absolute_path)
            raise

        logger.info("Lesson added: course=%s module=%s lesson=%s", course.id, module.id, lesson.id)
        return lesson


# ── Singleton Instance ────────────────────────────────────────────────────
course_service = CourseService()
