"""
A+ Marketplace Backend — Course Routes
========================================

Endpoints (prefix /api/v1/courses):
    GET  ""                                  catalog
    POST ""                                  create (multipart, thumbnail image)
    GET  /{id}                               detail with modules and lessons
    PUT  /{id}                               edit (owner)
    POST /{id}/modules                       append a module (owner)
    POST /{id}/modules/{module_id}/lessons   append a video lesson (owner, multipart)
"""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user
from aplus.schemas.common import ErrorResponse, PageMeta
from aplus.schemas.course import (
    CourseCreate,
    CourseListItem,
    CourseListParams,
    CourseListResponse,
    CourseResponse,
    CourseUpdate,
    LessonResponse,
    ModuleCreate,
    ModuleResponse,
)
from aplus.services.course_service import course_service

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"])


async def _read(upload: UploadFile):
    try:
        return upload.filename or "", await upload.read()
    finally:
        await upload.close()


@router.get("", response_model=CourseListResponse, summary="List courses")
async def list_courses(
    params: CourseListParams = Depends(),
    db: AsyncSession = Depends(get_db_session),
) -> CourseListResponse:
    courses, total = await course_service.list_courses(db, params)
    return CourseListResponse(
        courses=[CourseListItem.model_validate(c) for c in courses],
        pagination=PageMeta.build(params.page, params.limit, total),
    )


@router.post(
    "",
    status_code=201,
    response_model=CourseResponse,
    responses={400: {"description": "Invalid thumbnail", "model": ErrorResponse}},
    summary="Create a course",
)
async def create_course(
    title: str = Form(...),
    description: str = Form(...),
    price: Decimal = Form(...),
    category: str = Form(default="general"),
    owner_phone: str = Form(default=""),
    thumbnail: UploadFile = File(..., description="Thumbnail image (PNG, JPEG, WebP)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CourseResponse:
    data = CourseCreate(
        title=title,
        description=description,
        price=price,
        category=category,
        owner_phone=owner_phone,
    )
    course = await course_service.create_course(db, user, data, await _read(thumbnail))
    return CourseResponse.model_validate(course)


@router.get(
    "/{course_id}",
    response_model=CourseResponse,
    responses={404: {"description": "Course not found", "model": ErrorResponse}},
    summary="Course detail",
)
async def get_course(course_id: UUID, db: AsyncSession = Depends(get_db_session)) -> CourseResponse:
    return CourseResponse.model_validate(await course_service.get_course(db, course_id))


@router.put("/{course_id}", response_model=CourseResponse, summary="Edit a course (owner)")
async def update_course(
    course_id: UUID,
    body: CourseUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> CourseResponse:
    return CourseResponse.model_validate(await course_service.update_course(db, course_id, user, body))


@router.post("/{course_id}/modules", status_code=201, response_model=ModuleResponse, summary="Append a module")
async def add_module(
    course_id: UUID,
    body: ModuleCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> ModuleResponse:
    return ModuleResponse.model_validate(await course_service.add_module(db, course_id, user, body))


@router.post(
    "/{course_id}/modules/{module_id}/lessons",
    status_code=201,
    response_model=LessonResponse,
    responses={400: {"description": "Invalid video", "model": ErrorResponse}},
    summary="Append a video lesson (unpublished)",
)
async def add_lesson(
    course_id: UUID,
    module_id: UUID,
    title: str = Form(..., min_length=1, max_length=255),
    video: UploadFile = File(..., description="Lesson video (MP4, WebM, QuickTime)"),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> LessonResponse:
    lesson = await course_service.add_lesson(db, course_id, module_id, user, title, await _read(video))
    return LessonResponse.model_validate(lesson)
