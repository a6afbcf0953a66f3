"""
A+ Marketplace Backend — Announcement Routes
==============================================

Endpoints:
    GET    /api/v1/courses/{course_id}/announcements      newest first
    POST   /api/v1/courses/{course_id}/announcements      (course owner)
    POST   /api/v1/announcements/{id}/respond             answer a question
    DELETE /api/v1/announcements/{id}                     (creator)
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import get_db_session
from aplus.models.user import User
from aplus.routes.deps import get_current_user
from aplus.schemas.announcement import AnnouncementCreate, AnnouncementOut, RespondRequest
from aplus.schemas.common import ErrorResponse, MessageResponse
from aplus.services.announcement_service import announcement_service

router = APIRouter(prefix="/api/v1", tags=["Announcements"])


@router.get(
    "/courses/{course_id}/announcements",
    response_model=List[AnnouncementOut],
    summary="Announcements of a course",
)
async def list_announcements(course_id: UUID, db: AsyncSession = Depends(get_db_session)) -> List[AnnouncementOut]:
    items = await announcement_service.list_for_course(db, course_id)
    return [AnnouncementOut.model_validate(a) for a in items]


@router.post(
    "/courses/{course_id}/announcements",
    status_code=201,
    response_model=AnnouncementOut,
    responses={
        400: {"description": "Question with fewer than two options", "model": ErrorResponse},
        403: {"description": "Not the course owner", "model": ErrorResponse},
    },
    summary="Post an announcement or question",
)
async def create_announcement(
    course_id: UUID,
    body: AnnouncementCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AnnouncementOut:
    return AnnouncementOut.model_validate(await announcement_service.create(db, course_id, user, body))


@router.post(
    "/announcements/{announcement_id}/respond",
    response_model=AnnouncementOut,
    responses={
        400: {"description": "Answer is not one of the options", "model": ErrorResponse},
        409: {"description": "Not a question, or already answered", "model": ErrorResponse},
    },
    summary="Answer a question",
)
async def respond(
    announcement_id: UUID,
    body: RespondRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> AnnouncementOut:
    announcement = await announcement_service.respond(db, announcement_id, user, body.answer)
    return AnnouncementOut.model_validate(announcement)


@router.delete("/announcements/{announcement_id}", response_model=MessageResponse, summary="Delete (creator)")
async def delete_announcement(
    announcement_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await announcement_service.delete(db, announcement_id, user)
    return MessageResponse(message="Announcement deleted")
