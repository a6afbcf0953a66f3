"""
A+ Marketplace Backend — Notification Routes
==============================================

Endpoints (prefix /api/v1/notifications):
    GET    ""               the caller's notifications + unread count
    GET    /unread-count
    POST   ""               send a notification to a user (admin)
    PUT    /read-all        mark all as read
    PUT    /{id}/read       mark one as read (owner)
    DELETE ""               delete all of the caller's notifications
    WS     /ws?token=...    live push channel
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from aplus.database import async_session_factory, get_db_session
from aplus.exceptions import AuthenticationError
from aplus.models.user import User
from aplus.routes.deps import authenticate_token, get_current_user, require_admin
from aplus.schemas.common import ErrorResponse
from aplus.schemas.notification import (
    BulkUpdateResponse,
    NotificationCreate,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from aplus.services.notification_hub import notification_hub
from aplus.services.notification_service import notification_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])

# RFC 6455 "policy violation", used for rejected tokens
WS_POLICY_VIOLATION = 1008


@router.get("", response_model=NotificationListResponse, summary="The caller's notifications")
async def list_notifications(
    limit: int = Query(default=50, ge=1, le=200),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationListResponse:
    items = await notification_service.list_for_user(db, user.id, limit=limit)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in items],
        unread_count=await notification_service.unread_count(db, user.id),
    )


@router.get("/unread-count", response_model=UnreadCountResponse, summary="Number of unread notifications")
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread_count=await notification_service.unread_count(db, user.id))


@router.post("", status_code=201, response_model=NotificationResponse, summary="Notify a user (admin)")
async def create_notification(
    body: NotificationCreate,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    return NotificationResponse.model_validate(await notification_service.create(db, body))


@router.put("/read-all", response_model=BulkUpdateResponse, summary="Mark all notifications as read")
async def mark_all_as_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BulkUpdateResponse:
    return BulkUpdateResponse(updated=await notification_service.mark_all_as_read(db, user.id))


@router.put(
    "/{notification_id}/read",
    response_model=NotificationResponse,
    responses={
        403: {"description": "Not the recipient", "model": ErrorResponse},
        404: {"description": "Notification not found", "model": ErrorResponse},
    },
    summary="Mark one notification as read",
)
async def mark_as_read(
    notification_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> NotificationResponse:
    notification = await notification_service.mark_as_read(db, notification_id, user.id)
    return NotificationResponse.model_validate(notification)


@router.delete("", response_model=BulkUpdateResponse, summary="Delete all of the caller's notifications")
async def clear_all(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> BulkUpdateResponse:
    return BulkUpdateResponse(updated=await notification_service.clear_all(db, user.id))


@router.websocket("/ws")
async def notifications_socket(websocket: WebSocket, token: str = Query(default="")) -> None:
    """
    Live channel: frames are `{"event": ..., "data": ...}` pushed by the hub.

    The token is checked once, with a short-lived session, before the
    socket is accepted. Incoming frames are ignored.
    """
    try:
        async with async_session_factory() as db:
            user = await authenticate_token(db, token)
    except AuthenticationError as e:
        logger.info("WebSocket rejected: %s", e.code)
        await websocket.close(code=WS_POLICY_VIOLATION)
        return

    await notification_hub.connect(user.id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        notification_hub.disconnect(user.id, websocket)
