"""
A+ Marketplace Backend — Notification Service
===============================================

What:  Stores in-app notifications and pushes them to connected clients.
How:   Business flows call `notify()`, which only queues a draft on the
       caller's session. Once that transaction commits, `deliver()` persists
       the draft in its own session (retried with tenacity on transient
       database errors) and pushes it over the NotificationHub. Delivery
       failures are logged and ignored; they never affect the business
       transaction that produced them.
Who:   PurchaseService, WithdrawalService, NoteService; routes/notifications.py.

Flow:
    ┌──────────────┐ notify() ┌───────────────┐ commit ┌────────────────┐
    │ business txn │─────────▶│ after-commit  │───────▶│ deliver():     │
    │ (purchase…)  │          │ hook (draft)  │        │ own session +  │
    └──────────────┘          └───────────────┘        │ hub push       │
                                                        └────────────────┘
"""

import logging
from functools import partial
from typing import Any, Dict, List, NamedTuple, Optional, Tuple
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from aplus.config import settings
from aplus.database import async_session_factory, register_after_commit
from aplus.exceptions import NotFoundError, PermissionDeniedError
from aplus.models.notification import Notification
from aplus.schemas.notification import NotificationCreate, NotificationResponse
from aplus.services.notification_hub import NotificationHub, notification_hub

logger = logging.getLogger(__name__)


class NotificationDraft(NamedTuple):
    user_id: UUID
    title: str
    message: str
    type: str = "info"


def _serialize(notification: Notification) -> Dict[str, Any]:
    return NotificationResponse.model_validate(notification).model_dump(mode="json")


class NotificationService:
    """
    Notification persistence plus live push.

    Attributes:
        session_factory: Opens the session used by `deliver()` (tests swap
                         in a factory bound to their own engine)
        hub:             Live connection registry
    """

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        hub: Optional[NotificationHub] = None,
    ):
        self.session_factory = session_factory or async_session_factory
        self.hub = hub or notification_hub

    # ── Fire-and-forget emission ──────────────────────────────────────────

    def notify(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        message: str,
        type: str = "info",
    ) -> NotificationDraft:
        """Queue a notification to be delivered after `db` commits."""
        draft = NotificationDraft(user_id=user_id, title=title, message=message, type=type)
        register_after_commit(db, partial(self.deliver, draft))
        return draft

    async def deliver(self, draft: NotificationDraft) -> Optional[Notification]:
        """Persist and push a draft; returns None when delivery failed."""
        try:
            notification, unread = await self._persist(draft)
        except Exception:
            logger.warning(
                "Notification for user %s could not be stored (%s)",
                draft.user_id,
                draft.title,
                exc_info=True,
            )
            return None

        await self._push(draft.user_id, "new-notification", _serialize(notification), unread)
        return notification

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            initial=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=1,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _persist(self, draft: NotificationDraft) -> Tuple[Notification, int]:
        async with self.session_factory() as session:
            notification = Notification(
                user_id=draft.user_id,
                title=draft.title,
                message=draft.message,
                type=draft.type,
            )
            session.add(notification)
            await session.commit()
            unread = await self.unread_count(session, draft.user_id)
            return notification, unread

    async def _push(self, user_id: UUID, event: str, data: Any, unread: Optional[int] = None) -> None:
        try:
            await self.hub.send(user_id, event, data)
            if unread is not None:
                await self.hub.send(user_id, "unread-count", {"unread_count": unread})
        except Exception:
            logger.warning("Live push of %s to user %s failed", event, user_id, exc_info=True)

    # ── Queries & user actions ────────────────────────────────────────────

    async def create(self, db: AsyncSession, data: NotificationCreate) -> Notification:
        """Synchronous (admin) creation inside the request transaction."""
        notification = Notification(
            user_id=data.user_id,
            title=data.title,
            message=data.message,
            type=data.type,
        )
        db.add(notification)
        await db.flush()
        payload = _serialize(notification)

        async def push() -> None:
            await self._push(data.user_id, "new-notification", payload)

        register_after_commit(db, push)
        return notification

    async def list_for_user(self, db: AsyncSession, user_id: UUID, limit: int = 50) -> List[Notification]:
        result = await db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def unread_count(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.read.is_(False),
            )
        )
        return result.scalar() or 0

    async def mark_as_read(self, db: AsyncSession, notification_id: UUID, user_id: UUID) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError(resource="notification", resource_id=notification_id)
        if notification.user_id != user_id:
            raise PermissionDeniedError()

        notification.read = True
        await db.flush()
        unread = await self.unread_count(db, user_id)
        payload = _serialize(notification)

        async def push() -> None:
            await self._push(user_id, "notification-read", payload, unread)

        register_after_commit(db, push)
        return notification

    async def mark_all_as_read(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        updated = result.rowcount or 0

        async def push() -> None:
            await self._push(user_id, "all-notifications-read", {"updated": updated}, 0)

        register_after_commit(db, push)
        return updated

    async def clear_all(self, db: AsyncSession, user_id: UUID) -> int:
        result = await db.execute(
            delete(Notification)
            .where(Notification.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        deleted = result.rowcount or 0

        async def push() -> None:
            await self._push(user_id, "notifications-cleared", {"deleted": deleted}, 0)

        register_after_commit(db, push)
        return deleted


# ── Singleton Instance ────────────────────────────────────────────────────
notification_service = NotificationService()
