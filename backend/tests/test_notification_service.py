"""
A+ Marketplace Backend — Notification Tests
=============================================

What:  Tests for NotificationService (after-commit delivery, read state,
       clearing) and the NotificationHub fan-out.
How:   In-memory SQLite for persistence; fake WebSockets record the frames
       they are sent.

What we test:
    ✅ notify() delivers only after commit, never after rollback
    ✅ Live push of new-notification and unread-count frames
    ✅ Delivery failures are swallowed
    ✅ mark_as_read ownership, mark_all_as_read, clear_all
    ✅ Hub drops sockets that fail to receive
"""

from typing import Any, List
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from aplus.database import commit_session, rollback_session
from aplus.exceptions import NotFoundError, PermissionDeniedError
from aplus.models.notification import Notification
from aplus.schemas.notification import NotificationCreate
from aplus.services.notification_hub import NotificationHub
from aplus.services.notification_service import NotificationDraft, NotificationService


class FakeWebSocket:
    """Records JSON frames; optionally fails on send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.accepted = False
        self.frames: List[Any] = []

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.frames.append(data)


class TestNotificationHub:

    def setup_method(self):
        self.hub = NotificationHub()

    @pytest.mark.asyncio
    async def test_send_reaches_every_socket_of_the_user(self):
        user_id = uuid4()
        first, second = FakeWebSocket(), FakeWebSocket()
        await self.hub.connect(user_id, first)
        await self.hub.connect(user_id, second)

        delivered = await self.hub.send(user_id, "unread-count", {"unread_count": 3})

        assert delivered == 2
        assert first.accepted and second.accepted
        assert first.frames == [{"event": "unread-count", "data": {"unread_count": 3}}]

    @pytest.mark.asyncio
    async def test_send_to_offline_user(self):
        assert await self.hub.send(uuid4(), "new-notification", {}) == 0

    @pytest.mark.asyncio
    async def test_dead_socket_is_dropped(self):
        user_id = uuid4()
        await self.hub.connect(user_id, FakeWebSocket(fail=True))

        assert await self.hub.send(user_id, "new-notification", {}) == 0
        assert not self.hub.is_connected(user_id)

    @pytest.mark.asyncio
    async def test_disconnect(self):
        user_id = uuid4()
        socket = FakeWebSocket()
        await self.hub.connect(user_id, socket)
        self.hub.disconnect(user_id, socket)
        self.hub.disconnect(user_id, socket)
        assert not self.hub.is_connected(user_id)


class TestNotificationDelivery:

    def setup_method(self):
        self.hub = NotificationHub()

    def _service(self, session_factory) -> NotificationService:
        return NotificationService(session_factory=session_factory, hub=self.hub)

    async def _count(self, session_factory) -> int:
        async with session_factory() as db:
            return (await db.execute(select(func.count(Notification.id)))).scalar()

    @pytest.mark.asyncio
    async def test_notify_waits_for_commit(self, session_factory, buyer):
        service = self._service(session_factory)
        socket = FakeWebSocket()
        await self.hub.connect(buyer.id, socket)

        async with session_factory() as db:
            service.notify(db, buyer.id, "Hello", "World", type="sales")
            assert await self._count(session_factory) == 0
            await commit_session(db)

        assert await self._count(session_factory) == 1
        events = [f["event"] for f in socket.frames]
        assert events == ["new-notification", "unread-count"]
        assert socket.frames[0]["data"]["title"] == "Hello"
        assert socket.frames[1]["data"] == {"unread_count": 1}

    @pytest.mark.asyncio
    async def test_rollback_discards_notifications(self, session_factory, buyer):
        service = self._service(session_factory)
        async with session_factory() as db:
            service.notify(db, buyer.id, "Hello", "World")
            await rollback_session(db)
            await commit_session(db)

        assert await self._count(session_factory) == 0

    @pytest.mark.asyncio
    async def test_delivery_failure_is_swallowed(self, session_factory, buyer):
        service = self._service(session_factory)
        with patch.object(service, "_persist", AsyncMock(side_effect=RuntimeError("db down"))):
            result = await service.deliver(NotificationDraft(buyer.id, "t", "m"))
        assert result is None

    @pytest.mark.asyncio
    async def test_push_failure_does_not_lose_the_row(self, session_factory, buyer):
        service = self._service(session_factory)
        await self.hub.connect(buyer.id, FakeWebSocket(fail=True))

        result = await service.deliver(NotificationDraft(buyer.id, "t", "m"))

        assert result is not None
        assert await self._count(session_factory) == 1


class TestNotificationActions:

    def setup_method(self):
        self.hub = NotificationHub()

    @pytest.mark.asyncio
    async def test_admin_create_and_list(self, session_factory, buyer):
        service = NotificationService(session_factory=session_factory, hub=self.hub)
        async with session_factory() as db:
            await service.create(db, NotificationCreate(user_id=buyer.id, title="A", message="first"))
            await service.create(db, NotificationCreate(user_id=buyer.id, title="B", message="second"))
            await commit_session(db)

        async with session_factory() as db:
            items = await service.list_for_user(db, buyer.id)
            unread = await service.unread_count(db, buyer.id)
        assert {n.title for n in items} == {"A", "B"}
        assert unread == 2

    @pytest.mark.asyncio
    async def test_mark_as_read(self, session_factory, buyer):
        service = NotificationService(session_factory=session_factory, hub=self.hub)
        socket = FakeWebSocket()
        await self.hub.connect(buyer.id, socket)
        notification = await service.deliver(NotificationDraft(buyer.id, "t", "m"))
        socket.frames.clear()

        async with session_factory() as db:
            updated = await service.mark_as_read(db, notification.id, buyer.id)
            await commit_session(db)

        assert updated.read is True
        assert socket.frames[0]["event"] == "notification-read"
        assert socket.frames[1] == {"event": "unread-count", "data": {"unread_count": 0}}

    @pytest.mark.asyncio
    async def test_mark_as_read_other_users_notification(self, session_factory, buyer, seller):
        service = NotificationService(session_factory=session_factory, hub=self.hub)
        notification = await service.deliver(NotificationDraft(buyer.id, "t", "m"))

        async with session_factory() as db:
            with pytest.raises(PermissionDeniedError):
                await service.mark_as_read(db, notification.id, seller.id)
            with pytest.raises(NotFoundError):
                await service.mark_as_read(db, uuid4(), seller.id)

    @pytest.mark.asyncio
    async def test_mark_all_and_clear(self, session_factory, buyer, seller):
        service = NotificationService(session_factory=session_factory, hub=self.hub)
        for _ in range(3):
            await service.deliver(NotificationDraft(buyer.id, "t", "m"))
        await service.deliver(NotificationDraft(seller.id, "t", "m"))

        async with session_factory() as db:
            assert await service.mark_all_as_read(db, buyer.id) == 3
            await commit_session(db)
        async with session_factory() as db:
            assert await service.unread_count(db, buyer.id) == 0
            assert await service.unread_count(db, seller.id) == 1

        async with session_factory() as db:
            assert await service.clear_all(db, buyer.id) == 3
            await commit_session(db)
        async with session_factory() as db:
            assert await service.list_for_user(db, buyer.id) == []
            assert len(await service.list_for_user(db, seller.id)) == 1
