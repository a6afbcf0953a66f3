"""
A+ Marketplace Backend — Live Notification Hub
================================================

What:  In-process registry of connected WebSockets per user, used to push
       notification events as they happen.
How:   `send()` writes a `{"event", "data"}` JSON frame to every socket the
       user has open; sockets that fail to receive are dropped.
Who:   routes/notifications.py (connect/disconnect), NotificationService (send).

Events:
    new-notification       a notification was stored for the user
    notification-read      one notification was marked as read
    all-notifications-read every notification was marked as read
    notifications-cleared  the user's notifications were deleted
    unread-count           current unread count, after any of the above

Single-process only: with several uvicorn workers each worker pushes to the
sockets it holds.
"""

import logging
from collections import defaultdict
from typing import Any, Dict, Set
from uuid import UUID

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class NotificationHub:

    def __init__(self) -> None:
        self._connections: Dict[UUID, Set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: UUID, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.debug("WebSocket connected for user %s (%d open)", user_id, len(self._connections[user_id]))

    def disconnect(self, user_id: UUID, websocket: WebSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            self._connections.pop(user_id, None)

    def is_connected(self, user_id: UUID) -> bool:
        return bool(self._connections.get(user_id))

    async def send(self, user_id: UUID, event: str, data: Any) -> int:
        """Push an event to all of the user's sockets; returns how many received it."""
        delivered = 0
        for websocket in list(self._connections.get(user_id, ())):
            try:
                await websocket.send_json({"event": event, "data": data})
                delivered += 1
            except Exception as e:
                logger.info("Dropping dead WebSocket for user %s: %s", user_id, e)
                self.disconnect(user_id, websocket)
        return delivered


# ── Singleton Instance ────────────────────────────────────────────────────
notification_hub = NotificationHub()
