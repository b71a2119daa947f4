"""
In-app notifications.

Notifications are staged in the caller's session; the caller commits them
together with whatever event produced them.
"""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from . import crud
from .exceptions import NotificationNotFound
from .models import Notification

log = logging.getLogger(__name__)


class NotificationService:

    @staticmethod
    def notify(db: AsyncSession, user_id: uuid.UUID, title: str, message: str) -> Notification:
        notification = Notification(user_id=user_id, title=title, message=message, read=False)
        db.add(notification)
        log.info("Notification queued for user %s: %s", user_id, title)
        return notification

    @staticmethod
    async def mark_read(db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        """Mark one of the user's own notifications as read."""
        notification = await crud.get_notification(db, notification_id)
        # Someone else's notification is reported as missing
        if notification is None or notification.user_id != user_id:
            raise NotificationNotFound()
        return await crud.mark_notification_as_read(db, notification)
