"""Admin inbox: the read side of the alerts raised by the overdue scanner."""

import logging
from typing import Optional

from pydantic import BaseModel

from shared.data_store import DataStore
from shared.models import AdminNotification

logger = logging.getLogger("admin_notifications")

RECENT_LIMIT = 20


class AdminInbox(BaseModel):
    notifications: list[AdminNotification]
    unread_count: int


class AdminNotificationService:
    def __init__(self, data_store: DataStore):
        self.data_store = data_store

    def list_for_user(self, user_id: str, limit: int = RECENT_LIMIT) -> AdminInbox:
        """Most recent alerts for an admin plus their total unread count."""
        notifications = self.data_store.get_admin_notifications_for_user(user_id)
        return AdminInbox(
            notifications=notifications[:limit],
            unread_count=sum(1 for n in notifications if not n.read),
        )

    def unread_count(self, user_id: str) -> int:
        return sum(1 for n in self.data_store.get_admin_notifications_for_user(user_id) if not n.read)

    def mark_read(self, notification_id: str, user_id: str) -> Optional[AdminNotification]:
        """
        Mark one alert as read.

        Returns None if the alert does not exist or belongs to another admin.
        A read overdue alert can be raised again by a later scan.
        """
        notification = self.data_store.get_admin_notification(notification_id)
        if notification is None or notification.user_id != user_id:
            return None
        notification.read = True
        logger.info(f"Admin notification {notification_id} marked read", extra={"user_id": user_id})
        return notification

    def mark_all_read(self, user_id: str) -> int:
        """Mark every unread alert of an admin as read; returns how many changed."""
        changed = 0
        for notification in self.data_store.get_admin_notifications_for_user(user_id):
            if not notification.read:
                notification.read = True
                changed += 1
        logger.info(f"{changed} admin notifications marked read", extra={"user_id": user_id})
        return changed
