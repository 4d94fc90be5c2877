"""
In-app notification repository.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.models.base.enums import NotificationType
from marketplace.models.notification.notification import Notification
from marketplace.repositories.base.base_repository import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """In-app notifications, written inside the caller's transaction."""

    def __init__(self, db: Session):
        super().__init__(Notification, db)

    def add(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        reference_id: Optional[str] = None,
    ) -> Notification:
        return self.create(
            Notification(
                user_id=user_id,
                type=notification_type,
                title=title,
                message=message,
                reference_id=reference_id,
            )
        )

    def for_user(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        criteria = [Notification.user_id == user_id]
        if unread_only:
            criteria.append(Notification.read.is_(False))
        return self.find(*criteria, order_by=(Notification.created_at.desc(),))
