"""
Notification repositories package.
"""

from marketplace.repositories.notification.notification_repository import NotificationRepository

__all__ = ["NotificationRepository"]
