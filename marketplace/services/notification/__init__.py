"""
Notification services package.
"""

from marketplace.services.notification.booking_notification_service import BookingNotificationService

__all__ = ["BookingNotificationService"]
