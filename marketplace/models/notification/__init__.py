"""
Notification models package.
"""

from marketplace.models.notification.notification import Notification

__all__ = ["Notification"]
