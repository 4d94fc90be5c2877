"""
Booking notification service.

Writes the in-app Notification row inside the caller's unit of work and
registers channel delivery and the realtime push as post-commit effects.
"""

from datetime import datetime
from functools import partial
from typing import Any, Dict, Iterable, Optional

from marketplace.core.config import NotificationSettings
from marketplace.core.logging import get_logger
from marketplace.models.base.enums import NotificationType
from marketplace.models.notification.notification import Notification
from marketplace.models.user.user import User
from marketplace.repositories.notification.notification_repository import NotificationRepository
from marketplace.repositories.user.user_repository import UserRepository
from marketplace.schemas.notification.notification_templates import TemplateVariables
from marketplace.services.base.notification_dispatcher import (
    DispatchReport,
    NotificationChannel,
    NotificationDispatcher,
    Recipient,
)
from marketplace.services.base.realtime_publisher import NullRealtimePublisher, RealtimePublisher
from marketplace.services.base.transaction_manager import TransactionContext


def format_date(value: datetime) -> str:
    return value.strftime("%Y-%m-%d")


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def recipient_for(user: Optional[User]) -> Recipient:
    if user is None:
        return Recipient()
    return Recipient(name=user.name, email=user.email, phone=user.phone)


class BookingNotificationService:
    """Notifies booking parties in-app, on external channels and in realtime."""

    def __init__(
        self,
        notification_repository: NotificationRepository,
        user_repository: UserRepository,
        dispatcher: NotificationDispatcher,
        realtime: Optional[RealtimePublisher] = None,
        settings: Optional[NotificationSettings] = None,
    ):
        self.notifications = notification_repository
        self.users = user_repository
        self.dispatcher = dispatcher
        self.realtime = realtime or NullRealtimePublisher()
        self.settings = settings or NotificationSettings()
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    @property
    def default_channels(self):
        return [NotificationChannel(channel) for channel in self.settings.NOTIFICATION_DEFAULT_CHANNELS]

    def notify(
        self,
        ctx: TransactionContext,
        user_id: str,
        notification_type: NotificationType,
        variables: TemplateVariables,
        reference_id: Optional[str] = None,
        channels: Optional[Iterable[NotificationChannel]] = None,
        realtime_event: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """
        Record an in-app notification now; deliver on channels and push after commit.

        ``channels`` defaults to the configured channels; pass an empty list
        for in-app only.
        """
        rendered = self.dispatcher.renderer.render_in_app(notification_type, variables)
        row = self.notifications.add(
            user_id=user_id,
            notification_type=notification_type,
            title=rendered.subject,
            message=rendered.body,
            reference_id=reference_id,
        )

        channels = self.default_channels if channels is None else list(channels)
        if channels:
            ctx.after_commit(
                f"dispatch:{notification_type.value}:{user_id}",
                partial(self.dispatch, user_id, notification_type, variables, channels),
            )
        if realtime_event is not None:
            ctx.after_commit(
                f"realtime:{notification_type.value}:{user_id}",
                partial(self.push, user_id, realtime_event),
            )
        return row

    def dispatch(
        self,
        user_id: str,
        notification_type: NotificationType,
        variables: TemplateVariables,
        channels: Iterable[NotificationChannel],
    ) -> DispatchReport:
        """Deliver one notification to a user on external channels."""
        user = self.users.get_by_id(user_id)
        report = self.dispatcher.send_notification(
            notification_type,
            recipient_for(user),
            variables,
            channels,
        )
        self._logger.info(
            f"Notification {notification_type.value} dispatched",
            extra={
                "user_id": user_id,
                "delivered": [channel.value for channel in report.delivered],
                "failed": [channel.value for channel in report.failed],
            },
        )
        return report

    def push(self, user_id: str, event: Dict[str, Any]) -> None:
        self.realtime.publish(user_id, event)
