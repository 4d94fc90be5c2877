"""
In-app notification model.
"""

from typing import Optional

from sqlalchemy import Boolean, Enum as SQLEnum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import NotificationType

__all__ = ["Notification"]


class Notification(TimestampModel):
    """Notification shown inside the application, written with the state change it reports."""

    __table_args__ = (
        Index("ix_notifications_user_read", "user_id", "read"),
    )

    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    reference_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Booking, group or waitlist entry the notification refers to",
    )

    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
