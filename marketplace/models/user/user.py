"""
User model.

Clients and providers share one table; the role a user plays is decided per
booking, not stored on the user.
"""

from typing import Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base.base_model import TimestampModel

__all__ = ["User"]


class User(TimestampModel):
    """
    Marketplace user.

    Attributes:
        name: Display name used in notifications
        email: Email address for email delivery
        phone: Phone number for SMS and WhatsApp delivery
        notification_email: Opt-in flag for email reminders
        notification_sms: Opt-in flag for SMS reminders
        notification_whatsapp: Opt-in flag for WhatsApp reminders
    """

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        comment="Email address",
    )

    phone: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Phone number",
    )

    notification_email: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Receive email reminders",
    )

    notification_sms: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Receive SMS reminders",
    )

    notification_whatsapp: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Receive WhatsApp reminders",
    )

    def accepts_channel(self, channel: str) -> bool:
        """Whether the user opted in to reminders on ``channel``."""
        return bool(getattr(self, f"notification_{channel}", False))

    def contact_for(self, channel: str) -> Optional[str]:
        """Address used to reach the user on ``channel``."""
        if channel == "email":
            return self.email
        if channel in ("sms", "whatsapp"):
            return self.phone
        return None

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name})>"
