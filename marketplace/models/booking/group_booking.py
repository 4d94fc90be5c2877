"""
Group booking container.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketplace.models.base.base_model import TimestampModel
from marketplace.models.base.enums import GroupBookingStatus

__all__ = ["GroupBooking"]


class GroupBooking(TimestampModel):
    """
    Shared container limiting participants for one service occurrence.

    Each participant, the organizer included, holds one Booking whose
    ``group_booking_id`` points here.
    """

    __table_args__ = (
        CheckConstraint("min_participants >= 1", name="ck_group_min_participants"),
        CheckConstraint(
            "max_participants >= min_participants",
            name="ck_group_max_participants",
        ),
        CheckConstraint("price_per_person >= 0", name="ck_group_price_positive"),
    )

    service_id: Mapped[str] = mapped_column(
        ForeignKey("services.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    organizer_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    max_participants: Mapped[int] = mapped_column(Integer, nullable=False)

    min_participants: Mapped[int] = mapped_column(Integer, nullable=False)

    price_per_person: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Discounted price per participant in minor currency units",
    )

    booking_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    status: Mapped[GroupBookingStatus] = mapped_column(
        SQLEnum(GroupBookingStatus),
        nullable=False,
        default=GroupBookingStatus.OPEN,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<GroupBooking(id={self.id}, name={self.name}, status={self.status.value})>"
