"""
Booking reminder repository.
"""

from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from marketplace.models.base.enums import ReminderChannel, ReminderStatus
from marketplace.models.booking.booking import Booking
from marketplace.models.booking.booking_reminder import BookingReminder
from marketplace.repositories.base.base_repository import BaseRepository


class BookingReminderRepository(BaseRepository[BookingReminder]):
    """Reminder rows and the due/retry queries that drive dispatch."""

    def __init__(self, db: Session):
        super().__init__(BookingReminder, db)

    def exists_for_slot(self, booking_id: str, channel: ReminderChannel, scheduled_for: datetime) -> bool:
        return self.count(
            BookingReminder.booking_id == booking_id,
            BookingReminder.type == channel,
            BookingReminder.scheduled_for == scheduled_for,
        ) > 0

    def due_pending(self, now: datetime, limit: Optional[int] = None) -> List[BookingReminder]:
        return self.find(
            BookingReminder.status == ReminderStatus.PENDING,
            BookingReminder.scheduled_for <= now,
            order_by=(BookingReminder.scheduled_for,),
            limit=limit,
        )

    def retryable_failed(self, now: datetime, max_retries: int) -> List[BookingReminder]:
        """Failed reminders under the retry bound whose booking still lies ahead."""
        query = (
            select(BookingReminder)
            .join(Booking, Booking.id == BookingReminder.booking_id)
            .where(
                BookingReminder.status == ReminderStatus.FAILED,
                BookingReminder.retry_count < max_retries,
                Booking.booking_date > now,
            )
            .order_by(BookingReminder.scheduled_for)
        )
        self.db.flush()
        return list(self.db.execute(query).scalars().all())

    def for_booking(self, booking_id: str) -> List[BookingReminder]:
        return self.find(
            BookingReminder.booking_id == booking_id,
            order_by=(BookingReminder.scheduled_for,),
        )

    def cancel_pending_for_booking(self, booking_id: str) -> int:
        return self.update_where(
            [
                BookingReminder.booking_id == booking_id,
                BookingReminder.status == ReminderStatus.PENDING,
            ],
            {"status": ReminderStatus.CANCELLED},
        )

    def status_counts(self, booking_ids: Optional[List[str]] = None) -> Dict[ReminderStatus, int]:
        query = select(BookingReminder.status, func.count(BookingReminder.id))
        if booking_ids is not None:
            query = query.where(BookingReminder.booking_id.in_(booking_ids))
        query = query.group_by(BookingReminder.status)
        self.db.flush()
        counts = {status: 0 for status in ReminderStatus}
        counts.update({status: count for status, count in self.db.execute(query).all()})
        return counts
