"""
Recurring booking repository.
"""

from datetime import date
from typing import List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.models.base.enums import RecurringBookingStatus
from marketplace.models.booking.recurring_booking import RecurringBooking
from marketplace.repositories.base.base_repository import BaseRepository


class RecurringBookingRepository(BaseRepository[RecurringBooking]):
    """Recurring series lookups."""

    def __init__(self, db: Session):
        super().__init__(RecurringBooking, db)

    def for_user(self, user_id: str) -> List[RecurringBooking]:
        return self.find(
            or_(RecurringBooking.client_id == user_id, RecurringBooking.provider_id == user_id),
            order_by=(RecurringBooking.created_at.desc(),),
        )

    def active_not_expired(self, today: date) -> List[RecurringBooking]:
        """Active series whose end date is open or still ahead."""
        return self.find(
            RecurringBooking.status == RecurringBookingStatus.ACTIVE,
            or_(RecurringBooking.end_date.is_(None), RecurringBooking.end_date >= today),
            order_by=(RecurringBooking.created_at,),
        )
