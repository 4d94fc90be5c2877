"""
Group booking repository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.models.base.enums import GroupBookingStatus
from marketplace.models.booking.group_booking import GroupBooking
from marketplace.repositories.base.base_repository import BaseRepository


class GroupBookingRepository(BaseRepository[GroupBooking]):
    """Group containers and their listing queries."""

    def __init__(self, db: Session):
        super().__init__(GroupBooking, db)

    def open_upcoming(
        self,
        now: datetime,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[GroupBooking]:
        criteria = [
            GroupBooking.status == GroupBookingStatus.OPEN,
            GroupBooking.booking_date >= now,
        ]
        if start is not None:
            criteria.append(GroupBooking.booking_date >= start)
        if end is not None:
            criteria.append(GroupBooking.booking_date <= end)
        return self.find(*criteria, order_by=(GroupBooking.booking_date,))
