"""
Time slot repository for buffer windows.
"""

from datetime import datetime
from typing import List

from sqlalchemy.orm import Session

from marketplace.models.booking.booking import TimeSlot
from marketplace.repositories.base.base_repository import BaseRepository


class TimeSlotRepository(BaseRepository[TimeSlot]):
    """Blocked windows on a provider's calendar."""

    def __init__(self, db: Session):
        super().__init__(TimeSlot, db)

    def blocked_overlapping(self, service_id: str, start: datetime, end: datetime) -> List[TimeSlot]:
        """Booked slots of a service intersecting the half-open window [start, end)."""
        return self.find(
            TimeSlot.service_id == service_id,
            TimeSlot.is_booked.is_(True),
            TimeSlot.start_time < end,
            TimeSlot.end_time > start,
            order_by=(TimeSlot.start_time,),
        )

    def for_booking(self, booking_id: str) -> List[TimeSlot]:
        return self.find(TimeSlot.booking_id == booking_id, order_by=(TimeSlot.start_time,))

    def release_for_booking(self, booking_id: str) -> int:
        return self.update_where(
            [TimeSlot.booking_id == booking_id, TimeSlot.is_booked.is_(True)],
            {"is_booked": False},
        )
