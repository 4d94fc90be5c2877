"""
Capacity guard and buffer blocking.

The per-day cap is checked while the service row is locked, so two requests
for the last slot of a day cannot both pass. Buffer windows are stored as
booked TimeSlot rows tied to the booking that produced them.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.models.booking.booking import Booking, TimeSlot
from marketplace.models.service.service import Service
from marketplace.repositories.booking.booking_repository import BookingRepository
from marketplace.repositories.booking.time_slot_repository import TimeSlotRepository
from marketplace.repositories.service.service_repository import ServiceRepository
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import TransactionManager


def effective_end(service: Service, start: datetime, end: Optional[datetime] = None) -> datetime:
    """End of the window a booking occupies: its end date, else start plus the service duration."""
    if end is not None:
        return end
    return start + timedelta(minutes=service.duration or 0)


class BookingCapacityService(BaseService[TimeSlot, TimeSlotRepository]):
    """
    Capacity checks run inside the caller's unit of work; buffer blocking
    runs as its own unit after the booking commits.
    """

    def __init__(
        self,
        time_slot_repository: TimeSlotRepository,
        booking_repository: BookingRepository,
        service_repository: ServiceRepository,
        db_session: Session,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        super().__init__(time_slot_repository, db_session, clock, transactions)
        self.bookings = booking_repository
        self.services = service_repository

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def check_daily_capacity(self, service: Service, day: date) -> ServiceResult[Optional[int]]:
        """
        Reject when the day already holds ``max_bookings`` live bookings.

        Callers must hold the service row lock (ServiceRepository.get_for_update).

        Returns:
            Remaining places on the day, or None when the service is uncapped
        """
        if not service.max_bookings:
            return ServiceResult.success(None)

        live = self.bookings.count_live_on_day(service.id, day)
        if live >= service.max_bookings:
            return ServiceResult.conflict(
                "Service is fully booked for this date",
                details={
                    "service_id": service.id,
                    "date": day.isoformat(),
                    "max_bookings": service.max_bookings,
                },
            )
        return ServiceResult.success(service.max_bookings - live)

    def check_buffer_conflicts(
        self,
        service: Service,
        start: datetime,
        end: Optional[datetime] = None,
    ) -> ServiceResult[None]:
        """Reject a window that intersects a blocked buffer slot of the service."""
        window_end = effective_end(service, start, end)
        blocked = self.repository.blocked_overlapping(service.id, start, max(window_end, start + timedelta(seconds=1)))
        if blocked:
            slot = blocked[0]
            return ServiceResult.conflict(
                "Requested time falls inside a blocked buffer window",
                details={
                    "service_id": service.id,
                    "blocked_from": slot.start_time.isoformat(),
                    "blocked_until": slot.end_time.isoformat(),
                },
            )
        return ServiceResult.success(None)

    # -------------------------------------------------------------------------
    # Buffer windows
    # -------------------------------------------------------------------------

    def block_buffer_windows(self, booking_id: str) -> ServiceResult[List[TimeSlot]]:
        """
        Block ``[start - buffer, start)`` and ``[end, end + buffer)`` around a booking.

        Idempotent: an already blocked booking keeps its existing slots.
        """
        try:
            with self.transactions.start():
                booking = self.bookings.get_or_raise(booking_id)
                service = booking.service
                if not service.has_buffer or not booking.holds_capacity:
                    return ServiceResult.success([])

                existing = self.repository.for_booking(booking.id)
                if existing:
                    return ServiceResult.success(existing)

                slots = self.repository.create_many(self._buffer_slots(booking, service))

            self._log_operation(
                "block buffer windows",
                booking_id,
                {"buffer_minutes": service.buffer_time},
            )
            return ServiceResult.success(slots)
        except Exception as e:
            return self._handle_exception(e, "block buffer windows", booking_id)

    def release_buffer_windows(self, booking_id: str) -> int:
        """Unblock a booking's buffer slots; runs inside the caller's unit of work."""
        return self.repository.release_for_booking(booking_id)

    @staticmethod
    def _buffer_slots(booking: Booking, service: Service) -> List[TimeSlot]:
        buffer = timedelta(minutes=service.buffer_time)
        end = effective_end(service, booking.booking_date, booking.end_date)
        return [
            TimeSlot(
                provider_id=booking.provider_id,
                service_id=service.id,
                booking_id=booking.id,
                start_time=booking.booking_date - buffer,
                end_time=booking.booking_date,
                is_booked=True,
            ),
            TimeSlot(
                provider_id=booking.provider_id,
                service_id=service.id,
                booking_id=booking.id,
                start_time=end,
                end_time=end + buffer,
                is_booked=True,
            ),
        ]
