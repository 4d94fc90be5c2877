"""
Booking repository.

Capacity counts, per-user listings with cursor pagination, and the child
lookups used by the recurring and group coordinators.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.orm import Session

from marketplace.models.base.enums import BookingStatus
from marketplace.models.booking.booking import Booking, BookingAddOn
from marketplace.repositories.base.base_repository import BaseRepository


def day_bounds(day: date):
    """Half-open [start, end) datetime range of a calendar day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class BookingRepository(BaseRepository[Booking]):
    """
    Repository for booking operations.

    Provides:
    - Same-day live booking counts for capacity checks
    - Client and provider listings, newest first
    - Recurring series and group member lookups
    """

    def __init__(self, db: Session):
        super().__init__(Booking, db)

    # ==================== CAPACITY ====================

    def count_live_on_day(self, service_id: str, day: date) -> int:
        """Count pending/accepted bookings of a service on a calendar day."""
        start, end = day_bounds(day)
        return self.count(
            Booking.service_id == service_id,
            Booking.booking_date >= start,
            Booking.booking_date < end,
            Booking.status.in_(BookingStatus.live()),
        )

    # ==================== LISTINGS ====================

    def list_for_user(
        self,
        user_id: str,
        role: str,
        status: Optional[BookingStatus] = None,
        limit: int = 20,
        cursor: Optional[str] = None,
    ) -> List[Booking]:
        """
        List a user's bookings as client or provider, newest first.

        ``cursor`` is the id of the last booking of the previous page. One row
        beyond ``limit`` is returned so callers can tell whether more exist.
        """
        party_column = Booking.client_id if role == "client" else Booking.provider_id
        criteria = [party_column == user_id]
        if status is not None:
            criteria.append(Booking.status == status)

        if cursor:
            anchor = self.get_by_id(cursor)
            if anchor is not None:
                criteria.append(
                    or_(
                        Booking.created_at < anchor.created_at,
                        and_(Booking.created_at == anchor.created_at, Booking.id < anchor.id),
                    )
                )

        return self.find(
            *criteria,
            order_by=(Booking.created_at.desc(), Booking.id.desc()),
            limit=limit + 1,
        )

    def ids_for_user(self, user_id: str) -> List[str]:
        """Ids of every booking the user takes part in, as client or provider."""
        self.db.flush()
        query = select(Booking.id).where(or_(Booking.client_id == user_id, Booking.provider_id == user_id))
        return list(self.db.execute(query).scalars().all())

    # ==================== RECURRING CHILDREN ====================

    def future_live_children(self, recurring_booking_id: str, now: datetime) -> List[Booking]:
        return self.find(
            Booking.recurring_booking_id == recurring_booking_id,
            Booking.booking_date > now,
            Booking.status.in_(BookingStatus.live()),
            order_by=(Booking.booking_date,),
        )

    def latest_child(self, recurring_booking_id: str) -> Optional[Booking]:
        query = (
            select(Booking)
            .where(Booking.recurring_booking_id == recurring_booking_id)
            .order_by(Booking.booking_date.desc())
            .limit(1)
        )
        self.db.flush()
        return self.db.execute(query).scalars().first()

    def count_scheduled_children(self, recurring_booking_id: str) -> int:
        """Children that were not cancelled; cancelled ones give their occurrence back."""
        return self.count(
            Booking.recurring_booking_id == recurring_booking_id,
            Booking.status != BookingStatus.CANCELLED,
        )

    def list_children(self, recurring_booking_id: str) -> List[Booking]:
        return self.find(
            Booking.recurring_booking_id == recurring_booking_id,
            order_by=(Booking.booking_date,),
        )

    # ==================== GROUP MEMBERS ====================

    def group_members(self, group_booking_id: str) -> List[Booking]:
        """Member bookings that still count towards the group."""
        return self.find(
            Booking.group_booking_id == group_booking_id,
            Booking.status.notin_([BookingStatus.CANCELLED, BookingStatus.DECLINED]),
            order_by=(Booking.created_at,),
        )

    def count_group_members(self, group_booking_id: str) -> int:
        return self.count(
            Booking.group_booking_id == group_booking_id,
            Booking.status.notin_([BookingStatus.CANCELLED, BookingStatus.DECLINED]),
        )

    def group_member_booking(self, group_booking_id: str, client_id: str) -> Optional[Booking]:
        return self.find_one(
            Booking.group_booking_id == group_booking_id,
            Booking.client_id == client_id,
            Booking.status.notin_([BookingStatus.CANCELLED, BookingStatus.DECLINED]),
        )

    def count_members_by_group(self, group_booking_ids: List[str]) -> dict:
        """Member counts keyed by group id, for listings."""
        if not group_booking_ids:
            return {}
        query = (
            select(Booking.group_booking_id, func.count(Booking.id))
            .where(
                Booking.group_booking_id.in_(group_booking_ids),
                Booking.status.notin_([BookingStatus.CANCELLED, BookingStatus.DECLINED]),
            )
            .group_by(Booking.group_booking_id)
        )
        self.db.flush()
        return {group_id: count for group_id, count in self.db.execute(query).all()}

    # ==================== ADD-ONS ====================

    def add_add_ons(self, booking: Booking, priced_add_ons: List[tuple]) -> List[BookingAddOn]:
        """Record (add_on_id, price) pairs charged on a booking."""
        rows = [
            BookingAddOn(booking_id=booking.id, add_on_id=add_on_id, price=price)
            for add_on_id, price in priced_add_ons
        ]
        if rows:
            self.db.add_all(rows)
            self.db.flush()
        return rows
