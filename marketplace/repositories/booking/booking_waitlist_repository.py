"""
Booking waitlist repository.

Provides the opportunity match query (preferred or alternative date), queue
ordering, the expiry sweep and per-service statistics.
"""

from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy import exists, func, or_, select
from sqlalchemy.orm import Session, selectinload

from marketplace.models.base.enums import WaitlistStatus
from marketplace.models.booking.booking_waitlist import BookingWaitlist, WaitlistAlternativeDate
from marketplace.repositories.base.base_repository import BaseRepository


class BookingWaitlistRepository(BaseRepository[BookingWaitlist]):
    """
    Repository for waitlist operations.

    Queue order is priority descending, then creation time ascending.
    """

    def __init__(self, db: Session):
        super().__init__(BookingWaitlist, db)

    QUEUE_ORDER = (BookingWaitlist.priority.desc(), BookingWaitlist.created_at.asc())

    def get_for_client(self, service_id: str, client_id: str) -> Optional[BookingWaitlist]:
        return self.find_one(
            BookingWaitlist.service_id == service_id,
            BookingWaitlist.client_id == client_id,
        )

    def matching_active(self, service_id: str, day: date, limit: int) -> List[BookingWaitlist]:
        """Active entries whose preferred or alternative date equals ``day``."""
        alternative_matches = exists().where(
            WaitlistAlternativeDate.waitlist_id == BookingWaitlist.id,
            WaitlistAlternativeDate.date == day,
        )
        query = (
            select(BookingWaitlist)
            .where(
                BookingWaitlist.service_id == service_id,
                BookingWaitlist.status == WaitlistStatus.ACTIVE,
                or_(BookingWaitlist.preferred_date == day, alternative_matches),
            )
            .order_by(*self.QUEUE_ORDER)
            .limit(limit)
            .options(selectinload(BookingWaitlist.alternative_dates))
        )
        self.db.flush()
        return list(self.db.execute(query).scalars().all())

    def active_for_service(self, service_id: str) -> List[BookingWaitlist]:
        return self.find(
            BookingWaitlist.service_id == service_id,
            BookingWaitlist.status == WaitlistStatus.ACTIVE,
            order_by=self.QUEUE_ORDER,
        )

    def open_for_client(self, client_id: str) -> List[BookingWaitlist]:
        return self.find(
            BookingWaitlist.client_id == client_id,
            BookingWaitlist.status.in_([WaitlistStatus.ACTIVE, WaitlistStatus.NOTIFIED]),
            order_by=(BookingWaitlist.created_at.desc(),),
        )

    def revert_expired(self, now: datetime) -> int:
        """Bulk-revert lapsed offers to active."""
        return self.update_where(
            [
                BookingWaitlist.status == WaitlistStatus.NOTIFIED,
                BookingWaitlist.expires_at <= now,
            ],
            {"status": WaitlistStatus.ACTIVE, "notified_at": None, "expires_at": None},
        )

    def replace_alternative_dates(self, entry: BookingWaitlist, days: List[date]) -> None:
        # old rows must be deleted before re-inserting the same days
        if entry.alternative_dates:
            entry.alternative_dates.clear()
            self.db.flush()
        entry.alternative_dates = [WaitlistAlternativeDate(date=day) for day in sorted(set(days))]
        self.db.flush()

    def status_counts(self, service_ids: List[str]) -> Dict[WaitlistStatus, int]:
        """Entry counts per status across the given services."""
        counts = {status: 0 for status in WaitlistStatus}
        if not service_ids:
            return counts
        query = (
            select(BookingWaitlist.status, func.count(BookingWaitlist.id))
            .where(BookingWaitlist.service_id.in_(service_ids))
            .group_by(BookingWaitlist.status)
        )
        self.db.flush()
        counts.update({status: count for status, count in self.db.execute(query).all()})
        return counts

    def active_counts_by_service(self, service_ids: List[str]) -> Dict[str, int]:
        if not service_ids:
            return {}
        query = (
            select(BookingWaitlist.service_id, func.count(BookingWaitlist.id))
            .where(
                BookingWaitlist.service_id.in_(service_ids),
                BookingWaitlist.status == WaitlistStatus.ACTIVE,
            )
            .group_by(BookingWaitlist.service_id)
        )
        self.db.flush()
        counts = {service_id: 0 for service_id in service_ids}
        counts.update({service_id: count for service_id, count in self.db.execute(query).all()})
        return counts
