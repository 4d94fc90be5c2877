"""
Service catalogue repository.

Owns the atomic booking counter and the row lock taken before a capacity
check.
"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from marketplace.models.service.service import (
    GroupBookingSettings,
    Service,
    ServiceAddOn,
    ServiceBundle,
)
from marketplace.repositories.base.base_repository import BaseRepository


class ServiceRepository(BaseRepository[Service]):
    """
    Repository for services, their add-ons, bundles and group settings.
    """

    def __init__(self, db: Session):
        super().__init__(Service, db)

    def get_for_update(self, service_id: str) -> Optional[Service]:
        """
        Load a service with a row lock held until the transaction ends.

        Concurrent bookings of the same service serialize on this lock, so the
        per-day count that follows cannot be raced. Dialects without row locks
        ignore FOR UPDATE.
        """
        self.db.flush()
        query = select(Service).where(Service.id == service_id).with_for_update()
        return self.db.execute(query).scalars().first()

    def adjust_booking_count(self, service_id: str, delta: int) -> None:
        """Atomically add ``delta`` to the booking counter, never going below zero."""
        criteria = [Service.id == service_id]
        if delta < 0:
            criteria.append(Service.booking_count >= -delta)
        changed = self.update_where(criteria, {"booking_count": Service.booking_count + delta})
        service = self.db.get(Service, service_id)
        if changed and service is not None:
            self.db.refresh(service, attribute_names=["booking_count"])

    def for_provider(self, provider_id: str) -> List[Service]:
        return self.find(Service.provider_id == provider_id, order_by=(Service.created_at,))

    # ==================== ADD-ONS & BUNDLES ====================

    def get_add_ons(self, add_on_ids: List[str]) -> List[ServiceAddOn]:
        if not add_on_ids:
            return []
        self.db.flush()
        query = select(ServiceAddOn).where(ServiceAddOn.id.in_(add_on_ids))
        return list(self.db.execute(query).scalars().all())

    def get_bundle(self, bundle_id: str) -> Optional[ServiceBundle]:
        self.db.flush()
        query = (
            select(ServiceBundle)
            .where(ServiceBundle.id == bundle_id)
            .options(selectinload(ServiceBundle.services))
        )
        return self.db.execute(query).scalars().first()

    def get_group_settings(self, service_id: str) -> Optional[GroupBookingSettings]:
        self.db.flush()
        query = select(GroupBookingSettings).where(GroupBookingSettings.service_id == service_id)
        return self.db.execute(query).scalars().first()
