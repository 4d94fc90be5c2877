"""
Payment record repository.
"""

from typing import Any, Dict

from sqlalchemy.orm import Session

from marketplace.models.payment.payment import Payment
from marketplace.repositories.base.base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    """Payment records keyed by booking."""

    def __init__(self, db: Session):
        super().__init__(Payment, db)

    def update_for_booking(self, booking_id: str, values: Dict[str, Any]) -> int:
        return self.update_where([Payment.booking_id == booking_id], values)
