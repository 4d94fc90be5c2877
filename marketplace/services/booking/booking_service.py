"""
Booking service: the booking state machine.

    pending  -> accepted | declined | cancelled
    accepted -> completed | cancelled

Every transition is a guarded UPDATE on the expected current status, so a
repeated or racing transition fails with INVALID_STATE instead of applying
twice. The primary write, the payment update and the booking counter change
commit together; notifications, reminders, buffer blocking and the waitlist
check run afterwards as independent post-commit effects.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from functools import partial
from typing import Any, Callable, List, Optional

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.models.base.enums import BookingStatus, NotificationType, PaymentStatus
from marketplace.models.booking.booking import Booking
from marketplace.models.payment.payment import Payment
from marketplace.repositories.booking.booking_repository import BookingRepository
from marketplace.repositories.booking.payment_repository import PaymentRepository
from marketplace.repositories.service.service_repository import ServiceRepository
from marketplace.repositories.user.user_repository import UserRepository
from marketplace.schemas.booking.booking_request import BookingCreate, BookingStatusUpdate
from marketplace.schemas.notification.notification_templates import (
    BookingAcceptedVariables,
    BookingCancelledVariables,
    BookingCompletedVariables,
    BookingCreatedVariables,
    BookingDeclinedVariables,
)
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import (
    TransactionAborted,
    TransactionContext,
    TransactionManager,
)
from marketplace.services.booking.booking_capacity_service import BookingCapacityService
from marketplace.services.booking.booking_pricing_service import BookingPricingService, fee_split
from marketplace.services.notification.booking_notification_service import (
    BookingNotificationService,
    format_date,
    format_time,
)

CancellationListener = Callable[[str, datetime], Any]


@dataclass
class BookingPage:
    items: List[Booking] = field(default_factory=list)
    next_cursor: Optional[str] = None
    has_more: bool = False


class BookingService(BaseService[Booking, BookingRepository]):
    """
    Orchestrates booking creation and status transitions.

    Group, recurring and waitlist flows create bookings through
    ``_create_booking_records`` and cancel them through
    ``_cancel_booking_records`` so pricing, payment records, counters and
    notifications stay in one place.
    """

    def __init__(
        self,
        booking_repository: BookingRepository,
        payment_repository: PaymentRepository,
        service_repository: ServiceRepository,
        user_repository: UserRepository,
        pricing: BookingPricingService,
        capacity: BookingCapacityService,
        notifications: BookingNotificationService,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
        reminders: Optional[Any] = None,
    ):
        super().__init__(booking_repository, db_session, clock, transactions)
        self.payments = payment_repository
        self.services = service_repository
        self.users = user_repository
        self.pricing = pricing
        self.capacity = capacity
        self.notifications = notifications
        self.settings = settings or BookingSettings()
        self.reminders = reminders
        self._cancellation_listeners: List[CancellationListener] = []

    def add_cancellation_listener(self, listener: CancellationListener) -> None:
        """Register ``listener(service_id, freed_at)``, run after each committed cancellation."""
        self._cancellation_listeners.append(listener)

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_booking(self, actor_id: str, data: BookingCreate) -> ServiceResult[Booking]:
        """
        Book a service as ``actor_id``.

        Returns:
            ServiceResult with the pending booking, its payment record attached
        """
        try:
            with self.transactions.start() as ctx:
                result = self._create_booking_records(ctx, actor_id, data)
                if not result.is_success:
                    raise TransactionAborted(result)

            booking = result.data
            self._log_operation(
                "create booking",
                booking.id,
                {"service_id": booking.service_id, "total_price": booking.total_price},
            )
            return result
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "create booking", data.service_id)

    def _create_booking_records(
        self,
        ctx: TransactionContext,
        client_id: str,
        data: BookingCreate,
        recurring_booking_id: Optional[str] = None,
        group_booking_id: Optional[str] = None,
        unit_price: Optional[int] = None,
    ) -> ServiceResult[Booking]:
        """
        Validate, price and persist one booking with its payment record.

        Runs inside the caller's unit of work. Failures are returned before
        anything is written. ``unit_price`` replaces catalogue pricing (group
        members pay the per-person price).
        """
        service = self.services.get_for_update(data.service_id)
        if service is None:
            return ServiceResult.not_found("Service", data.service_id)
        if not service.is_active:
            return ServiceResult.validation_failure("Service is not available for booking", field="service_id")
        if service.provider_id == client_id:
            return ServiceResult.validation_failure("Cannot book your own service", field="service_id")
        if data.end_date is not None and data.end_date <= data.booking_date:
            return ServiceResult.validation_failure("End date must be after the booking date", field="end_date")

        client = self.users.get_by_id(client_id)
        if client is None:
            return ServiceResult.not_found("User", client_id)

        if unit_price is None:
            priced = self.pricing.price_booking(
                service,
                data.booking_date,
                data.end_date,
                data.bundle_id,
                data.add_on_ids,
            )
            if not priced.is_success:
                return priced
            total_price = priced.data.total_price
            add_on_prices = priced.data.add_on_prices
        else:
            total_price = unit_price
            add_on_prices = ()

        capacity = self.capacity.check_daily_capacity(service, data.booking_date.date())
        if not capacity.is_success:
            return capacity
        buffer = self.capacity.check_buffer_conflicts(service, data.booking_date, data.end_date)
        if not buffer.is_success:
            return buffer

        booking = self.repository.create(
            Booking(
                service_id=service.id,
                client_id=client_id,
                provider_id=service.provider_id,
                booking_date=data.booking_date,
                end_date=data.end_date,
                total_price=total_price,
                status=BookingStatus.PENDING,
                notes=data.notes,
                address=data.address or service.location,
                is_recurring=recurring_booking_id is not None,
                recurring_booking_id=recurring_booking_id,
                group_booking_id=group_booking_id,
            )
        )
        self.repository.add_add_ons(booking, list(add_on_prices))

        service_fee, net_amount = fee_split(total_price, self.settings.PLATFORM_FEE_PERCENT)
        self.payments.create(
            Payment(
                booking_id=booking.id,
                amount=total_price,
                status=PaymentStatus.PENDING,
                service_fee=service_fee,
                net_amount=net_amount,
            )
        )
        self.services.adjust_booking_count(service.id, 1)

        self.notifications.notify(
            ctx,
            service.provider_id,
            NotificationType.BOOKING_CREATED,
            BookingCreatedVariables(
                service_name=service.title,
                customer_name=client.name,
                date=format_date(booking.booking_date),
                time=format_time(booking.booking_date),
                address=booking.address or "",
            ),
            reference_id=booking.id,
            realtime_event={
                "type": "new_booking",
                "booking_id": booking.id,
                "service_name": service.title,
                "customer_name": client.name,
                "date": booking.booking_date.isoformat(),
            },
        )
        if self.reminders is not None:
            ctx.after_commit(
                f"schedule_reminders:{booking.id}",
                partial(self.reminders.schedule_booking_reminders, booking.id),
            )
        if service.has_buffer:
            ctx.after_commit(
                f"block_buffer:{booking.id}",
                partial(self.capacity.block_buffer_windows, booking.id),
            )
        return ServiceResult.success(booking)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def accept_booking(self, actor_id: str, booking_id: str) -> ServiceResult[Booking]:
        """Provider accepts a pending booking."""
        try:
            with self.transactions.start() as ctx:
                booking = self.repository.get_by_id(booking_id)
                if booking is None:
                    return ServiceResult.not_found("Booking", booking_id)
                if booking.provider_id != actor_id:
                    return ServiceResult.forbidden("accept booking", "Booking")
                if booking.status != BookingStatus.PENDING:
                    return ServiceResult.invalid_state("Booking is not in pending status", booking.status.value)

                accepted = self.repository.update_guarded(
                    booking,
                    expected={"status": BookingStatus.PENDING},
                    values={"status": BookingStatus.ACCEPTED},
                )
                if not accepted:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Booking is not in pending status", booking.status.value)
                    )

                provider = self.users.get_by_id(booking.provider_id)
                self.notifications.notify(
                    ctx,
                    booking.client_id,
                    NotificationType.BOOKING_ACCEPTED,
                    BookingAcceptedVariables(
                        service_name=booking.service.title,
                        provider_name=provider.name if provider else "",
                        date=format_date(booking.booking_date),
                        time=format_time(booking.booking_date),
                    ),
                    reference_id=booking.id,
                    realtime_event=self._status_event(booking),
                )

            self._log_operation("accept booking", booking_id)
            return ServiceResult.success(booking)
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "accept booking", booking_id)

    def decline_booking(
        self,
        actor_id: str,
        booking_id: str,
        reason: Optional[str] = None,
    ) -> ServiceResult[Booking]:
        """Provider declines a pending booking; the payment fails and capacity is released."""
        try:
            with self.transactions.start() as ctx:
                booking = self.repository.get_by_id(booking_id)
                if booking is None:
                    return ServiceResult.not_found("Booking", booking_id)
                if booking.provider_id != actor_id:
                    return ServiceResult.forbidden("decline booking", "Booking")
                if booking.status != BookingStatus.PENDING:
                    return ServiceResult.invalid_state("Booking is not in pending status", booking.status.value)

                now = self.clock.now()
                declined = self.repository.update_guarded(
                    booking,
                    expected={"status": BookingStatus.PENDING},
                    values={
                        "status": BookingStatus.DECLINED,
                        "cancellation_reason": reason,
                        "cancelled_by": actor_id,
                        "cancelled_at": now,
                    },
                )
                if not declined:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Booking is not in pending status", booking.status.value)
                    )

                self.payments.update_for_booking(booking.id, {"status": PaymentStatus.FAILED})
                self.services.adjust_booking_count(booking.service_id, -1)
                self.capacity.release_buffer_windows(booking.id)

                self.notifications.notify(
                    ctx,
                    booking.client_id,
                    NotificationType.BOOKING_DECLINED,
                    BookingDeclinedVariables(
                        service_name=booking.service.title,
                        reason=reason or "No reason given",
                    ),
                    reference_id=booking.id,
                    realtime_event=self._status_event(booking),
                )
                self._register_reminder_cancellation(ctx, booking.id)

            self._log_operation("decline booking", booking_id, {"reason": reason})
            return ServiceResult.success(booking)
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "decline booking", booking_id)

    def update_booking_status(
        self,
        actor_id: str,
        booking_id: str,
        data: BookingStatusUpdate,
    ) -> ServiceResult[Booking]:
        """
        Complete (provider, from accepted) or cancel (either party, from
        pending or accepted) a booking.
        """
        try:
            with self.transactions.start() as ctx:
                booking = self.repository.get_by_id(booking_id)
                if booking is None:
                    return ServiceResult.not_found("Booking", booking_id)

                if data.status == BookingStatus.COMPLETED:
                    result = self._complete(ctx, booking, actor_id)
                elif data.status == BookingStatus.CANCELLED:
                    result = self._cancel(ctx, booking, actor_id, data.reason)
                else:
                    result = ServiceResult.validation_failure(
                        "Status can only be updated to completed or cancelled",
                        field="status",
                    )
                if not result.is_success:
                    raise TransactionAborted(result)

            self._log_operation("update booking status", booking_id, {"status": data.status.value})
            return result
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "update booking status", booking_id)

    def _complete(self, ctx: TransactionContext, booking: Booking, actor_id: str) -> ServiceResult[Booking]:
        if booking.provider_id != actor_id:
            return ServiceResult.forbidden("complete booking", "Booking")
        if booking.status != BookingStatus.ACCEPTED:
            return ServiceResult.invalid_state("Only accepted bookings can be completed", booking.status.value)

        now = self.clock.now()
        completed = self.repository.update_guarded(
            booking,
            expected={"status": BookingStatus.ACCEPTED},
            values={"status": BookingStatus.COMPLETED, "completed_at": now},
        )
        if not completed:
            return ServiceResult.invalid_state("Only accepted bookings can be completed", booking.status.value)

        self.payments.update_for_booking(
            booking.id,
            {
                "status": PaymentStatus.PAID,
                "escrow_release_date": now + timedelta(days=self.settings.ESCROW_RELEASE_DAYS),
            },
        )

        provider = self.users.get_by_id(booking.provider_id)
        self.notifications.notify(
            ctx,
            booking.client_id,
            NotificationType.BOOKING_COMPLETED,
            BookingCompletedVariables(
                service_name=booking.service.title,
                provider_name=provider.name if provider else "",
            ),
            reference_id=booking.id,
            realtime_event=self._status_event(booking),
        )
        return ServiceResult.success(booking)

    def _cancel(
        self,
        ctx: TransactionContext,
        booking: Booking,
        actor_id: str,
        reason: Optional[str],
    ) -> ServiceResult[Booking]:
        if not booking.involves(actor_id):
            return ServiceResult.forbidden("cancel booking", "Booking")
        if not booking.holds_capacity:
            return ServiceResult.invalid_state(
                "Only pending or accepted bookings can be cancelled",
                booking.status.value,
            )
        if not self._cancel_booking_records(ctx, booking, actor_id, reason):
            return ServiceResult.invalid_state(
                "Only pending or accepted bookings can be cancelled",
                booking.status.value,
            )
        return ServiceResult.success(booking)

    def _cancel_booking_records(
        self,
        ctx: TransactionContext,
        booking: Booking,
        actor_id: str,
        reason: Optional[str],
        notify: bool = True,
    ) -> bool:
        """
        Cancel a live booking inside the caller's unit of work.

        Refunds the payment, releases the booking counter and buffer slots,
        and registers reminder cancellation and the cancellation listeners as
        post-commit effects.

        Returns:
            False when the booking was no longer pending or accepted
        """
        cancelled = self.repository.update_guarded(
            booking,
            expected={"status": BookingStatus.live()},
            values={
                "status": BookingStatus.CANCELLED,
                "cancellation_reason": reason,
                "cancelled_by": actor_id,
                "cancelled_at": self.clock.now(),
            },
        )
        if not cancelled:
            return False

        self.payments.update_for_booking(
            booking.id,
            {
                "status": PaymentStatus.REFUNDED,
                "refund_amount": Payment.amount,
                "refunded_at": self.clock.now(),
            },
        )
        self.services.adjust_booking_count(booking.service_id, -1)
        self.capacity.release_buffer_windows(booking.id)

        if notify:
            if booking.involves(actor_id):
                recipients = [booking.counterpart_of(actor_id)]
            else:
                recipients = [booking.client_id, booking.provider_id]
            for recipient_id in recipients:
                self.notifications.notify(
                    ctx,
                    recipient_id,
                    NotificationType.BOOKING_CANCELLED,
                    BookingCancelledVariables(
                        service_name=booking.service.title,
                        date=format_date(booking.booking_date),
                        reason=reason or "No reason given",
                    ),
                    reference_id=booking.id,
                    realtime_event=self._status_event(booking),
                )

        self._register_reminder_cancellation(ctx, booking.id)
        for index, listener in enumerate(self._cancellation_listeners):
            ctx.after_commit(
                f"cancellation_listener:{index}:{booking.id}",
                partial(listener, booking.service_id, booking.booking_date),
            )
        return True

    def _register_reminder_cancellation(self, ctx: TransactionContext, booking_id: str) -> None:
        if self.reminders is not None:
            ctx.after_commit(
                f"cancel_reminders:{booking_id}",
                partial(self.reminders.cancel_booking_reminders, booking_id),
            )

    @staticmethod
    def _status_event(booking: Booking) -> dict:
        return {
            "type": "booking_update",
            "booking_id": booking.id,
            "status": booking.status.value,
        }

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_booking(self, actor_id: str, booking_id: str) -> ServiceResult[Booking]:
        """A booking, visible to its client and provider only."""
        try:
            booking = self.repository.get_by_id(booking_id)
            if booking is None:
                return ServiceResult.not_found("Booking", booking_id)
            if not booking.involves(actor_id):
                return ServiceResult.forbidden("view booking", "Booking")
            return ServiceResult.success(booking)
        except Exception as e:
            return self._handle_exception(e, "get booking", booking_id)

    def list_bookings(
        self,
        actor_id: str,
        role: str,
        status: Optional[BookingStatus] = None,
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
    ) -> ServiceResult[BookingPage]:
        """List the actor's bookings as client or provider, newest first."""
        if role not in ("client", "provider"):
            return ServiceResult.validation_failure("Role must be client or provider", field="role")

        page_size = limit or self.settings.DEFAULT_PAGE_SIZE
        if page_size < 1 or page_size > self.settings.MAX_PAGE_SIZE:
            return ServiceResult.validation_failure(
                f"Limit must be between 1 and {self.settings.MAX_PAGE_SIZE}",
                field="limit",
            )

        try:
            rows = self.repository.list_for_user(actor_id, role, status, page_size, cursor)
            has_more = len(rows) > page_size
            items = rows[:page_size]
            return ServiceResult.success(
                BookingPage(
                    items=items,
                    next_cursor=items[-1].id if has_more else None,
                    has_more=has_more,
                )
            )
        except Exception as e:
            return self._handle_exception(e, "list bookings", actor_id)
