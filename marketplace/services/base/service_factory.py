"""
Service factory for dependency injection and service instantiation.

One factory per database session. Process-wide collaborators (clock,
dispatcher, realtime publisher, settings) are built once by the application
and handed in; everything bound to the session is created here and shares
one TransactionManager, so composed operations join a single unit of work.
"""

from typing import Callable, Dict, Optional, TypeVar

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock, SystemClock
from marketplace.core.config import BookingSettings, NotificationSettings
from marketplace.core.logging import get_logger
from marketplace.repositories.booking.booking_reminder_repository import BookingReminderRepository
from marketplace.repositories.booking.booking_repository import BookingRepository
from marketplace.repositories.booking.booking_waitlist_repository import BookingWaitlistRepository
from marketplace.repositories.booking.group_booking_repository import GroupBookingRepository
from marketplace.repositories.booking.payment_repository import PaymentRepository
from marketplace.repositories.booking.recurring_booking_repository import RecurringBookingRepository
from marketplace.repositories.booking.time_slot_repository import TimeSlotRepository
from marketplace.repositories.notification.notification_repository import NotificationRepository
from marketplace.repositories.service.service_repository import ServiceRepository
from marketplace.repositories.user.user_repository import UserRepository
from marketplace.services.base.notification_dispatcher import NotificationDispatcher
from marketplace.services.base.realtime_publisher import NullRealtimePublisher, RealtimePublisher
from marketplace.services.base.transaction_manager import TransactionManager
from marketplace.services.booking.booking_capacity_service import BookingCapacityService
from marketplace.services.booking.booking_pricing_service import BookingPricingService
from marketplace.services.booking.booking_reminder_service import BookingReminderService
from marketplace.services.booking.booking_service import BookingService
from marketplace.services.booking.booking_waitlist_service import BookingWaitlistService
from marketplace.services.booking.group_booking_service import GroupBookingService
from marketplace.services.booking.recurring_booking_service import RecurringBookingService
from marketplace.services.jobs.scheduled_jobs import ScheduledJobs
from marketplace.services.notification.booking_notification_service import BookingNotificationService

T = TypeVar("T")


class ServiceFactory:
    """
    Factory for creating service instances with dependency injection.

    Provides:
    - Centralized service creation
    - Instance reuse per session
    - The wiring between booking, reminders and the waitlist
    """

    def __init__(
        self,
        db_session: Session,
        clock: Optional[Clock] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        realtime: Optional[RealtimePublisher] = None,
        booking_settings: Optional[BookingSettings] = None,
        notification_settings: Optional[NotificationSettings] = None,
    ):
        """
        Initialize service factory.

        Args:
            db_session: SQLAlchemy database session
            clock: Source of "now" shared by every service
            dispatcher: Multi-channel notification dispatcher
            realtime: Live-connection publisher
            booking_settings: Business rules
            notification_settings: Notification defaults
        """
        self.db = db_session
        self.clock = clock or SystemClock()
        self.notification_settings = notification_settings or NotificationSettings()
        self.dispatcher = dispatcher or NotificationDispatcher(
            sms_max_length=self.notification_settings.SMS_MAX_LENGTH,
        )
        self.realtime = realtime or NullRealtimePublisher()
        self.booking_settings = booking_settings or BookingSettings()
        self.transactions = TransactionManager(db_session)
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

        self._service_cache: Dict[str, object] = {}

    def _cached(self, key: str, build: Callable[[], T]) -> T:
        if key not in self._service_cache:
            self._service_cache[key] = build()
            self._logger.debug(f"Created {key} instance")
        return self._service_cache[key]

    # -------------------------------------------------------------------------
    # Repositories
    # -------------------------------------------------------------------------

    def _repository(self, repository_class):
        return self._cached(repository_class.__name__, lambda: repository_class(self.db))

    # -------------------------------------------------------------------------
    # Building blocks
    # -------------------------------------------------------------------------

    def notifications(self) -> BookingNotificationService:
        return self._cached(
            "booking_notification_service",
            lambda: BookingNotificationService(
                self._repository(NotificationRepository),
                self._repository(UserRepository),
                self.dispatcher,
                self.realtime,
                self.notification_settings,
            ),
        )

    def pricing(self) -> BookingPricingService:
        return self._cached(
            "booking_pricing_service",
            lambda: BookingPricingService(
                self._repository(ServiceRepository),
                self.db,
                self.booking_settings,
                self.clock,
                self.transactions,
            ),
        )

    def capacity(self) -> BookingCapacityService:
        return self._cached(
            "booking_capacity_service",
            lambda: BookingCapacityService(
                self._repository(TimeSlotRepository),
                self._repository(BookingRepository),
                self._repository(ServiceRepository),
                self.db,
                self.clock,
                self.transactions,
            ),
        )

    def reminders(self) -> BookingReminderService:
        return self._cached(
            "booking_reminder_service",
            lambda: BookingReminderService(
                self._repository(BookingReminderRepository),
                self._repository(BookingRepository),
                self._repository(UserRepository),
                self.dispatcher,
                self.db,
                self.booking_settings,
                self.clock,
                self.transactions,
            ),
        )

    # -------------------------------------------------------------------------
    # Booking services
    # -------------------------------------------------------------------------

    def bookings(self) -> BookingService:
        """Booking service with reminders and the waitlist check wired in."""
        if "booking_service" in self._service_cache:
            return self._service_cache["booking_service"]

        service = BookingService(
            self._repository(BookingRepository),
            self._repository(PaymentRepository),
            self._repository(ServiceRepository),
            self._repository(UserRepository),
            self.pricing(),
            self.capacity(),
            self.notifications(),
            self.db,
            settings=self.booking_settings,
            clock=self.clock,
            transactions=self.transactions,
            reminders=self.reminders(),
        )
        self._service_cache["booking_service"] = service

        service.add_cancellation_listener(self.waitlist().check_waitlist_opportunities)
        return service

    def recurring(self) -> RecurringBookingService:
        return self._cached(
            "recurring_booking_service",
            lambda: RecurringBookingService(
                self._repository(RecurringBookingRepository),
                self.bookings(),
                self.db,
                self.booking_settings,
                self.clock,
                self.transactions,
            ),
        )

    def groups(self) -> GroupBookingService:
        return self._cached(
            "group_booking_service",
            lambda: GroupBookingService(
                self._repository(GroupBookingRepository),
                self.bookings(),
                self.db,
                self.booking_settings,
                self.clock,
                self.transactions,
            ),
        )

    def waitlist(self) -> BookingWaitlistService:
        return self._cached(
            "booking_waitlist_service",
            lambda: BookingWaitlistService(
                self._repository(BookingWaitlistRepository),
                self.bookings(),
                self.db,
                self.booking_settings,
                self.clock,
                self.transactions,
            ),
        )

    def jobs(self) -> ScheduledJobs:
        return self._cached(
            "scheduled_jobs",
            lambda: ScheduledJobs(
                recurring=self.recurring(),
                reminders=self.reminders(),
                waitlist=self.waitlist(),
                clock=self.clock,
            ),
        )
