"""
Reminder scheduler.

Reminders are rows with a fire time; nothing here runs on a timer. An
external trigger calls ``send_pending_reminders`` and
``retry_failed_reminders`` periodically.
"""

from datetime import timedelta
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.core.exceptions import ContactUnavailableError, NotificationDeliveryError
from marketplace.models.base.enums import NotificationType, ReminderChannel, ReminderStatus
from marketplace.models.booking.booking_reminder import BookingReminder
from marketplace.models.user.user import User
from marketplace.repositories.booking.booking_reminder_repository import BookingReminderRepository
from marketplace.repositories.booking.booking_repository import BookingRepository
from marketplace.repositories.user.user_repository import UserRepository
from marketplace.schemas.booking.booking_reminder import (
    ReminderDispatchSummary,
    ReminderPreferences,
    ReminderPreferencesUpdate,
    ReminderStats,
)
from marketplace.schemas.notification.notification_templates import BookingReminderVariables
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.notification_dispatcher import NotificationChannel, NotificationDispatcher
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import TransactionManager
from marketplace.services.notification.booking_notification_service import (
    format_date,
    format_time,
    recipient_for,
)

# (channel, lead time before the booking starts)
REMINDER_SCHEDULE: Tuple[Tuple[ReminderChannel, timedelta], ...] = (
    (ReminderChannel.EMAIL, timedelta(hours=24)),
    (ReminderChannel.SMS, timedelta(hours=24)),
    (ReminderChannel.WHATSAPP, timedelta(hours=2)),
)


class BookingReminderService(BaseService[BookingReminder, BookingReminderRepository]):
    """Schedule, dispatch, retry and cancel booking reminders."""

    def __init__(
        self,
        reminder_repository: BookingReminderRepository,
        booking_repository: BookingRepository,
        user_repository: UserRepository,
        dispatcher: NotificationDispatcher,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
        schedule: Tuple[Tuple[ReminderChannel, timedelta], ...] = REMINDER_SCHEDULE,
    ):
        super().__init__(reminder_repository, db_session, clock, transactions)
        self.bookings = booking_repository
        self.users = user_repository
        self.dispatcher = dispatcher
        self.settings = settings or BookingSettings()
        self.schedule = schedule

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def schedule_booking_reminders(self, booking_id: str) -> ServiceResult[List[BookingReminder]]:
        """
        Create the pending reminders of a booking.

        Fire times already in the past are skipped, as is any slot that
        already has a reminder, so scheduling twice creates nothing new.
        """
        try:
            with self.transactions.start():
                booking = self.bookings.get_by_id(booking_id)
                if booking is None:
                    return ServiceResult.not_found("Booking", booking_id)
                if not booking.holds_capacity:
                    return ServiceResult.success([])

                now = self.clock.now()
                created = []
                for channel, lead in self.schedule:
                    scheduled_for = booking.booking_date - lead
                    if scheduled_for <= now:
                        continue
                    if self.repository.exists_for_slot(booking.id, channel, scheduled_for):
                        continue
                    created.append(
                        self.repository.create(
                            BookingReminder(
                                booking_id=booking.id,
                                type=channel,
                                scheduled_for=scheduled_for,
                                status=ReminderStatus.PENDING,
                                retry_count=0,
                            )
                        )
                    )

            self._log_operation("schedule booking reminders", booking_id, {"scheduled": len(created)})
            return ServiceResult.success(created)
        except Exception as e:
            return self._handle_exception(e, "schedule booking reminders", booking_id)

    def cancel_booking_reminders(self, booking_id: str) -> ServiceResult[int]:
        """Cancel the pending reminders of a booking; sent ones are left alone."""
        try:
            with self.transactions.start():
                cancelled = self.repository.cancel_pending_for_booking(booking_id)
            self._log_operation("cancel booking reminders", booking_id, {"cancelled": cancelled})
            return ServiceResult.success(cancelled)
        except Exception as e:
            return self._handle_exception(e, "cancel booking reminders", booking_id)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def send_pending_reminders(self, limit: Optional[int] = None) -> ServiceResult[ReminderDispatchSummary]:
        """Deliver every pending reminder whose fire time has come."""
        try:
            due_ids = [reminder.id for reminder in self.repository.due_pending(self.clock.now(), limit)]
        except Exception as e:
            return self._handle_exception(e, "load due reminders")
        summary = self._dispatch_all(due_ids)
        self._log_operation("send pending reminders", extra=summary.model_dump())
        return ServiceResult.success(summary)

    def retry_failed_reminders(self) -> ServiceResult[ReminderDispatchSummary]:
        """Re-attempt failed reminders under the retry bound whose booking is still ahead."""
        try:
            retry_ids = [
                reminder.id
                for reminder in self.repository.retryable_failed(
                    self.clock.now(),
                    self.settings.REMINDER_MAX_RETRIES,
                )
            ]
        except Exception as e:
            return self._handle_exception(e, "load failed reminders")
        summary = self._dispatch_all(retry_ids)
        self._log_operation("retry failed reminders", extra=summary.model_dump())
        return ServiceResult.success(summary)

    def _dispatch_all(self, reminder_ids: List[str]) -> ReminderDispatchSummary:
        summary = ReminderDispatchSummary()
        for reminder_id in reminder_ids:
            summary.processed += 1
            try:
                with self.transactions.start():
                    reminder = self.repository.get_by_id(reminder_id)
                    error = self._attempt(reminder)
            except Exception as e:
                self._logger.error(
                    f"Reminder {reminder_id} could not be processed: {e}",
                    exc_info=True,
                    extra={"reminder_id": reminder_id},
                )
                error = str(e)

            if error is None:
                summary.sent += 1
            else:
                summary.failed += 1
                summary.errors[reminder_id] = error
        return summary

    def _attempt(self, reminder: BookingReminder) -> Optional[str]:
        """
        Deliver one reminder and record the outcome on it.

        Returns:
            None when sent, else the error recorded on the reminder
        """
        booking = reminder.booking
        if not booking.holds_capacity:
            reminder.status = ReminderStatus.CANCELLED
            return f"Booking is {booking.status.value}"

        channel = NotificationChannel(reminder.type.value)
        client = self.users.get_by_id(booking.client_id)
        try:
            self._check_reachable(client, channel)
            result = self.dispatcher.deliver(
                NotificationType.BOOKING_REMINDER,
                recipient_for(client),
                BookingReminderVariables(
                    service_name=booking.service.title,
                    date=format_date(booking.booking_date),
                    time=format_time(booking.booking_date),
                    address=booking.address or "",
                ),
                channel,
            )
            if not result.success:
                raise NotificationDeliveryError(result.error or "Delivery failed", channel=channel.value)
        except NotificationDeliveryError as e:
            reminder.mark_failed(e.message)
            self._logger.warning(
                f"Reminder {reminder.id} failed: {e.message}",
                extra={"reminder_id": reminder.id, "channel": channel.value, "retry_count": reminder.retry_count},
            )
            return e.message
        except Exception as e:
            # a backend outside the ChannelBackend contract; still counts as an attempt
            error = f"Unexpected {type(e).__name__} from {channel.value} backend: {e}"
            reminder.mark_failed(error)
            self._logger.error(
                f"Reminder {reminder.id} failed: {error}",
                exc_info=True,
                extra={"reminder_id": reminder.id, "channel": channel.value, "retry_count": reminder.retry_count},
            )
            return error

        reminder.mark_sent(self.clock.now())
        return None

    @staticmethod
    def _check_reachable(client: Optional[User], channel: NotificationChannel) -> None:
        if client is None:
            raise ContactUnavailableError(channel.value, "recipient not found")
        if not client.accepts_channel(channel.value):
            raise ContactUnavailableError(channel.value, "recipient opted out")
        if not client.contact_for(channel.value):
            raise ContactUnavailableError(channel.value, "no contact information")

    # -------------------------------------------------------------------------
    # Stats and preferences
    # -------------------------------------------------------------------------

    def get_reminder_stats(self, user_id: Optional[str] = None) -> ServiceResult[ReminderStats]:
        """Reminder counts by status, across all bookings or those a user takes part in."""
        try:
            booking_ids = self.bookings.ids_for_user(user_id) if user_id else None
            counts = self.repository.status_counts(booking_ids)
            return ServiceResult.success(ReminderStats(by_status=counts, total=sum(counts.values())))
        except Exception as e:
            return self._handle_exception(e, "get reminder stats", user_id)

    def get_reminder_preferences(self, user_id: str) -> ServiceResult[ReminderPreferences]:
        try:
            user = self.users.get_by_id(user_id)
            if user is None:
                return ServiceResult.not_found("User", user_id)
            return ServiceResult.success(self._preferences(user))
        except Exception as e:
            return self._handle_exception(e, "get reminder preferences", user_id)

    def update_reminder_preferences(
        self,
        user_id: str,
        data: ReminderPreferencesUpdate,
    ) -> ServiceResult[ReminderPreferences]:
        """Change the channels a user receives reminders on; omitted channels keep their setting."""
        try:
            with self.transactions.start():
                user = self.users.get_by_id(user_id)
                if user is None:
                    return ServiceResult.not_found("User", user_id)
                for channel, enabled in data.model_dump(exclude_none=True).items():
                    setattr(user, f"notification_{channel}", enabled)
            self._log_operation("update reminder preferences", user_id)
            return ServiceResult.success(self._preferences(user))
        except Exception as e:
            return self._handle_exception(e, "update reminder preferences", user_id)

    @staticmethod
    def _preferences(user: User) -> ReminderPreferences:
        return ReminderPreferences(
            email=user.notification_email,
            sms=user.notification_sms,
            whatsapp=user.notification_whatsapp,
        )
