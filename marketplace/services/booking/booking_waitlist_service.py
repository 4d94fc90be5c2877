"""
Waitlist matcher.

Clients queue for a date a service cannot currently take. When a booking on
that date is cancelled, the best-placed entries receive a time-boxed offer;
an offer is converted into a booking before it lapses, or reverts to the
queue during the expiry sweep.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.models.base.enums import NotificationType, WaitlistStatus
from marketplace.models.booking.booking import Booking
from marketplace.models.booking.booking_waitlist import BookingWaitlist
from marketplace.models.service.service import Service
from marketplace.repositories.booking.booking_waitlist_repository import BookingWaitlistRepository
from marketplace.schemas.booking.booking_request import BookingCreate
from marketplace.schemas.booking.booking_waitlist import (
    WaitlistConvert,
    WaitlistJoin,
    WaitlistNotify,
    WaitlistServiceSummary,
    WaitlistStats,
)
from marketplace.schemas.notification.notification_templates import (
    WaitlistAvailableVariables,
    WaitlistJoinedVariables,
)
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import (
    TransactionAborted,
    TransactionContext,
    TransactionManager,
)
from marketplace.services.booking.booking_service import BookingService
from marketplace.services.notification.booking_notification_service import format_date


@dataclass
class OpportunityReport:
    """Entries offered a freed slot by one opportunity check."""

    notified: int = 0
    waitlist_ids: List[str] = field(default_factory=list)


@dataclass
class WaitlistConversion:
    waitlist: BookingWaitlist
    booking: Booking


class BookingWaitlistService(BaseService[BookingWaitlist, BookingWaitlistRepository]):
    """
    Waitlist entries, offers and conversions.

    Registered as a cancellation listener of BookingService, so every
    committed cancellation runs ``check_waitlist_opportunities``.
    """

    def __init__(
        self,
        waitlist_repository: BookingWaitlistRepository,
        booking_service: BookingService,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        super().__init__(waitlist_repository, db_session, clock, transactions)
        self.booking_service = booking_service
        self.services = booking_service.services
        self.users = booking_service.users
        self.notifications = booking_service.notifications
        self.settings = settings or BookingSettings()

    # -------------------------------------------------------------------------
    # Joining and leaving
    # -------------------------------------------------------------------------

    def join_waitlist(self, actor_id: str, data: WaitlistJoin) -> ServiceResult[BookingWaitlist]:
        """
        Queue the actor for a service date.

        A cancelled or booked entry of the same client is reused; an active
        or notified one is a conflict.
        """
        try:
            with self.transactions.start() as ctx:
                service = self.services.get_by_id(data.service_id)
                if service is None:
                    return ServiceResult.not_found("Service", data.service_id)
                if not service.is_active:
                    return ServiceResult.validation_failure("Service is not available", field="service_id")

                client = self.users.get_by_id(actor_id)
                if client is None:
                    return ServiceResult.not_found("User", actor_id)

                now = self.clock.now()
                entry = self.repository.get_for_client(service.id, actor_id)
                if entry is not None and not entry.is_terminal:
                    return ServiceResult.conflict(
                        "You are already on the waitlist for this service",
                        details={"waitlist_id": entry.id, "status": entry.status.value},
                    )

                if entry is None:
                    entry = self.repository.create(
                        BookingWaitlist(
                            service_id=service.id,
                            client_id=actor_id,
                            preferred_date=data.preferred_date,
                            preferred_time=data.preferred_time,
                            duration=data.duration,
                            notes=data.notes,
                            priority=0,
                            status=WaitlistStatus.ACTIVE,
                            created_at=now,
                        )
                    )
                else:
                    entry.preferred_date = data.preferred_date
                    entry.preferred_time = data.preferred_time
                    entry.duration = data.duration
                    entry.notes = data.notes
                    entry.priority = 0
                    entry.status = WaitlistStatus.ACTIVE
                    entry.notified_at = None
                    entry.expires_at = None
                    entry.converted_booking_id = None
                    entry.created_at = now

                self.repository.replace_alternative_dates(entry, data.alternative_dates)

                self.notifications.notify(
                    ctx,
                    service.provider_id,
                    NotificationType.WAITLIST_JOINED,
                    WaitlistJoinedVariables(
                        service_name=service.title,
                        client_name=client.name,
                        preferred_date=data.preferred_date.isoformat(),
                    ),
                    reference_id=entry.id,
                )

            self._log_operation("join waitlist", entry.id, {"service_id": service.id})
            return ServiceResult.success(entry)
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "join waitlist", data.service_id)

    def leave_waitlist(self, actor_id: str, service_id: str) -> ServiceResult[BookingWaitlist]:
        """Withdraw the actor's active or notified entry on a service."""
        try:
            with self.transactions.start():
                entry = self.repository.get_for_client(service_id, actor_id)
                if entry is None or entry.is_terminal:
                    return ServiceResult.not_found("Waitlist entry", service_id)

                left = self.repository.update_guarded(
                    entry,
                    expected={"status": {WaitlistStatus.ACTIVE, WaitlistStatus.NOTIFIED}},
                    values={"status": WaitlistStatus.CANCELLED, "expires_at": None},
                )
                if not left:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Waitlist entry is already closed", entry.status.value)
                    )

            self._log_operation("leave waitlist", entry.id)
            return ServiceResult.success(entry)
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "leave waitlist", service_id)

    # -------------------------------------------------------------------------
    # Offers
    # -------------------------------------------------------------------------

    def check_waitlist_opportunities(self, service_id: str, freed_at: datetime) -> ServiceResult[OpportunityReport]:
        """
        Offer a freed date to the best-placed matching entries.

        Entries whose preferred or alternative date is the freed day are
        taken by priority, then by age, up to the configured batch. One
        failing offer does not stop the others.
        """
        report = OpportunityReport()
        try:
            with self.transactions.start() as ctx:
                service = self.services.get_by_id(service_id)
                if service is None:
                    return ServiceResult.not_found("Service", service_id)

                candidates = self.repository.matching_active(
                    service_id,
                    freed_at.date(),
                    self.settings.WAITLIST_OPPORTUNITY_BATCH,
                )
                for entry in candidates:
                    effects_mark = len(ctx.effects)
                    try:
                        with self.transactions.savepoint(f"waitlist_offer_{entry.id[:8]}"):
                            offered = self._offer(
                                ctx,
                                entry,
                                service,
                                freed_at.date(),
                                entry.preferred_time or self.settings.WAITLIST_DEFAULT_TIME,
                                self.settings.WAITLIST_OFFER_HOURS,
                            )
                        if offered:
                            report.notified += 1
                            report.waitlist_ids.append(entry.id)
                    except SQLAlchemyError as e:
                        del ctx.effects[effects_mark:]
                        self._logger.error(
                            f"Failed to notify waitlist entry {entry.id}: {e}",
                            exc_info=True,
                            extra={"waitlist_id": entry.id},
                        )

            self._log_operation(
                "check waitlist opportunities",
                service_id,
                {"freed_date": freed_at.date().isoformat(), "notified": report.notified},
            )
            return ServiceResult.success(report)
        except Exception as e:
            return self._handle_exception(e, "check waitlist opportunities", service_id)

    def notify_waitlist_availability(
        self,
        actor_id: str,
        waitlist_id: str,
        data: WaitlistNotify,
    ) -> ServiceResult[BookingWaitlist]:
        """Provider offers a concrete slot to one active entry."""
        try:
            with self.transactions.start() as ctx:
                entry = self.repository.get_by_id(waitlist_id)
                if entry is None:
                    return ServiceResult.not_found("Waitlist entry", waitlist_id)
                service = self.services.get_by_id(entry.service_id)
                if service is None or service.provider_id != actor_id:
                    return ServiceResult.forbidden("notify waitlist", "BookingWaitlist")
                if entry.status != WaitlistStatus.ACTIVE:
                    return ServiceResult.invalid_state("Waitlist entry is not active", entry.status.value)

                offered = self._offer(
                    ctx,
                    entry,
                    service,
                    data.available_date,
                    data.available_time,
                    data.expires_in_hours,
                )
                if not offered:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Waitlist entry is not active", entry.status.value)
                    )

            self._log_operation("notify waitlist availability", waitlist_id, {"expires_at": entry.expires_at.isoformat()})
            return ServiceResult.success(entry)
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "notify waitlist availability", waitlist_id)

    def _offer(
        self,
        ctx: TransactionContext,
        entry: BookingWaitlist,
        service: Service,
        available_date,
        available_time: str,
        expires_in_hours: int,
    ) -> bool:
        """Move an active entry to notified and message the client; False if it was no longer active."""
        now = self.clock.now()
        expires_at = now + timedelta(hours=expires_in_hours)
        notified = self.repository.update_guarded(
            entry,
            expected={"status": WaitlistStatus.ACTIVE},
            values={
                "status": WaitlistStatus.NOTIFIED,
                "notified_at": now,
                "expires_at": expires_at,
            },
        )
        if not notified:
            return False

        self.notifications.notify(
            ctx,
            entry.client_id,
            NotificationType.WAITLIST_AVAILABLE,
            WaitlistAvailableVariables(
                service_name=service.title,
                date=available_date.isoformat(),
                time=available_time,
                expires_at=f"{format_date(expires_at)} {expires_at:%H:%M}",
            ),
            reference_id=entry.id,
            realtime_event={
                "type": "waitlist_available",
                "waitlist_id": entry.id,
                "service_id": service.id,
                "date": available_date.isoformat(),
                "time": available_time,
                "expires_at": expires_at.isoformat(),
            },
        )
        return True

    def convert_to_booking(
        self,
        actor_id: str,
        waitlist_id: str,
        data: WaitlistConvert,
    ) -> ServiceResult[WaitlistConversion]:
        """
        Turn an unexpired offer into a pending booking for the entry's client.

        An offer found expired here reverts to the queue and the call fails
        with a validation error.
        """
        try:
            with self.transactions.start() as ctx:
                entry = self.repository.get_by_id(waitlist_id)
                if entry is None:
                    return ServiceResult.not_found("Waitlist entry", waitlist_id)
                service = self.services.get_by_id(entry.service_id)
                if service is None:
                    return ServiceResult.not_found("Service", entry.service_id)
                if actor_id not in (entry.client_id, service.provider_id):
                    return ServiceResult.forbidden("convert waitlist entry", "BookingWaitlist")
                if entry.status != WaitlistStatus.NOTIFIED:
                    return ServiceResult.invalid_state(
                        "Waitlist entry has no open offer",
                        entry.status.value,
                    )

                if entry.offer_expired(self.clock.now()):
                    self.repository.update_guarded(
                        entry,
                        expected={"status": WaitlistStatus.NOTIFIED},
                        values={"status": WaitlistStatus.ACTIVE, "notified_at": None, "expires_at": None},
                    )
                    return ServiceResult.validation_failure(
                        "Waitlist offer has expired",
                        details={"waitlist_id": entry.id},
                    )

                result = self.booking_service._create_booking_records(
                    ctx,
                    entry.client_id,
                    BookingCreate(
                        service_id=entry.service_id,
                        booking_date=data.booking_date,
                        end_date=data.end_date,
                        notes=entry.notes,
                    ),
                )
                if not result.is_success:
                    raise TransactionAborted(result)

                booked = self.repository.update_guarded(
                    entry,
                    expected={"status": WaitlistStatus.NOTIFIED},
                    values={
                        "status": WaitlistStatus.BOOKED,
                        "converted_booking_id": result.data.id,
                        "expires_at": None,
                    },
                )
                if not booked:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Waitlist entry has no open offer", entry.status.value)
                    )

            self._log_operation("convert waitlist to booking", waitlist_id, {"booking_id": result.data.id})
            return ServiceResult.success(WaitlistConversion(waitlist=entry, booking=result.data))
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "convert waitlist to booking", waitlist_id)

    def process_expired_notifications(self) -> ServiceResult[int]:
        """Return lapsed offers to the queue. Result data is the number reverted."""
        try:
            with self.transactions.start():
                reverted = self.repository.revert_expired(self.clock.now())
            self._log_operation("process expired waitlist notifications", extra={"reverted": reverted})
            return ServiceResult.success(reverted)
        except Exception as e:
            return self._handle_exception(e, "process expired waitlist notifications")

    # -------------------------------------------------------------------------
    # Management and queries
    # -------------------------------------------------------------------------

    def update_waitlist_priority(
        self,
        actor_id: str,
        waitlist_id: str,
        priority: int,
    ) -> ServiceResult[BookingWaitlist]:
        try:
            with self.transactions.start():
                entry = self.repository.get_by_id(waitlist_id)
                if entry is None:
                    return ServiceResult.not_found("Waitlist entry", waitlist_id)
                service = self.services.get_by_id(entry.service_id)
                if service is None or service.provider_id != actor_id:
                    return ServiceResult.forbidden("update waitlist priority", "BookingWaitlist")
                entry.priority = priority
            return ServiceResult.success(entry)
        except Exception as e:
            return self._handle_exception(e, "update waitlist priority", waitlist_id)

    def get_service_waitlist(self, actor_id: str, service_id: str) -> ServiceResult[List[BookingWaitlist]]:
        """Active entries of a service in queue order; provider only."""
        try:
            service = self.services.get_by_id(service_id)
            if service is None:
                return ServiceResult.not_found("Service", service_id)
            if service.provider_id != actor_id:
                return ServiceResult.forbidden("view service waitlist", "Service")
            return ServiceResult.success(self.repository.active_for_service(service_id))
        except Exception as e:
            return self._handle_exception(e, "get service waitlist", service_id)

    def get_user_waitlists(self, user_id: str) -> ServiceResult[List[BookingWaitlist]]:
        try:
            return ServiceResult.success(self.repository.open_for_client(user_id))
        except Exception as e:
            return self._handle_exception(e, "get user waitlists", user_id)

    def get_waitlist_stats(self, actor_id: str, provider_id: Optional[str] = None) -> ServiceResult[WaitlistStats]:
        """Entry counts by status and active entries per service, across a provider's services."""
        provider_id = provider_id or actor_id
        if provider_id != actor_id:
            return ServiceResult.forbidden("view waitlist stats", "Provider")
        try:
            services = self.services.for_provider(provider_id)
            service_ids = [service.id for service in services]
            active = self.repository.active_counts_by_service(service_ids)
            return ServiceResult.success(
                WaitlistStats(
                    by_status=self.repository.status_counts(service_ids),
                    by_service=[
                        WaitlistServiceSummary(
                            service_id=service.id,
                            service_name=service.title,
                            active_waitlists=active.get(service.id, 0),
                        )
                        for service in services
                    ],
                )
            )
        except Exception as e:
            return self._handle_exception(e, "get waitlist stats", provider_id)
