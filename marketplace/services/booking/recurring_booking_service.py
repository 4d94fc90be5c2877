"""
Recurring booking service.

A series materializes its bookings in small batches. Each occurrence is
created inside its own savepoint so one failing date (a full day, a blocked
buffer window) is skipped without losing the rest of the batch.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.models.base.enums import RecurringBookingStatus
from marketplace.models.booking.booking import Booking
from marketplace.models.booking.recurring_booking import RecurringBooking
from marketplace.repositories.booking.recurring_booking_repository import RecurringBookingRepository
from marketplace.schemas.booking.booking_request import BookingCreate
from marketplace.schemas.booking.recurring_booking import (
    RecurringBookingCreate,
    RecurringGenerationSummary,
)
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import (
    TransactionAborted,
    TransactionContext,
    TransactionManager,
)
from marketplace.services.booking.booking_service import BookingService
from marketplace.services.booking.recurrence import RecurrenceRule, generate_occurrences


@dataclass
class RecurringSeries:
    """A series with the bookings created by the call that returned it."""

    recurring_booking: RecurringBooking
    bookings: List[Booking] = field(default_factory=list)
    total_occurrences: int = 0
    skipped: int = 0


@dataclass
class RecurringSeriesDetails:
    recurring_booking: RecurringBooking
    bookings: List[Booking] = field(default_factory=list)
    upcoming_dates: List[datetime] = field(default_factory=list)


class RecurringBookingService(BaseService[RecurringBooking, RecurringBookingRepository]):
    """
    Recurring series lifecycle: create, pause, resume, cancel and the
    periodic generate-upcoming run.
    """

    def __init__(
        self,
        recurring_booking_repository: RecurringBookingRepository,
        booking_service: BookingService,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        super().__init__(recurring_booking_repository, db_session, clock, transactions)
        self.booking_service = booking_service
        self.bookings = booking_service.repository
        self.services = booking_service.services
        self.settings = settings or BookingSettings()

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    def create_recurring_booking(
        self,
        actor_id: str,
        data: RecurringBookingCreate,
    ) -> ServiceResult[RecurringSeries]:
        """
        Create a series and materialize its first batch of bookings.

        Returns:
            ServiceResult with the series, the bookings created now and the
            number of occurrences the rule yields in total
        """
        if data.occurrences is not None and data.occurrences > self.settings.RECURRING_MAX_OCCURRENCES:
            return ServiceResult.validation_failure(
                f"A series cannot exceed {self.settings.RECURRING_MAX_OCCURRENCES} occurrences",
                field="occurrences",
            )

        try:
            with self.transactions.start() as ctx:
                service = self.services.get_by_id(data.service_id)
                if service is None:
                    return ServiceResult.not_found("Service", data.service_id)
                if not service.allow_recurring:
                    return ServiceResult.validation_failure(
                        "This service does not allow recurring bookings",
                        field="service_id",
                    )
                if service.provider_id == actor_id:
                    return ServiceResult.validation_failure("Cannot book your own service", field="service_id")

                rule = RecurrenceRule(
                    frequency=data.frequency,
                    start_date=data.start_date,
                    time_slot=data.time_slot,
                    interval=data.interval,
                    end_date=data.end_date,
                    days_of_week=tuple(data.days_of_week or ()),
                    day_of_month=data.day_of_month,
                )
                max_occurrences = data.occurrences or self.settings.RECURRING_DEFAULT_OCCURRENCES
                now = self.clock.now()
                dates = [
                    start
                    for start in generate_occurrences(
                        rule,
                        max_occurrences,
                        horizon_months=self.settings.RECURRING_HORIZON_MONTHS,
                    )
                    if start > now
                ]
                if not dates:
                    return ServiceResult.validation_failure("No valid booking dates found for the specified period")

                occurrence_start = dates[0]
                per_occurrence = self.booking_service.pricing.calculator.calculate(
                    price=service.price,
                    price_type=service.price_type,
                    booking_date=occurrence_start,
                    end_date=occurrence_start + timedelta(minutes=data.duration),
                )

                series = self.repository.create(
                    RecurringBooking(
                        service_id=service.id,
                        client_id=actor_id,
                        provider_id=service.provider_id,
                        frequency=data.frequency,
                        interval=data.interval,
                        start_date=data.start_date,
                        end_date=data.end_date,
                        occurrences=data.occurrences,
                        days_of_week=data.days_of_week,
                        day_of_month=data.day_of_month,
                        time_slot=data.time_slot,
                        duration=data.duration,
                        total_price=per_occurrence.total_price,
                        notes=data.notes,
                        address=data.address,
                        status=RecurringBookingStatus.ACTIVE,
                    )
                )

                created, skipped = self._materialize(ctx, series, dates[: self.settings.RECURRING_BATCH_SIZE])

            self._log_operation(
                "create recurring booking",
                series.id,
                {"bookings_created": len(created), "occurrences_skipped": skipped},
            )
            return ServiceResult.success(
                RecurringSeries(
                    recurring_booking=series,
                    bookings=created,
                    total_occurrences=len(dates),
                    skipped=skipped,
                )
            )
        except TransactionAborted as aborted:
            return aborted.result
        except ValueError as e:
            return ServiceResult.validation_failure(str(e))
        except Exception as e:
            return self._handle_exception(e, "create recurring booking", data.service_id)

    def _materialize(
        self,
        ctx: TransactionContext,
        series: RecurringBooking,
        dates: List[datetime],
    ) -> Tuple[List[Booking], int]:
        """Create one child booking per date; failing dates are skipped."""
        created: List[Booking] = []
        skipped = 0
        for start in dates:
            effects_mark = len(ctx.effects)
            try:
                with self.transactions.savepoint(f"recurring_{start:%Y%m%d%H%M}"):
                    result = self.booking_service._create_booking_records(
                        ctx,
                        series.client_id,
                        BookingCreate(
                            service_id=series.service_id,
                            booking_date=start,
                            end_date=start + timedelta(minutes=series.duration),
                            notes=series.notes,
                            address=series.address,
                        ),
                        recurring_booking_id=series.id,
                    )
                    if not result.is_success:
                        raise TransactionAborted(result)
                created.append(result.data)
            except TransactionAborted as aborted:
                del ctx.effects[effects_mark:]
                skipped += 1
                self._logger.warning(
                    f"Skipped recurring occurrence: {aborted.result.message}",
                    extra={"recurring_booking_id": series.id, "booking_date": start.isoformat()},
                )
            except SQLAlchemyError as e:
                del ctx.effects[effects_mark:]
                skipped += 1
                self._logger.error(
                    f"Skipped recurring occurrence after database error: {e}",
                    exc_info=True,
                    extra={"recurring_booking_id": series.id, "booking_date": start.isoformat()},
                )
        return created, skipped

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def pause_recurring_booking(self, actor_id: str, recurring_booking_id: str) -> ServiceResult[RecurringBooking]:
        """Pause an active series and cancel its future, live bookings."""
        try:
            with self.transactions.start() as ctx:
                series = self.repository.get_by_id(recurring_booking_id)
                if series is None:
                    return ServiceResult.not_found("RecurringBooking", recurring_booking_id)
                if series.client_id != actor_id:
                    return ServiceResult.forbidden("pause recurring booking", "RecurringBooking")
                if series.status != RecurringBookingStatus.ACTIVE:
                    return ServiceResult.invalid_state(
                        "Only active recurring bookings can be paused",
                        series.status.value,
                    )

                paused = self.repository.update_guarded(
                    series,
                    expected={"status": RecurringBookingStatus.ACTIVE},
                    values={"status": RecurringBookingStatus.PAUSED},
                )
                if not paused:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Only active recurring bookings can be paused", series.status.value)
                    )

                cancelled = self._cancel_children(ctx, series, actor_id, "Recurring booking paused", future_only=True)

            self._log_operation("pause recurring booking", recurring_booking_id, {"bookings_cancelled": cancelled})
            return ServiceResult.success(series, metadata={"bookings_cancelled": cancelled})
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "pause recurring booking", recurring_booking_id)

    def resume_recurring_booking(
        self,
        actor_id: str,
        recurring_booking_id: str,
        from_date=None,
    ) -> ServiceResult[RecurringSeries]:
        """Reactivate a paused series and generate a fresh batch from ``from_date`` (default today)."""
        try:
            with self.transactions.start() as ctx:
                series = self.repository.get_by_id(recurring_booking_id)
                if series is None:
                    return ServiceResult.not_found("RecurringBooking", recurring_booking_id)
                if series.client_id != actor_id:
                    return ServiceResult.forbidden("resume recurring booking", "RecurringBooking")
                if series.status != RecurringBookingStatus.PAUSED:
                    return ServiceResult.invalid_state(
                        "Can only resume paused recurring bookings",
                        series.status.value,
                    )

                resumed = self.repository.update_guarded(
                    series,
                    expected={"status": RecurringBookingStatus.PAUSED},
                    values={"status": RecurringBookingStatus.ACTIVE},
                )
                if not resumed:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Can only resume paused recurring bookings", series.status.value)
                    )

                start_from = from_date or self.clock.now().date()
                dates = self._next_dates(series, start_from)
                created, skipped = self._materialize(ctx, series, dates)

            self._log_operation("resume recurring booking", recurring_booking_id, {"bookings_created": len(created)})
            return ServiceResult.success(
                RecurringSeries(
                    recurring_booking=series,
                    bookings=created,
                    total_occurrences=len(dates),
                    skipped=skipped,
                )
            )
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "resume recurring booking", recurring_booking_id)

    def cancel_recurring_booking(
        self,
        actor_id: str,
        recurring_booking_id: str,
        future_only: bool = True,
    ) -> ServiceResult[RecurringBooking]:
        """Cancel a series and its live bookings, only future ones when ``future_only``."""
        try:
            with self.transactions.start() as ctx:
                series = self.repository.get_by_id(recurring_booking_id)
                if series is None:
                    return ServiceResult.not_found("RecurringBooking", recurring_booking_id)
                if series.client_id != actor_id:
                    return ServiceResult.forbidden("cancel recurring booking", "RecurringBooking")

                open_statuses = {RecurringBookingStatus.ACTIVE, RecurringBookingStatus.PAUSED}
                if series.status not in open_statuses:
                    return ServiceResult.invalid_state(
                        "Recurring booking is already closed",
                        series.status.value,
                    )

                closed = self.repository.update_guarded(
                    series,
                    expected={"status": open_statuses},
                    values={"status": RecurringBookingStatus.CANCELLED},
                )
                if not closed:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Recurring booking is already closed", series.status.value)
                    )

                cancelled = self._cancel_children(
                    ctx,
                    series,
                    actor_id,
                    "Recurring booking cancelled",
                    future_only=future_only,
                )

            self._log_operation("cancel recurring booking", recurring_booking_id, {"bookings_cancelled": cancelled})
            return ServiceResult.success(series, metadata={"bookings_cancelled": cancelled})
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "cancel recurring booking", recurring_booking_id)

    def _cancel_children(
        self,
        ctx: TransactionContext,
        series: RecurringBooking,
        actor_id: str,
        reason: str,
        future_only: bool,
    ) -> int:
        if future_only:
            children = self.bookings.future_live_children(series.id, self.clock.now())
        else:
            children = [child for child in self.bookings.list_children(series.id) if child.holds_capacity]

        cancelled = 0
        for child in children:
            if self.booking_service._cancel_booking_records(ctx, child, actor_id, reason, notify=False):
                cancelled += 1
        return cancelled

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def generate_upcoming_bookings(self) -> ServiceResult[RecurringGenerationSummary]:
        """
        Extend every active, unexpired series by one batch from its latest booking.

        Each series runs in its own unit of work; a series with nothing left
        to generate is marked completed.
        """
        summary = RecurringGenerationSummary()
        try:
            series_ids = [series.id for series in self.repository.active_not_expired(self.clock.now().date())]
        except Exception as e:
            return self._handle_exception(e, "load active recurring bookings")

        for series_id in series_ids:
            try:
                with self.transactions.start() as ctx:
                    series = self.repository.get_by_id(series_id)
                    if series is None or series.status != RecurringBookingStatus.ACTIVE:
                        continue

                    latest = self.bookings.latest_child(series.id)
                    start_from = (latest.booking_date.date() + timedelta(days=1)) if latest else series.start_date
                    dates = self._next_dates(series, start_from)
                    if not dates:
                        self.repository.update_guarded(
                            series,
                            expected={"status": RecurringBookingStatus.ACTIVE},
                            values={"status": RecurringBookingStatus.COMPLETED},
                        )
                        summary.series_completed += 1
                        summary.series_processed += 1
                        continue

                    created, skipped = self._materialize(ctx, series, dates)
                summary.series_processed += 1
                summary.bookings_created += len(created)
                summary.occurrences_skipped += skipped
            except Exception as e:
                self._logger.error(
                    f"Failed to generate bookings for recurring series {series_id}: {e}",
                    exc_info=True,
                    extra={"recurring_booking_id": series_id},
                )

        self._log_operation("generate upcoming bookings", extra=summary.model_dump())
        return ServiceResult.success(summary)

    def _rule_for(self, series: RecurringBooking) -> RecurrenceRule:
        return RecurrenceRule(
            frequency=series.frequency,
            start_date=series.start_date,
            time_slot=series.time_slot,
            interval=series.interval,
            end_date=series.end_date,
            days_of_week=tuple(series.days_of_week or ()),
            day_of_month=series.day_of_month,
        )

    def _next_dates(self, series: RecurringBooking, start_from) -> List[datetime]:
        """Next batch of future start times, bounded by the occurrences left."""
        limit = series.occurrences or self.settings.RECURRING_DEFAULT_OCCURRENCES
        remaining = limit - self.bookings.count_scheduled_children(series.id)
        if remaining <= 0:
            return []

        now = self.clock.now()
        dates = [
            start
            for start in generate_occurrences(
                self._rule_for(series),
                remaining,
                from_date=start_from,
                horizon_months=self.settings.RECURRING_HORIZON_MONTHS,
            )
            if start > now
        ]
        return dates[: min(self.settings.RECURRING_BATCH_SIZE, remaining)]

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_user_recurring_bookings(self, user_id: str) -> ServiceResult[List[RecurringBooking]]:
        """Series where the user is client or provider, newest first."""
        try:
            return ServiceResult.success(self.repository.for_user(user_id))
        except Exception as e:
            return self._handle_exception(e, "list recurring bookings", user_id)

    def get_recurring_booking_details(
        self,
        actor_id: str,
        recurring_booking_id: str,
    ) -> ServiceResult[RecurringSeriesDetails]:
        """Series with its bookings and the next dates it would produce from today."""
        try:
            series = self.repository.get_by_id(recurring_booking_id)
            if series is None:
                return ServiceResult.not_found("RecurringBooking", recurring_booking_id)
            if not series.involves(actor_id):
                return ServiceResult.forbidden("view recurring booking", "RecurringBooking")

            now = self.clock.now()
            upcoming = [
                start
                for start in generate_occurrences(
                    self._rule_for(series),
                    self.settings.RECURRING_UPCOMING_PREVIEW + 1,
                    from_date=now.date(),
                    horizon_months=self.settings.RECURRING_HORIZON_MONTHS,
                )
                if start > now
            ][: self.settings.RECURRING_UPCOMING_PREVIEW]

            return ServiceResult.success(
                RecurringSeriesDetails(
                    recurring_booking=series,
                    bookings=self.bookings.list_children(series.id),
                    upcoming_dates=upcoming,
                )
            )
        except Exception as e:
            return self._handle_exception(e, "get recurring booking details", recurring_booking_id)
