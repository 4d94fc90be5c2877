"""
Group booking coordinator.

A group is a container with a participant limit; every participant, the
organizer included, holds an ordinary Booking tagged with the group id and
priced at the group's per-person price.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from marketplace.core.clock import Clock
from marketplace.core.config import BookingSettings
from marketplace.models.base.enums import GroupBookingStatus, NotificationType
from marketplace.models.booking.booking import Booking
from marketplace.models.booking.group_booking import GroupBooking
from marketplace.repositories.booking.group_booking_repository import GroupBookingRepository
from marketplace.schemas.booking.booking_request import BookingCreate
from marketplace.schemas.booking.group_booking import GroupBookingCreate
from marketplace.schemas.notification.notification_templates import (
    GroupCancelledVariables,
    GroupThresholdVariables,
)
from marketplace.services.base.base_service import BaseService
from marketplace.services.base.service_result import ServiceResult
from marketplace.services.base.transaction_manager import (
    TransactionAborted,
    TransactionContext,
    TransactionManager,
)
from marketplace.services.booking.booking_service import BookingService

LEFT_GROUP_REASON = "Left group booking"


@dataclass
class GroupMembership:
    """A group together with the member booking an operation created."""

    group_booking: GroupBooking
    booking: Booking
    participant_count: int


@dataclass
class GroupBookingView:
    group_booking: GroupBooking
    participant_count: int
    spots_available: int
    minimum_reached: bool
    members: Optional[List[Booking]] = None


class GroupBookingService(BaseService[GroupBooking, GroupBookingRepository]):
    """
    Create, join, leave and cancel group bookings.

    Member bookings go through BookingService so payments, counters and
    provider notifications behave exactly as for single bookings.
    """

    def __init__(
        self,
        group_booking_repository: GroupBookingRepository,
        booking_service: BookingService,
        db_session: Session,
        settings: Optional[BookingSettings] = None,
        clock: Optional[Clock] = None,
        transactions: Optional[TransactionManager] = None,
    ):
        super().__init__(group_booking_repository, db_session, clock, transactions)
        self.booking_service = booking_service
        self.bookings = booking_service.repository
        self.services = booking_service.services
        self.notifications = booking_service.notifications
        self.settings = settings or BookingSettings()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_group_booking(self, actor_id: str, data: GroupBookingCreate) -> ServiceResult[GroupMembership]:
        """
        Open a group on a service and book the organizer into it.

        Returns:
            ServiceResult with the open group and the organizer's booking
        """
        try:
            with self.transactions.start() as ctx:
                service = self.services.get_by_id(data.service_id)
                if service is None:
                    return ServiceResult.not_found("Service", data.service_id)

                group_settings = self.services.get_group_settings(service.id)
                if group_settings is None or not group_settings.enabled:
                    return ServiceResult.validation_failure(
                        "Group bookings are not enabled for this service",
                        field="service_id",
                    )
                if data.max_participants > group_settings.max_group_size:
                    return ServiceResult.validation_failure(
                        f"Maximum group size is {group_settings.max_group_size}",
                        field="max_participants",
                    )

                min_participants = data.min_participants or group_settings.min_group_size
                if min_participants > data.max_participants:
                    return ServiceResult.validation_failure(
                        "Minimum participants cannot exceed maximum participants",
                        field="min_participants",
                    )

                price_per_person = self.booking_service.pricing.calculator.discounted_unit_price(
                    service.price,
                    group_settings.group_discount,
                )

                group = self.repository.create(
                    GroupBooking(
                        service_id=service.id,
                        organizer_id=actor_id,
                        name=data.name,
                        description=data.description,
                        max_participants=data.max_participants,
                        min_participants=min_participants,
                        price_per_person=price_per_person,
                        booking_date=data.booking_date,
                        end_date=data.end_date,
                        status=GroupBookingStatus.OPEN,
                    )
                )

                result = self._book_member(ctx, group, actor_id)
                if not result.is_success:
                    raise TransactionAborted(result)

            self._log_operation(
                "create group booking",
                group.id,
                {"service_id": group.service_id, "price_per_person": price_per_person},
            )
            return ServiceResult.success(GroupMembership(group_booking=group, booking=result.data, participant_count=1))
        except TransactionAborted as aborted:
            return aborted.result
        except ValueError as e:
            return ServiceResult.validation_failure(str(e))
        except Exception as e:
            return self._handle_exception(e, "create group booking", data.service_id)

    def join_group_booking(
        self,
        actor_id: str,
        group_booking_id: str,
        notes: Optional[str] = None,
    ) -> ServiceResult[GroupMembership]:
        """Add the actor to an open group; the group confirms when it fills up."""
        try:
            with self.transactions.start() as ctx:
                group = self.repository.get_by_id(group_booking_id)
                if group is None:
                    return ServiceResult.not_found("GroupBooking", group_booking_id)
                if group.status == GroupBookingStatus.CONFIRMED:
                    return ServiceResult.conflict(
                        "Group booking is full",
                        details={"max_participants": group.max_participants},
                    )
                if group.status != GroupBookingStatus.OPEN:
                    return ServiceResult.invalid_state(
                        "Group booking is not open for new participants",
                        group.status.value,
                    )

                # serializes joins of the same service
                self.services.get_for_update(group.service_id)

                if self.bookings.group_member_booking(group.id, actor_id) is not None:
                    return ServiceResult.conflict(
                        "You are already part of this group booking",
                        details={"group_booking_id": group.id},
                    )
                if self.bookings.count_group_members(group.id) >= group.max_participants:
                    return ServiceResult.conflict(
                        "Group booking is full",
                        details={"max_participants": group.max_participants},
                    )

                result = self._book_member(ctx, group, actor_id, notes)
                if not result.is_success:
                    raise TransactionAborted(result)

                count = self.bookings.count_group_members(group.id)
                if count == group.min_participants:
                    self._notify_threshold(ctx, group, [group.organizer_id], NotificationType.GROUP_MINIMUM_REACHED, count)
                if count == group.max_participants:
                    confirmed = self.repository.update_guarded(
                        group,
                        expected={"status": GroupBookingStatus.OPEN},
                        values={"status": GroupBookingStatus.CONFIRMED},
                    )
                    if not confirmed:
                        raise TransactionAborted(
                            ServiceResult.invalid_state(
                                "Group booking is not open for new participants",
                                group.status.value,
                            )
                        )
                    member_ids = [member.client_id for member in self.bookings.group_members(group.id)]
                    self._notify_threshold(ctx, group, member_ids, NotificationType.GROUP_FULL, count)

            self._log_operation("join group booking", group_booking_id, {"participants": count})
            return ServiceResult.success(
                GroupMembership(group_booking=group, booking=result.data, participant_count=count)
            )
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "join group booking", group_booking_id)

    def leave_group_booking(self, actor_id: str, group_booking_id: str) -> ServiceResult[GroupBooking]:
        """Cancel the actor's member booking. The organizer cannot leave, only cancel."""
        try:
            with self.transactions.start() as ctx:
                group = self.repository.get_by_id(group_booking_id)
                if group is None:
                    return ServiceResult.not_found("GroupBooking", group_booking_id)
                if group.organizer_id == actor_id:
                    return ServiceResult.forbidden("leave own group booking; cancel it instead", "GroupBooking")

                membership = self.bookings.group_member_booking(group.id, actor_id)
                if membership is None:
                    return ServiceResult.not_found("Group membership", group_booking_id)

                if not self.booking_service._cancel_booking_records(ctx, membership, actor_id, LEFT_GROUP_REASON):
                    return ServiceResult.invalid_state(
                        "Your booking in this group can no longer be cancelled",
                        membership.status.value,
                    )

                remaining = self.bookings.group_members(group.id)
                if len(remaining) < group.min_participants:
                    self._notify_threshold(
                        ctx,
                        group,
                        [member.client_id for member in remaining],
                        NotificationType.GROUP_BELOW_MINIMUM,
                        len(remaining),
                    )

            self._log_operation("leave group booking", group_booking_id, {"participants": len(remaining)})
            return ServiceResult.success(group, metadata={"participant_count": len(remaining)})
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "leave group booking", group_booking_id)

    def cancel_group_booking(
        self,
        actor_id: str,
        group_booking_id: str,
        reason: Optional[str] = None,
    ) -> ServiceResult[GroupBooking]:
        """Organizer cancels the group; every live member booking is cancelled with it."""
        try:
            with self.transactions.start() as ctx:
                group = self.repository.get_by_id(group_booking_id)
                if group is None:
                    return ServiceResult.not_found("GroupBooking", group_booking_id)
                if group.organizer_id != actor_id:
                    return ServiceResult.forbidden("cancel group booking", "GroupBooking")
                if group.status == GroupBookingStatus.CANCELLED:
                    return ServiceResult.invalid_state("Group booking is already cancelled", group.status.value)

                cancelled = self.repository.update_guarded(
                    group,
                    expected={"status": {GroupBookingStatus.OPEN, GroupBookingStatus.CONFIRMED}},
                    values={"status": GroupBookingStatus.CANCELLED},
                )
                if not cancelled:
                    raise TransactionAborted(
                        ServiceResult.invalid_state("Group booking is already cancelled", group.status.value)
                    )

                members = self.bookings.group_members(group.id)
                cascade_reason = f"Group booking cancelled: {reason or 'No reason given'}"
                cancelled_bookings = 0
                for member in members:
                    if self.booking_service._cancel_booking_records(
                        ctx,
                        member,
                        actor_id,
                        cascade_reason,
                        notify=False,
                    ):
                        cancelled_bookings += 1

                for member in members:
                    self.notifications.notify(
                        ctx,
                        member.client_id,
                        NotificationType.GROUP_CANCELLED,
                        GroupCancelledVariables(group_name=group.name, reason=reason or "No reason given"),
                        reference_id=group.id,
                        realtime_event={"type": "group_cancelled", "group_booking_id": group.id},
                    )

            self._log_operation(
                "cancel group booking",
                group_booking_id,
                {"bookings_cancelled": cancelled_bookings},
            )
            return ServiceResult.success(group, metadata={"bookings_cancelled": cancelled_bookings})
        except TransactionAborted as aborted:
            return aborted.result
        except Exception as e:
            return self._handle_exception(e, "cancel group booking", group_booking_id)

    def _book_member(
        self,
        ctx: TransactionContext,
        group: GroupBooking,
        client_id: str,
        notes: Optional[str] = None,
    ) -> ServiceResult[Booking]:
        return self.booking_service._create_booking_records(
            ctx,
            client_id,
            BookingCreate(
                service_id=group.service_id,
                booking_date=group.booking_date,
                end_date=group.end_date,
                notes=notes,
            ),
            group_booking_id=group.id,
            unit_price=group.price_per_person,
        )

    def _notify_threshold(
        self,
        ctx: TransactionContext,
        group: GroupBooking,
        user_ids: List[str],
        notification_type: NotificationType,
        participants: int,
    ) -> None:
        variables = GroupThresholdVariables(
            group_name=group.name,
            participants=participants,
            min_participants=group.min_participants,
            max_participants=group.max_participants,
        )
        for user_id in dict.fromkeys(user_ids):
            self.notifications.notify(
                ctx,
                user_id,
                notification_type,
                variables,
                reference_id=group.id,
                realtime_event={
                    "type": notification_type.value,
                    "group_booking_id": group.id,
                    "participants": participants,
                },
            )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_group_booking_details(self, actor_id: str, group_booking_id: str) -> ServiceResult[GroupBookingView]:
        """
        Group with participant counts.

        Members are listed for participants and the service provider only.
        """
        try:
            group = self.repository.get_by_id(group_booking_id)
            if group is None:
                return ServiceResult.not_found("GroupBooking", group_booking_id)

            members = self.bookings.group_members(group.id)
            service = self.services.get_by_id(group.service_id)
            can_see_members = (
                group.organizer_id == actor_id
                or any(member.client_id == actor_id for member in members)
                or (service is not None and service.provider_id == actor_id)
            )
            return ServiceResult.success(
                self._view(group, len(members), members if can_see_members else None)
            )
        except Exception as e:
            return self._handle_exception(e, "get group booking details", group_booking_id)

    def list_available_group_bookings(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ServiceResult[List[GroupBookingView]]:
        """Open, upcoming groups with the spots they have left."""
        try:
            groups = self.repository.open_upcoming(self.clock.now(), start, end)
            counts = self.bookings.count_members_by_group([group.id for group in groups])
            return ServiceResult.success([self._view(group, counts.get(group.id, 0)) for group in groups])
        except Exception as e:
            return self._handle_exception(e, "list available group bookings")

    @staticmethod
    def _view(group: GroupBooking, count: int, members: Optional[List[Booking]] = None) -> GroupBookingView:
        return GroupBookingView(
            group_booking=group,
            participant_count=count,
            spots_available=max(group.max_participants - count, 0),
            minimum_reached=count >= group.min_participants,
            members=members,
        )
