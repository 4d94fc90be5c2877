from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from marketplace.models import TimeSlot
from marketplace.models.base.enums import (
    BookingStatus,
    NotificationType,
    PaymentStatus,
    ReminderStatus,
    ServiceStatus,
)
from marketplace.schemas.booking import BookingCreate, BookingStatusUpdate
from marketplace.services.base.notification_dispatcher import NotificationChannel
from marketplace.services.base.service_result import ErrorCode
from tests.conftest import NOW

TUESDAY_TEN = datetime(2030, 1, 8, 10, 0)


def book(services, user, service, when=TUESDAY_TEN, **kwargs):
    return services.bookings().create_booking(
        user.id,
        BookingCreate(service_id=service.id, booking_date=when, **kwargs),
    )


def cancel(services, actor, booking, reason=None):
    return services.bookings().update_booking_status(
        actor.id,
        booking.id,
        BookingStatusUpdate(status=BookingStatus.CANCELLED, reason=reason),
    )


class TestCreateBooking:
    def test_creates_pending_booking_with_payment(self, services, client, provider, service):
        result = book(services, client, service)

        assert result.is_success
        booking = result.data
        assert booking.status == BookingStatus.PENDING
        assert booking.provider_id == provider.id
        assert booking.total_price == 10000
        assert booking.address == service.location
        assert booking.version == 1
        assert booking.payment.status == PaymentStatus.PENDING
        assert booking.payment.service_fee == 1000
        assert booking.payment.net_amount == 9000
        assert service.booking_count == 1

    def test_notifies_provider_after_commit(
        self, services, client, provider, service, backends, realtime, notifications_of
    ):
        booking = book(services, client, service).data

        assert len(notifications_of(provider.id, NotificationType.BOOKING_CREATED)) == 1
        assert [to for to, _ in backends[NotificationChannel.EMAIL].sent] == [provider.email]
        assert [to for to, _ in backends[NotificationChannel.SMS].sent] == [provider.phone]
        events = realtime.for_user(provider.id)
        assert events[0]["type"] == "new_booking"
        assert events[0]["booking_id"] == booking.id

    def test_schedules_reminders(self, services, client, service, db_session):
        booking = book(services, client, service, when=NOW + timedelta(days=3)).data

        reminders = services.reminders().repository.for_booking(booking.id)

        assert {reminder.type.value for reminder in reminders} == {"email", "sms", "whatsapp"}
        assert all(reminder.status == ReminderStatus.PENDING for reminder in reminders)

    def test_prices_bundle_and_add_ons(self, services, client, service, bundle, add_on):
        booking = book(services, client, service, bundle_id=bundle.id, add_on_ids=[add_on.id]).data

        assert booking.total_price == 11000
        assert [(line.add_on_id, line.price) for line in booking.add_ons] == [(add_on.id, 2500)]

    def test_cannot_book_own_service(self, services, provider, service):
        result = book(services, provider, service)

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_inactive_service(self, services, db_session, client, service):
        service.status = ServiceStatus.INACTIVE
        db_session.commit()

        result = book(services, client, service)

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert service.booking_count == 0

    def test_unknown_service(self, services, client):
        result = services.bookings().create_booking(
            client.id,
            BookingCreate(service_id="missing", booking_date=TUESDAY_TEN),
        )

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_failed_delivery_does_not_fail_booking(self, services, client, service, backends):
        backends[NotificationChannel.EMAIL].fail = True

        result = book(services, client, service)

        assert result.is_success
        assert backends[NotificationChannel.SMS].sent

    def test_raising_effect_does_not_fail_booking(self, services, client, service, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("realtime layer down")

        monkeypatch.setattr(services.notifications(), "push", explode)

        result = book(services, client, service)

        assert result.is_success
        assert services.bookings().get_booking(client.id, result.data.id).is_success


class TestDailyCapacity:
    def test_full_day_is_a_conflict(self, services, db_session, client, other_client, service):
        service.max_bookings = 1
        db_session.commit()
        assert book(services, client, service).is_success

        result = book(services, other_client, service, when=TUESDAY_TEN + timedelta(hours=4))

        assert result.error_code == ErrorCode.CONFLICT
        assert service.booking_count == 1

    def test_other_days_are_unaffected(self, services, db_session, client, other_client, service):
        service.max_bookings = 1
        db_session.commit()
        book(services, client, service)

        assert book(services, other_client, service, when=TUESDAY_TEN + timedelta(days=1)).is_success

    def test_cancellation_frees_the_day(self, services, db_session, client, other_client, service):
        service.max_bookings = 1
        db_session.commit()
        first = book(services, client, service).data
        cancel(services, client, first)

        assert book(services, other_client, service).is_success


class TestBufferWindows:
    @pytest.fixture
    def buffered(self, db_session, service):
        service.buffer_time = 30
        db_session.commit()
        return service

    def test_blocks_both_sides(self, services, db_session, client, buffered):
        booking = book(services, client, buffered).data

        slots = db_session.execute(
            select(TimeSlot).where(TimeSlot.booking_id == booking.id).order_by(TimeSlot.start_time)
        ).scalars().all()

        assert [(slot.start_time, slot.end_time) for slot in slots] == [
            (datetime(2030, 1, 8, 9, 30), datetime(2030, 1, 8, 10, 0)),
            (datetime(2030, 1, 8, 11, 0), datetime(2030, 1, 8, 11, 30)),
        ]
        assert all(slot.is_booked for slot in slots)

    def test_overlapping_request_is_a_conflict(self, services, client, other_client, buffered):
        book(services, client, buffered)

        result = book(services, other_client, buffered, when=datetime(2030, 1, 8, 11, 15))

        assert result.error_code == ErrorCode.CONFLICT
        assert book(services, other_client, buffered, when=datetime(2030, 1, 8, 11, 30)).is_success

    def test_decline_releases_the_buffer(self, services, client, other_client, provider, buffered):
        booking = book(services, client, buffered).data
        services.bookings().decline_booking(provider.id, booking.id, "Unavailable")

        assert book(services, other_client, buffered, when=datetime(2030, 1, 8, 11, 15)).is_success

    def test_unknown_booking_is_not_found(self, services):
        result = services.capacity().block_buffer_windows("missing")

        assert result.error_code == ErrorCode.NOT_FOUND


class TestTransitions:
    def test_accept(self, services, client, provider, service, notifications_of):
        booking = book(services, client, service).data

        result = services.bookings().accept_booking(provider.id, booking.id)

        assert result.is_success
        assert result.data.status == BookingStatus.ACCEPTED
        assert result.data.version == 2
        assert len(notifications_of(client.id, NotificationType.BOOKING_ACCEPTED)) == 1

    def test_accept_twice_is_invalid_state(self, services, client, provider, service):
        booking = book(services, client, service).data
        services.bookings().accept_booking(provider.id, booking.id)

        result = services.bookings().accept_booking(provider.id, booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_only_provider_accepts(self, services, client, service):
        booking = book(services, client, service).data

        assert services.bookings().accept_booking(client.id, booking.id).error_code == ErrorCode.FORBIDDEN

    def test_accept_unknown_booking(self, services, provider):
        assert services.bookings().accept_booking(provider.id, "missing").error_code == ErrorCode.NOT_FOUND

    def test_decline(self, services, client, provider, service, notifications_of):
        booking = book(services, client, service, when=NOW + timedelta(days=3)).data

        result = services.bookings().decline_booking(provider.id, booking.id, "Fully booked")

        assert result.data.status == BookingStatus.DECLINED
        assert result.data.cancellation_reason == "Fully booked"
        assert result.data.cancelled_by == provider.id
        assert result.data.payment.status == PaymentStatus.FAILED
        assert service.booking_count == 0
        assert len(notifications_of(client.id, NotificationType.BOOKING_DECLINED)) == 1
        reminders = services.reminders().repository.for_booking(booking.id)
        assert reminders and all(reminder.status == ReminderStatus.CANCELLED for reminder in reminders)

    def test_decline_accepted_booking_is_invalid_state(self, services, client, provider, service):
        booking = book(services, client, service).data
        services.bookings().accept_booking(provider.id, booking.id)

        result = services.bookings().decline_booking(provider.id, booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_complete(self, services, client, provider, service, notifications_of):
        booking = book(services, client, service).data
        services.bookings().accept_booking(provider.id, booking.id)

        result = services.bookings().update_booking_status(
            provider.id,
            booking.id,
            BookingStatusUpdate(status=BookingStatus.COMPLETED),
        )

        assert result.data.status == BookingStatus.COMPLETED
        assert result.data.completed_at == NOW
        assert result.data.payment.status == PaymentStatus.PAID
        assert result.data.payment.escrow_release_date == NOW + timedelta(days=15)
        assert len(notifications_of(client.id, NotificationType.BOOKING_COMPLETED)) == 1

    def test_complete_pending_booking_is_invalid_state(self, services, client, provider, service):
        booking = book(services, client, service).data

        result = services.bookings().update_booking_status(
            provider.id,
            booking.id,
            BookingStatusUpdate(status=BookingStatus.COMPLETED),
        )

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_client_cannot_complete(self, services, client, provider, service):
        booking = book(services, client, service).data
        services.bookings().accept_booking(provider.id, booking.id)

        result = services.bookings().update_booking_status(
            client.id,
            booking.id,
            BookingStatusUpdate(status=BookingStatus.COMPLETED),
        )

        assert result.error_code == ErrorCode.FORBIDDEN

    def test_cancel_refunds_and_notifies_counterpart(self, services, client, provider, service, notifications_of):
        booking = book(services, client, service).data

        result = cancel(services, client, booking, "Change of plans")

        assert result.data.status == BookingStatus.CANCELLED
        assert result.data.cancelled_at == NOW
        assert result.data.payment.status == PaymentStatus.REFUNDED
        assert result.data.payment.refund_amount == result.data.payment.amount
        assert service.booking_count == 0
        assert len(notifications_of(provider.id, NotificationType.BOOKING_CANCELLED)) == 1
        assert notifications_of(client.id, NotificationType.BOOKING_CANCELLED) == []

    def test_stranger_cannot_cancel(self, services, client, other_client, service):
        booking = book(services, client, service).data

        assert cancel(services, other_client, booking).error_code == ErrorCode.FORBIDDEN

    def test_cancel_completed_booking_is_invalid_state(self, services, client, provider, service):
        booking = book(services, client, service).data
        services.bookings().accept_booking(provider.id, booking.id)
        services.bookings().update_booking_status(
            provider.id,
            booking.id,
            BookingStatusUpdate(status=BookingStatus.COMPLETED),
        )

        assert cancel(services, client, booking).error_code == ErrorCode.INVALID_STATE


class TestQueries:
    def test_only_parties_see_a_booking(self, services, client, other_client, provider, service):
        booking = book(services, client, service).data

        assert services.bookings().get_booking(provider.id, booking.id).is_success
        assert services.bookings().get_booking(other_client.id, booking.id).error_code == ErrorCode.FORBIDDEN

    def test_cursor_pagination(self, services, client, provider, service):
        created = {book(services, client, service, when=TUESDAY_TEN + timedelta(days=i)).data.id for i in range(3)}

        first = services.bookings().list_bookings(client.id, "client", limit=2).data
        second = services.bookings().list_bookings(client.id, "client", limit=2, cursor=first.next_cursor).data

        assert len(first.items) == 2
        assert first.has_more
        assert len(second.items) == 1
        assert not second.has_more
        assert {booking.id for booking in first.items + second.items} == created

    def test_list_as_provider_with_status_filter(self, services, client, provider, service):
        booking = book(services, client, service).data
        book(services, client, service, when=TUESDAY_TEN + timedelta(days=1))
        services.bookings().accept_booking(provider.id, booking.id)

        page = services.bookings().list_bookings(provider.id, "provider", BookingStatus.ACCEPTED).data

        assert [item.id for item in page.items] == [booking.id]

    def test_invalid_role(self, services, client):
        assert services.bookings().list_bookings(client.id, "admin").error_code == ErrorCode.VALIDATION_ERROR
