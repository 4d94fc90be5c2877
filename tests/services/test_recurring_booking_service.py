from datetime import date, datetime, timedelta

import pytest

from marketplace.models.base.enums import BookingStatus, RecurrenceFrequency, RecurringBookingStatus
from marketplace.schemas.booking import BookingCreate, RecurringBookingCreate
from marketplace.services.base.service_result import ErrorCode

MONDAY = date(2030, 1, 7)


@pytest.fixture
def recurring_service(db_session, service):
    service.allow_recurring = True
    db_session.commit()
    return service


def weekly(service_id, **kwargs):
    params = {
        "service_id": service_id,
        "frequency": RecurrenceFrequency.WEEKLY,
        "start_date": MONDAY,
        "time_slot": "10:00",
        "duration": 60,
    }
    params.update(kwargs)
    return RecurringBookingCreate(**params)


class TestCreateRecurringBooking:
    def test_materializes_first_batch(self, services, client, recurring_service):
        result = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id, occurrences=6))

        assert result.is_success
        series = result.data
        assert series.recurring_booking.status == RecurringBookingStatus.ACTIVE
        assert series.recurring_booking.total_price == 10000
        assert series.total_occurrences == 6
        assert [booking.booking_date for booking in series.bookings] == [
            datetime(2030, 1, 7, 10, 0),
            datetime(2030, 1, 14, 10, 0),
            datetime(2030, 1, 21, 10, 0),
            datetime(2030, 1, 28, 10, 0),
        ]
        for booking in series.bookings:
            assert booking.is_recurring
            assert booking.recurring_booking_id == series.recurring_booking.id
            assert booking.end_date == booking.booking_date + timedelta(minutes=60)
            assert booking.status == BookingStatus.PENDING
        assert recurring_service.booking_count == 4

    def test_skips_dates_already_past(self, services, client, recurring_service):
        data = weekly(
            recurring_service.id,
            frequency=RecurrenceFrequency.DAILY,
            start_date=date(2030, 1, 6),
            time_slot="09:00",
            occurrences=3,
        )

        series = services.recurring().create_recurring_booking(client.id, data).data

        assert series.total_occurrences == 2
        assert [booking.booking_date for booking in series.bookings] == [
            datetime(2030, 1, 7, 9, 0),
            datetime(2030, 1, 8, 9, 0),
        ]

    def test_unavailable_dates_are_skipped(self, services, db_session, client, other_client, recurring_service):
        recurring_service.max_bookings = 1
        db_session.commit()
        services.bookings().create_booking(
            other_client.id,
            BookingCreate(service_id=recurring_service.id, booking_date=datetime(2030, 1, 14, 15, 0)),
        )

        series = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id)).data

        assert series.skipped == 1
        assert [booking.booking_date.date() for booking in series.bookings] == [
            date(2030, 1, 7),
            date(2030, 1, 21),
            date(2030, 1, 28),
        ]

    def test_service_must_allow_recurring(self, services, client, service):
        result = services.recurring().create_recurring_booking(client.id, weekly(service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_occurrence_limit(self, services, client, recurring_service):
        result = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id, occurrences=105))

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_window_without_future_dates(self, services, client, recurring_service):
        data = weekly(recurring_service.id, start_date=date(2029, 12, 1), end_date=date(2030, 1, 5))

        result = services.recurring().create_recurring_booking(client.id, data)

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_provider_cannot_book_own_service(self, services, provider, recurring_service):
        result = services.recurring().create_recurring_booking(provider.id, weekly(recurring_service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR


class TestLifecycle:
    @pytest.fixture
    def series(self, services, client, recurring_service):
        return services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id)).data

    def test_pause_cancels_future_bookings(self, services, client, series):
        result = services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        assert result.data.status == RecurringBookingStatus.PAUSED
        assert result.metadata["bookings_cancelled"] == 4
        assert all(booking.status == BookingStatus.CANCELLED for booking in series.bookings)

    def test_pause_twice_is_invalid_state(self, services, client, series):
        services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        result = services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_only_client_manages_series(self, services, provider, series):
        result = services.recurring().pause_recurring_booking(provider.id, series.recurring_booking.id)

        assert result.error_code == ErrorCode.FORBIDDEN

    def test_resume_generates_new_batch(self, services, client, series):
        services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        result = services.recurring().resume_recurring_booking(client.id, series.recurring_booking.id)

        assert result.data.recurring_booking.status == RecurringBookingStatus.ACTIVE
        assert len(result.data.bookings) == 4
        assert all(booking.status == BookingStatus.PENDING for booking in result.data.bookings)

    def test_resume_after_whole_series_was_booked(self, services, client, recurring_service):
        series = services.recurring().create_recurring_booking(
            client.id,
            weekly(recurring_service.id, occurrences=4),
        ).data
        services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        result = services.recurring().resume_recurring_booking(client.id, series.recurring_booking.id)

        assert result.data.total_occurrences == 4
        assert [booking.booking_date for booking in result.data.bookings] == [
            datetime(2030, 1, 7, 10, 0),
            datetime(2030, 1, 14, 10, 0),
            datetime(2030, 1, 21, 10, 0),
            datetime(2030, 1, 28, 10, 0),
        ]
        summary = services.recurring().generate_upcoming_bookings().data
        assert summary.series_completed == 1

    def test_repeated_pause_keeps_the_occurrence_budget(self, services, client, recurring_service):
        series = services.recurring().create_recurring_booking(
            client.id,
            weekly(recurring_service.id, occurrences=8),
        ).data
        series_id = series.recurring_booking.id

        for _ in range(2):
            services.recurring().pause_recurring_booking(client.id, series_id)
            result = services.recurring().resume_recurring_booking(client.id, series_id)

            assert len(result.data.bookings) == 4

    def test_resume_active_series_is_invalid_state(self, services, client, series):
        result = services.recurring().resume_recurring_booking(client.id, series.recurring_booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_cancel_future_only_keeps_started_bookings(self, services, client, clock, series):
        clock.set(datetime(2030, 1, 14, 12, 0))

        result = services.recurring().cancel_recurring_booking(client.id, series.recurring_booking.id)

        assert result.data.status == RecurringBookingStatus.CANCELLED
        assert result.metadata["bookings_cancelled"] == 2
        assert [booking.status for booking in series.bookings] == [
            BookingStatus.PENDING,
            BookingStatus.PENDING,
            BookingStatus.CANCELLED,
            BookingStatus.CANCELLED,
        ]

    def test_cancel_everything(self, services, client, clock, series):
        clock.set(datetime(2030, 1, 14, 12, 0))

        result = services.recurring().cancel_recurring_booking(client.id, series.recurring_booking.id, future_only=False)

        assert result.metadata["bookings_cancelled"] == 4

    def test_cancel_closed_series_is_invalid_state(self, services, client, series):
        services.recurring().cancel_recurring_booking(client.id, series.recurring_booking.id)

        result = services.recurring().cancel_recurring_booking(client.id, series.recurring_booking.id)

        assert result.error_code == ErrorCode.INVALID_STATE


class TestGeneration:
    def test_extends_from_latest_booking(self, services, client, recurring_service):
        series = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id)).data

        summary = services.recurring().generate_upcoming_bookings().data

        assert summary.series_processed == 1
        assert summary.bookings_created == 4
        children = services.bookings().repository.list_children(series.recurring_booking.id)
        dates = [booking.booking_date.date() for booking in children]
        assert dates[4:] == [date(2030, 2, 4), date(2030, 2, 11), date(2030, 2, 18), date(2030, 2, 25)]

    def test_completes_exhausted_series(self, services, client, recurring_service):
        series = services.recurring().create_recurring_booking(
            client.id,
            weekly(recurring_service.id, occurrences=6),
        ).data

        first = services.recurring().generate_upcoming_bookings().data
        second = services.recurring().generate_upcoming_bookings().data

        assert first.bookings_created == 2
        assert second.series_completed == 1
        assert series.recurring_booking.status == RecurringBookingStatus.COMPLETED

    def test_paused_series_are_left_alone(self, services, client, recurring_service):
        series = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id)).data
        services.recurring().pause_recurring_booking(client.id, series.recurring_booking.id)

        summary = services.recurring().generate_upcoming_bookings().data

        assert summary.series_processed == 0


class TestQueries:
    def test_details(self, services, client, other_client, recurring_service):
        series = services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id)).data

        details = services.recurring().get_recurring_booking_details(client.id, series.recurring_booking.id).data

        assert len(details.bookings) == 4
        assert details.upcoming_dates[0] == datetime(2030, 1, 7, 10, 0)
        assert len(details.upcoming_dates) == 10
        forbidden = services.recurring().get_recurring_booking_details(other_client.id, series.recurring_booking.id)
        assert forbidden.error_code == ErrorCode.FORBIDDEN

    def test_list_for_both_parties(self, services, client, provider, recurring_service):
        services.recurring().create_recurring_booking(client.id, weekly(recurring_service.id))

        assert len(services.recurring().list_user_recurring_bookings(client.id).data) == 1
        assert len(services.recurring().list_user_recurring_bookings(provider.id).data) == 1
