from datetime import datetime, timedelta

import pytest

from marketplace.models.base.enums import BookingStatus, ReminderChannel, ReminderStatus
from marketplace.schemas.booking import ReminderPreferencesUpdate
from marketplace.services.base.notification_dispatcher import NotificationChannel
from marketplace.services.base.service_result import ErrorCode
from tests.conftest import NOW
from tests.services.test_booking_service import TUESDAY_TEN, book, cancel

DAY_BEFORE = TUESDAY_TEN - timedelta(hours=24)
TWO_HOURS_BEFORE = TUESDAY_TEN - timedelta(hours=2)


@pytest.fixture
def booking(services, client, service, backends):
    booking = book(services, client, service).data
    for backend in backends.values():
        backend.sent.clear()
    return booking


def reminders_of(services, booking):
    return {reminder.type: reminder for reminder in services.reminders().repository.for_booking(booking.id)}


class TestScheduling:
    def test_booking_gets_one_reminder_per_channel(self, services, booking):
        reminders = reminders_of(services, booking)

        assert reminders[ReminderChannel.EMAIL].scheduled_for == DAY_BEFORE
        assert reminders[ReminderChannel.SMS].scheduled_for == DAY_BEFORE
        assert reminders[ReminderChannel.WHATSAPP].scheduled_for == TWO_HOURS_BEFORE
        assert {reminder.status for reminder in reminders.values()} == {ReminderStatus.PENDING}

    def test_past_fire_times_are_skipped(self, services, client, service):
        soon = book(services, client, service, when=NOW + timedelta(hours=5)).data

        assert list(reminders_of(services, soon)) == [ReminderChannel.WHATSAPP]

    def test_scheduling_twice_creates_nothing(self, services, booking):
        result = services.reminders().schedule_booking_reminders(booking.id)

        assert result.data == []
        assert len(reminders_of(services, booking)) == 3

    def test_unknown_booking(self, services):
        result = services.reminders().schedule_booking_reminders("missing")

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_cancellation_cancels_pending_reminders(self, services, client, booking):
        cancel(services, client, booking)

        reminders = reminders_of(services, booking)
        assert {reminder.status for reminder in reminders.values()} == {ReminderStatus.CANCELLED}


class TestDispatch:
    def test_sends_due_reminders(self, services, clock, client, booking, backends):
        clock.set(DAY_BEFORE)

        summary = services.reminders().send_pending_reminders().data

        assert (summary.processed, summary.sent, summary.failed) == (2, 2, 0)
        assert [to for to, _ in backends[NotificationChannel.EMAIL].sent] == [client.email]
        assert [to for to, _ in backends[NotificationChannel.SMS].sent] == [client.phone]
        email = reminders_of(services, booking)[ReminderChannel.EMAIL]
        assert email.status == ReminderStatus.SENT
        assert email.sent_at == DAY_BEFORE

    def test_nothing_due_yet(self, services, booking):
        summary = services.reminders().send_pending_reminders().data

        assert summary.processed == 0

    def test_opted_out_channel_fails(self, services, clock, booking, backends):
        clock.set(TWO_HOURS_BEFORE)

        summary = services.reminders().send_pending_reminders().data

        whatsapp = reminders_of(services, booking)[ReminderChannel.WHATSAPP]
        assert (summary.sent, summary.failed) == (2, 1)
        assert whatsapp.status == ReminderStatus.FAILED
        assert whatsapp.retry_count == 1
        assert "opted out" in whatsapp.last_error
        assert backends[NotificationChannel.WHATSAPP].sent == []

    def test_retry_after_opting_in(self, services, clock, client, booking, backends):
        clock.set(TWO_HOURS_BEFORE)
        services.reminders().send_pending_reminders()
        services.reminders().update_reminder_preferences(client.id, ReminderPreferencesUpdate(whatsapp=True))

        summary = services.reminders().retry_failed_reminders().data

        assert summary.sent == 1
        whatsapp = reminders_of(services, booking)[ReminderChannel.WHATSAPP]
        assert whatsapp.status == ReminderStatus.SENT
        assert whatsapp.last_error is None
        assert [to for to, _ in backends[NotificationChannel.WHATSAPP].sent] == [client.phone]

    def test_retries_are_bounded(self, services, clock, booking):
        clock.set(TWO_HOURS_BEFORE)
        services.reminders().send_pending_reminders()
        for _ in range(5):
            services.reminders().retry_failed_reminders()

        whatsapp = reminders_of(services, booking)[ReminderChannel.WHATSAPP]
        assert whatsapp.retry_count == 3

    def test_backend_failure_is_recorded(self, services, clock, booking, backends):
        backends[NotificationChannel.EMAIL].fail = True
        clock.set(DAY_BEFORE)

        summary = services.reminders().send_pending_reminders().data

        reminders = reminders_of(services, booking)
        assert (summary.sent, summary.failed) == (1, 1)
        assert summary.errors == {reminders[ReminderChannel.EMAIL].id: reminders[ReminderChannel.EMAIL].last_error}
        assert "Gateway unavailable" in reminders[ReminderChannel.EMAIL].last_error
        assert reminders[ReminderChannel.SMS].status == ReminderStatus.SENT

    def test_unexpected_backend_error_is_recorded(self, services, clock, booking, backends, monkeypatch):
        def broken_send(to, message):
            raise ConnectionResetError("peer went away")

        monkeypatch.setattr(backends[NotificationChannel.EMAIL], "send", broken_send)
        clock.set(DAY_BEFORE)

        summary = services.reminders().send_pending_reminders().data

        email = reminders_of(services, booking)[ReminderChannel.EMAIL]
        assert (summary.sent, summary.failed) == (1, 1)
        assert email.status == ReminderStatus.FAILED
        assert email.retry_count == 1
        assert "ConnectionResetError" in email.last_error

    def test_missing_phone_fails(self, services, db_session, clock, client, booking):
        client.phone = None
        db_session.commit()
        clock.set(DAY_BEFORE)

        services.reminders().send_pending_reminders()

        sms = reminders_of(services, booking)[ReminderChannel.SMS]
        assert sms.status == ReminderStatus.FAILED
        assert "no contact information" in sms.last_error

    def test_reminder_of_closed_booking_is_cancelled(self, services, db_session, clock, booking):
        booking.status = BookingStatus.DECLINED
        db_session.commit()
        clock.set(DAY_BEFORE)

        summary = services.reminders().send_pending_reminders().data

        assert summary.failed == 2
        reminders = reminders_of(services, booking)
        assert reminders[ReminderChannel.EMAIL].status == ReminderStatus.CANCELLED


class TestStatsAndPreferences:
    def test_stats_for_participant(self, services, client, other_client, booking):
        stats = services.reminders().get_reminder_stats(client.id).data

        assert stats.total == 3
        assert stats.by_status[ReminderStatus.PENDING] == 3
        assert services.reminders().get_reminder_stats(other_client.id).data.total == 0

    def test_default_preferences(self, services, client):
        preferences = services.reminders().get_reminder_preferences(client.id).data

        assert (preferences.email, preferences.sms, preferences.whatsapp) == (True, True, False)

    def test_partial_update_keeps_other_channels(self, services, client):
        preferences = services.reminders().update_reminder_preferences(
            client.id,
            ReminderPreferencesUpdate(sms=False),
        ).data

        assert (preferences.email, preferences.sms, preferences.whatsapp) == (True, False, False)
        assert client.notification_sms is False

    def test_unknown_user(self, services):
        result = services.reminders().get_reminder_preferences("missing")

        assert result.error_code == ErrorCode.NOT_FOUND
