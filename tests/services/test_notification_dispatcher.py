import pytest
from pydantic import ValidationError

from marketplace.models.base.enums import NotificationType
from marketplace.schemas.notification.notification_templates import (
    BookingCancelledVariables,
    BookingDeclinedVariables,
)
from marketplace.services.base.notification_dispatcher import (
    NotificationChannel,
    NotificationDispatcher,
    NotificationTemplateRenderer,
    Recipient,
)
from tests.conftest import RecordingBackend

DECLINED = BookingDeclinedVariables(service_name="House Cleaning", reason="Fully booked")
RECIPIENT = Recipient(name="Carlos", email="carlos@example.com", phone="+5511999990000")


@pytest.fixture
def sms():
    return RecordingBackend(NotificationChannel.SMS)


@pytest.fixture
def email():
    return RecordingBackend(NotificationChannel.EMAIL)


class TestRenderer:
    def test_renders_subject_and_channel_body(self):
        message = NotificationTemplateRenderer().render(
            NotificationType.BOOKING_DECLINED,
            DECLINED,
            NotificationChannel.SMS,
        )

        assert message.subject == "Booking declined - House Cleaning"
        assert message.body == "Your booking for House Cleaning was declined: Fully booked"

    def test_variables_must_match_kind(self):
        with pytest.raises(TypeError):
            NotificationTemplateRenderer().render(
                NotificationType.BOOKING_CANCELLED,
                DECLINED,
                NotificationChannel.EMAIL,
            )

    def test_unknown_variables_are_rejected(self):
        with pytest.raises(ValidationError):
            BookingCancelledVariables(service_name="House Cleaning", date="2030-01-08", reason="-", amount=10)

    def test_whatsapp_falls_back_to_sms_text(self):
        renderer = NotificationTemplateRenderer()

        whatsapp = renderer.render(NotificationType.BOOKING_DECLINED, DECLINED, NotificationChannel.WHATSAPP)
        sms = renderer.render(NotificationType.BOOKING_DECLINED, DECLINED, NotificationChannel.SMS)

        assert whatsapp.body == sms.body


class TestDispatcher:
    def test_delivers_on_each_channel(self, sms, email):
        dispatcher = NotificationDispatcher(backends=[sms, email])

        report = dispatcher.send_notification(
            NotificationType.BOOKING_DECLINED,
            RECIPIENT,
            DECLINED,
            [NotificationChannel.SMS, NotificationChannel.EMAIL],
        )

        assert report.delivered == [NotificationChannel.SMS, NotificationChannel.EMAIL]
        assert sms.sent[0][0] == "+5511999990000"
        assert email.sent[0][0] == "carlos@example.com"

    def test_long_sms_is_truncated(self, sms, email):
        dispatcher = NotificationDispatcher(backends=[sms, email], sms_max_length=40)
        variables = BookingDeclinedVariables(service_name="House Cleaning", reason="x" * 200)

        dispatcher.send_notification(
            NotificationType.BOOKING_DECLINED,
            RECIPIENT,
            variables,
            [NotificationChannel.SMS, NotificationChannel.EMAIL],
        )

        body = sms.sent[0][1].body
        assert len(body) == 40
        assert body.endswith("...")
        assert "x" * 200 in email.sent[0][1].body

    def test_missing_address_fails_that_channel_only(self, sms, email):
        dispatcher = NotificationDispatcher(backends=[sms, email])

        report = dispatcher.send_notification(
            NotificationType.BOOKING_DECLINED,
            Recipient(name="Carlos", phone="+5511999990000"),
            DECLINED,
            [NotificationChannel.EMAIL, NotificationChannel.SMS],
        )

        assert report.failed == [NotificationChannel.EMAIL]
        assert report.delivered == [NotificationChannel.SMS]
        assert email.sent == []

    def test_backend_failure_is_reported_not_raised(self, sms, email):
        sms.fail = True
        dispatcher = NotificationDispatcher(backends=[sms, email])

        report = dispatcher.send_notification(
            NotificationType.BOOKING_DECLINED,
            RECIPIENT,
            DECLINED,
            [NotificationChannel.SMS, NotificationChannel.EMAIL],
        )

        assert report.results[NotificationChannel.SMS].success is False
        assert "Gateway unavailable" in report.results[NotificationChannel.SMS].error
        assert report.results[NotificationChannel.EMAIL].success is True
