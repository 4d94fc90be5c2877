"""
Notification template variables and message templates.

Each NotificationType has exactly one variables model. The models forbid
extra keys and require every key their templates use, so a template can only
reference variables its kind declares.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Type

from pydantic import BaseModel, ConfigDict, Field

from marketplace.models.base.enums import NotificationType


class TemplateVariables(BaseModel):
    """Base for per-kind template variables."""

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)


# ------------------------------------------------------------------
# Booking lifecycle
# ------------------------------------------------------------------


class BookingCreatedVariables(TemplateVariables):
    service_name: str
    customer_name: str
    date: str
    time: str
    address: str = Field(default="")


class BookingAcceptedVariables(TemplateVariables):
    service_name: str
    provider_name: str
    date: str
    time: str


class BookingDeclinedVariables(TemplateVariables):
    service_name: str
    reason: str


class BookingCancelledVariables(TemplateVariables):
    service_name: str
    date: str
    reason: str


class BookingCompletedVariables(TemplateVariables):
    service_name: str
    provider_name: str


class BookingReminderVariables(TemplateVariables):
    service_name: str
    date: str
    time: str
    address: str = Field(default="")


# ------------------------------------------------------------------
# Group bookings
# ------------------------------------------------------------------


class GroupThresholdVariables(TemplateVariables):
    group_name: str
    participants: int
    min_participants: int
    max_participants: int


class GroupCancelledVariables(TemplateVariables):
    group_name: str
    reason: str


# ------------------------------------------------------------------
# Waitlist
# ------------------------------------------------------------------


class WaitlistJoinedVariables(TemplateVariables):
    service_name: str
    client_name: str
    preferred_date: str


class WaitlistAvailableVariables(TemplateVariables):
    service_name: str
    date: str
    time: str
    expires_at: str


@dataclass(frozen=True)
class NotificationTemplate:
    """Message bodies of one notification kind; ``whatsapp`` falls back to ``sms``."""

    variables: Type[TemplateVariables]
    subject: str
    email: str
    sms: str
    whatsapp: Optional[str] = None


NOTIFICATION_TEMPLATES: Dict[NotificationType, NotificationTemplate] = {
    NotificationType.BOOKING_CREATED: NotificationTemplate(
        variables=BookingCreatedVariables,
        subject="New booking received - {{ service_name }}",
        email=(
            "Hello,\n\n{{ customer_name }} booked {{ service_name }} for "
            "{{ date }} at {{ time }}.{% if address %}\nAddress: {{ address }}{% endif %}\n\n"
            "Open your dashboard to accept or decline the request."
        ),
        sms="New booking for {{ service_name }} on {{ date }} at {{ time }}. Open your dashboard to respond.",
        whatsapp=(
            "New booking received! {{ customer_name }} booked {{ service_name }} "
            "for {{ date }} at {{ time }}."
        ),
    ),
    NotificationType.BOOKING_ACCEPTED: NotificationTemplate(
        variables=BookingAcceptedVariables,
        subject="Booking accepted - {{ service_name }}",
        email=(
            "Good news! {{ provider_name }} accepted your booking for "
            "{{ service_name }} on {{ date }} at {{ time }}."
        ),
        sms="Your booking for {{ service_name }} was accepted. Date: {{ date }} {{ time }}.",
    ),
    NotificationType.BOOKING_DECLINED: NotificationTemplate(
        variables=BookingDeclinedVariables,
        subject="Booking declined - {{ service_name }}",
        email=(
            "Your booking for {{ service_name }} was declined.\n"
            "Reason: {{ reason }}\n\nOther professionals may be available."
        ),
        sms="Your booking for {{ service_name }} was declined: {{ reason }}",
    ),
    NotificationType.BOOKING_CANCELLED: NotificationTemplate(
        variables=BookingCancelledVariables,
        subject="Booking cancelled - {{ service_name }}",
        email="The booking for {{ service_name }} on {{ date }} was cancelled.\nReason: {{ reason }}",
        sms="Booking cancelled: {{ service_name }} on {{ date }}.",
    ),
    NotificationType.BOOKING_COMPLETED: NotificationTemplate(
        variables=BookingCompletedVariables,
        subject="Service completed - {{ service_name }}",
        email=(
            "{{ provider_name }} marked {{ service_name }} as completed. "
            "Tell others how it went by leaving a review."
        ),
        sms="{{ service_name }} completed! Leave a review for {{ provider_name }}.",
    ),
    NotificationType.BOOKING_REMINDER: NotificationTemplate(
        variables=BookingReminderVariables,
        subject="Booking reminder - {{ service_name }}",
        email=(
            "This is a reminder of your booking for {{ service_name }} on "
            "{{ date }} at {{ time }}.{% if address %}\nAddress: {{ address }}{% endif %}"
        ),
        sms="Reminder: {{ service_name }} on {{ date }} at {{ time }}.",
        whatsapp="Reminder: you have {{ service_name }} booked for {{ date }} at {{ time }}.",
    ),
    NotificationType.GROUP_MINIMUM_REACHED: NotificationTemplate(
        variables=GroupThresholdVariables,
        subject="Minimum reached - {{ group_name }}",
        email=(
            "Your group {{ group_name }} reached its minimum of {{ min_participants }} "
            "participants ({{ participants }}/{{ max_participants }})."
        ),
        sms="{{ group_name }} reached its minimum of {{ min_participants }} participants.",
    ),
    NotificationType.GROUP_FULL: NotificationTemplate(
        variables=GroupThresholdVariables,
        subject="Group confirmed - {{ group_name }}",
        email="{{ group_name }} is full with {{ participants }} participants and is now confirmed.",
        sms="{{ group_name }} is full and confirmed.",
    ),
    NotificationType.GROUP_BELOW_MINIMUM: NotificationTemplate(
        variables=GroupThresholdVariables,
        subject="Group below minimum - {{ group_name }}",
        email=(
            "{{ group_name }} now has {{ participants }} participants, below the minimum "
            "of {{ min_participants }}."
        ),
        sms="{{ group_name }} is below its minimum ({{ participants }}/{{ min_participants }}).",
    ),
    NotificationType.GROUP_CANCELLED: NotificationTemplate(
        variables=GroupCancelledVariables,
        subject="Group cancelled - {{ group_name }}",
        email="The organizer cancelled {{ group_name }}.\nReason: {{ reason }}",
        sms="{{ group_name }} was cancelled: {{ reason }}",
    ),
    NotificationType.WAITLIST_JOINED: NotificationTemplate(
        variables=WaitlistJoinedVariables,
        subject="New waitlist entry - {{ service_name }}",
        email="{{ client_name }} joined the waitlist for {{ service_name }} on {{ preferred_date }}.",
        sms="{{ client_name }} joined the waitlist for {{ service_name }}.",
    ),
    NotificationType.WAITLIST_AVAILABLE: NotificationTemplate(
        variables=WaitlistAvailableVariables,
        subject="A spot opened up - {{ service_name }}",
        email=(
            "A spot for {{ service_name }} is available on {{ date }} at {{ time }}.\n"
            "Book before {{ expires_at }} to secure it."
        ),
        sms="Spot available: {{ service_name }} {{ date }} {{ time }}. Book before {{ expires_at }}.",
    ),
}


__all__ = [
    "TemplateVariables",
    "BookingCreatedVariables",
    "BookingAcceptedVariables",
    "BookingDeclinedVariables",
    "BookingCancelledVariables",
    "BookingCompletedVariables",
    "BookingReminderVariables",
    "GroupThresholdVariables",
    "GroupCancelledVariables",
    "WaitlistJoinedVariables",
    "WaitlistAvailableVariables",
    "NotificationTemplate",
    "NOTIFICATION_TEMPLATES",
]
