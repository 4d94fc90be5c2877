"""
Notification schemas package.
"""

from marketplace.schemas.notification.notification_templates import (
    NOTIFICATION_TEMPLATES,
    BookingAcceptedVariables,
    BookingCancelledVariables,
    BookingCompletedVariables,
    BookingCreatedVariables,
    BookingDeclinedVariables,
    BookingReminderVariables,
    GroupCancelledVariables,
    GroupThresholdVariables,
    NotificationTemplate,
    TemplateVariables,
    WaitlistAvailableVariables,
    WaitlistJoinedVariables,
)

__all__ = [
    "NOTIFICATION_TEMPLATES",
    "BookingAcceptedVariables",
    "BookingCancelledVariables",
    "BookingCompletedVariables",
    "BookingCreatedVariables",
    "BookingDeclinedVariables",
    "BookingReminderVariables",
    "GroupCancelledVariables",
    "GroupThresholdVariables",
    "NotificationTemplate",
    "TemplateVariables",
    "WaitlistAvailableVariables",
    "WaitlistJoinedVariables",
]
