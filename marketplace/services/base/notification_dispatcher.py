"""
Notification dispatcher service for multi-channel notifications.

Renders a typed notification with jinja2 and hands each channel's message to
its backend. Delivery failures come back as per-channel results; the
dispatcher never raises for them.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from marketplace.core.exceptions import NotificationDeliveryError
from marketplace.core.logging import get_logger
from marketplace.models.base.enums import NotificationType
from marketplace.schemas.notification.notification_templates import (
    NOTIFICATION_TEMPLATES,
    NotificationTemplate,
    TemplateVariables,
)


class NotificationChannel(str, Enum):
    """Notification delivery channels."""

    EMAIL = "email"
    SMS = "sms"
    WHATSAPP = "whatsapp"


@dataclass(frozen=True)
class Recipient:
    """Addressing information for one person."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def address_for(self, channel: NotificationChannel) -> Optional[str]:
        if channel == NotificationChannel.EMAIL:
            return self.email
        return self.phone


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    body: str


@dataclass
class DeliveryResult:
    """Outcome of one channel delivery."""

    channel: NotificationChannel
    success: bool
    error: Optional[str] = None


class NotificationTemplateRenderer:
    """
    Single generic renderer for every notification kind.

    Variables must be an instance of the model registered for the kind;
    templates are compiled with StrictUndefined so a missing key fails
    loudly instead of rendering blank.
    """

    def __init__(self, templates: Optional[Dict[NotificationType, NotificationTemplate]] = None):
        self.templates = templates or NOTIFICATION_TEMPLATES
        self.env = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)
        self._compiled = {}

    def render(
        self,
        notification_type: NotificationType,
        variables: TemplateVariables,
        channel: NotificationChannel,
    ) -> RenderedMessage:
        template = self.templates.get(notification_type)
        if template is None:
            raise ValueError(f"No template registered for {notification_type.value}")
        if not isinstance(variables, template.variables):
            raise TypeError(
                f"{notification_type.value} expects {template.variables.__name__}, "
                f"got {type(variables).__name__}"
            )

        if channel == NotificationChannel.EMAIL:
            body_source = template.email
        elif channel == NotificationChannel.WHATSAPP:
            body_source = template.whatsapp or template.sms
        else:
            body_source = template.sms

        context = variables.model_dump()
        return RenderedMessage(
            subject=self._compile(template.subject).render(**context),
            body=self._compile(body_source).render(**context),
        )

    def render_in_app(self, notification_type: NotificationType, variables: TemplateVariables) -> RenderedMessage:
        """Title and short text for an in-app notification."""
        return self.render(notification_type, variables, NotificationChannel.SMS)

    def _compile(self, source: str):
        compiled = self._compiled.get(source)
        if compiled is None:
            compiled = self.env.from_string(source)
            self._compiled[source] = compiled
        return compiled


class ChannelBackend:
    """Delivery transport for one channel. Raises NotificationDeliveryError on failure."""

    channel: NotificationChannel

    def send(self, to: str, message: RenderedMessage) -> None:
        raise NotImplementedError


class LoggingChannelBackend(ChannelBackend):
    """Backend that only logs; used where no real transport is configured."""

    def __init__(self, channel: NotificationChannel):
        self.channel = channel
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    def send(self, to: str, message: RenderedMessage) -> None:
        self._logger.info(
            f"{self.channel.value} message queued: {message.subject}",
            extra={"channel": self.channel.value, "body_length": len(message.body)},
        )


@dataclass
class DispatchReport:
    """Per-channel results of one send_notification call."""

    notification_type: NotificationType
    results: Dict[NotificationChannel, DeliveryResult] = field(default_factory=dict)

    @property
    def delivered(self) -> List[NotificationChannel]:
        return [channel for channel, result in self.results.items() if result.success]

    @property
    def failed(self) -> List[NotificationChannel]:
        return [channel for channel, result in self.results.items() if not result.success]


class NotificationDispatcher:
    """
    Send notifications across channels with:
    - Typed template variables per notification kind
    - One backend per channel
    - Per-channel results, failures logged and returned rather than raised
    """

    def __init__(
        self,
        backends: Optional[Iterable[ChannelBackend]] = None,
        renderer: Optional[NotificationTemplateRenderer] = None,
        sms_max_length: int = 160,
    ):
        self.renderer = renderer or NotificationTemplateRenderer()
        self.backends: Dict[NotificationChannel, ChannelBackend] = {
            channel: LoggingChannelBackend(channel) for channel in NotificationChannel
        }
        for backend in backends or ():
            self.backends[backend.channel] = backend
        self.sms_max_length = sms_max_length
        self._logger = get_logger(f"{__name__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Notification Dispatching
    # -------------------------------------------------------------------------

    def send_notification(
        self,
        notification_type: NotificationType,
        recipient: Recipient,
        variables: TemplateVariables,
        channels: Iterable[NotificationChannel],
    ) -> DispatchReport:
        """
        Render and deliver one notification on each requested channel.

        Returns:
            DispatchReport with one DeliveryResult per channel
        """
        report = DispatchReport(notification_type=notification_type)
        for channel in channels:
            channel = NotificationChannel(channel)
            report.results[channel] = self.deliver(notification_type, recipient, variables, channel)

        if report.failed:
            self._logger.warning(
                f"Notification {notification_type.value} partially delivered",
                extra={
                    "notification_type": notification_type.value,
                    "delivered": [c.value for c in report.delivered],
                    "failed": [c.value for c in report.failed],
                },
            )
        return report

    def deliver(
        self,
        notification_type: NotificationType,
        recipient: Recipient,
        variables: TemplateVariables,
        channel: NotificationChannel,
    ) -> DeliveryResult:
        """Deliver on a single channel."""
        address = recipient.address_for(channel)
        if not address:
            return DeliveryResult(
                channel=channel,
                success=False,
                error=f"Recipient has no {'email' if channel == NotificationChannel.EMAIL else 'phone'} for {channel.value}",
            )

        try:
            message = self.renderer.render(notification_type, variables, channel)
            if channel == NotificationChannel.SMS and len(message.body) > self.sms_max_length:
                message = RenderedMessage(
                    subject=message.subject,
                    body=message.body[: self.sms_max_length - 3] + "...",
                )
            self.backends[channel].send(address, message)
        except (NotificationDeliveryError, TemplateError) as e:
            self._logger.error(
                f"Delivery via {channel.value} failed: {e}",
                extra={"notification_type": notification_type.value, "channel": channel.value},
            )
            return DeliveryResult(channel=channel, success=False, error=str(e))

        return DeliveryResult(channel=channel, success=True)
