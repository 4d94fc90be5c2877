"""
Shared fixtures.

Every test gets a fresh in-memory SQLite database, a FixedClock and recording
notification backends, wired together through a ServiceFactory.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from marketplace.core.clock import FixedClock
from marketplace.core.exceptions import NotificationDeliveryError
from marketplace.db.init_db import init_db
from marketplace.db.session import build_engine, build_session_factory
from marketplace.models import GroupBookingSettings, Notification, Service, ServiceAddOn, ServiceBundle, User
from marketplace.models.base.enums import NotificationType, PriceType, ServiceStatus
from marketplace.services.base.notification_dispatcher import (
    ChannelBackend,
    NotificationChannel,
    NotificationDispatcher,
    RenderedMessage,
)
from marketplace.services.base.realtime_publisher import RealtimePublisher
from marketplace.services.base.service_factory import ServiceFactory

# Sunday, 6 January 2030, 12:00 UTC
NOW = datetime(2030, 1, 6, 12, 0)


class RecordingBackend(ChannelBackend):
    """Channel backend that keeps every message, or fails when told to."""

    def __init__(self, channel: NotificationChannel):
        self.channel = channel
        self.sent: List[Tuple[str, RenderedMessage]] = []
        self.fail = False

    def send(self, to: str, message: RenderedMessage) -> None:
        if self.fail:
            raise NotificationDeliveryError("Gateway unavailable", channel=self.channel.value, recipient=to)
        self.sent.append((to, message))


class RecordingRealtime(RealtimePublisher):
    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def publish(self, user_id: str, event: Dict[str, Any]) -> None:
        self.events.append((user_id, event))

    def for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return [event for recipient, event in self.events if recipient == user_id]


@pytest.fixture
def engine():
    engine = build_engine(
        url="sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def backends():
    return {channel: RecordingBackend(channel) for channel in NotificationChannel}


@pytest.fixture
def dispatcher(backends):
    return NotificationDispatcher(backends=backends.values())


@pytest.fixture
def realtime():
    return RecordingRealtime()


@pytest.fixture
def services(db_session, clock, dispatcher, realtime):
    return ServiceFactory(db_session, clock=clock, dispatcher=dispatcher, realtime=realtime)


# -----------------------------------------------------------------------------
# Seed data
# -----------------------------------------------------------------------------

@pytest.fixture
def make_user(db_session):
    def _make_user(name: str = "Client", phone: Optional[str] = "+5511999990000", **kwargs) -> User:
        kwargs.setdefault("email", f"{uuid4().hex[:10]}@example.com")
        user = User(name=name, phone=phone, **kwargs)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_service(db_session):
    def _make_service(provider: User, **kwargs) -> Service:
        kwargs.setdefault("title", "House Cleaning")
        kwargs.setdefault("price", 10000)
        kwargs.setdefault("price_type", PriceType.FIXED)
        kwargs.setdefault("status", ServiceStatus.ACTIVE)
        kwargs.setdefault("duration", 60)
        kwargs.setdefault("location", "Rua das Flores, 100")
        service = Service(provider_id=provider.id, **kwargs)
        db_session.add(service)
        db_session.commit()
        return service

    return _make_service


@pytest.fixture
def provider(make_user):
    return make_user(name="Paula Provider", phone="+5511988887777")


@pytest.fixture
def client(make_user):
    return make_user(name="Carlos Client")


@pytest.fixture
def other_client(make_user):
    return make_user(name="Olivia Other")


@pytest.fixture
def service(make_service, provider):
    return make_service(provider)


@pytest.fixture
def add_on(db_session, service):
    extra = ServiceAddOn(service_id=service.id, name="Window cleaning", price=2500, is_active=True)
    db_session.add(extra)
    db_session.commit()
    return extra


@pytest.fixture
def bundle(db_session, provider, service):
    package = ServiceBundle(provider_id=provider.id, name="Full house", discount=Decimal("15"), is_active=True)
    package.services.append(service)
    db_session.add(package)
    db_session.commit()
    return package


@pytest.fixture
def group_service(db_session, make_service, provider):
    offering = make_service(provider, title="Yoga Class", price=10000)
    db_session.add(
        GroupBookingSettings(
            service_id=offering.id,
            enabled=True,
            min_group_size=2,
            max_group_size=10,
            group_discount=Decimal("10"),
        )
    )
    db_session.commit()
    return offering


@pytest.fixture
def notifications_of(db_session):
    """In-app notifications of a user, optionally of one type."""

    def _notifications_of(user_id: str, notification_type: Optional[NotificationType] = None) -> List[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)
        if notification_type is not None:
            query = query.where(Notification.type == notification_type)
        return list(db_session.execute(query).scalars().all())

    return _notifications_of
