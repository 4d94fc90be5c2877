from datetime import timedelta

import pytest
from sqlalchemy import select

from marketplace.models import Booking, GroupBookingSettings
from marketplace.models.base.enums import BookingStatus, GroupBookingStatus, NotificationType
from marketplace.schemas.booking import GroupBookingCreate
from marketplace.services.base.service_result import ErrorCode
from marketplace.services.booking.group_booking_service import LEFT_GROUP_REASON
from tests.conftest import NOW

GROUP_START = NOW + timedelta(days=5)


def group_request(service_id, **kwargs):
    params = {
        "service_id": service_id,
        "name": "Sunday yoga",
        "max_participants": 4,
        "booking_date": GROUP_START,
        "end_date": GROUP_START + timedelta(hours=1),
    }
    params.update(kwargs)
    return GroupBookingCreate(**params)


def group_settings_of(db_session, service):
    return db_session.execute(
        select(GroupBookingSettings).where(GroupBookingSettings.service_id == service.id)
    ).scalar_one()


@pytest.fixture
def group(services, client, group_service):
    return services.groups().create_group_booking(client.id, group_request(group_service.id)).data.group_booking


class TestCreateGroupBooking:
    def test_books_organizer_at_group_price(self, services, client, group_service):
        result = services.groups().create_group_booking(client.id, group_request(group_service.id))

        assert result.is_success
        membership = result.data
        assert membership.participant_count == 1
        assert membership.group_booking.status == GroupBookingStatus.OPEN
        assert membership.group_booking.price_per_person == 9000
        assert membership.group_booking.min_participants == 2
        assert membership.booking.client_id == client.id
        assert membership.booking.group_booking_id == membership.group_booking.id
        assert membership.booking.total_price == 9000
        assert membership.booking.payment.amount == 9000

    def test_requires_enabled_group_settings(self, services, client, service):
        result = services.groups().create_group_booking(client.id, group_request(service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_disabled_group_settings(self, services, db_session, client, group_service):
        settings = group_settings_of(db_session, group_service)
        settings.enabled = False
        db_session.commit()

        result = services.groups().create_group_booking(client.id, group_request(group_service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_max_participants_bounded_by_service(self, services, client, group_service):
        result = services.groups().create_group_booking(
            client.id,
            group_request(group_service.id, max_participants=11),
        )

        assert result.error_code == ErrorCode.VALIDATION_ERROR
        assert result.error.field == "max_participants"

    def test_min_defaults_cannot_exceed_max(self, services, db_session, client, group_service):
        settings = group_settings_of(db_session, group_service)
        settings.min_group_size = 5
        db_session.commit()

        result = services.groups().create_group_booking(client.id, group_request(group_service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR

    def test_provider_cannot_organize_on_own_service(self, services, provider, group_service):
        result = services.groups().create_group_booking(provider.id, group_request(group_service.id))

        assert result.error_code == ErrorCode.VALIDATION_ERROR


class TestJoinGroupBooking:
    def test_minimum_reached_notifies_organizer(self, services, client, other_client, group, notifications_of):
        result = services.groups().join_group_booking(other_client.id, group.id, notes="First class")

        assert result.data.participant_count == 2
        assert result.data.booking.notes == "First class"
        assert len(notifications_of(client.id, NotificationType.GROUP_MINIMUM_REACHED)) == 1
        assert notifications_of(other_client.id, NotificationType.GROUP_MINIMUM_REACHED) == []
        assert group.status == GroupBookingStatus.OPEN

    def test_joining_twice_conflicts(self, services, other_client, group):
        services.groups().join_group_booking(other_client.id, group.id)

        result = services.groups().join_group_booking(other_client.id, group.id)

        assert result.error_code == ErrorCode.CONFLICT

    def test_organizer_is_already_a_member(self, services, client, group):
        result = services.groups().join_group_booking(client.id, group.id)

        assert result.error_code == ErrorCode.CONFLICT

    def test_filling_the_group_confirms_it(self, services, client, other_client, make_user, group_service, notifications_of):
        group = services.groups().create_group_booking(
            client.id,
            group_request(group_service.id, max_participants=2),
        ).data.group_booking

        result = services.groups().join_group_booking(other_client.id, group.id)

        assert result.data.group_booking.status == GroupBookingStatus.CONFIRMED
        assert len(notifications_of(client.id, NotificationType.GROUP_FULL)) == 1
        assert len(notifications_of(other_client.id, NotificationType.GROUP_FULL)) == 1

        late = services.groups().join_group_booking(make_user(name="Late Comer").id, group.id)
        assert late.error_code == ErrorCode.CONFLICT

    def test_cancelled_group_is_invalid_state(self, services, client, other_client, group):
        services.groups().cancel_group_booking(client.id, group.id)

        result = services.groups().join_group_booking(other_client.id, group.id)

        assert result.error_code == ErrorCode.INVALID_STATE

    def test_unknown_group(self, services, other_client):
        result = services.groups().join_group_booking(other_client.id, "missing")

        assert result.error_code == ErrorCode.NOT_FOUND


class TestLeaveAndCancel:
    def test_organizer_cannot_leave(self, services, client, group):
        result = services.groups().leave_group_booking(client.id, group.id)

        assert result.error_code == ErrorCode.FORBIDDEN

    def test_non_member_cannot_leave(self, services, other_client, group):
        result = services.groups().leave_group_booking(other_client.id, group.id)

        assert result.error_code == ErrorCode.NOT_FOUND

    def test_leaving_below_minimum_warns_remaining(self, services, client, other_client, provider, group, notifications_of):
        joined = services.groups().join_group_booking(other_client.id, group.id).data

        result = services.groups().leave_group_booking(other_client.id, group.id)

        assert result.metadata["participant_count"] == 1
        assert joined.booking.status == BookingStatus.CANCELLED
        assert joined.booking.cancellation_reason == LEFT_GROUP_REASON
        assert len(notifications_of(client.id, NotificationType.GROUP_BELOW_MINIMUM)) == 1
        assert len(notifications_of(provider.id, NotificationType.BOOKING_CANCELLED)) == 1

    def test_cancel_cascades_to_members(self, services, client, other_client, group, notifications_of):
        services.groups().join_group_booking(other_client.id, group.id)

        result = services.groups().cancel_group_booking(client.id, group.id, reason="Instructor is sick")

        assert result.data.status == GroupBookingStatus.CANCELLED
        assert result.metadata["bookings_cancelled"] == 2
        members = services.bookings().repository.find(Booking.group_booking_id == group.id)
        assert {member.status for member in members} == {BookingStatus.CANCELLED}
        assert {member.cancellation_reason for member in members} == {"Group booking cancelled: Instructor is sick"}
        for user_id in (client.id, other_client.id):
            assert len(notifications_of(user_id, NotificationType.GROUP_CANCELLED)) == 1

    def test_only_organizer_cancels(self, services, other_client, group):
        result = services.groups().cancel_group_booking(other_client.id, group.id)

        assert result.error_code == ErrorCode.FORBIDDEN

    def test_cancel_twice_is_invalid_state(self, services, client, group):
        services.groups().cancel_group_booking(client.id, group.id)

        result = services.groups().cancel_group_booking(client.id, group.id)

        assert result.error_code == ErrorCode.INVALID_STATE


class TestQueries:
    def test_available_groups(self, services, other_client, group):
        views = services.groups().list_available_group_bookings().data

        assert [view.group_booking.id for view in views] == [group.id]
        assert views[0].participant_count == 1
        assert views[0].spots_available == 3
        assert not views[0].minimum_reached

    def test_available_groups_window(self, services, group):
        views = services.groups().list_available_group_bookings(end=GROUP_START - timedelta(days=1)).data

        assert views == []

    def test_members_hidden_from_outsiders(self, services, client, provider, other_client, group):
        outsider = services.groups().get_group_booking_details(other_client.id, group.id).data
        organizer = services.groups().get_group_booking_details(client.id, group.id).data
        owner = services.groups().get_group_booking_details(provider.id, group.id).data

        assert outsider.members is None
        assert outsider.participant_count == 1
        assert [member.client_id for member in organizer.members] == [client.id]
        assert owner.members is not None
