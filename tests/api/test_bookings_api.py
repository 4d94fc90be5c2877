from datetime import date

import pytest

from tests.api.conftest import as_user

BOOKING = {"booking_date": "2030-01-08T10:00:00"}


@pytest.fixture
def created(api, client, service):
    response = api.post("/api/v1/bookings", json={"service_id": service.id, **BOOKING}, headers=as_user(client))
    assert response.status_code == 201
    return response.json()


class TestBookingEndpoints:
    def test_acting_user_header_is_required(self, api, service):
        response = api.post("/api/v1/bookings", json={"service_id": service.id, **BOOKING})

        assert response.status_code == 422

    def test_create(self, created, client, provider):
        assert created["status"] == "pending"
        assert created["client_id"] == client.id
        assert created["provider_id"] == provider.id
        assert created["total_price"] == 10000
        assert created["payment"]["service_fee"] == 1000
        assert created["payment"]["net_amount"] == 9000
        assert created["version"] == 1

    def test_quote(self, api, client, service):
        response = api.post("/api/v1/bookings/quote", json={"service_id": service.id, **BOOKING}, headers=as_user(client))

        assert response.status_code == 200
        assert response.json()["total_price"] == 10000

    def test_stranger_is_forbidden(self, api, created, other_client):
        response = api.get(f"/api/v1/bookings/{created['id']}", headers=as_user(other_client))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_booking(self, api, client):
        response = api.get("/api/v1/bookings/missing", headers=as_user(client))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_accept_twice_is_conflict(self, api, created, provider):
        first = api.post(f"/api/v1/bookings/{created['id']}/accept", headers=as_user(provider))
        second = api.post(f"/api/v1/bookings/{created['id']}/accept", headers=as_user(provider))

        assert first.status_code == 200
        assert first.json()["status"] == "accepted"
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "INVALID_STATE"

    def test_decline_and_cancel(self, api, created, client, provider):
        declined = api.post(
            f"/api/v1/bookings/{created['id']}/decline",
            json={"reason": "Fully booked"},
            headers=as_user(provider),
        )
        cancelled = api.patch(
            f"/api/v1/bookings/{created['id']}/status",
            json={"status": "cancelled"},
            headers=as_user(client),
        )

        assert declined.json()["payment"]["status"] == "failed"
        assert cancelled.status_code == 409

    def test_own_service_is_a_bad_request(self, api, provider, service):
        response = api.post("/api/v1/bookings", json={"service_id": service.id, **BOOKING}, headers=as_user(provider))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_list_for_provider(self, api, created, provider):
        response = api.get("/api/v1/bookings", params={"role": "provider", "limit": 5}, headers=as_user(provider))

        body = response.json()
        assert [item["id"] for item in body["items"]] == [created["id"]]
        assert body["pagination"]["has_more"] is False
        assert body["pagination"]["page_size"] == 5


class TestOtherEndpoints:
    def test_reminder_preferences(self, api, client):
        updated = api.put("/api/v1/reminders/preferences", json={"whatsapp": True}, headers=as_user(client))
        fetched = api.get("/api/v1/reminders/preferences", headers=as_user(client))

        assert updated.status_code == 200
        assert fetched.json() == {"email": True, "sms": True, "whatsapp": True}

    def test_waitlist_join_and_leave(self, api, client, service):
        joined = api.post(
            "/api/v1/waitlist",
            json={"service_id": service.id, "preferred_date": date(2030, 1, 8).isoformat()},
            headers=as_user(client),
        )
        duplicate = api.post(
            "/api/v1/waitlist",
            json={"service_id": service.id, "preferred_date": date(2030, 1, 9).isoformat()},
            headers=as_user(client),
        )
        left = api.delete(f"/api/v1/waitlist/services/{service.id}", headers=as_user(client))

        assert joined.status_code == 201
        assert joined.json()["status"] == "active"
        assert duplicate.status_code == 409
        assert left.json()["status"] == "cancelled"

    def test_run_all_jobs(self, api, client):
        response = api.post("/api/v1/jobs/run-all", headers=as_user(client))

        assert response.status_code == 200
        assert response.json()["succeeded"] == 4
