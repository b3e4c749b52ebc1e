"""
Tests for the admin appointment workflow and customer self-service cancellation
"""
from datetime import timedelta

import pytest

from puppyday.models import WaitlistEntry
from puppyday.shared.dates import utcnow


@pytest.fixture
def pet(customer, make_pet):
    return make_pet(customer)


@pytest.fixture
def appointment(customer, pet, grooming_service, make_appointment, booking_day):
    return make_appointment(customer, pet, grooming_service, booking_day, "10:00", booking_reference="APT-2030-000042")


def set_status(client, headers, appointment_id, **body):
    return client.post(f"/api/admin/appointments/{appointment_id}/status", json=body, headers=headers)


class TestAdminListing:
    def test_requires_staff(self, client, auth_headers, customer):
        assert client.get("/api/admin/appointments").status_code == 401
        assert client.get("/api/admin/appointments", headers=auth_headers(customer)).status_code == 403

    def test_filters(
        self, client, auth_headers, admin_user, customer, pet, grooming_service, make_appointment, booking_day,
        make_customer, make_pet,
    ):
        make_appointment(customer, pet, grooming_service, booking_day, "10:00")
        other = make_customer(first_name="Morgan")
        make_appointment(other, make_pet(other, name="Noodle"), grooming_service, booking_day, "13:00", status="pending")
        headers = auth_headers(admin_user)

        everything = client.get("/api/admin/appointments", headers=headers).json()
        assert everything["pagination"]["total"] == 2

        pending = client.get("/api/admin/appointments?status=pending", headers=headers).json()
        assert [a["pet_name"] for a in pending["data"]] == ["Noodle"]
        assert pending["data"][0]["status_label"] == "Pending"

        found = client.get("/api/admin/appointments?search=noodle", headers=headers).json()
        assert found["data"][0]["customer_name"].startswith("Morgan")

        day = booking_day.isoformat()
        in_range = client.get(f"/api/admin/appointments?start_date={day}&end_date={day}", headers=headers).json()
        assert in_range["pagination"]["total"] == 2

    def test_bad_date_range(self, client, auth_headers, admin_user):
        response = client.get(
            "/api/admin/appointments?start_date=2030-02-01&end_date=2030-01-01", headers=auth_headers(admin_user)
        )
        assert response.status_code == 400

    def test_get_and_transitions(self, client, auth_headers, admin_user, appointment):
        headers = auth_headers(admin_user)
        detail = client.get(f"/api/admin/appointments/{appointment.id}", headers=headers).json()["data"]
        assert detail["booking_reference"] == "APT-2030-000042"
        assert detail["service_name"] == "Basic Grooming"

        transitions = client.get(f"/api/admin/appointments/{appointment.id}/transitions", headers=headers).json()
        assert [t["to_status"] for t in transitions["data"]] == ["checked_in", "cancelled", "no_show"]
        assert transitions["data"][1]["requires_confirmation"] is True

        missing = client.get("/api/admin/appointments/nope", headers=headers)
        assert missing.status_code == 404
        assert missing.json() == {"detail": "Appointment not found"}

    def test_cancellation_reasons(self, client, auth_headers, admin_user):
        reasons = client.get("/api/admin/appointments/cancellation-reasons", headers=auth_headers(admin_user)).json()
        assert "Pet illness" in reasons["data"]


class TestStatusUpdates:
    def test_check_in_texts_customer(self, client, auth_headers, admin_user, appointment, providers):
        response = set_status(client, auth_headers(admin_user), appointment.id, status="checked_in")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Status updated successfully"
        assert body["data"]["status"] == "checked_in"
        assert "waitlist_matches" not in body
        assert len(providers.sms.sent) == 1
        assert providers.email.sent == []

    def test_notifications_can_be_skipped(self, client, auth_headers, admin_user, appointment, providers):
        set_status(client, auth_headers(admin_user), appointment.id, status="checked_in", send_notification=False)
        assert providers.sms.sent == []

    def test_status_required(self, client, auth_headers, admin_user, appointment):
        response = set_status(client, auth_headers(admin_user), appointment.id)
        assert response.status_code == 400
        assert response.json() == {"detail": "Status is required"}

    def test_invalid_transition(self, client, auth_headers, admin_user, appointment):
        response = set_status(client, auth_headers(admin_user), appointment.id, status="completed")
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid status transition from confirmed to completed"}

    def test_cancel_requires_reason(self, client, auth_headers, admin_user, appointment):
        headers = auth_headers(admin_user)
        assert set_status(client, headers, appointment.id, status="cancelled").json() == {
            "detail": "Cancellation reason is required when cancelling"
        }
        too_long = set_status(client, headers, appointment.id, status="cancelled", cancellation_reason="x" * 501)
        assert too_long.json() == {"detail": "Cancellation reason must be 500 characters or less"}

    def test_cancel_reports_waitlist_matches(
        self, client, db, auth_headers, admin_user, customer, pet, grooming_service, appointment, booking_day, providers
    ):
        entry = WaitlistEntry(
            customer_id=customer.id,
            pet_id=pet.id,
            service_id=grooming_service.id,
            requested_date=booking_day + timedelta(days=1),
            requested_time="morning",
        )
        db.add(entry)
        db.commit()

        response = set_status(
            client, auth_headers(admin_user), appointment.id, status="cancelled", cancellation_reason="Pet illness"
        )

        body = response.json()
        assert body["data"]["cancellation_reason"] == "Pet illness"
        assert [m["id"] for m in body["waitlist_matches"]] == [entry.id]
        assert "Pet illness" in providers.email.sent[0]["html"]

    def test_no_show_counts_against_customer(self, client, db, auth_headers, admin_user, customer, appointment):
        response = set_status(client, auth_headers(admin_user), appointment.id, status="no_show")

        assert response.json()["waitlist_matches"] == []
        db.refresh(customer)
        assert customer.preferences["no_show_count"] == 1

    def test_full_workflow(self, client, auth_headers, admin_user, appointment):
        headers = auth_headers(admin_user)
        for status in ("checked_in", "in_progress", "completed"):
            assert set_status(client, headers, appointment.id, status=status).status_code == 200
        assert set_status(client, headers, appointment.id, status="cancelled", cancellation_reason="x").status_code == 400


class TestCustomerAppointments:
    def test_list_own(self, client, auth_headers, customer, appointment, make_customer):
        mine = client.get("/api/customer/appointments", headers=auth_headers(customer)).json()
        assert [a["id"] for a in mine["data"]] == [appointment.id]

        theirs = client.get("/api/customer/appointments", headers=auth_headers(make_customer())).json()
        assert theirs["data"] == []

    def test_cancel(self, client, auth_headers, customer, appointment, providers):
        response = client.post(f"/api/customer/appointments/{appointment.id}/cancel", headers=auth_headers(customer))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "cancelled"
        assert data["cancellation_reason"] == "Cancelled by customer"
        assert len(providers.email.sent) == 1

    def test_cancel_with_reason(self, client, auth_headers, customer, appointment):
        response = client.post(
            f"/api/customer/appointments/{appointment.id}/cancel",
            json={"reason": "Schedule conflict"},
            headers=auth_headers(customer),
        )
        assert response.json()["data"]["cancellation_reason"] == "Schedule conflict"

    def test_cannot_cancel_inside_cutoff(
        self, client, auth_headers, customer, pet, grooming_service, make_appointment, booking_day
    ):
        soon = make_appointment(customer, pet, grooming_service, booking_day, scheduled_at=utcnow() + timedelta(hours=5))

        response = client.post(f"/api/customer/appointments/{soon.id}/cancel", headers=auth_headers(customer))

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "CANCELLATION_WINDOW_EXPIRED"

    def test_cannot_cancel_others_or_finished(
        self, client, auth_headers, customer, pet, grooming_service, make_appointment, booking_day, make_customer
    ):
        done = make_appointment(customer, pet, grooming_service, booking_day, status="completed")
        headers = auth_headers(customer)

        finished = client.post(f"/api/customer/appointments/{done.id}/cancel", headers=headers)
        assert finished.json() == {"detail": "This appointment can no longer be cancelled"}

        stranger = client.post(f"/api/customer/appointments/{done.id}/cancel", headers=auth_headers(make_customer()))
        assert stranger.status_code == 404
