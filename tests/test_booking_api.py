"""
Tests for the public catalog, availability and booking endpoints
"""
from datetime import timedelta

import pytest

from puppyday.models import Appointment, Pet, User
from puppyday.shared.dates import business_to_utc, get_today_date


def scheduled(day, hhmm):
    return business_to_utc(day, hhmm).isoformat()


class TestCatalog:
    def test_services(self, client, grooming_service, make_service):
        make_service(name="Nail Trim", duration_minutes=30, prices={"small": 15.0})

        services = {s["name"]: s for s in client.get("/api/services").json()["data"]}

        assert services["Basic Grooming"]["price_range"] == "$40.00 - $85.00"
        assert services["Nail Trim"]["price_range"] == "$15.00"
        assert len(services["Basic Grooming"]["prices"]) == 4

    def test_addons(self, client, make_addon):
        make_addon()
        assert client.get("/api/addons").json()["data"][0]["name"] == "Teeth Brushing"


class TestAvailability:
    def test_booked_slot_is_unavailable(
        self, client, customer, make_pet, grooming_service, make_appointment, booking_day
    ):
        make_appointment(customer, make_pet(customer), grooming_service, booking_day, "10:00")

        response = client.get(
            "/api/availability", params={"service_id": grooming_service.id, "date": booking_day.isoformat()}
        )

        data = response.json()["data"]
        slots = {s["time"]: s["available"] for s in data["slots"]}
        assert data["date"] == booking_day.isoformat()
        assert slots["10:00"] is False
        assert slots["13:00"] is True

    def test_bad_input(self, client, grooming_service):
        bad_date = client.get("/api/availability", params={"service_id": grooming_service.id, "date": "tomorrow"})
        assert bad_date.json() == {"detail": "Invalid date format. Use YYYY-MM-DD"}

        unknown = client.get("/api/availability", params={"service_id": "nope", "date": "2030-01-07"})
        assert unknown.status_code == 404

    def test_disabled_dates_include_sundays(self, client):
        today = get_today_date()
        sunday = today + timedelta(days=(6 - today.weekday()) % 7)

        response = client.get(
            "/api/availability/disabled-dates",
            params={"start_date": today.isoformat(), "end_date": (today + timedelta(days=13)).isoformat()},
        )

        assert sunday.isoformat() in response.json()["data"]

    def test_disabled_dates_bad_range(self, client):
        today = get_today_date()
        response = client.get(
            "/api/availability/disabled-dates",
            params={"start_date": (today + timedelta(days=5)).isoformat(), "end_date": today.isoformat()},
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Start date must be before or equal to end date"}

    def test_next_available(self, client):
        next_date = client.get("/api/availability/next-available").json()["data"]["date"]
        assert next_date >= get_today_date().isoformat()


class TestCustomerBooking:
    def test_signed_in_customer(
        self, client, db, auth_headers, customer, make_pet, grooming_service, make_addon, booking_day, providers
    ):
        pet = make_pet(customer)
        addon = make_addon()

        response = client.post(
            "/api/appointments",
            json={
                "service_id": grooming_service.id,
                "pet_id": pet.id,
                "scheduled_at": scheduled(booking_day, "10:00"),
                "addon_ids": [addon.id],
            },
            headers=auth_headers(customer),
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["total_price"] == 65.0
        assert data["reference"].startswith("APT-")

        appointment = db.get(Appointment, data["appointment_id"])
        assert [a.id for a in appointment.addons] == [addon.id]
        assert len(providers.email.sent) == 1
        assert len(providers.sms.sent) == 1

    def test_guest_with_new_pet(self, client, db, grooming_service, booking_day):
        response = client.post(
            "/api/appointments",
            json={
                "service_id": grooming_service.id,
                "scheduled_at": scheduled(booking_day, "13:00"),
                "guest_info": {
                    "first_name": "Sam",
                    "last_name": "Guest",
                    "email": "sam@example.com",
                    "phone": "(657) 252-2903",
                },
                "new_pet": {"name": "Rex", "size": "small"},
            },
        )

        assert response.status_code == 201
        assert response.json()["data"]["total_price"] == 40.0
        guest = db.query(User).filter(User.email == "sam@example.com").one()
        assert db.query(Pet).filter(Pet.owner_id == guest.id, Pet.name == "Rex").count() == 1

    def test_pet_required(self, client, grooming_service, booking_day):
        response = client.post(
            "/api/appointments",
            json={"service_id": grooming_service.id, "scheduled_at": scheduled(booking_day, "10:00")},
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Pet information is required. Please select a pet."

    def test_guest_validation_message(self, client, grooming_service, booking_day):
        response = client.post(
            "/api/appointments",
            json={
                "service_id": grooming_service.id,
                "scheduled_at": scheduled(booking_day, "10:00"),
                "guest_info": {"first_name": "Sam", "last_name": "Guest", "email": "nope", "phone": "6572522903"},
                "new_pet": {"name": "Rex", "size": "small"},
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert response.json()["error"]["message"] == "Please enter a valid email address"

    def test_customer_information_required(self, client, grooming_service, booking_day):
        response = client.post(
            "/api/appointments",
            json={
                "service_id": grooming_service.id,
                "scheduled_at": scheduled(booking_day, "10:00"),
                "new_pet": {"name": "Rex", "size": "small"},
            },
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Customer information is required"

    def test_slot_conflict(
        self, client, auth_headers, customer, make_pet, grooming_service, make_appointment, booking_day
    ):
        pet = make_pet(customer)
        make_appointment(customer, pet, grooming_service, booking_day, "10:00")

        response = client.post(
            "/api/appointments",
            json={"service_id": grooming_service.id, "pet_id": pet.id, "scheduled_at": scheduled(booking_day, "10:00")},
            headers=auth_headers(customer),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SLOT_UNAVAILABLE"

    def test_outside_booking_hours(self, client, auth_headers, customer, make_pet, grooming_service, booking_day):
        pet = make_pet(customer)
        response = client.post(
            "/api/appointments",
            json={"service_id": grooming_service.id, "pet_id": pet.id, "scheduled_at": scheduled(booking_day, "06:00")},
            headers=auth_headers(customer),
        )
        assert response.status_code == 409
        assert response.json()["error"]["message"] == (
            "This time is outside our booking hours. Please choose another time."
        )

    def test_unknown_addon(self, client, auth_headers, customer, make_pet, grooming_service, booking_day):
        pet = make_pet(customer)
        response = client.post(
            "/api/appointments",
            json={
                "service_id": grooming_service.id,
                "pet_id": pet.id,
                "scheduled_at": scheduled(booking_day, "10:00"),
                "addon_ids": ["8a1b2c3d-0000-4000-8000-000000000000"],
            },
            headers=auth_headers(customer),
        )
        assert response.json() == {"detail": "One or more add-ons are unavailable"}


class TestAdminBooking:
    def test_existing_customer_and_pet(
        self, client, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day, providers
    ):
        pet = make_pet(customer)
        response = client.post(
            "/api/admin/appointments",
            json={
                "customer": {"id": customer.id},
                "pet": {"id": pet.id},
                "service_id": grooming_service.id,
                "appointment_date": booking_day.isoformat(),
                "appointment_time": "13:00",
            },
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201
        assert response.json()["data"]["status"] == "confirmed"
        assert len(providers.email.sent) == 1

    def test_walk_in_without_email(self, client, db, auth_headers, admin_user, grooming_service, providers):
        response = client.post(
            "/api/admin/appointments",
            json={
                "customer": {"is_new": True, "first_name": "Walk", "last_name": "In", "phone": "6572522903"},
                "pet": {"is_new": True, "name": "Rex", "size": "xlarge"},
                "service_id": grooming_service.id,
                "appointment_date": get_today_date().isoformat(),
                "appointment_time": "06:30",
                "source": "walk_in",
                "send_notification": False,
            },
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201
        appointment = db.get(Appointment, response.json()["data"]["appointment_id"])
        assert appointment.source == "walk_in"
        assert appointment.total_price == 85.0
        assert appointment.customer.email.startswith("walkin-")
        assert providers.email.sent == [] and providers.sms.sent == []

    def test_customers_only_get_403(self, client, auth_headers, customer):
        response = client.post("/api/admin/appointments", json={}, headers=auth_headers(customer))
        assert response.status_code == 403

    @pytest.mark.parametrize("customer_input", [{}, {"is_new": True, "first_name": "Only"}])
    def test_customer_input_validation(self, client, auth_headers, admin_user, grooming_service, customer_input):
        response = client.post(
            "/api/admin/appointments",
            json={
                "customer": customer_input,
                "pet": {"is_new": True, "name": "Rex", "size": "small"},
                "service_id": grooming_service.id,
                "appointment_date": "2030-01-07",
                "appointment_time": "10:00",
            },
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
