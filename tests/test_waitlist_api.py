"""
Tests for waitlist endpoints and the waitlist service
"""
from datetime import timedelta

import pytest

from puppyday.domain.waitlist.service import WaitlistService
from puppyday.models import Appointment, WaitlistEntry, WaitlistSlotOffer
from puppyday.shared.dates import business_to_utc, get_today_date, utcnow


@pytest.fixture
def add_entry(db):
    def factory(customer, pet, service, day, requested_time="any", **overrides):
        entry = WaitlistEntry(
            customer_id=customer.id,
            pet_id=pet.id,
            service_id=service.id,
            requested_date=day,
            requested_time=requested_time,
            **overrides,
        )
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    return factory


class TestCustomerWaitlist:
    def test_join(self, client, auth_headers, customer, make_pet, grooming_service, booking_day):
        pet = make_pet(customer)
        payload = {
            "service_id": grooming_service.id,
            "pet_id": pet.id,
            "requested_date": booking_day.isoformat(),
            "requested_time": "morning",
        }

        response = client.post("/api/waitlist", json=payload, headers=auth_headers(customer))

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "active"
        assert data["requested_time"] == "morning"

        duplicate = client.post("/api/waitlist", json=payload, headers=auth_headers(customer))
        assert duplicate.status_code == 409
        assert duplicate.json()["error"]["code"] == "ALREADY_EXISTS"
        assert "Biscuit is already on the waitlist" in duplicate.json()["error"]["message"]

    def test_join_requires_login(self, client, customer, make_pet, grooming_service, booking_day):
        payload = {
            "service_id": grooming_service.id,
            "pet_id": make_pet(customer).id,
            "requested_date": booking_day.isoformat(),
        }
        response = client.post("/api/waitlist", json=payload)
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    def test_join_with_someone_elses_pet(
        self, client, auth_headers, customer, make_customer, make_pet, grooming_service, booking_day
    ):
        stranger_pet = make_pet(make_customer())
        response = client.post(
            "/api/waitlist",
            json={
                "service_id": grooming_service.id,
                "pet_id": stranger_pet.id,
                "requested_date": booking_day.isoformat(),
            },
            headers=auth_headers(customer),
        )
        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid pet ID"}

    def test_join_in_the_past(self, client, auth_headers, customer, make_pet, grooming_service):
        pet = make_pet(customer)
        response = client.post(
            "/api/waitlist",
            json={
                "service_id": grooming_service.id,
                "pet_id": pet.id,
                "requested_date": (get_today_date() - timedelta(days=1)).isoformat(),
            },
            headers=auth_headers(customer),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Date cannot be in the past"

    def test_list_and_leave(
        self, client, auth_headers, customer, make_customer, make_pet, grooming_service, booking_day, add_entry
    ):
        mine = add_entry(customer, make_pet(customer), grooming_service, booking_day)
        other_owner = make_customer()
        theirs = add_entry(other_owner, make_pet(other_owner), grooming_service, booking_day)

        listed = client.get("/api/waitlist", headers=auth_headers(customer)).json()
        assert [e["id"] for e in listed["data"]] == [mine.id]
        assert listed["pagination"]["total"] == 1

        assert client.delete(f"/api/waitlist/{theirs.id}", headers=auth_headers(customer)).status_code == 404

        left = client.delete(f"/api/waitlist/{mine.id}", headers=auth_headers(customer))
        assert left.json()["data"]["status"] == "cancelled"
        again = client.delete(f"/api/waitlist/{mine.id}", headers=auth_headers(customer))
        assert again.json() == {"detail": "Waitlist entry is cancelled"}


class TestAdminWaitlist:
    def test_admin_only(self, client, auth_headers, customer):
        assert client.get("/api/admin/waitlist", headers=auth_headers(customer)).status_code == 403

    def test_list_by_status(
        self, client, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day, add_entry
    ):
        pet = make_pet(customer)
        add_entry(customer, pet, grooming_service, booking_day)
        add_entry(customer, pet, grooming_service, booking_day + timedelta(days=1), status="booked")

        response = client.get("/api/admin/waitlist?status=active", headers=auth_headers(admin_user))
        assert response.json()["pagination"]["total"] == 1

    def test_matches(self, client, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day, add_entry):
        pet = make_pet(customer)
        near = add_entry(customer, pet, grooming_service, booking_day + timedelta(days=2), "afternoon")
        add_entry(customer, pet, grooming_service, booking_day + timedelta(days=5))
        add_entry(customer, pet, grooming_service, booking_day, "morning")

        response = client.get(
            "/api/admin/waitlist/matches",
            params={"date": booking_day.isoformat(), "time": "14:00", "service_id": grooming_service.id},
            headers=auth_headers(admin_user),
        )

        assert [e["id"] for e in response.json()["data"]] == [near.id]

    def test_matches_bad_date(self, client, auth_headers, admin_user, grooming_service):
        response = client.get(
            "/api/admin/waitlist/matches",
            params={"date": "soon", "time": "14:00", "service_id": grooming_service.id},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400

    def test_matches_bad_time(
        self, client, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day, add_entry
    ):
        add_entry(customer, make_pet(customer), grooming_service, booking_day, requested_time="morning")

        response = client.get(
            "/api/admin/waitlist/matches",
            params={"date": booking_day.isoformat(), "time": "noon", "service_id": grooming_service.id},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "Invalid time format. Use HH:MM"}

    def test_fill_slot(
        self, client, db, auth_headers, admin_user, customer, make_customer, make_pet, grooming_service,
        booking_day, add_entry, providers,
    ):
        reachable = add_entry(customer, make_pet(customer), grooming_service, booking_day)
        no_phone = make_customer(phone=None)
        unreachable = add_entry(no_phone, make_pet(no_phone), grooming_service, booking_day)

        response = client.post(
            "/api/admin/waitlist/fill-slot",
            json={
                "service_id": grooming_service.id,
                "appointment_date": booking_day.isoformat(),
                "appointment_time": "14:00",
                "waitlist_entry_ids": [reachable.id, unreachable.id],
                "discount_percentage": 15,
                "response_window_hours": 4,
            },
            headers=auth_headers(admin_user),
        )

        body = response.json()
        assert response.status_code == 200
        assert body["notifications_sent"] == 1
        assert body["notifications_failed"] == 1
        offer = db.get(WaitlistSlotOffer, body["offer_id"])
        assert offer.discount_percentage == 15
        assert offer.created_by == admin_user.id

        db.refresh(reachable)
        assert reachable.status == "notified"
        assert reachable.offer_id == offer.id
        assert len(providers.sms.sent) == 1

    def test_fill_slot_validation(self, client, auth_headers, admin_user, grooming_service, booking_day):
        response = client.post(
            "/api/admin/waitlist/fill-slot",
            json={
                "service_id": grooming_service.id,
                "appointment_date": booking_day.isoformat(),
                "appointment_time": "14:00",
                "waitlist_entry_ids": [],
            },
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "At least one waitlist entry ID is required"

    def test_notify_batch(
        self, client, auth_headers, admin_user, customer, make_customer, make_pet, grooming_service,
        booking_day, add_entry,
    ):
        add_entry(customer, make_pet(customer), grooming_service, booking_day)
        no_phone = make_customer(phone=None)
        add_entry(no_phone, make_pet(no_phone), grooming_service, booking_day)

        response = client.post(
            "/api/admin/waitlist/notify",
            json={"slot_date": booking_day.isoformat(), "slot_time": "10:00", "limit": 5},
            headers=auth_headers(admin_user),
        )

        body = response.json()
        assert body["total"] == 2
        assert body["sent"] == 1
        assert body["skipped"] == 1
        assert len(body["results"]) == 2

    def test_book_from_waitlist(
        self, client, db, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day, add_entry
    ):
        entry = add_entry(customer, make_pet(customer), grooming_service, booking_day)
        scheduled_at = business_to_utc(booking_day, "14:00")

        response = client.post(
            f"/api/admin/waitlist/{entry.id}/book",
            json={"scheduled_at": scheduled_at.isoformat(), "discount_percentage": 10},
            headers=auth_headers(admin_user),
        )

        body = response.json()
        assert body["success"]
        assert body["total_price"] == 49.5
        assert body["discount_applied"] == 5.5
        appointment = db.get(Appointment, body["appointment_id"])
        assert appointment.source == "waitlist"
        assert appointment.status == "confirmed"
        db.refresh(entry)
        assert entry.status == "booked"

        again = client.post(
            f"/api/admin/waitlist/{entry.id}/book",
            json={"scheduled_at": scheduled_at.isoformat()},
            headers=auth_headers(admin_user),
        )
        assert again.json() == {"detail": "Waitlist entry already booked"}

    def test_book_into_taken_slot(
        self, client, auth_headers, admin_user, customer, make_pet, grooming_service, booking_day,
        add_entry, make_appointment,
    ):
        pet = make_pet(customer)
        make_appointment(customer, pet, grooming_service, booking_day, "14:00")
        entry = add_entry(customer, pet, grooming_service, booking_day)

        response = client.post(
            f"/api/admin/waitlist/{entry.id}/book",
            json={"scheduled_at": business_to_utc(booking_day, "14:30").isoformat()},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SLOT_UNAVAILABLE"


def test_expire_offers(db, customer, make_pet, grooming_service, booking_day, add_entry):
    now = utcnow()
    pet = make_pet(customer)
    stale = add_entry(
        customer, pet, grooming_service, booking_day, status="notified", offer_expires_at=now - timedelta(minutes=1)
    )
    fresh = add_entry(
        customer, pet, grooming_service, booking_day, status="notified", offer_expires_at=now + timedelta(hours=1)
    )
    db.add(
        WaitlistSlotOffer(
            service_id=grooming_service.id,
            slot_date=booking_day,
            slot_time="14:00",
            expires_at=now - timedelta(minutes=1),
        )
    )
    db.commit()

    result = WaitlistService(db).expire_offers(now=now)

    assert result == {"expired_entries": 1, "expired_offers": 1}
    db.refresh(stale)
    db.refresh(fresh)
    assert stale.status == "expired_offer"
    assert fresh.status == "notified"
