"""
Tests for admin management of grooming services and their size prices
"""
import uuid

import pytest

from puppyday.models import Service, ServicePrice, WaitlistEntry

PRICES = {"small": 40, "medium": 55, "large": 70, "xlarge": 85}


@pytest.fixture
def admin(auth_headers, admin_user):
    return auth_headers(admin_user)


def new_service(**overrides):
    payload = {"name": "Full Groom", "duration_minutes": 90, "prices": dict(PRICES)}
    payload.update(overrides)
    return payload


class TestCreate:
    def test_create(self, client, db, admin):
        response = client.post(
            "/api/admin/services",
            json=new_service(
                name="  <b>Full Groom</b> ",
                description="Bath, cut and <script>alert(1)</script>nails",
                image_url="https://cdn.thepuppyday.com/full-groom.jpg",
                display_order=2,
            ),
            headers=admin,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["name"] == "Full Groom"
        assert data["description"] == "Bath, cut and alert(1)nails"
        assert data["prices"] == [
            {"size": "small", "price": 40.0},
            {"size": "medium", "price": 55.0},
            {"size": "large", "price": 70.0},
            {"size": "xlarge", "price": 85.0},
        ]
        assert data["price_range"] == "$40.00 - $85.00"
        assert data["display_order"] == 2
        assert db.query(ServicePrice).filter(ServicePrice.service_id == data["id"]).count() == 4

    def test_shows_up_in_booking_catalog(self, client, admin):
        client.post("/api/admin/services", json=new_service(), headers=admin)

        services = client.get("/api/services").json()["data"]
        assert [s["name"] for s in services] == ["Full Groom"]

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"prices": None}, "Size-based prices are required"),
            ({"prices": {"small": 40, "medium": 55, "large": 70}}, "Price for xlarge size is required"),
            ({"prices": {**PRICES, "medium": 0}}, "Price for medium size must be greater than 0"),
            ({"duration_minutes": 0}, "Duration must be a positive number of minutes"),
            ({"name": "<i></i>"}, "Service name is required"),
            ({"image_url": "javascript:alert(1)"}, "Invalid image URL format. Only HTTP/HTTPS URLs are allowed."),
        ],
    )
    def test_validation(self, client, admin, overrides, message):
        response = client.post("/api/admin/services", json=new_service(**overrides), headers=admin)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert response.json()["error"]["message"] == message

    def test_staff_only(self, client, auth_headers, customer):
        response = client.post("/api/admin/services", json=new_service(), headers=auth_headers(customer))
        assert response.status_code == 403

        assert client.get("/api/admin/services").status_code == 401


class TestReadAndUpdate:
    def test_list_includes_inactive_in_display_order(self, client, db, admin, make_service):
        later = make_service(name="Bath Only")
        first = make_service(name="Nail Trim")
        first.display_order = 0
        later.display_order = 5
        later.is_active = False
        db.commit()

        everything = client.get("/api/admin/services", headers=admin).json()["data"]
        assert [s["name"] for s in everything] == ["Nail Trim", "Bath Only"]

        active = client.get("/api/admin/services?include_inactive=false", headers=admin).json()["data"]
        assert [s["name"] for s in active] == ["Nail Trim"]

    def test_get(self, client, admin, grooming_service):
        response = client.get(f"/api/admin/services/{grooming_service.id}", headers=admin)
        assert response.json()["data"]["name"] == "Basic Grooming"
        assert len(response.json()["data"]["prices"]) == 4

    def test_get_bad_ids(self, client, admin):
        bad = client.get("/api/admin/services/not-a-uuid", headers=admin)
        assert bad.status_code == 400
        assert bad.json() == {"detail": "Invalid service ID format"}

        missing = client.get(f"/api/admin/services/{uuid.uuid4()}", headers=admin)
        assert missing.status_code == 404
        assert missing.json() == {"detail": "Service not found"}

    def test_update_fields_and_prices(self, client, db, admin, grooming_service):
        response = client.patch(
            f"/api/admin/services/{grooming_service.id}",
            json={"duration_minutes": 75, "is_active": False, "prices": {**PRICES, "xlarge": 99.5}},
            headers=admin,
        )

        data = response.json()["data"]
        assert data["duration_minutes"] == 75
        assert data["is_active"] is False
        assert data["prices"][-1] == {"size": "xlarge", "price": 99.5}
        assert data["name"] == "Basic Grooming"
        assert db.query(ServicePrice).filter(ServicePrice.service_id == grooming_service.id).count() == 4

    def test_update_needs_every_size(self, client, admin, grooming_service):
        response = client.patch(
            f"/api/admin/services/{grooming_service.id}",
            json={"prices": {"small": 45}},
            headers=admin,
        )
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Price for medium size is required"


class TestDelete:
    def test_delete_unused(self, client, db, admin, make_service):
        unused = make_service(name="Puppy Intro")

        response = client.delete(f"/api/admin/services/{unused.id}", headers=admin)

        assert response.json() == {"success": True}
        db.expire_all()
        assert db.get(Service, unused.id) is None
        assert db.query(ServicePrice).filter(ServicePrice.service_id == unused.id).count() == 0

    def test_booked_service_is_kept(
        self, client, db, admin, customer, make_pet, grooming_service, make_appointment, booking_day
    ):
        make_appointment(customer, make_pet(customer), grooming_service, booking_day)

        response = client.delete(f"/api/admin/services/{grooming_service.id}", headers=admin)

        assert response.status_code == 409
        assert response.json()["error"] == {
            "code": "SERVICE_IN_USE",
            "message": "Cannot delete service with existing appointments. Please deactivate it instead.",
        }
        assert db.get(Service, grooming_service.id) is not None

    def test_waitlisted_service_is_kept(self, client, db, admin, customer, make_pet, grooming_service, booking_day):
        db.add(
            WaitlistEntry(
                customer_id=customer.id,
                pet_id=make_pet(customer).id,
                service_id=grooming_service.id,
                requested_date=booking_day,
            )
        )
        db.commit()

        response = client.delete(f"/api/admin/services/{grooming_service.id}", headers=admin)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SERVICE_IN_USE"
