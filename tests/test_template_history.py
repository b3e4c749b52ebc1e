"""
Tests for template version history, rollback and test sends
"""
import pytest

from puppyday.models import NotificationLog, NotificationTemplate

SMS_BODY = "{{pet_name}} on {{appointment_date}} at {{appointment_time}}, {{total_price}}"
SAMPLE_DATA = {
    "pet_name": "Biscuit",
    "appointment_date": "Jan 7",
    "appointment_time": "10:00 AM",
    "total_price": "$55.00",
    "customer_name": "Jamie",
    "service_name": "Basic Grooming",
}


@pytest.fixture
def admin(auth_headers, admin_user):
    return auth_headers(admin_user)


def template_for(db, notification_type, channel):
    return (
        db.query(NotificationTemplate)
        .filter(NotificationTemplate.type == notification_type, NotificationTemplate.channel == channel)
        .one()
    )


@pytest.fixture
def sms_template(db):
    return template_for(db, "booking_confirmation", "sms")


def edit(client, admin, template, text, reason=None):
    payload = {"text_template": text}
    if reason:
        payload["change_reason"] = reason
    response = client.put(f"/api/admin/notifications/templates/{template.id}", json=payload, headers=admin)
    assert response.status_code == 200
    return response.json()


class TestHistory:
    def test_edit_keeps_previous_version(self, client, admin, admin_user, sms_template):
        original = sms_template.text_template

        edit(client, admin, sms_template, f"v2: {SMS_BODY}", reason="Shorter copy")

        history = client.get(f"/api/admin/notifications/templates/{sms_template.id}/history", headers=admin).json()
        assert len(history) == 1
        assert history[0]["version"] == 1
        assert history[0]["text_template"] == original
        assert history[0]["change_reason"] == "Shorter copy"
        assert history[0]["changed_by"] == admin_user.id

    def test_newest_first(self, client, admin, sms_template):
        edit(client, admin, sms_template, f"v2: {SMS_BODY}")
        edit(client, admin, sms_template, f"v3: {SMS_BODY}")

        history = client.get(f"/api/admin/notifications/templates/{sms_template.id}/history", headers=admin).json()
        assert [h["version"] for h in history] == [2, 1]

    def test_rejected_edit_leaves_no_history(self, client, admin, sms_template):
        response = client.put(
            f"/api/admin/notifications/templates/{sms_template.id}",
            json={"text_template": "Booked {{pet_name}}"},
            headers=admin,
        )
        assert response.status_code == 400

        history = client.get(f"/api/admin/notifications/templates/{sms_template.id}/history", headers=admin).json()
        assert history == []

    def test_missing_template(self, client, admin):
        response = client.get("/api/admin/notifications/templates/nope/history", headers=admin)
        assert response.status_code == 404
        assert response.json() == {"detail": "Template not found"}

    def test_staff_only(self, client, auth_headers, customer, sms_template):
        response = client.get(
            f"/api/admin/notifications/templates/{sms_template.id}/history", headers=auth_headers(customer)
        )
        assert response.status_code == 403


class TestRollback:
    def test_restores_old_content_as_new_version(self, client, db, admin, sms_template):
        original = sms_template.text_template
        edit(client, admin, sms_template, f"v2: {SMS_BODY}")
        edit(client, admin, sms_template, f"v3: {SMS_BODY}")

        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/rollback",
            json={"version": 1, "reason": "Typo in v3"},
            headers=admin,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 4
        assert body["text_template"] == original

        history = client.get(f"/api/admin/notifications/templates/{sms_template.id}/history", headers=admin).json()
        assert [h["version"] for h in history] == [3, 2, 1]
        assert history[0]["change_reason"] == "Rolled back to version 1: Typo in v3"
        assert history[0]["text_template"] == f"v3: {SMS_BODY}"

    def test_unknown_version(self, client, admin, sms_template):
        edit(client, admin, sms_template, f"v2: {SMS_BODY}")

        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/rollback",
            json={"version": 99, "reason": "Try it"},
            headers=admin,
        )

        assert response.status_code == 404
        assert response.json() == {"detail": "Version 99 not found"}

    @pytest.mark.parametrize(
        "payload,path",
        [
            ({"reason": "No version"}, "version"),
            ({"version": "latest", "reason": "Not a number"}, "version"),
            ({"version": 1}, "reason"),
            ({"version": 1, "reason": ""}, "reason"),
        ],
    )
    def test_requires_version_and_reason(self, client, admin, sms_template, payload, path):
        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/rollback", json=payload, headers=admin
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["path"] == path


class TestTestSend:
    def test_sms(self, client, db, admin, sms_template, providers):
        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/test",
            json={"recipient_phone": "(657) 252-2903", "sample_data": SAMPLE_DATA},
            headers=admin,
        )

        assert response.status_code == 200
        assert response.json()["success"]
        sent = providers.sms.sent[0]
        assert sent["to"] == "+16572522903"
        assert sent["body"].startswith("[TEST] Confirmed! Biscuit Jan 7 10:00 AM. $55.00.")
        log = db.get(NotificationLog, response.json()["log_id"])
        assert log.is_test is True

    def test_email(self, client, db, admin, providers):
        template = template_for(db, "booking_confirmation", "email")

        response = client.post(
            f"/api/admin/notifications/templates/{template.id}/test",
            json={"recipient_email": "Owner@Example.com", "sample_data": SAMPLE_DATA},
            headers=admin,
        )

        assert response.status_code == 200
        sent = providers.email.sent[0]
        assert sent["to"] == "owner@example.com"
        assert sent["subject"] == "[TEST] Your appointment for Biscuit is booked!"
        assert "<strong>Basic Grooming</strong>" in sent["html"]

    def test_email_needs_email_recipient(self, client, db, admin):
        template = template_for(db, "booking_confirmation", "email")

        response = client.post(
            f"/api/admin/notifications/templates/{template.id}/test",
            json={"recipient_phone": "(657) 252-2903"},
            headers=admin,
        )

        assert response.status_code == 400
        assert response.json() == {"detail": "recipient_email is required for email templates"}

    def test_sms_needs_phone_recipient(self, client, admin, sms_template):
        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/test",
            json={"recipient_email": "owner@example.com"},
            headers=admin,
        )
        assert response.json() == {"detail": "recipient_phone is required for SMS templates"}

    def test_invalid_recipients(self, client, db, admin, sms_template):
        email_template = template_for(db, "booking_confirmation", "email")

        bad_email = client.post(
            f"/api/admin/notifications/templates/{email_template.id}/test",
            json={"recipient_email": "not-an-email"},
            headers=admin,
        )
        bad_phone = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/test",
            json={"recipient_phone": "12345"},
            headers=admin,
        )

        assert bad_email.json() == {"detail": "Invalid email address"}
        assert bad_phone.json() == {"detail": "Invalid phone number"}

    def test_provider_failure(self, client, admin, sms_template, providers):
        providers.sms.fail_with = "Carrier unreachable"

        response = client.post(
            f"/api/admin/notifications/templates/{sms_template.id}/test",
            json={"recipient_phone": "(657) 252-2903", "sample_data": SAMPLE_DATA},
            headers=admin,
        )

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Failed to send test notification: Carrier unreachable")

    def test_missing_template(self, client, admin):
        response = client.post(
            "/api/admin/notifications/templates/nope/test",
            json={"recipient_phone": "(657) 252-2903"},
            headers=admin,
        )
        assert response.status_code == 404
