"""
Unit tests for API error codes, messages and exception handlers
"""
import httpx
import pytest
from fastapi import FastAPI, Header
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from pydantic import BaseModel, field_validator

from puppyday.errors import (
    DEFAULT_ERROR_MESSAGE,
    ERROR_MESSAGES,
    ERROR_STATUS_CODES,
    ApiError,
    ApiErrorCode,
    api_error_handler,
    format_validation_errors,
    get_booking_error_message,
    get_error_message,
    get_field_error_message,
    get_network_error_message,
    get_user_friendly_message,
    validation_exception_handler,
)


class TestMessages:
    def test_every_code_has_message_and_status(self):
        for code in ApiErrorCode:
            assert code in ERROR_MESSAGES
            assert code in ERROR_STATUS_CODES

    def test_user_friendly_message(self):
        assert get_user_friendly_message("UNAUTHORIZED").startswith("You need to be logged in")
        assert get_user_friendly_message("NOT_A_CODE", "fallback") == "fallback"
        assert get_user_friendly_message("NOT_A_CODE") == DEFAULT_ERROR_MESSAGE

    def test_get_error_message_variants(self):
        assert get_error_message("plain") == "plain"
        assert get_error_message({"error": {"code": "FORBIDDEN", "message": "x"}}) == ERROR_MESSAGES[
            ApiErrorCode.FORBIDDEN
        ]
        assert get_error_message({"error": {"message": "Raw message"}}) == "Raw message"
        assert get_error_message({"message": "From dict"}) == "From dict"
        assert get_error_message({}) == DEFAULT_ERROR_MESSAGE
        assert get_error_message(ValueError("boom")) == "boom"
        assert get_error_message(ApiError(ApiErrorCode.NOT_FOUND, "Pet not found")) == "Pet not found"
        assert get_error_message(42) == DEFAULT_ERROR_MESSAGE

    def test_field_messages(self):
        assert get_field_error_message("email", "invalid") == "Please enter a valid email address"
        assert get_field_error_message("unknown", "custom") == "custom"

    def test_network_messages(self):
        assert "internet connection" in get_network_error_message(httpx.ConnectError("Connection refused"))
        assert "too long" in get_network_error_message("Request timed out")
        assert "cancelled" in get_network_error_message("request aborted")
        assert get_network_error_message(None) == "A network error occurred. Please try again."

    def test_booking_messages(self):
        assert (
            get_booking_error_message("SLOT_UNAVAILABLE", "Dec 25", "10:00 AM")
            == "Sorry, 10:00 AM on Dec 25 just became unavailable. Let's find you another time!"
        )
        assert "You already have an appointment on Dec 25 at 10:00 AM" in get_booking_error_message(
            ApiErrorCode.BOOKING_CONFLICT, "Dec 25", "10:00 AM"
        )
        assert "waitlist for Dec 25" in get_booking_error_message("WAITLIST_FULL", "Dec 25")
        assert get_booking_error_message("SLOT_UNAVAILABLE") == ERROR_MESSAGES[ApiErrorCode.SLOT_UNAVAILABLE]


class TestApiError:
    def test_defaults_from_code(self):
        error = ApiError(ApiErrorCode.CANCELLATION_WINDOW_EXPIRED)
        assert error.status_code == 400
        assert error.message.startswith("This appointment is within 24 hours and cannot be cancelled online.")

    def test_to_dict_includes_details_only_when_present(self):
        assert ApiError(ApiErrorCode.NOT_FOUND, "Gone").to_dict() == {
            "error": {"code": "NOT_FOUND", "message": "Gone"}
        }
        body = ApiError(ApiErrorCode.VALIDATION_ERROR, details=[{"path": "a", "message": "b"}]).to_dict()
        assert body["details"] == [{"path": "a", "message": "b"}]

    def test_format_validation_errors_strips_prefix(self):
        details = format_validation_errors(
            [{"loc": ("body", "guest_info", "email"), "msg": "Value error, Please enter a valid email address"}]
        )
        assert details == [{"path": "guest_info.email", "message": "Please enter a valid email address"}]


class Payload(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        if not v.strip():
            raise ValueError("Name is required")
        return v


@pytest.fixture
def error_app():
    app = FastAPI()
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/missing")
    def missing():
        raise ApiError(ApiErrorCode.NOT_FOUND, "Pet not found")

    @app.post("/payload")
    def payload(data: Payload):
        return {"ok": True}

    @app.get("/needs-header")
    def needs_header(authorization: str = Header(...)):
        return {"ok": True}

    return TestClient(app)


class TestHandlers:
    def test_api_error_rendered(self, error_app):
        response = error_app.get("/missing")
        assert response.status_code == 404
        assert response.json() == {"error": {"code": "NOT_FOUND", "message": "Pet not found"}}

    def test_validation_error_rendered_as_400(self, error_app):
        response = error_app.post("/payload", json={"name": "  "})
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["message"] == "Name is required"
        assert body["details"] == [{"path": "name", "message": "Name is required"}]

    def test_missing_authorization_header_is_401(self, error_app):
        response = error_app.get("/needs-header")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"
