"""
API error codes and user-facing messages.

Every failure the API reports to a browser carries one of the codes below.
The matching message is what customers and staff actually read, so it is
kept friendly and free of internals.
"""

import logging
from enum import Enum
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred. Please try again."


class ApiErrorCode(str, Enum):
    # Authentication & Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"

    # Validation
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"

    # Resources
    NOT_FOUND = "NOT_FOUND"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    CONFLICT = "CONFLICT"
    SERVICE_IN_USE = "SERVICE_IN_USE"

    # Business Logic
    SLOT_UNAVAILABLE = "SLOT_UNAVAILABLE"
    BOOKING_CONFLICT = "BOOKING_CONFLICT"
    CANCELLATION_WINDOW_EXPIRED = "CANCELLATION_WINDOW_EXPIRED"
    INSUFFICIENT_LOYALTY_POINTS = "INSUFFICIENT_LOYALTY_POINTS"
    WAITLIST_FULL = "WAITLIST_FULL"

    # Rate Limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"

    # Payment
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"

    # Server Errors
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Security
    CSRF_TOKEN_INVALID = "CSRF_TOKEN_INVALID"
    CSRF_TOKEN_MISSING = "CSRF_TOKEN_MISSING"


ERROR_MESSAGES: dict[ApiErrorCode, str] = {
    ApiErrorCode.UNAUTHORIZED: "You need to be logged in to access this. Please log in and try again.",
    ApiErrorCode.FORBIDDEN: "You don't have permission to perform this action.",
    ApiErrorCode.INVALID_CREDENTIALS: "The email or password you entered is incorrect. Please try again.",
    ApiErrorCode.SESSION_EXPIRED: "Your session has expired. Please log in again to continue.",
    ApiErrorCode.EMAIL_NOT_VERIFIED: (
        "Please verify your email address before continuing. "
        "Check your inbox for the verification link."
    ),
    ApiErrorCode.VALIDATION_ERROR: "Some of the information you entered is invalid. Please check and try again.",
    ApiErrorCode.INVALID_INPUT: "The information you provided is invalid. Please check your input.",
    ApiErrorCode.MISSING_REQUIRED_FIELD: "Please fill in all required fields.",
    ApiErrorCode.INVALID_FILE_TYPE: "This file type is not supported. Please upload a JPG, PNG, or WebP image.",
    ApiErrorCode.FILE_TOO_LARGE: "The file you selected is too large. Please choose a smaller file (max 5MB).",
    ApiErrorCode.NOT_FOUND: "We couldn't find what you're looking for. It may have been moved or deleted.",
    ApiErrorCode.ALREADY_EXISTS: "This already exists. Please try a different value.",
    ApiErrorCode.CONFLICT: "There was a conflict with your request. Please refresh and try again.",
    ApiErrorCode.SERVICE_IN_USE: "This service is still in use. Please deactivate it instead.",
    ApiErrorCode.SLOT_UNAVAILABLE: "Sorry, this time slot just became unavailable. Let's find you another time!",
    ApiErrorCode.BOOKING_CONFLICT: "You already have an appointment at this time. Please choose a different slot.",
    ApiErrorCode.CANCELLATION_WINDOW_EXPIRED: (
        "This appointment is within 24 hours and cannot be cancelled online. "
        "Please call us at (657) 252-2903."
    ),
    ApiErrorCode.INSUFFICIENT_LOYALTY_POINTS: (
        "You don't have enough loyalty points for this reward. Keep grooming to earn more!"
    ),
    ApiErrorCode.WAITLIST_FULL: (
        "The waitlist for this day is currently full. Please try booking for a different date."
    ),
    ApiErrorCode.RATE_LIMIT_EXCEEDED: (
        "Whoa, slow down! You're making too many requests. Please wait a moment and try again."
    ),
    ApiErrorCode.TOO_MANY_REQUESTS: "Too many requests. Please wait a few minutes before trying again.",
    ApiErrorCode.PAYMENT_FAILED: (
        "Your payment could not be processed. Please check your payment information and try again."
    ),
    ApiErrorCode.PAYMENT_REQUIRED: "Payment is required to complete this action.",
    ApiErrorCode.INVALID_PAYMENT_METHOD: "The payment method is invalid. Please update your payment information.",
    ApiErrorCode.INTERNAL_SERVER_ERROR: (
        "Something went wrong on our end. We've been notified and are working to fix it."
    ),
    ApiErrorCode.DATABASE_ERROR: (
        "We're having trouble accessing our database. Please try again in a few moments."
    ),
    ApiErrorCode.EXTERNAL_SERVICE_ERROR: (
        "We're experiencing issues with one of our services. Please try again shortly."
    ),
    ApiErrorCode.SERVICE_UNAVAILABLE: "We're temporarily down for maintenance. We'll be back shortly!",
    ApiErrorCode.CSRF_TOKEN_INVALID: (
        "Your session security token is invalid. Please refresh the page and try again."
    ),
    ApiErrorCode.CSRF_TOKEN_MISSING: "Missing security token. Please refresh the page.",
}

# HTTP status used when an ApiError is raised without an explicit one
ERROR_STATUS_CODES: dict[ApiErrorCode, int] = {
    ApiErrorCode.UNAUTHORIZED: 401,
    ApiErrorCode.FORBIDDEN: 403,
    ApiErrorCode.INVALID_CREDENTIALS: 401,
    ApiErrorCode.SESSION_EXPIRED: 401,
    ApiErrorCode.EMAIL_NOT_VERIFIED: 403,
    ApiErrorCode.VALIDATION_ERROR: 400,
    ApiErrorCode.INVALID_INPUT: 400,
    ApiErrorCode.MISSING_REQUIRED_FIELD: 400,
    ApiErrorCode.INVALID_FILE_TYPE: 400,
    ApiErrorCode.FILE_TOO_LARGE: 413,
    ApiErrorCode.NOT_FOUND: 404,
    ApiErrorCode.ALREADY_EXISTS: 409,
    ApiErrorCode.CONFLICT: 409,
    ApiErrorCode.SERVICE_IN_USE: 409,
    ApiErrorCode.SLOT_UNAVAILABLE: 409,
    ApiErrorCode.BOOKING_CONFLICT: 409,
    ApiErrorCode.CANCELLATION_WINDOW_EXPIRED: 400,
    ApiErrorCode.INSUFFICIENT_LOYALTY_POINTS: 400,
    ApiErrorCode.WAITLIST_FULL: 409,
    ApiErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ApiErrorCode.TOO_MANY_REQUESTS: 429,
    ApiErrorCode.PAYMENT_FAILED: 402,
    ApiErrorCode.PAYMENT_REQUIRED: 402,
    ApiErrorCode.INVALID_PAYMENT_METHOD: 400,
    ApiErrorCode.INTERNAL_SERVER_ERROR: 500,
    ApiErrorCode.DATABASE_ERROR: 500,
    ApiErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ApiErrorCode.SERVICE_UNAVAILABLE: 503,
    ApiErrorCode.CSRF_TOKEN_INVALID: 403,
    ApiErrorCode.CSRF_TOKEN_MISSING: 403,
}


def _coerce_code(code: Any) -> Optional[ApiErrorCode]:
    if isinstance(code, ApiErrorCode):
        return code
    try:
        return ApiErrorCode(code)
    except ValueError:
        return None


def get_user_friendly_message(code: Any, fallback: Optional[str] = None) -> str:
    """Get user-friendly message for an error code"""
    known = _coerce_code(code)
    if known is not None:
        return ERROR_MESSAGES[known]
    return fallback or DEFAULT_ERROR_MESSAGE


def get_error_message(error: Any) -> str:
    """
    Get a user-friendly message from whatever a failed call produced.

    Accepts plain strings, API error payloads ({"error": {"code", "message"}}),
    exceptions, and objects or dicts carrying a "message".
    """
    if isinstance(error, str):
        return error

    if isinstance(error, dict):
        api_error = error.get("error")
        if isinstance(api_error, dict):
            if api_error.get("code"):
                return get_user_friendly_message(api_error["code"], api_error.get("message"))
            if api_error.get("message"):
                return api_error["message"]
        if isinstance(error.get("message"), str):
            return error["message"]
        return DEFAULT_ERROR_MESSAGE

    if isinstance(error, ApiError):
        return error.message

    if isinstance(error, Exception):
        return str(error)

    message = getattr(error, "message", None)
    if isinstance(message, str):
        return message

    return DEFAULT_ERROR_MESSAGE


FIELD_ERROR_MESSAGES: dict[str, dict[str, str]] = {
    "email": {
        "required": "Email is required",
        "invalid": "Please enter a valid email address",
        "taken": "This email is already registered",
    },
    "password": {
        "required": "Password is required",
        "min": "Password must be at least 8 characters",
        "weak": "Password must contain uppercase, lowercase, and a number",
        "mismatch": "Passwords do not match",
    },
    "phone": {
        "required": "Phone number is required",
        "invalid": "Please enter a valid phone number",
    },
    "firstName": {
        "required": "First name is required",
        "min": "First name is too short",
        "max": "First name is too long",
    },
    "lastName": {
        "required": "Last name is required",
        "min": "Last name is too short",
        "max": "Last name is too long",
    },
    "petName": {
        "required": "Pet name is required",
        "min": "Pet name is too short",
    },
    "service": {
        "required": "Please select a service",
    },
    "date": {
        "required": "Please select a date",
        "past": "Date cannot be in the past",
        "invalid": "Please select a valid date",
    },
    "time": {
        "required": "Please select a time",
        "unavailable": "This time slot is not available",
    },
}


def get_field_error_message(field: str, error: str) -> str:
    """Field-specific error messages for form validation"""
    return FIELD_ERROR_MESSAGES.get(field, {}).get(error, error)


def get_network_error_message(error: Any) -> str:
    """Translate transport failures (httpx errors, timeouts) into a message"""
    message = str(getattr(error, "message", None) or error or "").lower()

    if "network" in message or "connection" in message or "connect" in message:
        return "Please check your internet connection and try again."
    if "timeout" in message or "timed out" in message:
        return "The request took too long. Please try again."
    if "abort" in message or "cancel" in message:
        return "The request was cancelled. Please try again."

    return "A network error occurred. Please try again."


def get_booking_error_message(
    code: Any,
    date: Optional[str] = None,
    time: Optional[str] = None,
    service: Optional[str] = None,
) -> str:
    """Booking-specific error messages with date/time context"""
    known = _coerce_code(code)

    if known == ApiErrorCode.SLOT_UNAVAILABLE and date and time:
        return f"Sorry, {time} on {date} just became unavailable. Let's find you another time!"
    if known == ApiErrorCode.BOOKING_CONFLICT and date and time:
        return (
            f"You already have an appointment on {date} at {time}. "
            "Please choose a different time."
        )
    if known == ApiErrorCode.WAITLIST_FULL and date:
        return (
            f"The waitlist for {date} is currently full. "
            "Please try booking for a different date."
        )

    return get_user_friendly_message(code)


class ApiError(HTTPException):
    """HTTPException that carries an ApiErrorCode for the response body"""

    def __init__(
        self,
        code: ApiErrorCode,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[list] = None,
        headers: Optional[dict] = None,
    ):
        self.code = code
        self.message = message or get_user_friendly_message(code)
        self.details = details
        super().__init__(
            status_code=status_code or ERROR_STATUS_CODES.get(code, 400),
            detail=self.message,
            headers=headers,
        )

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"error": {"code": self.code.value, "message": self.message}}
        if self.details:
            body["details"] = self.details
        return body


def format_validation_errors(errors: list) -> list[dict]:
    """Flatten pydantic errors into [{path, message}] pairs"""
    details = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = error.get("msg", "Invalid value")
        # pydantic prefixes custom ValueError messages
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        details.append({"path": ".".join(loc), "message": message})
    return details


async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"❌ {exc.code.value} on {request.url.path}: {exc.message}")
    else:
        logger.warning(f"⚠️ {exc.code.value} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert request validation errors to the API error shape.
    A missing/invalid Authorization header is an authentication failure, not bad input.
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content=ApiError(ApiErrorCode.UNAUTHORIZED).to_dict(),
            )

    details = format_validation_errors(exc.errors())
    logger.warning(f"Validation error for {request.url.path}: {details}")
    message = details[0]["message"] if details else ERROR_MESSAGES[ApiErrorCode.VALIDATION_ERROR]
    return JSONResponse(
        status_code=400,
        content=ApiError(ApiErrorCode.VALIDATION_ERROR, message=message, details=details).to_dict(),
    )
