"""
Failure classification and retry timing for notification sends.
Provider errors arrive as exceptions, status codes or plain strings; they are
sorted into transient / rate_limit (retry) and permanent / validation (give up).
"""

import random
from enum import Enum
from typing import Any, Optional

import httpx

DEFAULT_RETRY_CONFIG = {
    "max_retries": 2,
    "base_delay": 30,  # seconds
    "max_delay": 300,
    "jitter_factor": 0.3,
}

NETWORK_ERROR_MARKERS = (
    "econnreset",
    "etimedout",
    "econnrefused",
    "ehostunreach",
    "enetunreach",
    "enotfound",
    "network",
    "timeout",
    "connection refused",
    "connection reset",
    "socket hang up",
)

RATE_LIMIT_MARKERS = ("rate limit", "too many requests", "429", "throttled", "quota exceeded")

VALIDATION_MARKERS = (
    "invalid",
    "validation",
    "malformed",
    "bad request",
    "missing required",
    "format",
    "not valid",
    "unprocessable",
)


class ErrorType(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    RATE_LIMIT = "rate_limit"
    VALIDATION = "validation"


def _classified(error_type: ErrorType, message: str, status_code: Optional[int] = None) -> dict:
    return {
        "type": error_type,
        "message": message,
        "retryable": error_type in (ErrorType.TRANSIENT, ErrorType.RATE_LIMIT),
        "status_code": status_code,
    }


def _contains_any(message: str, markers: tuple) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in markers)


def classify_by_message_and_status(message: str, status_code: Optional[int] = None) -> dict:
    if status_code:
        if status_code == 429:
            return _classified(ErrorType.RATE_LIMIT, message, status_code)
        if status_code >= 500:
            return _classified(ErrorType.TRANSIENT, message, status_code)
        if 400 <= status_code < 500:
            error_type = ErrorType.VALIDATION if status_code in (400, 422) else ErrorType.PERMANENT
            return _classified(error_type, message, status_code)

    if _contains_any(message, NETWORK_ERROR_MARKERS):
        return _classified(ErrorType.TRANSIENT, message, status_code)
    if _contains_any(message, RATE_LIMIT_MARKERS):
        return _classified(ErrorType.RATE_LIMIT, message, status_code)
    if _contains_any(message, VALIDATION_MARKERS):
        return _classified(ErrorType.VALIDATION, message, status_code)

    return _classified(ErrorType.PERMANENT, message, status_code)


def classify_error(error: Any, status_code: Optional[int] = None) -> dict:
    """
    Classify a send failure.

    Returns:
        dict with type (ErrorType), message, retryable and status_code
    """
    if isinstance(error, httpx.HTTPStatusError):
        return classify_by_message_and_status(str(error), error.response.status_code)

    if isinstance(error, httpx.TransportError):
        # Connect/read timeouts and dropped connections are always worth retrying
        return _classified(ErrorType.TRANSIENT, str(error) or error.__class__.__name__)

    if isinstance(error, Exception):
        code = status_code or getattr(error, "status_code", None)
        return classify_by_message_and_status(str(error), code)

    if isinstance(error, str):
        return classify_by_message_and_status(error, status_code)

    if isinstance(error, dict) and "message" in error:
        return classify_by_message_and_status(
            str(error["message"]), status_code or error.get("status_code")
        )

    return _classified(ErrorType.PERMANENT, "Unknown error occurred")


def should_retry(error: Any) -> bool:
    return classify_error(error)["retryable"]


def calculate_retry_delay(retry_count: int, config: Optional[dict] = None, rng=random) -> int:
    """Exponential backoff in seconds: base * 2^n capped at max_delay, +/- jitter"""
    config = {**DEFAULT_RETRY_CONFIG, **(config or {})}
    delay = min(config["base_delay"] * (2**retry_count), config["max_delay"])
    jitter = delay * config["jitter_factor"] * (rng.random() * 2 - 1)
    return max(0, int(round(delay + jitter)))


def has_exceeded_max_retries(retry_count: int, max_retries: Optional[int] = None) -> bool:
    limit = DEFAULT_RETRY_CONFIG["max_retries"] if max_retries is None else max_retries
    return retry_count >= limit
