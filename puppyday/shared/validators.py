"""Shared validation utilities"""

import re
import uuid
from typing import Optional

PHONE_PATTERN = re.compile(r"^[\d\s()+-]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
TIME_24H_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_uuid(value: Optional[str]) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, AttributeError, TypeError):
        return False


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase, stripped email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    if not re.match(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$", email):
        raise ValueError("Please enter a valid email address")

    return email


def normalize_phone_number(phone: str) -> str:
    """Strip everything except digits and a leading plus"""
    return re.sub(r"[^\d+]", "", phone or "")


def is_valid_phone(phone: Optional[str]) -> bool:
    """Loose phone check used by booking forms: 10-20 chars of digits, spaces and ()+-"""
    if not phone:
        return False
    return 10 <= len(phone) <= 20 and bool(PHONE_PATTERN.match(phone))


def is_valid_email(email: Optional[str]) -> bool:
    if not email:
        return False
    return bool(EMAIL_PATTERN.match(email))


def is_valid_time(value: Optional[str]) -> bool:
    """HH:MM on a 24-hour clock"""
    return bool(value) and bool(TIME_24H_PATTERN.match(value))
