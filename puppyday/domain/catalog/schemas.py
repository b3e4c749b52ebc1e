"""Catalog schemas - admin create/update of grooming services"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.formatting import PET_SIZES

TAG_PATTERN = re.compile(r"<[^>]*>")
MAX_DURATION_MINUTES = 8 * 60


def strip_tags(value: str) -> str:
    return TAG_PATTERN.sub("", value).strip()


def _name(value) -> str:
    value = strip_tags(value) if isinstance(value, str) else ""
    if not value:
        raise ValueError("Service name is required")
    if len(value) > 100:
        raise ValueError("Service name must be 100 characters or less")
    return value


def _description(value):
    if value is None:
        return None
    value = strip_tags(str(value))
    if len(value) > 1000:
        raise ValueError("Description must be 1000 characters or less")
    return value or None


def _duration(value):
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError("Duration must be a positive number of minutes")
    if value > MAX_DURATION_MINUTES:
        raise ValueError(f"Duration cannot exceed {MAX_DURATION_MINUTES} minutes")
    return value


def _image_url(value):
    if not value:
        return None
    if not isinstance(value, str) or not re.match(r"^https?://\S+$", value.strip(), re.IGNORECASE):
        raise ValueError("Invalid image URL format. Only HTTP/HTTPS URLs are allowed.")
    return value.strip()


def _prices(value) -> dict[str, float]:
    """Every size needs a positive price"""
    if not isinstance(value, dict):
        raise ValueError("Size-based prices are required")
    prices = {}
    for size in PET_SIZES:
        price = value.get(size)
        if price is None:
            raise ValueError(f"Price for {size} size is required")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0:
            raise ValueError(f"Price for {size} size must be greater than 0")
        prices[size] = round(float(price), 2)
    return prices


class ServiceCreate(BaseModel):
    name: str = Field(default="", validate_default=True)
    description: Optional[str] = None
    duration_minutes: int = Field(default=0, validate_default=True)
    image_url: Optional[str] = None
    is_active: bool = True
    display_order: int = Field(0, ge=0)
    prices: dict = Field(default=None, validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return _description(v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def validate_duration(cls, v):
        return _duration(v)

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v):
        return _image_url(v)

    @field_validator("prices", mode="before")
    @classmethod
    def validate_prices(cls, v):
        return _prices(v)


class ServiceUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)
    prices: Optional[dict] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _name(v)

    @field_validator("description", mode="before")
    @classmethod
    def validate_description(cls, v):
        return _description(v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def validate_duration(cls, v):
        return _duration(v)

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v):
        return _image_url(v)

    @field_validator("prices", mode="before")
    @classmethod
    def validate_prices(cls, v):
        return v if v is None else _prices(v)
