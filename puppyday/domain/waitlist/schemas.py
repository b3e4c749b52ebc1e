"""Waitlist domain schemas"""

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.dates import get_today_date, parse_date_string
from ...shared.validators import DATE_PATTERN, is_valid_time, validate_uuid


class WaitlistJoinRequest(BaseModel):
    service_id: str
    pet_id: str
    requested_date: str
    requested_time: Literal["morning", "afternoon", "any"] = "any"
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("service_id")
    @classmethod
    def validate_service_id(cls, v):
        if not validate_uuid(v):
            raise ValueError("Invalid service ID")
        return v

    @field_validator("pet_id")
    @classmethod
    def validate_pet_id(cls, v):
        if not validate_uuid(v):
            raise ValueError("Invalid pet ID")
        return v

    @field_validator("requested_date")
    @classmethod
    def validate_requested_date(cls, v):
        parsed = parse_date_string(v) if DATE_PATTERN.match(v) else None
        if parsed is None:
            raise ValueError("Date must be in YYYY-MM-DD format")
        if parsed < get_today_date():
            raise ValueError("Date cannot be in the past")
        return v


class FillSlotRequest(BaseModel):
    """Offer a freed slot to selected waitlist entries"""

    service_id: str
    appointment_date: str
    appointment_time: str
    waitlist_entry_ids: list[str]
    discount_percentage: int = 10
    response_window_hours: int = 2

    @field_validator("service_id")
    @classmethod
    def validate_service_id(cls, v):
        if not validate_uuid(v):
            raise ValueError("service_id must be a valid UUID")
        return v

    @field_validator("appointment_date")
    @classmethod
    def validate_appointment_date(cls, v):
        if not DATE_PATTERN.match(v):
            raise ValueError("appointment_date must be in YYYY-MM-DD format")
        parsed = parse_date_string(v)
        if parsed is None or parsed < get_today_date():
            raise ValueError("appointment_date must be a valid future date")
        return v

    @field_validator("appointment_time")
    @classmethod
    def validate_appointment_time(cls, v):
        if not is_valid_time(v):
            raise ValueError("appointment_time must be in HH:MM format")
        return v

    @field_validator("waitlist_entry_ids")
    @classmethod
    def validate_entry_ids(cls, v):
        if len(v) < 1:
            raise ValueError("At least one waitlist entry ID is required")
        if len(v) > 10:
            raise ValueError("Maximum 10 waitlist entries can be processed at once")
        for entry_id in v:
            if not validate_uuid(entry_id):
                raise ValueError("Each waitlist entry ID must be a valid UUID")
        return v

    @field_validator("discount_percentage")
    @classmethod
    def validate_discount(cls, v):
        if v < 0:
            raise ValueError("discount_percentage must be at least 0")
        if v > 100:
            raise ValueError("discount_percentage cannot exceed 100")
        return v

    @field_validator("response_window_hours")
    @classmethod
    def validate_response_window(cls, v):
        if v <= 0:
            raise ValueError("response_window_hours must be positive")
        if v > 168:
            raise ValueError("response_window_hours cannot exceed 168 (1 week)")
        return v


class BatchNotifyRequest(BaseModel):
    slot_date: str
    slot_time: str
    service_id: Optional[str] = None
    limit: int = Field(5, ge=1, le=10)
    response_window_hours: int = Field(2, ge=1, le=168)

    @field_validator("slot_date")
    @classmethod
    def validate_slot_date(cls, v):
        if not DATE_PATTERN.match(v) or parse_date_string(v) is None:
            raise ValueError("slot_date must be in YYYY-MM-DD format")
        return v

    @field_validator("slot_time")
    @classmethod
    def validate_slot_time(cls, v):
        if not is_valid_time(v):
            raise ValueError("slot_time must be in HH:MM format")
        return v


class BookFromWaitlistRequest(BaseModel):
    scheduled_at: datetime
    discount_percentage: float = Field(0, ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=500)


class WaitlistEntryResponse(BaseModel):
    id: str
    customer_id: str
    pet_id: str
    service_id: str
    requested_date: date
    requested_time: str
    status: str
    notes: Optional[str] = None
    offer_id: Optional[str] = None
    offer_expires_at: Optional[datetime] = None
    notified_at: Optional[datetime] = None
    notification_attempts: int = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
