"""Booking domain schemas - guest info, pet form and appointment creation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.formatting import PET_SIZES
from ...shared.validators import DATE_PATTERN, is_valid_email, is_valid_phone, is_valid_time, validate_uuid


def _text(value, required_message: str, too_long_message: str, max_length: int) -> str:
    value = value.strip() if isinstance(value, str) else ""
    if not value:
        raise ValueError(required_message)
    if len(value) > max_length:
        raise ValueError(too_long_message)
    return value


def _uuid(value, message: str):
    if value is not None and not validate_uuid(value):
        raise ValueError(message)
    return value


class GuestInfo(BaseModel):
    """Contact details for a customer booking without an account"""

    first_name: str = Field(default="", validate_default=True)
    last_name: str = Field(default="", validate_default=True)
    email: str = Field(default="", validate_default=True)
    phone: str = Field(default="", validate_default=True)

    @field_validator("first_name", mode="before")
    @classmethod
    def validate_first_name(cls, v):
        return _text(v, "First name is required", "First name is too long", 50)

    @field_validator("last_name", mode="before")
    @classmethod
    def validate_last_name(cls, v):
        return _text(v, "Last name is required", "Last name is too long", 50)

    @field_validator("email", mode="before")
    @classmethod
    def validate_email(cls, v):
        v = v.strip().lower() if isinstance(v, str) else ""
        if not v:
            raise ValueError("Email is required")
        if not is_valid_email(v):
            raise ValueError("Please enter a valid email address")
        return v

    @field_validator("phone", mode="before")
    @classmethod
    def validate_phone(cls, v):
        v = v.strip() if isinstance(v, str) else ""
        if len(v) > 20:
            raise ValueError("Phone number is too long")
        if not is_valid_phone(v):
            raise ValueError("Please enter a valid phone number")
        return v


class PetForm(BaseModel):
    """New pet captured during booking"""

    name: str = Field(default="", validate_default=True)
    size: Optional[str] = Field(default=None, validate_default=True)
    breed_id: Optional[str] = None
    breed_custom: Optional[str] = None
    weight: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def validate_name(cls, v):
        return _text(v, "Pet name is required", "Pet name is too long", 50)

    @field_validator("size", mode="before")
    @classmethod
    def validate_size(cls, v):
        if v not in PET_SIZES:
            raise ValueError("Please select a size")
        return v

    @field_validator("breed_id")
    @classmethod
    def validate_breed_id(cls, v):
        if v is not None and not validate_uuid(v):
            raise ValueError("Invalid breed ID")
        return v

    @field_validator("breed_custom")
    @classmethod
    def validate_breed_custom(cls, v):
        if v is not None and len(v) > 100:
            raise ValueError("Breed name is too long")
        return v

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v):
        if v is None:
            return v
        if v <= 0:
            raise ValueError("Weight must be positive")
        if v > 300:
            raise ValueError("Weight seems too high")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Notes are too long")
        return v


class AppointmentCreate(BaseModel):
    """Public booking submission (signed-in customer or guest)"""

    customer_id: Optional[str] = None
    pet_id: Optional[str] = None
    service_id: str
    groomer_id: Optional[str] = None
    scheduled_at: Optional[datetime] = Field(default=None, validate_default=True)
    duration_minutes: int = 60
    total_price: float = 0
    notes: Optional[str] = None
    addon_ids: list[str] = []
    guest_info: Optional[GuestInfo] = None
    new_pet: Optional[PetForm] = None

    @field_validator("customer_id")
    @classmethod
    def validate_customer_id(cls, v):
        return _uuid(v, "Invalid customer ID")

    @field_validator("pet_id")
    @classmethod
    def validate_pet_id(cls, v):
        return _uuid(v, "Invalid pet ID")

    @field_validator("service_id")
    @classmethod
    def validate_service_id(cls, v):
        return _uuid(v, "Invalid service ID")

    @field_validator("groomer_id")
    @classmethod
    def validate_groomer_id(cls, v):
        return _uuid(v, "Invalid groomer ID")

    @field_validator("addon_ids")
    @classmethod
    def validate_addon_ids(cls, v):
        for addon_id in v:
            _uuid(addon_id, "Invalid addon ID")
        return v

    @field_validator("scheduled_at", mode="before")
    @classmethod
    def validate_scheduled_at(cls, v):
        if not v:
            raise ValueError("Scheduled time is required")
        return v

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v <= 0:
            raise ValueError("Duration must be positive")
        return v

    @field_validator("total_price")
    @classmethod
    def validate_total_price(cls, v):
        if v < 0:
            raise ValueError("Total price must be non-negative")
        return v

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v):
        if v is not None and len(v) > 500:
            raise ValueError("Notes are too long")
        return v

    @model_validator(mode="after")
    def validate_pet_source(self):
        if not self.pet_id and not self.new_pet:
            raise ValueError("Pet information is required. Please select a pet.")
        return self


class AdminCustomerInput(BaseModel):
    id: Optional[str] = None
    is_new: bool = False
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        return _uuid(v, "Invalid customer ID")

    @model_validator(mode="after")
    def validate_identity(self):
        if self.is_new:
            if not self.first_name or not self.last_name:
                raise ValueError("Customer first and last name are required")
            if self.email and not is_valid_email(self.email):
                raise ValueError("Please enter a valid email address")
            if self.phone and not is_valid_phone(self.phone):
                raise ValueError("Please enter a valid phone number")
        elif not self.id:
            raise ValueError("Invalid customer ID")
        return self


class AdminPetInput(BaseModel):
    id: Optional[str] = None
    is_new: bool = False
    name: Optional[str] = None
    breed_id: Optional[str] = None
    breed_custom: Optional[str] = None
    size: Optional[str] = None
    weight: Optional[float] = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        return _uuid(v, "Invalid pet ID")

    @model_validator(mode="after")
    def validate_pet(self):
        if self.is_new:
            self.name = _text(self.name, "Pet name is required", "Pet name is too long", 50)
            if self.size not in PET_SIZES:
                raise ValueError("Please select a size")
            if self.breed_custom and len(self.breed_custom) > 100:
                raise ValueError("Breed name is too long")
            if self.weight is not None and self.weight <= 0:
                raise ValueError("Weight must be positive")
        elif not self.id:
            raise ValueError("Invalid pet ID")
        return self


class AdminAppointmentCreate(BaseModel):
    """Staff booking from the admin panel or the front desk"""

    customer: AdminCustomerInput
    pet: AdminPetInput
    service_id: str
    groomer_id: Optional[str] = None
    addon_ids: list[str] = []
    appointment_date: str
    appointment_time: str
    notes: Optional[str] = Field(None, max_length=500)
    send_notification: bool = True
    source: Literal["admin", "walk_in"] = "admin"

    @field_validator("service_id")
    @classmethod
    def validate_service_id(cls, v):
        return _uuid(v, "Invalid service ID")

    @field_validator("groomer_id")
    @classmethod
    def validate_groomer_id(cls, v):
        return _uuid(v, "Invalid groomer ID")

    @field_validator("addon_ids")
    @classmethod
    def validate_addon_ids(cls, v):
        for addon_id in v:
            _uuid(addon_id, "Invalid addon ID")
        return v

    @field_validator("appointment_date")
    @classmethod
    def validate_date(cls, v):
        if not DATE_PATTERN.match(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @field_validator("appointment_time")
    @classmethod
    def validate_time(cls, v):
        if not is_valid_time(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class BookingResult(BaseModel):
    appointment_id: str
    reference: str
    status: str
    scheduled_at: datetime
    total_price: float
