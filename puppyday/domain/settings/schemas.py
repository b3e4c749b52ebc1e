"""Settings domain schemas - booking policy and business hours"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import DATE_PATTERN, TIME_24H_PATTERN


class BlockedDate(BaseModel):
    date: str
    end_date: Optional[str] = None
    reason: str = Field("Closed", min_length=1, max_length=200)

    @field_validator("date", "end_date")
    @classmethod
    def validate_date_format(cls, v):
        if v is not None and not DATE_PATTERN.match(v):
            raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date and self.end_date < self.date:
            raise ValueError("End date must be on or after the start date")
        return self


class BookingSettings(BaseModel):
    min_advance_hours: int = Field(2, ge=0, le=168)
    max_advance_days: int = Field(90, ge=7, le=365)
    cancellation_cutoff_hours: int = Field(24, ge=0, le=72)
    buffer_minutes: int = Field(15, ge=0, le=120)
    blocked_dates: list[BlockedDate] = []
    recurring_blocked_days: list[int] = [0]

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v):
        if v % 5 != 0:
            raise ValueError("Buffer minutes must be in 5-minute increments")
        return v

    @field_validator("recurring_blocked_days")
    @classmethod
    def validate_days(cls, v):
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Recurring blocked days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))


class BookingSettingsUpdate(BaseModel):
    """Partial update; omitted fields keep their stored values"""

    min_advance_hours: Optional[int] = Field(None, ge=0, le=168)
    max_advance_days: Optional[int] = Field(None, ge=7, le=365)
    cancellation_cutoff_hours: Optional[int] = Field(None, ge=0, le=72)
    buffer_minutes: Optional[int] = Field(None, ge=0, le=120)
    blocked_dates: Optional[list[BlockedDate]] = None
    recurring_blocked_days: Optional[list[int]] = None

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v):
        if v is not None and v % 5 != 0:
            raise ValueError("Buffer minutes must be in 5-minute increments")
        return v

    @field_validator("recurring_blocked_days")
    @classmethod
    def validate_days(cls, v):
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("Recurring blocked days must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))


class BusinessHoursDay(BaseModel):
    is_open: bool = True
    open: str = "09:00"
    close: str = "17:00"

    @field_validator("open", "close")
    @classmethod
    def validate_time(cls, v):
        if not TIME_24H_PATTERN.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v

    @model_validator(mode="after")
    def validate_order(self):
        if self.is_open and self.close <= self.open:
            raise ValueError("Closing time must be after opening time")
        return self


class BusinessHours(BaseModel):
    monday: BusinessHoursDay
    tuesday: BusinessHoursDay
    wednesday: BusinessHoursDay
    thursday: BusinessHoursDay
    friday: BusinessHoursDay
    saturday: BusinessHoursDay
    sunday: BusinessHoursDay
